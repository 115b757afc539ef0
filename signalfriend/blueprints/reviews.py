"""
Reviews Blueprint - Permanent 1-5 ratings tied to purchase receipts
"""

from flask import Blueprint

from signalfriend.api import ok, parse_body, parse_query, path_address, path_content_id, path_token_id
from signalfriend.middleware import current_address, require_auth
from signalfriend.schemas import CreateReviewBody, PageQuery
from signalfriend.security import read_limit, write_limit
from signalfriend.services import reviews as review_service

reviews_bp = Blueprint("reviews", __name__)


@reviews_bp.route("/mine", methods=["GET"])
@require_auth
def my_reviews():
    items, pagination = review_service.get_my_reviews(current_address(), parse_query(PageQuery))
    return ok(items, pagination=pagination)


@reviews_bp.route("/signal/<content_id>", methods=["GET"])
@read_limit()
def signal_reviews(content_id):
    items, pagination = review_service.get_signal_reviews(path_content_id(content_id), parse_query(PageQuery))
    return ok(items, pagination=pagination)


@reviews_bp.route("/predictor/<address>", methods=["GET"])
@read_limit()
def predictor_reviews(address):
    items, pagination = review_service.get_predictor_reviews(path_address(address), parse_query(PageQuery))
    return ok(items, pagination=pagination)


@reviews_bp.route("/check/<token_id>", methods=["GET"])
@read_limit()
def check_review(token_id):
    review = review_service.find_by_token_id(path_token_id(token_id))
    return ok({"exists": review is not None, "review": review})


@reviews_bp.route("/<token_id>", methods=["GET"])
@read_limit()
def get_review(token_id):
    return ok(review_service.get_by_token_id(path_token_id(token_id)))


@reviews_bp.route("", methods=["POST"])
@reviews_bp.route("/", methods=["POST"])
@write_limit()
@require_auth
def create_review():
    review = review_service.create_review(parse_body(CreateReviewBody), current_address())
    return ok(review, status=201, message="Rating submitted successfully")
