"""
Predictors Blueprint - Public directory, profiles, earnings and verification
"""

import logging

from flask import Blueprint

from signalfriend.api import ok, parse_body, parse_query, path_address
from signalfriend.errors import ApiError
from signalfriend.middleware import current_address, is_admin, optional_auth, require_auth
from signalfriend.schemas import CheckUniqueQuery, ListPredictorsQuery, TopPredictorsQuery, UpdateProfileBody
from signalfriend.security import read_limit, write_limit
from signalfriend.services import predictors as predictor_service

logger = logging.getLogger(__name__)

predictors_bp = Blueprint("predictors", __name__)


@predictors_bp.route("", methods=["GET"])
@predictors_bp.route("/", methods=["GET"])
@read_limit()
def list_predictors():
    items, pagination = predictor_service.list_predictors(parse_query(ListPredictorsQuery))
    return ok(items, pagination=pagination)


@predictors_bp.route("/top", methods=["GET"])
@read_limit()
def top_predictors():
    query = parse_query(TopPredictorsQuery)
    return ok(predictor_service.get_top_predictors(query.metric, query.limit))


@predictors_bp.route("/check-unique", methods=["GET"])
@read_limit()
def check_unique():
    return ok(predictor_service.check_field_uniqueness(parse_query(CheckUniqueQuery)))


@predictors_bp.route("/<address>", methods=["GET"])
@read_limit()
@optional_auth
def get_predictor(address):
    """Public profile; the owner and admins also see contact and verification fields."""
    address = path_address(address)
    caller = current_address()
    private = caller is not None and (caller == address or is_admin(caller))
    return ok(predictor_service.get_by_address(address, private=private))


@predictors_bp.route("/<address>/check", methods=["GET"])
@read_limit()
def check_predictor(address):
    address = path_address(address)
    return ok({"address": address, "isPredictor": predictor_service.is_active_predictor(address)})


@predictors_bp.route("/<address>/earnings", methods=["GET"])
@require_auth
def earnings(address):
    address = path_address(address)
    if current_address() != address:
        raise ApiError.forbidden("You can only view your own earnings")
    return ok(predictor_service.get_earnings(address))


@predictors_bp.route("/<address>", methods=["PUT"])
@write_limit()
@require_auth
def update_profile(address):
    address = path_address(address)
    body = parse_body(UpdateProfileBody)
    predictor = predictor_service.update_profile(address, body, current_address())
    return ok(predictor, message="Profile updated successfully")


@predictors_bp.route("/<address>/apply-verification", methods=["POST"])
@write_limit()
@require_auth
def apply_verification(address):
    address = path_address(address)
    predictor = predictor_service.apply_for_verification(address, current_address())
    return ok(predictor, message="Verification application submitted")
