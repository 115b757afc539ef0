"""
Receipts Blueprint - Purchase history for buyers and sales for predictors
"""

from flask import Blueprint

from signalfriend.api import ok, parse_query, path_content_id, path_token_id
from signalfriend.middleware import current_address, require_auth
from signalfriend.schemas import PageQuery, ReceiptsQuery
from signalfriend.services import receipts as receipt_service

receipts_bp = Blueprint("receipts", __name__)


@receipts_bp.route("/mine", methods=["GET"])
@require_auth
def my_receipts():
    items, pagination = receipt_service.get_my_receipts(current_address(), parse_query(ReceiptsQuery))
    return ok(items, pagination=pagination)


@receipts_bp.route("/stats", methods=["GET"])
@require_auth
def my_stats():
    return ok(receipt_service.get_buyer_stats(current_address()))


@receipts_bp.route("/check/<content_id>", methods=["GET"])
@require_auth
def check_purchase(content_id):
    receipt = receipt_service.find_purchase(path_content_id(content_id), current_address())
    return ok({"hasPurchased": receipt is not None, "tokenId": receipt["tokenId"] if receipt else None})


@receipts_bp.route("/signal/<content_id>", methods=["GET"])
@require_auth
def signal_sales(content_id):
    items, pagination = receipt_service.get_signal_receipts(
        path_content_id(content_id), current_address(), parse_query(PageQuery)
    )
    return ok(items, pagination=pagination)


@receipts_bp.route("/<token_id>", methods=["GET"])
@require_auth
def get_receipt(token_id):
    return ok(receipt_service.get_by_token_id(path_token_id(token_id), caller=current_address()))
