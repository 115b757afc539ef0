"""
Disputes Blueprint - Blacklisted predictors asking for review
"""

from flask import Blueprint

from signalfriend.api import ok
from signalfriend.middleware import current_address, require_auth
from signalfriend.security import write_limit
from signalfriend.services import disputes as dispute_service

disputes_bp = Blueprint("disputes", __name__)


@disputes_bp.route("", methods=["POST"])
@disputes_bp.route("/", methods=["POST"])
@write_limit()
@require_auth
def create_dispute():
    dispute = dispute_service.create_dispute(current_address())
    return ok(dispute, status=201, message="Dispute submitted. An admin will contact you.")


@disputes_bp.route("/me", methods=["GET"])
@require_auth
def my_dispute():
    return ok(dispute_service.get_dispute_by_predictor(current_address()))
