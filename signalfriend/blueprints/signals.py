"""
Signals Blueprint - Marketplace listings, protected content and predictor management
"""

import logging

from flask import Blueprint, current_app

from signalfriend.api import ok, parse_body, parse_query, path_address, path_content_id
from signalfriend.middleware import current_address, is_admin, optional_auth, require_auth
from signalfriend.schemas import (
    CreateSignalBody,
    ListSignalsQuery,
    MySignalsQuery,
    PredictorSignalsQuery,
    UpdateSignalBody,
)
from signalfriend.security import read_limit, write_limit
from signalfriend.services import signals as signal_service

logger = logging.getLogger(__name__)

signals_bp = Blueprint("signals", __name__)


@signals_bp.route("", methods=["GET"])
@signals_bp.route("/", methods=["GET"])
@read_limit()
def list_signals():
    items, pagination = signal_service.list_signals(parse_query(ListSignalsQuery))
    return ok(items, pagination=pagination)


@signals_bp.route("/my", methods=["GET"])
@require_auth
def my_signals():
    items, pagination = signal_service.get_my_signals(current_address(), parse_query(MySignalsQuery))
    return ok(items, pagination=pagination)


@signals_bp.route("/predictor/<address>", methods=["GET"])
@read_limit()
def predictor_signals(address):
    address = path_address(address)
    return ok(signal_service.get_signals_by_predictor(address, parse_query(PredictorSignalsQuery)))


@signals_bp.route("/<content_id>", methods=["GET"])
@read_limit()
def get_signal(content_id):
    return ok(signal_service.get_by_content_id(path_content_id(content_id)))


@signals_bp.route("/<content_id>/content-identifier", methods=["GET"])
@require_auth
def content_identifier(content_id):
    """bytes32 identifier the buyer passes to the market contract's purchase call."""
    return ok(signal_service.get_content_identifier(path_content_id(content_id), current_address()))


@signals_bp.route("/<content_id>/content", methods=["GET"])
@read_limit()
@optional_auth
def protected_content(content_id):
    caller = current_address()
    data = signal_service.get_protected_content(path_content_id(content_id), caller, caller_is_admin=is_admin(caller))
    return ok(data)


@signals_bp.route("", methods=["POST"])
@signals_bp.route("/", methods=["POST"])
@write_limit()
@require_auth
def create_signal():
    body = parse_body(CreateSignalBody)
    min_price = float(current_app.config["APP_CONFIG"]["MIN_SIGNAL_PRICE_USDT"])
    signal = signal_service.create_signal(body, current_address(), min_price)
    return ok(signal, status=201, message="Signal created successfully")


@signals_bp.route("/<content_id>", methods=["PUT"])
@write_limit()
@require_auth
def update_signal(content_id):
    body = parse_body(UpdateSignalBody)
    return ok(signal_service.update_signal(path_content_id(content_id), body, current_address()))


@signals_bp.route("/<content_id>", methods=["DELETE"])
@write_limit()
@require_auth
def deactivate_signal(content_id):
    signal = signal_service.deactivate_signal(path_content_id(content_id), current_address())
    return ok(signal, message="Signal deactivated successfully")


@signals_bp.route("/<content_id>/expire", methods=["POST"])
@write_limit()
@require_auth
def expire_signal(content_id):
    signal = signal_service.expire_signal(path_content_id(content_id), current_address())
    return ok(signal, message="Signal expired successfully")
