"""
Webhooks Blueprint - Alchemy blockchain event ingestion

The signature is checked against the raw body before anything is parsed.
"""

import json
import logging

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from signalfriend.api import ok
from signalfriend.audit_logger import get_audit_logger
from signalfriend.errors import ApiError
from signalfriend.schemas import WebhookPayload
from signalfriend.security import limiter
from signalfriend.services import webhooks as webhook_service
from signalfriend.utils import isoformat, utc_now

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

webhooks_bp = Blueprint("webhooks", __name__)


@webhooks_bp.route("/alchemy", methods=["POST"])
@limiter.exempt
def alchemy_webhook():
    """
    Receive an Alchemy Custom (GRAPHQL) or Address Activity webhook.

    Returns:
        401 on a bad signature, 400 on a malformed payload, otherwise
        ``{"success": true}`` with processing counts
    """
    body = request.get_data(cache=True)
    signature = request.headers.get("X-Alchemy-Signature", "")

    if not webhook_service.verify_signature(body, signature, current_app.config["APP_CONFIG"]):
        audit_logger.log_webhook_signature(False, reason="invalid_signature", ip_address=request.remote_addr)
        raise ApiError.unauthorized("Invalid webhook signature")
    audit_logger.log_webhook_signature(True, ip_address=request.remote_addr)

    try:
        payload = WebhookPayload.model_validate(json.loads(body or b"null"))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Invalid webhook payload: {e}")
        raise ApiError.bad_request("Invalid webhook payload")

    result = webhook_service.process_webhook(payload)
    return jsonify({"success": True, "data": result}), 200


@webhooks_bp.route("/health", methods=["GET"])
@limiter.exempt
def webhook_health():
    return ok({"status": "ok", "timestamp": isoformat(utc_now())})
