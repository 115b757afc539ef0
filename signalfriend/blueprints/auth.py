"""
Authentication Blueprint - SIWE nonce, verification and session info

Wallets sign an EIP-4361 message containing a server-issued nonce and get a
JWT back.
"""

import logging

from flask import Blueprint, current_app, request

from signalfriend.api import ok, parse_body, parse_query
from signalfriend.middleware import current_address, is_admin, require_auth
from signalfriend.schemas import NonceQuery, VerifyBody
from signalfriend.security import auth_nonce_limit, auth_verify_limit
from signalfriend.services import auth as auth_service
from signalfriend.services.predictors import find_by_address

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/nonce", methods=["GET"])
@auth_nonce_limit()
def nonce():
    query = parse_query(NonceQuery)
    value = auth_service.issue_nonce(query.address, ip_address=request.remote_addr)
    return ok({"nonce": value})


@auth_bp.route("/verify", methods=["POST"])
@auth_verify_limit()
def verify():
    """
    Verify a signed SIWE message.

    Expected JSON body:
        - message: EIP-4361 message text
        - signature: Wallet signature

    Returns:
        JSON with the session token and the caller's predictor profile (or null)
    """
    body = parse_body(VerifyBody)
    result = auth_service.verify_login(
        body.message,
        body.signature,
        current_app.config["APP_CONFIG"],
        ip_address=request.remote_addr,
    )
    return ok(result)


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    address = current_address()
    return ok(
        {
            "address": address,
            "isAdmin": is_admin(address),
            "predictor": find_by_address(address, private=True),
        }
    )
