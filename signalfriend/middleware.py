"""Request guards: bearer-token auth, admin checks and maintenance mode."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Mapping, Optional

import jwt
from flask import current_app, g, jsonify, request

from signalfriend.audit_logger import get_audit_logger
from signalfriend.errors import ApiError
from signalfriend.tokens import bearer_token, decode_token

logger = logging.getLogger(__name__)


def _cfg() -> Mapping[str, Any]:
    return current_app.config["APP_CONFIG"]


def current_address() -> Optional[str]:
    """Lowercase wallet address of the authenticated caller, if any."""
    user = getattr(g, "user", None)
    return user["address"] if user else None


def is_admin(address: Optional[str]) -> bool:
    if not address:
        return False
    return address.lower() in {a.lower() for a in _cfg().get("ADMIN_ADDRESSES", [])}


def _authenticate() -> None:
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        raise ApiError.unauthorized("No token provided")

    try:
        payload = decode_token(token, _cfg())
    except jwt.ExpiredSignatureError:
        raise ApiError.unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise ApiError.unauthorized("Invalid token")

    g.user = {"address": payload["address"].lower()}


def require_auth(fn):
    """Reject the request with 401 unless it carries a valid bearer token."""

    @wraps(fn)
    def inner(*args, **kwargs):
        _authenticate()
        return fn(*args, **kwargs)

    return inner


def optional_auth(fn):
    """Attach the caller when a valid token is present, ignore it otherwise."""

    @wraps(fn)
    def inner(*args, **kwargs):
        g.user = None
        token = bearer_token(request.headers.get("Authorization"))
        if token:
            try:
                payload = decode_token(token, _cfg())
                g.user = {"address": payload["address"].lower()}
            except jwt.InvalidTokenError:
                logger.debug("Ignoring invalid token on optional-auth route")
        return fn(*args, **kwargs)

    return inner


def require_admin(fn):
    """Authenticate, then require the wallet to be listed in ADMIN_ADDRESSES."""

    @wraps(fn)
    def inner(*args, **kwargs):
        _authenticate()
        address = current_address()
        if not address:
            raise ApiError.unauthorized("Authentication required")
        if not is_admin(address):
            logger.warning(f"Non-admin {address} attempted {request.method} {request.path}")
            get_audit_logger().log_security_event(
                "admin_access_denied", "medium", {"address": address, "path": request.path}
            )
            raise ApiError.forbidden("Admin access required")
        return fn(*args, **kwargs)

    return inner


def maintenance_guard():
    """Before-request hook returning 503 while MAINTENANCE_MODE is on."""
    cfg = _cfg()
    if not cfg.get("MAINTENANCE_MODE"):
        return None
    if request.path == "/health" or request.path.startswith("/health/"):
        return None

    body = {"success": False, "error": "Site is under maintenance. Please try again later."}
    if cfg.get("MAINTENANCE_END"):
        body["maintenanceEnd"] = cfg["MAINTENANCE_END"]
    return jsonify(body), 503
