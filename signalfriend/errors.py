"""API error type and the JSON error handlers registered on the app."""

from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request
from flask_limiter.errors import RateLimitExceeded
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error carrying an HTTP status code and a client-safe message."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details

    @classmethod
    def bad_request(cls, message: str = "Bad request", details: Any = None) -> "ApiError":
        return cls(400, message, details)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized") -> "ApiError":
        return cls(401, message)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> "ApiError":
        return cls(403, message)

    @classmethod
    def not_found(cls, message: str = "Not found") -> "ApiError":
        return cls(404, message)

    @classmethod
    def conflict(cls, message: str = "Conflict") -> "ApiError":
        return cls(409, message)

    @classmethod
    def too_many_requests(cls, message: str = "Too many requests") -> "ApiError":
        return cls(429, message)

    @classmethod
    def internal(cls, message: str = "Internal server error") -> "ApiError":
        return cls(500, message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def __repr__(self):
        return f"<ApiError(status={self.status_code}, message={self.message!r})>"


def format_validation_error(exc: ValidationError) -> list:
    """Flatten pydantic errors into ``[{"field", "message"}]``."""
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()))
        message = err.get("msg", "Invalid value")
        # pydantic prefixes errors raised from validators with "Value error, "
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        details.append({"field": field, "message": message})
    return details


def validation_failed(exc: ValidationError) -> ApiError:
    return ApiError.bad_request("Validation failed", format_validation_error(exc))


def _is_production() -> bool:
    cfg = current_app.config.get("APP_CONFIG", {})
    return str(cfg.get("FLASK_ENV", "")).lower() == "production"


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        if e.status_code >= 500:
            logger.error(f"API error {e.status_code}: {e.message}")
        else:
            logger.info(f"API error {e.status_code} on {request.method} {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        err = validation_failed(e)
        return jsonify(err.to_dict()), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": f"Route {request.path} not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": f"Method {request.method} not allowed on {request.path}"}), 405

    @app.errorhandler(RequestEntityTooLarge)
    def payload_too_large(e):
        return jsonify({"success": False, "error": "Request body too large"}), 413

    @app.errorhandler(RateLimitExceeded)
    def rate_limit_exceeded(e: RateLimitExceeded):
        from signalfriend.audit_logger import get_audit_logger

        get_audit_logger().log_rate_limit_exceeded(request.remote_addr or "unknown", request.path)
        message = e.description if str(e.description).startswith("Too many") else None
        return (
            jsonify({"success": False, "error": message or "Too many requests, please try again later."}),
            429,
        )

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"success": False, "error": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def internal_error(e: Exception):
        from signalfriend.audit_logger import get_audit_logger

        logger.error(f"Internal server error: {e}", exc_info=True)
        get_audit_logger().log_error(type(e).__name__, str(e), {"path": request.path, "method": request.method})
        message: Optional[str] = "Internal server error" if _is_production() else str(e)
        return jsonify({"success": False, "error": message}), 500
