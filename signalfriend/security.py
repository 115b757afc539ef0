"""Security helpers: proxy headers, security headers, rate limiting and logging."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from flask import Flask, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger(__name__)

# Rate-limit tiers shared by the blueprints
AUTH_NONCE_RATE_LIMIT = "60 per 15 minutes"
AUTH_VERIFY_RATE_LIMIT = "20 per 15 minutes"
READ_RATE_LIMIT = "200 per minute"
WRITE_RATE_LIMIT = "60 per 15 minutes"
CRITICAL_RATE_LIMIT = "500 per 15 minutes"


def rate_limit_message(tier: str) -> str:
    return f"Too many {tier} requests, please try again later."


def hybrid_key() -> str:
    """Key write traffic by wallet when a valid bearer token is present, else by IP."""
    from signalfriend.tokens import peek_address

    address = peek_address(request.headers.get("Authorization"))
    if address:
        return f"wallet:{address}"
    return f"ip:{get_remote_address()}"


limiter = Limiter(key_func=get_remote_address)


def auth_nonce_limit():
    return limiter.limit(AUTH_NONCE_RATE_LIMIT, error_message=rate_limit_message("authentication"))


def auth_verify_limit():
    return limiter.limit(AUTH_VERIFY_RATE_LIMIT, error_message=rate_limit_message("authentication"))


def read_limit():
    return limiter.limit(READ_RATE_LIMIT, error_message=rate_limit_message("read"))


def write_limit():
    return limiter.limit(WRITE_RATE_LIMIT, key_func=hybrid_key, error_message=rate_limit_message("write"))


def critical_limit():
    return limiter.limit(CRITICAL_RATE_LIMIT, key_func=hybrid_key, error_message=rate_limit_message("critical"))


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in {"1", "true", "yes", "on"}


def _build_redis_uri(cfg: Mapping[str, Any]) -> str:
    if cfg.get("REDIS_URL"):
        return str(cfg["REDIS_URL"])

    host = cfg.get("REDIS_HOST", "127.0.0.1")
    port = cfg.get("REDIS_PORT", 6379)
    db = cfg.get("REDIS_DB", 0)
    password = cfg.get("REDIS_PASSWORD")
    if password:
        return f"redis://:{password}@{host}:{port}/{db}"
    return f"redis://{host}:{port}/{db}"


def general_rate_limit(cfg: Mapping[str, Any]) -> str:
    """Build the app-wide fallback limit from the window/max settings."""
    window_seconds = max(1, int(cfg.get("RATE_LIMIT_WINDOW_MS", 900000)) // 1000)
    return f"{cfg.get('RATE_LIMIT_MAX_REQUESTS', 100)} per {window_seconds} seconds"


def init_security(app: Flask, cfg: Mapping[str, Any]) -> Optional[Limiter]:
    """Initialise standard security middleware and rate limiting."""

    # Respect reverse proxy headers for TLS detection and client IP extraction.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[assignment]

    # Reject request bodies above 10 KiB
    app.config["MAX_CONTENT_LENGTH"] = 10 * 1024

    production = str(cfg.get("FLASK_ENV", "development")).strip().lower() == "production"
    force_https = _as_bool(cfg.get("FORCE_HTTPS"), production)
    if not force_https and production:
        logger.warning(
            "FORCE_HTTPS disabled while FLASK_ENV=production – ensure this is intentional before deploying."
        )

    # JSON API only: nothing should be loaded from responses
    csp = {
        "default-src": "'none'",
        "frame-ancestors": "'none'",
    }
    Talisman(
        app,
        force_https=force_https,
        force_file_save=False,
        content_security_policy=csp,
        session_cookie_secure=force_https,
        frame_options="DENY",
        referrer_policy="no-referrer",
    )

    enabled = _as_bool(cfg.get("RATE_LIMIT_ENABLED"), True)
    app.config["RATELIMIT_ENABLED"] = enabled
    app.config["RATELIMIT_DEFAULT"] = general_rate_limit(cfg)
    app.config["RATELIMIT_STRATEGY"] = "fixed-window"
    app.config["RATELIMIT_HEADERS_ENABLED"] = True
    app.config["RATELIMIT_IN_MEMORY_FALLBACK_ENABLED"] = True
    app.config["RATELIMIT_STORAGE_URI"] = _build_redis_uri(cfg) if cfg.get("REDIS_ENABLED") else "memory://"
    limiter.init_app(app)
    if not enabled:
        logger.info("Rate limiting disabled (RATE_LIMIT_ENABLED=false)")

    log_level = str(cfg.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers):
        handler = logging.StreamHandler()
        fmt = (
            "{\"level\":\"%(levelname)s\",\"msg\":\"%(message)s\",\"name\":\"%(name)s\",\"path\":\"%(pathname)s\","
            "\"lineno\":%(lineno)d}"
        )
        handler.setFormatter(logging.Formatter(fmt))
        root_logger.addHandler(handler)

    return limiter
