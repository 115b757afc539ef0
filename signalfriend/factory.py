"""
Application Factory for SignalFriend

Implements the Flask application factory pattern with:
- Blueprint registration
- Security configuration (headers, proxy, rate limits)
- Database and cache initialization
- JSON error handling
"""

import logging
from typing import Optional

from flask import Flask, g, request
from flask_cors import CORS

from signalfriend.audit_logger import init_audit_logger
from signalfriend.config import AppConfig, get_config, validate_config
from signalfriend.database import init_all
from signalfriend.errors import register_error_handlers
from signalfriend.metrics import request_counter
from signalfriend.middleware import maintenance_guard
from signalfriend.security import init_security

logger = logging.getLogger(__name__)


def create_app(config_override: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure the Flask application using the factory pattern.

    Args:
        config_override: Optional configuration override for testing

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    cfg = config_override or get_config()
    validate_config(cfg)
    app.config["APP_CONFIG"] = cfg
    app.secret_key = cfg.get("FLASK_SECRET_KEY") or "dev-only-secret"
    app.json.sort_keys = False

    # Initialize security middleware (Talisman, rate limiting, logging)
    init_security(app, cfg)

    CORS(
        app,
        origins=[cfg.get("CORS_ORIGIN", "http://localhost:3000")],
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Alchemy-Signature"],
    )

    # Initialize database and cache connections
    try:
        init_all()
        init_audit_logger()
        logger.info("✅ Database, cache, and audit logging initialized")
    except Exception as e:
        logger.error(f"❌ Infrastructure initialization failed: {e}")
        raise

    seed_defaults()

    register_blueprints(app)
    register_error_handlers(app)
    register_request_handlers(app)

    logger.info(f"🚀 {cfg.get('APP_NAME', 'SignalFriend')} API ready (chain {cfg['CHAIN_ID']})")
    return app


def seed_defaults() -> None:
    """Seed default categories and prune the webhook ledger. Failures are not fatal."""
    from signalfriend.seed import seed_categories
    from signalfriend.services.webhooks import purge_processed_events

    try:
        seed_categories()
    except Exception as e:
        logger.error(f"Category seeding failed: {e}")

    try:
        purge_processed_events()
    except Exception as e:
        logger.error(f"Processed webhook event purge failed: {e}")


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""

    # Health checks and metrics
    from signalfriend.blueprints.ops import ops_bp
    app.register_blueprint(ops_bp)

    from signalfriend.blueprints.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix="/api/auth")

    from signalfriend.blueprints.categories import categories_bp
    app.register_blueprint(categories_bp, url_prefix="/api/categories")

    from signalfriend.blueprints.predictors import predictors_bp
    app.register_blueprint(predictors_bp, url_prefix="/api/predictors")

    from signalfriend.blueprints.signals import signals_bp
    app.register_blueprint(signals_bp, url_prefix="/api/signals")

    from signalfriend.blueprints.receipts import receipts_bp
    app.register_blueprint(receipts_bp, url_prefix="/api/receipts")

    from signalfriend.blueprints.reviews import reviews_bp
    app.register_blueprint(reviews_bp, url_prefix="/api/reviews")

    from signalfriend.blueprints.reports import reports_bp
    app.register_blueprint(reports_bp, url_prefix="/api/reports")

    from signalfriend.blueprints.disputes import disputes_bp
    app.register_blueprint(disputes_bp, url_prefix="/api/disputes")

    from signalfriend.blueprints.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    from signalfriend.blueprints.stats import stats_bp
    app.register_blueprint(stats_bp, url_prefix="/api/stats")

    # Alchemy webhooks (signature-verified, not rate limited)
    from signalfriend.blueprints.webhooks import webhooks_bp
    app.register_blueprint(webhooks_bp, url_prefix="/api/webhooks")

    logger.info("✅ All blueprints registered")


def register_request_handlers(app: Flask) -> None:
    """Register before/after request handlers."""

    @app.before_request
    def reset_user():
        g.user = None

    app.before_request(maintenance_guard)

    # Flask answers OPTIONS with 200; Flask-Cors adds the preflight headers to this response
    @app.before_request
    def answer_preflight():
        if request.method == "OPTIONS":
            return "", 204
        return None

    @app.after_request
    def count_request(response):
        endpoint = request.url_rule.rule if request.url_rule is not None else "unmatched"
        request_counter.labels(method=request.method, endpoint=endpoint, status=str(response.status_code)).inc()
        return response
