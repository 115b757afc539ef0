"""
Operations Blueprint - Health Checks and Metrics

Liveness/readiness probes for the orchestrator and Prometheus scraping.
"""

import logging
import time

from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import generate_latest

from signalfriend.contracts import get_contract_addresses, get_network_name
from signalfriend.database import check_database_health, get_health_status
from signalfriend.metrics import registry
from signalfriend.security import limiter
from signalfriend.utils import isoformat, utc_now

logger = logging.getLogger(__name__)

ops_bp = Blueprint("ops", __name__)

_started_at = time.time()


def _chain_info(cfg):
    chain_id = cfg["CHAIN_ID"]
    try:
        contracts = get_contract_addresses(chain_id, cfg)
    except ValueError as e:
        logger.warning(f"Contract addresses unavailable: {e}")
        contracts = None
    return {"chainId": chain_id, "network": get_network_name(chain_id), "contracts": contracts}


@ops_bp.route("/health")
@limiter.exempt
def health():
    """
    Aggregate health of the API and its backing services.

    Returns:
        200 when the database answers, 503 otherwise
    """
    cfg = current_app.config["APP_CONFIG"]
    components = get_health_status()
    healthy = components["database"]["status"] == "healthy"

    body = {
        "success": healthy,
        "data": {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": isoformat(utc_now()),
            "env": cfg.get("FLASK_ENV"),
            "version": cfg.get("APP_VERSION"),
            "components": components,
            "chain": _chain_info(cfg),
        },
    }
    return jsonify(body), 200 if healthy else 503


@ops_bp.route("/health/live")
@limiter.exempt
def liveness():
    return jsonify({"status": "alive"}), 200


@ops_bp.route("/health/ready")
@limiter.exempt
def readiness():
    db = check_database_health()
    if db["status"] != "healthy":
        logger.warning(f"Readiness check failed: {db.get('error')}")
        return jsonify({"status": "not_ready", "error": db.get("error")}), 503
    return jsonify({"status": "ready"}), 200


@ops_bp.route("/metrics")
@limiter.exempt
def metrics_json():
    """JSON summary of process and request metrics."""
    cfg = current_app.config["APP_CONFIG"]
    requests_by_status = {}
    for metric in registry.collect():
        if metric.name != "http_requests":
            continue
        for sample in metric.samples:
            if sample.name != "http_requests_total":
                continue
            status = sample.labels.get("status", "unknown")
            requests_by_status[status] = requests_by_status.get(status, 0) + int(sample.value)

    return jsonify(
        {
            "timestamp": isoformat(utc_now()),
            "application": {
                "name": cfg.get("APP_NAME"),
                "version": cfg.get("APP_VERSION"),
                "uptime": round(time.time() - _started_at, 3),
            },
            "requests": requests_by_status,
        }
    ), 200


@ops_bp.route("/metrics/prometheus")
@limiter.exempt
def metrics_prometheus():
    """Prometheus text exposition."""
    return Response(generate_latest(registry), mimetype="text/plain; version=0.0.4; charset=utf-8")
