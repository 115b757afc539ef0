"""
Integration tests for health checks, metrics and cross-cutting request handling.
"""

import pytest

from conftest import BUYER_ADDRESS, OTHER_ADDRESS, bearer

FRONTEND_ORIGIN = "http://localhost:3000"


class TestHealthEndpoint:
    """Test health check endpoints."""

    def test_health_endpoint_returns_ok(self, client):
        """Test that health endpoint returns 200 OK."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["success"] is True
        assert data["data"]["status"] == "healthy"
        assert data["data"]["components"]["database"]["connected"] is True
        assert "timestamp" in data["data"]

    def test_health_reports_chain(self, client):
        chain = client.get("/health").get_json()["data"]["chain"]

        assert chain["chainId"] == 97
        assert chain["network"] == "BNB Testnet"
        assert set(chain["contracts"]) == {"signalFriendMarket", "predictorAccessPass", "signalKeyNFT", "usdt"}

    def test_redis_is_reported_unavailable_when_disabled(self, client):
        redis_status = client.get("/health").get_json()["data"]["components"]["redis"]

        assert redis_status["status"] == "unavailable"

    def test_liveness_and_readiness(self, client):
        assert client.get("/health/live").get_json() == {"status": "alive"}
        assert client.get("/health/ready").get_json() == {"status": "ready"}

    def test_unhealthy_database_returns_503(self, client, monkeypatch):
        from signalfriend.blueprints import ops

        monkeypatch.setattr(
            ops,
            "check_database_health",
            lambda: {"status": "unhealthy", "connected": False, "error": "connection refused"},
        )
        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.get_json()["error"] == "connection refused"


class TestMetricsEndpoint:
    """Test metrics endpoints."""

    def test_metrics_endpoint_returns_json(self, client):
        client.get("/health/live")
        response = client.get("/metrics")

        assert response.status_code == 200
        data = response.get_json()
        assert data["application"]["name"] == "SignalFriend"
        assert data["requests"].get("200", 0) >= 1

    def test_prometheus_exposition(self, client):
        client.get("/api/stats")
        response = client.get("/metrics/prometheus")

        assert response.status_code == 200
        assert response.mimetype == "text/plain"
        body = response.get_data(as_text=True)
        assert "http_requests_total" in body
        assert 'endpoint="/api/stats"' in body


class TestRequestHandling:
    def test_cors_headers(self, client):
        response = client.get("/api/stats", headers={"Origin": FRONTEND_ORIGIN})

        assert response.headers["Access-Control-Allow-Origin"] == FRONTEND_ORIGIN
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    def test_foreign_origin_is_not_allowed(self, client):
        response = client.get("/api/stats", headers={"Origin": "https://evil.example"})

        assert "Access-Control-Allow-Origin" not in response.headers

    def test_preflight_returns_204(self, client):
        response = client.options(
            "/api/signals",
            headers={
                "Origin": FRONTEND_ORIGIN,
                "Access-Control-Request-Method": "PUT",
                "Access-Control-Request-Headers": "Authorization",
            },
        )

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == FRONTEND_ORIGIN
        assert "PUT" in response.headers["Access-Control-Allow-Methods"]
        assert "authorization" in response.headers["Access-Control-Allow-Headers"].lower()

    def test_oversized_body(self, client):
        response = client.post("/api/auth/verify", json={"message": "x" * 11000, "signature": "0x00"})

        assert response.status_code == 413
        assert response.get_json() == {"success": False, "error": "Request body too large"}

    def test_security_headers(self, client):
        response = client.get("/api/stats")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    def test_unknown_route(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Route /api/does-not-exist not found"}

    def test_wrong_method(self, client):
        response = client.delete("/api/stats")

        assert response.status_code == 405
        assert response.get_json()["success"] is False


class TestMaintenanceMode:
    def test_api_returns_503(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config["APP_CONFIG"], "MAINTENANCE_MODE", True)
        monkeypatch.setitem(app.config["APP_CONFIG"], "MAINTENANCE_END", "2030-01-01T00:00:00Z")

        response = client.get("/api/signals")

        assert response.status_code == 503
        data = response.get_json()
        assert data["error"] == "Site is under maintenance. Please try again later."
        assert data["maintenanceEnd"] == "2030-01-01T00:00:00Z"

    def test_health_still_answers(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config["APP_CONFIG"], "MAINTENANCE_MODE", True)

        assert client.get("/health").status_code == 200
        assert client.get("/health/live").status_code == 200


@pytest.fixture
def limited_client(_app, monkeypatch):
    """Client for a second app instance with rate limiting on and in-memory counters."""
    from signalfriend.config import get_config
    from signalfriend.factory import create_app
    from signalfriend.security import limiter

    # Restore the shared limiter's switch for the rest of the session
    monkeypatch.setattr(limiter, "enabled", limiter.enabled)

    cfg = get_config()
    cfg["RATE_LIMIT_ENABLED"] = True
    cfg["REDIS_ENABLED"] = False
    limited_app = create_app(cfg)
    limited_app.config.update({"TESTING": True})
    limiter.reset()

    with limited_app.app_context():
        yield limited_app.test_client()

    limiter.reset()


class TestRateLimits:
    def test_authentication_tier(self, limited_client):
        for _ in range(20):
            assert limited_client.post("/api/auth/verify", json={}).status_code == 400

        response = limited_client.post("/api/auth/verify", json={})

        assert response.status_code == 429
        assert response.get_json() == {
            "success": False,
            "error": "Too many authentication requests, please try again later.",
        }

    def test_write_tier_is_keyed_by_wallet(self, limited_client):
        buyer = bearer(BUYER_ADDRESS)
        for _ in range(60):
            limited_client.post("/api/categories", json={}, headers=buyer)

        blocked = limited_client.post("/api/categories", json={}, headers=buyer)
        other_wallet = limited_client.post("/api/categories", json={}, headers=bearer(OTHER_ADDRESS))

        assert blocked.status_code == 429
        assert blocked.get_json()["error"] == "Too many write requests, please try again later."
        assert other_wallet.status_code == 403

    def test_health_is_exempt(self, limited_client):
        for _ in range(105):
            limited_client.get("/health/live")

        assert limited_client.get("/health/live").status_code == 200
