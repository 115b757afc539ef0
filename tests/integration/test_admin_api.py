"""
Integration tests for admin moderation, verification and dispute handling.
"""

import pytest
from conftest import BUYER_ADDRESS, PREDICTOR_ADDRESS, bearer


@pytest.fixture
def reported(client, make_signal, make_receipt):
    """A purchased signal with one pending scam report; returns the report id."""
    content_id = make_signal()
    make_receipt(content_id, token_id=701)
    response = client.post(
        "/api/reports", json={"tokenId": 701, "reason": "scam"}, headers=bearer(BUYER_ADDRESS)
    )
    return response.get_json()["data"]["id"]


class TestAdminAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/admin/stats"),
            ("get", "/api/admin/reports"),
            ("get", "/api/admin/verification-requests"),
            ("get", "/api/admin/disputes"),
            ("post", f"/api/admin/predictors/{PREDICTOR_ADDRESS}/blacklist"),
        ],
    )
    def test_non_admin_forbidden(self, client, method, path):
        response = getattr(client, method)(path, headers=bearer(BUYER_ADDRESS))

        assert response.status_code == 403
        assert response.get_json()["error"] == "Admin access required"

    def test_anonymous_unauthorized(self, client):
        assert client.get("/api/admin/stats").status_code == 401

    def test_platform_stats(self, client, admin_headers, make_signal, make_receipt):
        make_receipt(make_signal(), price_usdt=20.0)

        data = client.get("/api/admin/stats", headers=admin_headers).get_json()["data"]

        assert data["fromPredictorJoins"] == 20.0
        assert data["fromBuyerAccessFees"] == 0.5
        assert data["fromCommissions"] == 1.0
        assert data["total"] == 21.5


class TestReportModeration:
    def test_list_with_context(self, client, admin_headers, reported):
        data = client.get("/api/admin/reports?status=pending", headers=admin_headers).get_json()

        assert data["pagination"]["total"] == 1
        item = data["data"][0]
        assert item["id"] == reported
        assert item["adminNotes"] == ""
        assert item["signal"]["title"] == "BTC breakout"
        assert item["predictor"]["walletAddress"] == PREDICTOR_ADDRESS

    def test_update_status(self, client, admin_headers, reported):
        response = client.put(
            f"/api/admin/reports/{reported}",
            json={"status": "resolved", "adminNotes": "Predictor warned"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "resolved"
        assert data["adminNotes"] == "Predictor warned"
        stats = client.get(f"/api/reports/predictor/{PREDICTOR_ADDRESS}/stats").get_json()["data"]
        assert (stats["pending"], stats["resolved"]) == (0, 1)

    def test_invalid_status(self, client, admin_headers, reported):
        response = client.put(f"/api/admin/reports/{reported}", json={"status": "closed"}, headers=admin_headers)

        assert response.status_code == 400

    def test_unknown_report(self, client, admin_headers):
        assert client.get("/api/admin/reports/missing", headers=admin_headers).status_code == 404


class TestPredictorModeration:
    def test_blacklist_and_unblacklist(self, client, admin_headers, make_predictor):
        make_predictor()

        blacklisted = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/blacklist", headers=admin_headers)
        assert blacklisted.get_json()["data"]["isBlacklisted"] is True
        assert client.get(f"/api/predictors/{PREDICTOR_ADDRESS}/check").get_json()["data"]["isPredictor"] is False

        restored = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/unblacklist", headers=admin_headers)
        assert restored.get_json()["data"]["isBlacklisted"] is False

    def test_verification_lifecycle(self, client, admin_headers, make_predictor):
        make_predictor(total_sales=120)
        client.post(f"/api/predictors/{PREDICTOR_ADDRESS}/apply-verification", headers=bearer(PREDICTOR_ADDRESS))

        pending = client.get("/api/admin/verification-requests", headers=admin_headers).get_json()["data"]
        assert [p["walletAddress"] for p in pending] == [PREDICTOR_ADDRESS]

        verified = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/verify", headers=admin_headers)
        assert verified.get_json()["data"]["isVerified"] is True
        assert client.get("/api/admin/verification-requests", headers=admin_headers).get_json()["data"] == []

        again = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/verify", headers=admin_headers)
        assert again.status_code == 400

    def test_unverify_clears_avatar(self, client, admin_headers, make_predictor):
        make_predictor(is_verified=True, avatar_url="https://cdn.example.com/a.png")

        data = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/unverify", headers=admin_headers).get_json()

        assert data["data"]["isVerified"] is False
        assert data["data"]["avatarUrl"] == ""

    def test_reject_needs_pending_request(self, client, admin_headers, make_predictor):
        make_predictor()

        response = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/reject", headers=admin_headers)

        assert response.status_code == 400

    def test_reject_pending_request(self, client, admin_headers, make_predictor):
        make_predictor(verification_status="pending", sales_at_last_application=100, total_sales=100)

        data = client.post(f"/api/admin/predictors/{PREDICTOR_ADDRESS}/reject", headers=admin_headers).get_json()

        assert data["data"]["verificationStatus"] == "rejected"

    def test_private_profile_for_admin(self, client, admin_headers, make_predictor):
        make_predictor(telegram="alpha")

        data = client.get(f"/api/admin/predictors/{PREDICTOR_ADDRESS}", headers=admin_headers).get_json()["data"]

        assert data["socialLinks"]["telegram"] == "alpha"

    def test_deactivate_signal(self, client, admin_headers, make_signal):
        content_id = make_signal()

        response = client.delete(f"/api/admin/signals/{content_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()["data"]["isActive"] is False


class TestDisputeHandling:
    def _open(self, client, make_predictor):
        make_predictor(is_blacklisted=True, telegram="appeal_me")
        return client.post("/api/disputes", headers=bearer(PREDICTOR_ADDRESS)).get_json()["data"]["id"]

    def test_list_and_counts(self, client, admin_headers, make_predictor):
        dispute_id = self._open(client, make_predictor)

        listing = client.get("/api/admin/disputes?status=pending", headers=admin_headers).get_json()
        counts = client.get("/api/admin/disputes/counts", headers=admin_headers).get_json()["data"]

        assert listing["data"][0]["id"] == dispute_id
        assert listing["data"][0]["predictor"]["socialLinks"]["telegram"] == "appeal_me"
        assert counts == {"pending": 1, "contacted": 0, "resolved": 0, "rejected": 0, "total": 1}

    def test_update_status(self, client, admin_headers, make_predictor):
        dispute_id = self._open(client, make_predictor)

        contacted = client.put(
            f"/api/admin/disputes/{dispute_id}",
            json={"status": "contacted", "adminNotes": "Reached out on Telegram"},
            headers=admin_headers,
        ).get_json()["data"]
        rejected = client.put(
            f"/api/admin/disputes/{dispute_id}", json={"status": "rejected"}, headers=admin_headers
        ).get_json()["data"]

        assert contacted["status"] == "contacted"
        assert contacted["resolvedAt"] is None
        assert rejected["status"] == "rejected"
        assert rejected["resolvedAt"] is not None
        assert rejected["adminNotes"] == "Reached out on Telegram"

    def test_resolve_unblacklists(self, client, admin_headers, make_predictor):
        dispute_id = self._open(client, make_predictor)

        response = client.post(
            f"/api/admin/disputes/{dispute_id}/resolve", json={"adminNotes": "Appeal accepted"}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "resolved"
        assert data["predictor"]["isBlacklisted"] is False
        assert client.get(f"/api/predictors/{PREDICTOR_ADDRESS}/check").get_json()["data"]["isPredictor"] is True

    def test_unknown_dispute(self, client, admin_headers):
        response = client.put("/api/admin/disputes/missing", json={"status": "contacted"}, headers=admin_headers)

        assert response.status_code == 404
