"""
Integration tests for the Alchemy webhook endpoint.
"""

import hashlib
import hmac
import json
from datetime import timedelta

from conftest import BUYER_ADDRESS, bearer, graphql_payload, purchase_log

from signalfriend.utils import isoformat, utc_now

SIGNING_KEY = "test-signing-key"


def post_webhook(client, payload, key=SIGNING_KEY, signature=None):
    body = json.dumps(payload).encode()
    if signature is None:
        signature = hmac.new(key.encode(), body, hashlib.sha256).hexdigest()
    return client.post(
        "/api/webhooks/alchemy",
        data=body,
        headers={"Content-Type": "application/json", "X-Alchemy-Signature": signature},
    )


class TestAlchemyWebhook:
    def test_purchase_unlocks_content(self, client, make_signal):
        content_id = make_signal()
        payload = graphql_payload([purchase_log(content_id, token_id=321, price_wei=10 * 10**18)])

        response = post_webhook(client, payload)

        assert response.status_code == 200
        assert response.get_json() == {"success": True, "data": {"processed": 1, "skipped": 0}}

        check = client.get(f"/api/receipts/check/{content_id}", headers=bearer(BUYER_ADDRESS))
        assert check.get_json()["data"] == {"hasPurchased": True, "tokenId": 321}

        content = client.get(f"/api/signals/{content_id}/content", headers=bearer(BUYER_ADDRESS))
        assert content.status_code == 200
        assert content.get_json()["data"]["content"].startswith("Entry")

    def test_redelivery_is_skipped(self, client, make_signal):
        content_id = make_signal()
        payload = graphql_payload([purchase_log(content_id, token_id=321, price_wei=10 * 10**18)])

        post_webhook(client, payload)
        response = post_webhook(client, payload)

        assert response.get_json()["data"] == {"processed": 0, "skipped": 1}

    def test_bad_signature(self, client, make_signal):
        content_id = make_signal()
        payload = graphql_payload([purchase_log(content_id, token_id=321, price_wei=10 * 10**18)])

        response = post_webhook(client, payload, key="wrong-key")

        assert response.status_code == 401
        assert response.get_json() == {"success": False, "error": "Invalid webhook signature"}
        check = client.get(f"/api/receipts/check/{content_id}", headers=bearer(BUYER_ADDRESS))
        assert check.get_json()["data"]["hasPurchased"] is False

    def test_missing_signature_header(self, client):
        response = client.post("/api/webhooks/alchemy", json=graphql_payload([]))

        assert response.status_code == 401

    def test_signature_checked_before_parsing(self, client):
        response = post_webhook(client, {"not": "a webhook"}, signature="00" * 32)

        assert response.status_code == 401

    def test_invalid_payload(self, client):
        response = post_webhook(client, {"type": "GRAPHQL"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid webhook payload"

    def test_stale_webhook_is_acknowledged_without_processing(self, client, make_signal):
        content_id = make_signal()
        created = isoformat(utc_now() - timedelta(minutes=10))
        payload = graphql_payload([purchase_log(content_id, token_id=321, price_wei=10**19)], created_at=created)

        response = post_webhook(client, payload)

        assert response.status_code == 200
        assert response.get_json()["data"] == {"processed": 0, "skipped": 0}

    def test_skip_signature_in_development(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config["APP_CONFIG"], "ALCHEMY_SIGNING_KEY", None)
        monkeypatch.setitem(app.config["APP_CONFIG"], "SKIP_WEBHOOK_SIGNATURE", True)

        response = post_webhook(client, graphql_payload([]), signature="")

        assert response.status_code == 200

    def test_webhook_counter_in_prometheus_output(self, client, make_signal):
        content_id = make_signal()
        post_webhook(client, graphql_payload([purchase_log(content_id, token_id=321, price_wei=10**19)]))

        body = client.get("/metrics/prometheus").get_data(as_text=True)

        assert 'webhook_events_total{event_type="SignalPurchased",outcome="processed"}' in body

    def test_webhook_health(self, client):
        data = client.get("/api/webhooks/health").get_json()

        assert data["success"] is True
        assert data["data"]["status"] == "ok"
