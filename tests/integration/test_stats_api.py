"""
Integration tests for public platform statistics.
"""

from datetime import timedelta


class TestPublicStats:
    def test_empty_platform(self, client):
        data = client.get("/api/stats").get_json()["data"]

        assert data == {"totalSignals": 0, "totalPredictors": 0, "totalPredictorEarnings": 0.0, "totalPurchases": 0}

    def test_counts(self, client, make_signal, make_receipt):
        live = make_signal()
        make_signal(expires_in=timedelta(days=-2))
        make_receipt(live, price_usdt=30.0)

        data = client.get("/api/stats").get_json()["data"]

        assert data["totalSignals"] == 1
        assert data["totalPredictors"] == 1
        assert data["totalPredictorEarnings"] == 28.5
        assert data["totalPurchases"] == 1
