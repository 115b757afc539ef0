"""
Integration tests for buyer ratings.
"""

from conftest import BUYER_ADDRESS, OTHER_ADDRESS, PREDICTOR_ADDRESS, bearer


def rate(client, token_id, score, address=BUYER_ADDRESS, text=None):
    body = {"tokenId": token_id, "score": score}
    if text is not None:
        body["reviewText"] = text
    return client.post("/api/reviews", json=body, headers=bearer(address))


class TestCreateReview:
    def test_rate_purchase(self, client, make_signal, make_receipt):
        content_id = make_signal()
        make_receipt(content_id, token_id=501)

        response = rate(client, 501, 4, text="Target hit within a day")

        assert response.status_code == 201
        body = response.get_json()
        assert body["message"] == "Rating submitted successfully"
        assert body["data"]["score"] == 4
        assert body["data"]["predictorAddress"] == PREDICTOR_ADDRESS

    def test_ratings_update_signal_and_predictor(self, client, make_signal, make_receipt):
        content_id = make_signal()
        make_receipt(content_id, token_id=501)
        make_receipt(content_id, buyer_address=OTHER_ADDRESS, token_id=502)

        rate(client, 501, 5)
        rate(client, 502, 2, address=OTHER_ADDRESS)

        signal = client.get(f"/api/signals/{content_id}").get_json()["data"]
        predictor = client.get(f"/api/predictors/{PREDICTOR_ADDRESS}").get_json()["data"]
        assert (signal["averageRating"], signal["totalReviews"]) == (3.5, 2)
        assert (predictor["averageRating"], predictor["totalReviews"]) == (3.5, 2)

    def test_only_buyer_can_rate(self, client, make_signal, make_receipt):
        make_receipt(make_signal(), token_id=501)

        response = rate(client, 501, 1, address=OTHER_ADDRESS)

        assert response.status_code == 403

    def test_rating_is_permanent(self, client, make_signal, make_receipt):
        make_receipt(make_signal(), token_id=501)

        rate(client, 501, 5)
        response = rate(client, 501, 1)

        assert response.status_code == 409
        assert response.get_json()["error"] == "You have already rated this purchase"

    def test_unknown_receipt(self, client):
        assert rate(client, 999, 3).status_code == 404

    def test_score_out_of_range(self, client):
        response = rate(client, 501, 6)

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "score"

    def test_token_id_above_integer_range(self, client):
        response = rate(client, 2**63, 3)

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "tokenId"


class TestReadReviews:
    def test_check_and_get(self, client, make_signal, make_receipt):
        make_receipt(make_signal(), token_id=501)

        before = client.get("/api/reviews/check/501").get_json()["data"]
        rate(client, 501, 5)
        after = client.get("/api/reviews/check/501").get_json()["data"]

        assert before == {"exists": False, "review": None}
        assert after["exists"] is True
        assert client.get("/api/reviews/501").get_json()["data"]["score"] == 5

    def test_missing_review(self, client):
        response = client.get("/api/reviews/777")

        assert response.status_code == 404
        assert response.get_json()["error"] == "Review for tokenId '777' not found"

    def test_token_id_out_of_range(self, client):
        response = client.get("/api/reviews/" + "9" * 30)

        assert response.status_code == 400
        assert response.get_json()["details"] == [{"field": "tokenId", "message": "Token ID is out of range"}]

    def test_listings(self, client, make_signal, make_receipt):
        content_id = make_signal()
        make_receipt(content_id, token_id=501)
        rate(client, 501, 4)

        by_signal = client.get(f"/api/reviews/signal/{content_id}").get_json()
        by_predictor = client.get(f"/api/reviews/predictor/{PREDICTOR_ADDRESS}").get_json()
        mine = client.get("/api/reviews/mine", headers=bearer(BUYER_ADDRESS)).get_json()

        assert by_signal["pagination"]["total"] == 1
        assert by_predictor["data"][0]["tokenId"] == 501
        assert mine["data"][0]["contentId"] == content_id
