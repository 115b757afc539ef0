"""
Unit tests for request and webhook payload schemas.
"""

import pytest
from pydantic import ValidationError

from signalfriend.schemas import (
    CheckUniqueQuery,
    CreateCategoryBody,
    CreateReportBody,
    CreateSignalBody,
    ListSignalsQuery,
    NonceQuery,
    UpdateProfileBody,
    WebhookPayload,
)

SIGNAL = {
    "title": "ETH long",
    "description": "Daily support retest",
    "content": "Entry 3000, target 3400",
    "categoryId": "cat-1",
    "priceUsdt": 12.5,
    "expiryDays": 7,
    "riskLevel": "medium",
    "potentialReward": "high",
}


class TestSignalSchemas:
    def test_valid_signal(self):
        body = CreateSignalBody.model_validate(SIGNAL)

        assert body.price_usdt == 12.5
        assert body.expiry_days == 7

    def test_title_cannot_contain_links(self):
        with pytest.raises(ValidationError, match="Title cannot contain links or URLs"):
            CreateSignalBody.model_validate({**SIGNAL, "title": "Join t.me/pumps or pumps.io"})

    def test_content_may_contain_links(self):
        body = CreateSignalBody.model_validate({**SIGNAL, "content": "Chart: https://tradingview.com/x"})
        assert "tradingview" in body.content

    def test_price_has_two_decimals_at_most(self):
        with pytest.raises(ValidationError, match="at most 2 decimal places"):
            CreateSignalBody.model_validate({**SIGNAL, "priceUsdt": 10.005})

    @pytest.mark.parametrize("days", [0, 31])
    def test_expiry_days_range(self, days):
        with pytest.raises(ValidationError):
            CreateSignalBody.model_validate({**SIGNAL, "expiryDays": days})

    def test_list_query_parses_strings(self):
        query = ListSignalsQuery.model_validate({"page": "2", "limit": "10", "active": "false", "sortOrder": "asc"})

        assert query.page == 2
        assert query.active is False
        assert query.sort_order == "asc"

    def test_list_query_limit_cap(self):
        with pytest.raises(ValidationError):
            ListSignalsQuery.model_validate({"limit": "51"})

    def test_list_query_price_range(self):
        with pytest.raises(ValidationError, match="minPrice cannot be greater than maxPrice"):
            ListSignalsQuery.model_validate({"minPrice": "20", "maxPrice": "10"})


class TestProfileSchemas:
    def test_avatar_must_be_image(self):
        with pytest.raises(ValidationError, match="Only JPG, PNG, and GIF images are allowed"):
            UpdateProfileBody.model_validate({"avatarUrl": "https://cdn.example.com/me.webp"})

    def test_avatar_with_query_string(self):
        body = UpdateProfileBody.model_validate({"avatarUrl": "https://cdn.example.com/me.PNG?v=2"})
        assert body.avatar_url.endswith("?v=2")

    def test_bio_cannot_contain_links(self):
        with pytest.raises(ValidationError, match="Bio cannot contain links or URLs"):
            UpdateProfileBody.model_validate({"bio": "more at www.mysite.com"})

    def test_at_most_five_categories(self):
        with pytest.raises(ValidationError):
            UpdateProfileBody.model_validate({"categoryIds": [str(i) for i in range(6)]})

    def test_check_unique_field_whitelist(self):
        with pytest.raises(ValidationError):
            CheckUniqueQuery.model_validate({"field": "twitter", "value": "x"})

    def test_nonce_query_requires_address(self):
        with pytest.raises(ValidationError, match="Invalid Ethereum address"):
            NonceQuery.model_validate({"address": "0x123"})


class TestModerationSchemas:
    def test_report_other_needs_description(self):
        with pytest.raises(ValidationError):
            CreateReportBody.model_validate({"tokenId": 3, "reason": "other", "description": "   "})

    def test_report_reason_whitelist(self):
        with pytest.raises(ValidationError):
            CreateReportBody.model_validate({"tokenId": 3, "reason": "boring"})

    def test_category_slug_format(self):
        with pytest.raises(ValidationError, match="lowercase letters, numbers, and hyphens"):
            CreateCategoryBody.model_validate({"name": "Gold", "slug": "Gold Bars", "mainGroup": "Traditional Finance"})


class TestWebhookPayload:
    def _payload(self, type_, event):
        return {
            "webhookId": "wh_1",
            "id": "whevt_1",
            "createdAt": "2025-06-01T12:00:00.000Z",
            "type": type_,
            "event": event,
        }

    def test_graphql_shape_is_checked(self):
        with pytest.raises(ValidationError):
            WebhookPayload.model_validate(self._payload("GRAPHQL", {"data": {}}))

    def test_graphql_payload(self):
        event = {
            "data": {
                "block": {
                    "number": 123,
                    "logs": [
                        {
                            "topics": ["0x01"],
                            "data": "0x",
                            "account": {"address": "0xabc"},
                            "transaction": {"hash": "0xdef"},
                        }
                    ],
                }
            }
        }
        payload = WebhookPayload.model_validate(self._payload("GRAPHQL", event))

        assert payload.graphql().data.block.logs[0].transaction.hash == "0xdef"

    def test_mined_transaction_event_is_not_parsed(self):
        payload = WebhookPayload.model_validate(self._payload("MINED_TRANSACTION", {"anything": True}))
        assert payload.type == "MINED_TRANSACTION"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            WebhookPayload.model_validate(self._payload("NFT_ACTIVITY", {}))
