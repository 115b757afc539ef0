"""
Unit tests for JWT session tokens.
"""

import jwt
import pytest

from signalfriend.tokens import bearer_token, decode_token, issue_token, peek_address

CFG = {"JWT_SECRET": "unit-test-secret", "JWT_ALGORITHM": "HS256", "JWT_EXPIRES_IN": 3600}
ADDRESS = "0x" + "Cd" * 20


class TestTokens:
    def test_round_trip_lowercases_address(self):
        payload = decode_token(issue_token(ADDRESS, CFG), CFG)

        assert payload["address"] == ADDRESS.lower()
        assert payload["exp"] - payload["iat"] == 3600

    def test_wrong_secret_is_rejected(self):
        token = issue_token(ADDRESS, CFG)

        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token, {**CFG, "JWT_SECRET": "other-secret"})

    def test_expired_token(self):
        token = issue_token(ADDRESS, {**CFG, "JWT_EXPIRES_IN": -10})

        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token, CFG)

    def test_address_claim_is_required(self):
        token = jwt.encode({"sub": "someone", "exp": 9999999999}, CFG["JWT_SECRET"], algorithm="HS256")

        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token, CFG)


class TestBearerHeader:
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_rejects_malformed_headers(self, header):
        assert bearer_token(header) is None

    def test_extracts_token(self):
        assert bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_peek_address_uses_environment_config(self):
        # Outside an app context the secret comes from the environment set in conftest
        token = issue_token(ADDRESS, {**CFG, "JWT_SECRET": "test-jwt-secret"})

        assert peek_address(f"Bearer {token}") == ADDRESS.lower()
        assert peek_address("Bearer not-a-token") is None
