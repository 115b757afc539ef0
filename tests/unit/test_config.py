"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch

import pytest

from signalfriend.config import DEFAULT_JWT_SECRET, get_config, parse_duration, validate_config


class TestGetConfig:
    """Test configuration loading from environment variables."""

    def test_get_config_defaults(self):
        """Test that get_config returns default values when env vars not set."""
        config = get_config()

        assert config["FLASK_ENV"] == "testing"  # Set in conftest
        assert config["CHAIN_ID"] == 97
        assert config["JWT_ALGORITHM"] == "HS256"
        assert config["JWT_EXPIRES_IN"] == 7 * 24 * 3600
        assert config["APP_NAME"] == "SignalFriend"
        assert config["MIN_SIGNAL_PRICE_USDT"] == 5.0

    def test_only_declared_keys_are_loaded(self):
        from signalfriend.config import AppConfig

        config = get_config()

        assert set(config) <= set(AppConfig.__annotations__)
        assert "FLASK_DEBUG" not in config

    def test_get_config_custom_values(self):
        """Test that get_config uses environment variables when provided."""
        with patch.dict(os.environ, {"CHAIN_ID": "56", "CORS_ORIGIN": "https://signalfriend.app", "APP_PORT": "8080"}):
            config = get_config()

            assert config["CHAIN_ID"] == 56
            assert config["CORS_ORIGIN"] == "https://signalfriend.app"
            assert config["APP_PORT"] == 8080

    def test_get_config_boolean_parsing(self):
        """Test that boolean environment variables are parsed correctly."""
        with patch.dict(
            os.environ, {"MAINTENANCE_MODE": "1", "RATE_LIMIT_ENABLED": "true", "SKIP_WEBHOOK_SIGNATURE": "yes"}
        ):
            config = get_config()

            assert config["MAINTENANCE_MODE"] is True
            assert config["RATE_LIMIT_ENABLED"] is True
            assert config["SKIP_WEBHOOK_SIGNATURE"] is True

    def test_admin_addresses_are_lowercased_list(self):
        with patch.dict(os.environ, {"ADMIN_ADDRESSES": " 0xABCDEF0000000000000000000000000000000001 ,0xabc,, "}):
            config = get_config()

            assert config["ADMIN_ADDRESSES"] == ["0xabcdef0000000000000000000000000000000001", "0xabc"]

    def test_get_config_invalid_integer_raises(self):
        """Invalid integer inputs should surface a helpful error."""
        with patch.dict(os.environ, {"CHAIN_ID": "bsc"}):
            with pytest.raises(ValueError, match="CHAIN_ID"):
                get_config()

    def test_get_config_invalid_float_raises(self):
        with patch.dict(os.environ, {"MIN_SIGNAL_PRICE_USDT": "five"}):
            with pytest.raises(ValueError, match="MIN_SIGNAL_PRICE_USDT"):
                get_config()

    def test_jwt_expiry_accepts_durations(self):
        with patch.dict(os.environ, {"JWT_EXPIRES_IN": "12h"}):
            assert get_config()["JWT_EXPIRES_IN"] == 12 * 3600


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [("7d", 604800), ("12h", 43200), ("30m", 1800), ("45s", 45), ("3600", 3600)],
    )
    def test_units(self, value, expected):
        assert parse_duration(value) == expected

    def test_rejects_unknown_unit(self):
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration("2w")


class TestValidateConfig:
    """Test configuration validation for production."""

    def _production(self, **overrides):
        config = {
            "FLASK_ENV": "production",
            "JWT_SECRET": "x" * 40,
            "FLASK_SECRET_KEY": "flask-secret",
            "ALCHEMY_SIGNING_KEY": "whsec_test",
            "ADMIN_ADDRESSES": ["0x" + "ad" * 20],
            "REDIS_ENABLED": False,
        }
        config.update(overrides)
        return config

    def test_validate_config_development_passes(self):
        """Test that development config validation passes."""
        config = {"FLASK_ENV": "development", "JWT_SECRET": DEFAULT_JWT_SECRET, "FLASK_SECRET_KEY": None}

        assert validate_config(config) is True

    def test_validate_config_production_passes(self):
        assert validate_config(self._production()) is True

    def test_validate_config_production_fails_default_jwt_secret(self):
        """Test that production validation fails with default JWT secret."""
        with pytest.raises(ValueError, match="JWT_SECRET must be changed"):
            validate_config(self._production(JWT_SECRET=DEFAULT_JWT_SECRET))

    def test_validate_config_production_fails_short_jwt_secret(self):
        with pytest.raises(ValueError, match="at least 32 characters"):
            validate_config(self._production(JWT_SECRET="short"))

    def test_validate_config_production_requires_flask_secret(self):
        with pytest.raises(ValueError, match="FLASK_SECRET_KEY"):
            validate_config(self._production(FLASK_SECRET_KEY=None))

    def test_validate_config_production_requires_signing_key(self):
        with pytest.raises(ValueError, match="ALCHEMY_SIGNING_KEY"):
            validate_config(self._production(ALCHEMY_SIGNING_KEY=None))

    def test_validate_config_production_warns_without_admins(self):
        with pytest.warns(UserWarning, match="ADMIN_ADDRESSES"):
            validate_config(self._production(ADMIN_ADDRESSES=[]))

    def test_validate_config_rejects_malformed_contract_address(self):
        config = {"FLASK_ENV": "development", "SIGNALFRIEND_MARKET_ADDRESS": "0x1234"}

        with pytest.raises(ValueError, match="SIGNALFRIEND_MARKET_ADDRESS"):
            validate_config(config)
