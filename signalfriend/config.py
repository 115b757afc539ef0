"""Configuration management for SignalFriend.

Centralises environment variable loading and validation logic while keeping the
public API intentionally simple.
"""

from __future__ import annotations

import os
import re
from typing import Any, List, Mapping, Optional, TypedDict

_TRUTHY_VALUES = {"1", "true", "yes", "on"}

_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")

DEFAULT_JWT_SECRET = "dev-secret-CHANGE-ME-IN-PRODUCTION"


class AppConfig(TypedDict):
    """Typed representation of the application's configuration."""

    FLASK_SECRET_KEY: Optional[str]
    FLASK_ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRES_IN: int
    CHAIN_ID: int
    RPC_URL: str
    SIGNALFRIEND_MARKET_ADDRESS: Optional[str]
    PREDICTOR_ACCESS_PASS_ADDRESS: Optional[str]
    SIGNAL_KEY_NFT_ADDRESS: Optional[str]
    MOCK_USDT_ADDRESS: Optional[str]
    ALCHEMY_SIGNING_KEY: Optional[str]
    SKIP_WEBHOOK_SIGNATURE: bool
    CORS_ORIGIN: str
    RATE_LIMIT_ENABLED: bool
    RATE_LIMIT_WINDOW_MS: int
    RATE_LIMIT_MAX_REQUESTS: int
    FORCE_HTTPS: bool
    ADMIN_ADDRESSES: List[str]
    MAINTENANCE_MODE: bool
    MAINTENANCE_END: Optional[str]
    MIN_SIGNAL_PRICE_USDT: float
    LOG_LEVEL: str
    DATABASE_URL: Optional[str]
    DB_HOST: Optional[str]
    DB_PORT: int
    DB_USER: str
    DB_PASSWORD: Optional[str]
    DB_NAME: str
    REDIS_ENABLED: bool
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_PASSWORD: Optional[str]
    REDIS_DB: int
    REDIS_URL: Optional[str]
    APP_NAME: str
    APP_VERSION: str
    APP_HOST: str
    APP_PORT: int


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable as a boolean."""

    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUTHY_VALUES


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable as an integer, raising on invalid input."""

    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer (got {raw_value!r})") from exc


def _get_env_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return float(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number (got {raw_value!r})") from exc


def _get_env_list(name: str) -> List[str]:
    """Return a comma separated environment variable as a lowercase list."""

    raw_value = os.getenv(name, "")
    return [item.strip().lower() for item in raw_value.split(",") if item.strip()]


def parse_duration(value: str) -> int:
    """Convert a duration such as ``7d``, ``12h`` or ``3600`` to seconds.

    Args:
        value: Duration string. A bare number is read as seconds.

    Returns:
        Number of seconds.

    Raises:
        ValueError: If the value is not a recognised duration.
    """
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration {value!r} (expected e.g. '7d', '12h', '30m' or seconds)")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit or "s"]


def get_config() -> AppConfig:
    """Load application configuration from environment variables."""

    flask_env = os.getenv("FLASK_ENV", "development")

    return {
        # Flask Configuration
        "FLASK_SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "FLASK_ENV": flask_env,
        # JWT Configuration
        "JWT_SECRET": os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        "JWT_ALGORITHM": os.getenv("JWT_ALGORITHM", "HS256"),
        "JWT_EXPIRES_IN": parse_duration(os.getenv("JWT_EXPIRES_IN", "7d")),
        # Blockchain Configuration
        "CHAIN_ID": _get_env_int("CHAIN_ID", 97),
        "RPC_URL": os.getenv("RPC_URL", "https://data-seed-prebsc-1-s1.binance.org:8545"),
        "SIGNALFRIEND_MARKET_ADDRESS": os.getenv("SIGNALFRIEND_MARKET_ADDRESS"),
        "PREDICTOR_ACCESS_PASS_ADDRESS": os.getenv("PREDICTOR_ACCESS_PASS_ADDRESS"),
        "SIGNAL_KEY_NFT_ADDRESS": os.getenv("SIGNAL_KEY_NFT_ADDRESS"),
        "MOCK_USDT_ADDRESS": os.getenv("MOCK_USDT_ADDRESS"),
        # Webhooks (Alchemy Notify)
        "ALCHEMY_SIGNING_KEY": os.getenv("ALCHEMY_SIGNING_KEY") or None,
        "SKIP_WEBHOOK_SIGNATURE": _get_env_bool("SKIP_WEBHOOK_SIGNATURE", False),
        # CORS Configuration
        "CORS_ORIGIN": os.getenv("CORS_ORIGIN", "http://localhost:3000"),
        # Rate Limiting
        "RATE_LIMIT_ENABLED": _get_env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_WINDOW_MS": _get_env_int("RATE_LIMIT_WINDOW_MS", 900000),
        "RATE_LIMIT_MAX_REQUESTS": _get_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
        "FORCE_HTTPS": _get_env_bool("FORCE_HTTPS", flask_env.lower() == "production"),
        # Admin & Maintenance
        "ADMIN_ADDRESSES": _get_env_list("ADMIN_ADDRESSES"),
        "MAINTENANCE_MODE": _get_env_bool("MAINTENANCE_MODE", False),
        "MAINTENANCE_END": os.getenv("MAINTENANCE_END") or None,
        # Marketplace rules
        "MIN_SIGNAL_PRICE_USDT": _get_env_float("MIN_SIGNAL_PRICE_USDT", 5.0),
        # Logging
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        # Database Configuration
        "DATABASE_URL": os.getenv("DATABASE_URL"),
        "DB_HOST": os.getenv("DB_HOST"),
        "DB_PORT": _get_env_int("DB_PORT", 5432),
        "DB_USER": os.getenv("DB_USER", "signalfriend"),
        "DB_PASSWORD": os.getenv("DB_PASSWORD"),
        "DB_NAME": os.getenv("DB_NAME", "signalfriend"),
        # Redis Configuration (nonces and rate limit counters)
        "REDIS_ENABLED": _get_env_bool("REDIS_ENABLED", True),
        "REDIS_HOST": os.getenv("REDIS_HOST", "localhost"),
        "REDIS_PORT": _get_env_int("REDIS_PORT", 6379),
        "REDIS_PASSWORD": os.getenv("REDIS_PASSWORD"),
        "REDIS_DB": _get_env_int("REDIS_DB", 0),
        "REDIS_URL": os.getenv("REDIS_URL") or os.getenv("REDIS_DSN"),
        # Application Settings
        "APP_NAME": os.getenv("APP_NAME", "SignalFriend"),
        "APP_VERSION": os.getenv("APP_VERSION", "1.0.0"),
        "APP_HOST": os.getenv("APP_HOST", "0.0.0.0"),
        "APP_PORT": _get_env_int("APP_PORT", 3001),
    }


def is_production(config: Mapping[str, Any]) -> bool:
    return str(config.get("FLASK_ENV", "")).lower() == "production"


def validate_config(config: Mapping[str, Any]) -> bool:
    """Validate critical configuration values.

    Args:
        config: Configuration mapping to validate.

    Returns:
        True if configuration is valid, raises ValueError otherwise.
    """

    # Contract addresses must look like EVM addresses when overridden
    for key in (
        "SIGNALFRIEND_MARKET_ADDRESS",
        "PREDICTOR_ACCESS_PASS_ADDRESS",
        "SIGNAL_KEY_NFT_ADDRESS",
        "MOCK_USDT_ADDRESS",
    ):
        value = config.get(key)
        if value and not re.match(r"^0x[a-fA-F0-9]{40}$", value):
            raise ValueError(f"⚠️  {key} must be a 0x-prefixed 40 hex character address (got {value!r})")

    if is_production(config):
        jwt_secret = config.get("JWT_SECRET") or ""
        if jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("⚠️  JWT_SECRET must be changed for production!")

        if len(jwt_secret) < 32:
            raise ValueError("⚠️  JWT_SECRET must be at least 32 characters in production!")

        if not config.get("FLASK_SECRET_KEY"):
            raise ValueError("⚠️  FLASK_SECRET_KEY must be set for production!")

        if not config.get("ALCHEMY_SIGNING_KEY"):
            raise ValueError("⚠️  ALCHEMY_SIGNING_KEY must be set for production!")

        if not config.get("ADMIN_ADDRESSES"):
            import warnings

            warnings.warn("⚠️  ADMIN_ADDRESSES not set - admin endpoints will be unreachable!", stacklevel=2)

        # Warn if Redis password not set
        if config.get("REDIS_ENABLED") and not config.get("REDIS_PASSWORD"):
            import warnings

            warnings.warn("⚠️  REDIS_PASSWORD not set - Redis will be unprotected!", stacklevel=2)

    return True
