"""JWT session tokens for wallet-authenticated users."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import jwt
from flask import current_app

from signalfriend.config import get_config

logger = logging.getLogger(__name__)


def _cfg() -> Mapping[str, Any]:
    try:
        return current_app.config["APP_CONFIG"]
    except (RuntimeError, KeyError):
        return get_config()


def issue_token(address: str, cfg: Optional[Mapping[str, Any]] = None) -> str:
    """
    Issue a signed session token for a wallet address.

    Args:
        address: Wallet address; stored lowercase in the ``address`` claim
        cfg: Optional configuration mapping (defaults to the app config)

    Returns:
        Encoded JWT string
    """
    cfg = cfg or _cfg()
    now = datetime.now(timezone.utc)
    payload = {
        "address": address.lower(),
        "iat": now,
        "exp": now + timedelta(seconds=int(cfg["JWT_EXPIRES_IN"])),
    }
    return jwt.encode(payload, cfg["JWT_SECRET"], algorithm=cfg.get("JWT_ALGORITHM", "HS256"))


def decode_token(token: str, cfg: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Decode and verify a session token.

    Raises:
        jwt.ExpiredSignatureError: token lifetime is over
        jwt.InvalidTokenError: any other verification failure
    """
    cfg = cfg or _cfg()
    payload = jwt.decode(
        token,
        cfg["JWT_SECRET"],
        algorithms=[cfg.get("JWT_ALGORITHM", "HS256")],
        options={"require": ["exp", "address"]},
    )
    if not isinstance(payload.get("address"), str):
        raise jwt.InvalidTokenError("address claim must be a string")
    return payload


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer ") :].strip()
    return token or None


def peek_address(header: Optional[str]) -> Optional[str]:
    """Return the wallet address of a valid bearer token, or None."""
    token = bearer_token(header)
    if not token:
        return None
    try:
        return decode_token(token)["address"].lower()
    except jwt.InvalidTokenError:
        return None
