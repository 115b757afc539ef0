"""Short-lived SIWE nonce storage.

Nonces live in Redis when it is available. Without Redis (tests, local
development) they are kept in a process-local dictionary, which is only
correct for a single worker.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

import redis

from signalfriend.database import get_redis

logger = logging.getLogger(__name__)

NONCE_TTL_SECONDS = 5 * 60
# Records outlive their expiry briefly so "expired" can be told apart from "missing"
_GRACE_SECONDS = 5 * 60
_KEY_PREFIX = "siwe:nonce:"

# Process-local fallback: address -> {"nonce", "expires_at", "purge_at"}
STORAGE: Dict[str, Dict[str, Any]] = {}


def _key(address: str) -> str:
    return f"{_KEY_PREFIX}{address.lower()}"


def _purge_local(now: float) -> None:
    for address in [a for a, entry in STORAGE.items() if entry["purge_at"] < now]:
        STORAGE.pop(address, None)


def save_nonce(address: str, nonce: str, ttl: int = NONCE_TTL_SECONDS) -> float:
    """
    Store the nonce issued to an address, replacing any previous one.

    Returns:
        Expiry as a unix timestamp
    """
    now = time.time()
    record = {"nonce": nonce, "expires_at": now + ttl}

    client = get_redis()
    if client is not None:
        try:
            client.setex(_key(address), ttl + _GRACE_SECONDS, json.dumps(record))
            return record["expires_at"]
        except redis.RedisError as e:
            logger.warning(f"Redis nonce write failed, using local storage: {e}")

    _purge_local(now)
    STORAGE[address.lower()] = {**record, "purge_at": now + ttl + _GRACE_SECONDS}
    return record["expires_at"]


def get_nonce(address: str) -> Optional[Dict[str, Any]]:
    """Return ``{"nonce", "expires_at"}`` for the address, or None."""
    client = get_redis()
    if client is not None:
        try:
            raw = client.get(_key(address))
            return json.loads(raw) if raw else None
        except redis.RedisError as e:
            logger.warning(f"Redis nonce read failed, using local storage: {e}")

    entry = STORAGE.get(address.lower())
    if not entry:
        return None
    return {"nonce": entry["nonce"], "expires_at": entry["expires_at"]}


def delete_nonce(address: str) -> None:
    client = get_redis()
    if client is not None:
        try:
            client.delete(_key(address))
        except redis.RedisError as e:
            logger.warning(f"Redis nonce delete failed: {e}")

    STORAGE.pop(address.lower(), None)


def is_expired(record: Dict[str, Any], now: Optional[float] = None) -> bool:
    return (now if now is not None else time.time()) > float(record["expires_at"])


def clear() -> None:
    """Drop every locally stored nonce."""
    STORAGE.clear()
