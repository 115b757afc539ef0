"""
Shared helpers: content identifiers, text validation, money rounding,
timestamps and pagination.
"""

import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
UUID_V4_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)
BYTES32_RE = re.compile(r"^0x[0-9a-f]{64}$", re.IGNORECASE)

# Token ids are stored in signed 64-bit integer columns
MAX_TOKEN_ID = 2**63 - 1

# Full URLs, www. prefixes, and bare domains on common TLDs
URL_REGEX = re.compile(
    r"(?:https?://|www\.)[^\s]+"
    r"|(?:[a-zA-Z0-9-]+\.)+(?:com|net|org|io|co|gg|xyz|me|info|biz|dev|app|ai|tv|fm|ly|to|cc|link|click"
    r"|site|online|store|shop|tech|cloud|digital|world|live|news|blog|page|space|zone|network|social|trade"
    r"|finance|crypto|money|exchange|market|trading|invest|wallet|token|coin|nft|defi|dao|eth|btc|bnb|sol)"
    r"[^\s]*",
    re.IGNORECASE,
)


# ============================================================================
# Content identifiers
# ============================================================================


def uuid_to_bytes32(value: str) -> str:
    """
    Convert a signal content UUID into the bytes32 passed to the market contract.

    The 32 hex characters of the UUID are right-padded with zeros to 64.

    Args:
        value: UUID string, with or without dashes

    Returns:
        ``0x``-prefixed 64 hex character string
    """
    hex_value = value.replace("-", "")
    return "0x" + hex_value.ljust(64, "0")


def bytes32_to_uuid(value: str) -> str:
    """Inverse of :func:`uuid_to_bytes32`; only the first 16 bytes are used."""
    hex_value = value[2:34]
    return "-".join(
        [hex_value[0:8], hex_value[8:12], hex_value[12:16], hex_value[16:20], hex_value[20:32]]
    )


def is_valid_uuid(value: str) -> bool:
    return bool(value) and bool(UUID_RE.match(value))


def is_valid_content_id(value: str) -> bool:
    """Content ids are generated as UUID v4."""
    return bool(value) and bool(UUID_V4_RE.match(value))


def is_valid_bytes32(value: str) -> bool:
    return bool(value) and bool(BYTES32_RE.match(value))


def is_valid_address(value: Optional[str]) -> bool:
    return bool(value) and bool(ADDRESS_RE.match(value))


# ============================================================================
# Text validation
# ============================================================================


def contains_url(text: str) -> bool:
    if not text:
        return False
    return URL_REGEX.search(text) is not None


def strip_urls(text: str) -> str:
    return URL_REGEX.sub("[link removed]", text)


def validate_no_urls(text: str, field_name: str) -> None:
    """
    Raise if free text contains links.

    Raises:
        ValueError: ``"{field_name} cannot contain links or URLs"``
    """
    if contains_url(text):
        raise ValueError(f"{field_name} cannot contain links or URLs")


# ============================================================================
# Numbers and time
# ============================================================================


def round_half_up(value: Any, places: int = 2) -> float:
    """Round like a cashier: 0.125 -> 0.13, independent of float representation."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO 8601 UTC with a ``Z`` suffix."""
    value = ensure_aware(value)
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_datetime(value: str) -> datetime:
    """Parse ISO 8601 timestamps, including the ``Z`` suffix, as aware UTC."""
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    return ensure_aware(parsed).astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
