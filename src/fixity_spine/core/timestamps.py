"""
Timestamp utilities for fixity data.

Pools and the DAITSS query both hand back timestamps as UTC "Z" strings
(``2011-04-27T11:38:30Z``). Kept as strings they compare correctly without
zone or DST conversions, which matters when a run touches 10^6 records. This
module converts to and from that form at the edges.

Also provides ULID-like run identifiers.

STDLIB ONLY.
"""

import random
import time
from datetime import UTC, datetime, timedelta

ZULU_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def to_zulu(dt: datetime | None) -> str | None:
    """Render a datetime as a sortable UTC "Z" string; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime(ZULU_FORMAT)


def from_zulu(s: str | None) -> datetime | None:
    """Parse a UTC "Z" string (or any ISO 8601 string) into an aware datetime."""
    if not s:
        return None
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def zulu_days_ago(days: int, now: datetime | None = None) -> str:
    """The "Z" string for ``days`` before ``now``."""
    now = now or utc_now()
    return to_zulu(now - timedelta(days=days))


def generate_ulid() -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters, base32 encoded, time-sortable.
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = _encode_base32(timestamp_ms, 10)
    random_part = "".join(random.choices(_ENCODING, k=16))
    return timestamp_chars + random_part


# Crockford's base32
_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ENCODING_LEN = len(_ENCODING)


def _encode_base32(value: int, length: int) -> str:
    result = []
    for _ in range(length):
        result.append(_ENCODING[value % _ENCODING_LEN])
        value //= _ENCODING_LEN
    return "".join(reversed(result))
