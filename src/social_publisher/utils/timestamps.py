"""Timestamp utilities for consistent timezone handling.

All timestamps are stored and compared as timezone-aware UTC datetimes.
Naive datetimes coming from callers are treated as UTC.

Usage:
    from social_publisher.utils.timestamps import now_utc, to_utc, epoch_ms

    created = now_utc()
    expires = expires_at_from(3600, now=created)
    state_ts = epoch_ms(created)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

Clock = Callable[[], datetime]


# =============================================================================
# CURRENT TIME
# =============================================================================

def now_utc() -> datetime:
    """Get current time in UTC with timezone info."""
    return datetime.now(timezone.utc)


# =============================================================================
# CONVERSION
# =============================================================================

def to_utc(dt: datetime) -> datetime:
    """Convert any datetime to aware UTC.

    If the datetime has no timezone info, it is assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(to_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def expires_at_from(
    expires_in: Union[int, float, str, None],
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """Turn a relative expires_in (seconds) into an absolute UTC time.

    Missing, zero, negative or unparseable values mean the token has no
    known expiry and return None.
    """
    if expires_in is None or expires_in == "":
        return None
    try:
        seconds = float(expires_in)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    return (now or now_utc()) + timedelta(seconds=seconds)


# =============================================================================
# FORMATTING
# =============================================================================

def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """ISO 8601 string in UTC, or None."""
    if dt is None:
        return None
    return to_utc(dt).isoformat()
