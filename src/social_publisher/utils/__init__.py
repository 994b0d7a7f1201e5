"""Utility modules for the social publisher."""

from .timestamps import (
    Clock,
    now_utc,
    to_utc,
    epoch_ms,
    from_epoch_ms,
    expires_at_from,
    format_timestamp,
)

__all__ = [
    "Clock",
    "now_utc",
    "to_utc",
    "epoch_ms",
    "from_epoch_ms",
    "expires_at_from",
    "format_timestamp",
]
