"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_naive_utc,
    ensure_utc,
    from_epoch_millis,
    now_naive_utc,
    now_utc,
    parse_timestamp,
    to_epoch_millis,
)

__all__ = [
    "ensure_naive_utc",
    "ensure_utc",
    "from_epoch_millis",
    "now_naive_utc",
    "now_utc",
    "parse_timestamp",
    "to_epoch_millis",
]
