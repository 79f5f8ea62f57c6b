"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Final

_EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in UTC.

    Naive values are assumed to already be UTC, which is how the database
    stores them.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_naive_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` in UTC without ``tzinfo`` for storage columns."""

    localized = ensure_utc(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def now_naive_utc() -> datetime:
    """Return the current UTC time without ``tzinfo``."""

    return now_utc().replace(tzinfo=None)


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime.

    ``datetime`` instances pass through normalized; anything unparseable
    yields ``None``.
    """

    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_epoch_millis(value: datetime) -> int:
    """Return the number of milliseconds between the epoch and ``value``."""

    aware = ensure_utc(value)
    delta = aware - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_millis(value: int | float) -> datetime:
    """Return the aware UTC datetime for an epoch timestamp in milliseconds."""

    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
