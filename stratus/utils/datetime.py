"""Provider timestamps to aware datetimes."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def from_timestamp(timestamp: int | float, offset_seconds: int = 0) -> datetime:
    """Convert a unix timestamp to local time at a fixed UTC offset (the provider's ``timezone`` field)."""

    return datetime.fromtimestamp(timestamp, tz=timezone(timedelta(seconds=offset_seconds)))


def local_today(offset_seconds: int = 0) -> date:
    """Today's date at the given UTC offset."""

    return utc_now().astimezone(timezone(timedelta(seconds=offset_seconds))).date()


__all__ = ["utc_now", "from_timestamp", "local_today"]
