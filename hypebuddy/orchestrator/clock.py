from __future__ import annotations

from datetime import datetime, timedelta, timezone


def as_utc(moment: datetime) -> datetime:
    """SQLite hands timestamps back naive; treat those as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock:
    """Source of "now" for code that stamps turns and quota periods."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    def __init__(self, at: datetime) -> None:
        self._at = as_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, delta: timedelta) -> datetime:
        self._at += delta
        return self._at


CLOCK = Clock()


def now() -> datetime:
    return CLOCK.now()


__all__ = ["Clock", "FrozenClock", "CLOCK", "now", "as_utc"]
