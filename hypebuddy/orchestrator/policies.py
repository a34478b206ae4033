from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from hypebuddy.memory.models import UserProfile
from hypebuddy.orchestrator.clock import as_utc
from hypebuddy.persona import newly_unlocked


def same_week(first: datetime, second: datetime) -> bool:
    return as_utc(first).isocalendar()[:2] == as_utc(second).isocalendar()[:2]


@dataclass
class QuotaPolicy:
    """Weekly allotment of free hypes; premium users are never limited."""

    allotment: int = 5
    free_history_limit: int = 10

    def reset_if_needed(self, profile: UserProfile, now: datetime) -> bool:
        if profile.quota_period_start is not None and same_week(profile.quota_period_start, now):
            return False
        profile.quota_remaining = self.allotment
        profile.quota_period_start = now
        return True

    def can_generate(self, profile: UserProfile) -> bool:
        return profile.is_premium or profile.quota_remaining > 0

    def consume(self, profile: UserProfile) -> list[str]:
        """Count one hype against the profile; returns personas unlocked by it."""
        if not profile.is_premium and profile.quota_remaining > 0:
            profile.quota_remaining -= 1
        profile.total_hypes += 1
        unlocked = newly_unlocked(profile.total_hypes, profile.unlocked_personas or [])
        if unlocked:
            # Reassign so the JSON column is flagged dirty.
            profile.unlocked_personas = [*(profile.unlocked_personas or []), *unlocked]
        return unlocked

    def history_limit(self, profile: UserProfile) -> int | None:
        return None if profile.is_premium else self.free_history_limit


class EntitlementProvider(Protocol):
    def is_premium(self) -> bool: ...


@dataclass
class StaticEntitlements:
    premium: bool = False

    def is_premium(self) -> bool:
        return self.premium


__all__ = ["QuotaPolicy", "EntitlementProvider", "StaticEntitlements", "same_week"]
