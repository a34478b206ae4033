from __future__ import annotations

from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from hypebuddy.memory.models import HypeSession
from hypebuddy.telemetry.logging import get_logger

FREE_TIER_MEMORY_CAP = 3


class SessionReader(Protocol):
    async def recent_sessions(self, limit: int | None, outcome: str | None = None, pending: bool = False) -> list[HypeSession]: ...

    async def count_sessions(self, outcome: str | None = None, logged_only: bool = False) -> int: ...


class MemoryProvider:
    """Read-only view over past sessions used as personalisation context.

    Memory only enhances a prompt, so storage failures degrade to "no memory"
    instead of propagating to the caller.
    """

    def __init__(self, store: SessionReader) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    async def recent_wins(self, limit: int = 5, is_premium: bool = False) -> list[HypeSession]:
        effective_limit = limit if is_premium else min(limit, FREE_TIER_MEMORY_CAP)
        if effective_limit <= 0:
            return []
        try:
            wins = await self._store.recent_sessions(limit=effective_limit, outcome="win")
        except (SQLAlchemyError, OSError) as exc:
            self._logger.error("memory.recent_wins.failed", error=str(exc))
            return []
        self._logger.debug("memory.recent_wins", count=len(wins), limit=effective_limit, premium=is_premium)
        return wins[:effective_limit]

    async def pending_outcomes(self, limit: int = 10) -> list[HypeSession]:
        try:
            return await self._store.recent_sessions(limit=limit, pending=True)
        except (SQLAlchemyError, OSError) as exc:
            self._logger.error("memory.pending_outcomes.failed", error=str(exc))
            return []

    async def win_rate(self) -> float:
        try:
            total = await self._store.count_sessions(logged_only=True)
            if total == 0:
                return 0.0
            wins = await self._store.count_sessions(outcome="win")
        except (SQLAlchemyError, OSError) as exc:
            self._logger.error("memory.win_rate.failed", error=str(exc))
            return 0.0
        return wins / total

    async def total_sessions(self) -> int:
        try:
            return await self._store.count_sessions()
        except (SQLAlchemyError, OSError) as exc:
            self._logger.error("memory.total_sessions.failed", error=str(exc))
            return 0


__all__ = ["MemoryProvider", "FREE_TIER_MEMORY_CAP"]
