from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from hypebuddy.llm.prompts import build_hype_prompt
from hypebuddy.memory.models import HypeSession, UserProfile
from hypebuddy.memory.provider import MemoryProvider
from hypebuddy.memory.store import SessionStore
from hypebuddy.orchestrator.clock import CLOCK, Clock
from hypebuddy.orchestrator.policies import EntitlementProvider, QuotaPolicy
from hypebuddy.orchestrator.state_machine import TextGenerator
from hypebuddy.persona import PERSONAS, get_persona, next_unlock
from hypebuddy.scenarios import Scenario
from hypebuddy.telemetry.logging import get_logger

HistoryFilter = Literal["all", "wins", "pending"]


class QuotaExceeded(RuntimeError):
    def __init__(self) -> None:
        super().__init__("free hypes for this week are used up")


class PersonaLocked(RuntimeError):
    def __init__(self, persona_id: str) -> None:
        super().__init__(f"persona '{persona_id}' is locked")
        self.persona_id = persona_id


class ReminderSink(Protocol):
    def schedule_win_log(self, session_id: str, scenario: str) -> Any: ...

    def cancel_win_log(self, session_id: str) -> bool: ...


@dataclass(slots=True)
class HypeResult:
    session: HypeSession
    profile: UserProfile
    unlocked: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "profile": self.profile.to_dict(),
            "unlocked": list(self.unlocked),
        }


class HypeService:
    """Single-shot hypes plus the bookkeeping around them: quota, outcomes, personas."""

    def __init__(
        self,
        store: SessionStore,
        memory: MemoryProvider,
        generator: TextGenerator,
        entitlements: EntitlementProvider,
        quota: QuotaPolicy | None = None,
        reminders: ReminderSink | None = None,
        clock: Clock = CLOCK,
        memory_limit: int = 5,
    ) -> None:
        self._store = store
        self._memory = memory
        self._generator = generator
        self._entitlements = entitlements
        self._quota = quota or QuotaPolicy()
        self._reminders = reminders
        self._clock = clock
        self._memory_limit = memory_limit
        self._logger = get_logger(__name__)

    async def profile(self) -> UserProfile:
        now = self._clock.now()
        profile = await self._store.load_profile(now=now, allotment=self._quota.allotment)
        changed = profile.is_premium != self._entitlements.is_premium()
        profile.is_premium = self._entitlements.is_premium()
        if self._quota.reset_if_needed(profile, now):
            self._logger.info("quota.reset", allotment=self._quota.allotment)
            changed = True
        if changed:
            profile = await self._store.save_profile(profile)
        return profile

    async def generate_hype(self, scenario: Scenario | None, custom_input: str | None = None) -> HypeResult:
        text = (custom_input or "").strip()
        if scenario is None and not text:
            raise ValueError("pick a scenario or describe the moment")

        profile = await self.profile()
        if not self._quota.can_generate(profile):
            self._logger.info("hype.quota_exceeded")
            raise QuotaExceeded()

        persona = get_persona(profile.selected_persona)
        wins = await self._memory.recent_wins(limit=self._memory_limit, is_premium=profile.is_premium)
        prompt = build_hype_prompt(persona, scenario, text or None, wins)
        response = await self._generator.generate(prompt)

        label = scenario.title if scenario is not None else "Custom"
        session = await self._store.add_session(
            scenario=label,
            user_input=text or (scenario.title if scenario is not None else "Quick hype"),
            response_text=response,
            persona_id=persona.id,
            created_at=self._clock.now(),
        )
        unlocked = self._quota.consume(profile)
        profile = await self._store.save_profile(profile)
        if self._reminders is not None:
            self._reminders.schedule_win_log(session.id, label)
        self._logger.info(
            "hype.generated",
            session_id=session.id,
            scenario=label,
            persona=persona.id,
            memory_lines=len(wins),
            quota_remaining=profile.quota_remaining,
            unlocked=unlocked,
        )
        return HypeResult(session=session, profile=profile, unlocked=unlocked)

    async def log_outcome(self, session_id: str, outcome: str, notes: str | None = None) -> HypeSession:
        session = await self._store.log_outcome(session_id, outcome, notes)
        if outcome == "win":
            profile = await self.profile()
            profile.total_wins += 1
            await self._store.save_profile(profile)
        if self._reminders is not None:
            self._reminders.cancel_win_log(session_id)
        return session

    async def select_persona(self, persona_id: str) -> UserProfile:
        if persona_id not in PERSONAS:
            raise ValueError(f"unknown persona '{persona_id}'")
        profile = await self.profile()
        if persona_id not in (profile.unlocked_personas or []):
            raise PersonaLocked(persona_id)
        profile.selected_persona = persona_id
        self._logger.info("persona.selected", persona=persona_id)
        return await self._store.save_profile(profile)

    async def history(self, view: HistoryFilter = "all") -> list[HypeSession]:
        profile = await self.profile()
        limit = self._quota.history_limit(profile)
        if view == "wins":
            return await self._store.recent_sessions(limit=limit, outcome="win")
        if view == "pending":
            return await self._store.recent_sessions(limit=limit, pending=True)
        return await self._store.recent_sessions(limit=limit)

    async def pending(self) -> list[HypeSession]:
        return await self._memory.pending_outcomes()

    async def delete_session(self, session_id: str) -> bool:
        deleted = await self._store.delete_session(session_id)
        if deleted and self._reminders is not None:
            self._reminders.cancel_win_log(session_id)
        return deleted

    async def stats(self) -> dict[str, Any]:
        profile = await self.profile()
        return {
            "total_sessions": await self._memory.total_sessions(),
            "total_wins": profile.total_wins,
            "win_rate": round(await self._memory.win_rate(), 4),
            "next_unlock": next_unlock(profile.total_hypes, profile.unlocked_personas or []),
        }


__all__ = ["HypeService", "HypeResult", "QuotaExceeded", "PersonaLocked", "HistoryFilter"]
