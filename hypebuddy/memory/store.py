from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hypebuddy.memory import models
from hypebuddy.persona import DEFAULT_PERSONA
from hypebuddy.telemetry.logging import get_logger


class SessionNotFound(LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"hype session '{session_id}' not found")
        self.session_id = session_id


class OutcomeAlreadyLogged(RuntimeError):
    def __init__(self, session_id: str, outcome: str) -> None:
        super().__init__(f"outcome for session '{session_id}' already logged as '{outcome}'")
        self.session_id = session_id
        self.outcome = outcome


class SessionStore:
    """Async persistence for hype sessions and the single local user profile."""

    def __init__(self, dsn: str, max_pool_size: int = 10) -> None:
        engine_kwargs: dict[str, Any] = {"echo": False}
        if not dsn.startswith("sqlite"):
            engine_kwargs["pool_size"] = max_pool_size
        self._engine: AsyncEngine = create_async_engine(dsn, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        self._logger = get_logger(__name__)

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)

    async def aclose(self) -> None:
        await self._engine.dispose()

    async def add_session(
        self,
        scenario: str,
        user_input: str,
        response_text: str,
        persona_id: str,
        created_at: datetime | None = None,
    ) -> models.HypeSession:
        if not response_text.strip():
            raise ValueError("response_text must be non-empty")
        record = models.HypeSession(
            id=str(uuid4()),
            scenario=scenario,
            user_input=user_input,
            response_text=response_text,
            created_at=created_at or datetime.now(timezone.utc),
            outcome=None,
            outcome_notes=None,
            persona_id=persona_id,
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
        self._logger.info("store.session.added", session_id=record.id, scenario=scenario, persona=persona_id)
        return record

    async def get_session(self, session_id: str) -> models.HypeSession:
        async with self._session_factory() as session:
            record = await session.get(models.HypeSession, session_id)
        if record is None:
            raise SessionNotFound(session_id)
        return record

    async def recent_sessions(
        self,
        limit: int | None,
        outcome: str | None = None,
        pending: bool = False,
    ) -> list[models.HypeSession]:
        """Most-recent-first sessions, optionally filtered by outcome or by missing outcome."""
        stmt = select(models.HypeSession)
        if outcome is not None:
            stmt = stmt.where(models.HypeSession.outcome == outcome)
        elif pending:
            stmt = stmt.where(models.HypeSession.outcome.is_(None))
        stmt = stmt.order_by(models.HypeSession.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars())

    async def count_sessions(self, outcome: str | None = None, logged_only: bool = False) -> int:
        stmt = select(func.count()).select_from(models.HypeSession)
        if outcome is not None:
            stmt = stmt.where(models.HypeSession.outcome == outcome)
        elif logged_only:
            stmt = stmt.where(models.HypeSession.outcome.is_not(None))
        async with self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def log_outcome(self, session_id: str, outcome: str, notes: str | None = None) -> models.HypeSession:
        if outcome not in models.OUTCOMES:
            raise ValueError(f"unknown outcome '{outcome}'")
        async with self._session_factory() as session:
            record = await session.get(models.HypeSession, session_id)
            if record is None:
                raise SessionNotFound(session_id)
            if record.outcome is not None:
                raise OutcomeAlreadyLogged(session_id, record.outcome)
            record.outcome = outcome
            record.outcome_notes = notes.strip() if notes and notes.strip() else None
            await session.commit()
        self._logger.info("store.outcome.logged", session_id=session_id, outcome=outcome)
        return record

    async def delete_session(self, session_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(delete(models.HypeSession).where(models.HypeSession.id == session_id))
            await session.commit()
        deleted = bool(result.rowcount)
        if deleted:
            self._logger.info("store.session.deleted", session_id=session_id)
        return deleted

    async def load_profile(self, now: datetime | None = None, allotment: int = 5) -> models.UserProfile:
        started = now or datetime.now(timezone.utc)
        async with self._session_factory() as session:
            profile = (await session.execute(select(models.UserProfile).limit(1))).scalar_one_or_none()
            if profile is None:
                profile = models.UserProfile(
                    quota_remaining=allotment,
                    quota_period_start=started,
                    created_at=started,
                    is_premium=False,
                    selected_persona=DEFAULT_PERSONA,
                    unlocked_personas=[DEFAULT_PERSONA],
                    total_hypes=0,
                    total_wins=0,
                )
                session.add(profile)
                await session.commit()
                self._logger.info("store.profile.created")
            return profile

    async def save_profile(self, profile: models.UserProfile) -> models.UserProfile:
        async with self._session_factory() as session:
            merged = await session.merge(profile)
            await session.commit()
        return merged


__all__ = ["SessionStore", "SessionNotFound", "OutcomeAlreadyLogged"]
