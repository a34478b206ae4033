from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from sqlalchemy import JSON, TIMESTAMP, Boolean, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from hypebuddy.persona import DEFAULT_PERSONA

Outcome = Literal["win", "meh", "tough"]
OUTCOMES: tuple[str, ...] = ("win", "meh", "tough")


class Base(DeclarativeBase):
    pass


class HypeSession(Base):
    __tablename__ = "hype_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    scenario: Mapped[str] = mapped_column(String(120))
    user_input: Mapped[str] = mapped_column(Text, default="")
    response_text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), index=True)
    outcome: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)
    outcome_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    persona_id: Mapped[str] = mapped_column(String(32), default=DEFAULT_PERSONA)

    @property
    def is_win(self) -> bool:
        return self.outcome == "win"

    @property
    def is_pending(self) -> bool:
        return self.outcome is None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "scenario": self.scenario,
            "user_input": self.user_input,
            "response_text": self.response_text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "outcome": self.outcome,
            "outcome_notes": self.outcome_notes,
            "persona_id": self.persona_id,
        }


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    quota_remaining: Mapped[int] = mapped_column(Integer, default=5)
    quota_period_start: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False)
    selected_persona: Mapped[str] = mapped_column(String(32), default=DEFAULT_PERSONA)
    unlocked_personas: Mapped[list[str]] = mapped_column(JSON, default=lambda: [DEFAULT_PERSONA])
    total_hypes: Mapped[int] = mapped_column(Integer, default=0)
    total_wins: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())

    def to_dict(self) -> dict[str, object]:
        return {
            "quota_remaining": self.quota_remaining,
            "quota_period_start": self.quota_period_start.isoformat() if self.quota_period_start else None,
            "is_premium": self.is_premium,
            "selected_persona": self.selected_persona,
            "unlocked_personas": list(self.unlocked_personas or []),
            "total_hypes": self.total_hypes,
            "total_wins": self.total_wins,
        }
