from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest

from hypebuddy.memory.store import SessionStore
from hypebuddy.tts.native import LocalSynthesizer, UtteranceSettings, VoiceInfo


@pytest.fixture
def anyio_backend():
    return "asyncio"


@dataclass
class Win:
    scenario: str
    user_input: str
    outcome_notes: str | None = None


class FakeGenerator:
    def __init__(self, reply: str = "You've got this, champ!") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return f"{self.reply} #{len(self.prompts)}"


class FakeVoice:
    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.stops = 0
        self.persona = None
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    def configure(self, persona) -> None:
        self.persona = persona

    async def speak(self, text: str) -> None:
        self.spoken.append(text)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()

    async def stop(self) -> None:
        self.stops += 1


class FakeMemory:
    def __init__(self, wins: list[Win]) -> None:
        self.wins = wins
        self.calls: list[tuple[int, bool]] = []

    async def recent_wins(self, limit: int = 5, is_premium: bool = False) -> list[Win]:
        self.calls.append((limit, is_premium))
        cap = limit if is_premium else min(limit, 3)
        return self.wins[:cap]


class FakeBridge:
    def __init__(self) -> None:
        self.published: list[tuple[str, object]] = []

    async def publish_state(self, chat_id: str, state) -> None:
        self.published.append((chat_id, state))


class FakeAudio:
    def __init__(self) -> None:
        self.played: list[bytes] = []
        self.claims: list[str] = []
        self.stop_calls = 0

    @asynccontextmanager
    async def claim(self, tag: str):
        self.claims.append(tag)
        yield self

    async def play_bytes(self, audio: bytes, tag: str) -> float:
        self.played.append(audio)
        return 1.0

    async def stop(self) -> bool:
        self.stop_calls += 1
        return False


class FakeLocalSynth(LocalSynthesizer):
    def __init__(self, voices: list[VoiceInfo] | None = None, blocking: bool = False) -> None:
        self._voices = voices or []
        self.blocking = blocking
        self.spoken: list[tuple[str, UtteranceSettings]] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.stop_calls = 0

    def voices(self) -> list[VoiceInfo]:
        return list(self._voices)

    async def speak(self, text: str, settings: UtteranceSettings) -> None:
        self.spoken.append((text, settings))
        self.started.set()
        if self.blocking:
            await self.release.wait()

    async def stop(self) -> None:
        self.stop_calls += 1
        self.release.set()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def voice() -> FakeVoice:
    return FakeVoice()


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'hypebuddy.db'}"


@pytest.fixture
async def store(db_url):
    session_store = SessionStore(db_url)
    await session_store.init()
    yield session_store
    await session_store.aclose()


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2025, 3, day, hour, 0, tzinfo=timezone.utc)
