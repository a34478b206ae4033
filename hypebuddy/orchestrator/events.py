from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Union

Phase = Literal["idle", "capturing", "generating", "responding", "error"]
Role = Literal["user", "assistant"]
Modality = Literal["voice", "text"]


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    text: str
    role: Role
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "role": self.role, "created_at": self.created_at.isoformat()}


@dataclass(frozen=True, slots=True)
class TranscriptChunk:
    text: str
    is_final: bool = False


# Events fed into the reducer.


@dataclass(frozen=True, slots=True)
class StartCapture:
    pass


@dataclass(frozen=True, slots=True)
class TranscriptUpdated:
    text: str


@dataclass(frozen=True, slots=True)
class InputFinalized:
    text: str
    at: datetime


@dataclass(frozen=True, slots=True)
class CaptureFailed:
    message: str


@dataclass(frozen=True, slots=True)
class GenerationSucceeded:
    request_id: int
    text: str
    at: datetime


@dataclass(frozen=True, slots=True)
class GenerationFailed:
    request_id: int
    message: str


@dataclass(frozen=True, slots=True)
class PlaybackFinished:
    request_id: int


@dataclass(frozen=True, slots=True)
class Cancel:
    pass


@dataclass(frozen=True, slots=True)
class DismissError:
    pass


@dataclass(frozen=True, slots=True)
class SetVoiceOutput:
    enabled: bool


Event = Union[
    StartCapture,
    TranscriptUpdated,
    InputFinalized,
    CaptureFailed,
    GenerationSucceeded,
    GenerationFailed,
    PlaybackFinished,
    Cancel,
    DismissError,
    SetVoiceOutput,
]


# Side-effect intents returned by the reducer and executed by the driver.


@dataclass(frozen=True, slots=True)
class BeginListening:
    pass


@dataclass(frozen=True, slots=True)
class StopListening:
    pass


@dataclass(frozen=True, slots=True)
class RequestGeneration:
    request_id: int
    message: str
    history: tuple[ConversationTurn, ...]
    include_memory: bool


@dataclass(frozen=True, slots=True)
class Speak:
    request_id: int
    text: str


@dataclass(frozen=True, slots=True)
class StopPlayback:
    pass


Effect = Union[BeginListening, StopListening, RequestGeneration, Speak, StopPlayback]


@dataclass(frozen=True, slots=True)
class SessionState:
    phase: Phase = "idle"
    turns: tuple[ConversationTurn, ...] = field(default_factory=tuple)
    pending_turn: ConversationTurn | None = None
    live_transcript: str = ""
    error: str | None = None
    memory_injected: bool = False
    request_id: int = 0
    voice_output: bool = True

    @property
    def transcript(self) -> tuple[ConversationTurn, ...]:
        """Committed turns plus the user turn awaiting a reply."""
        if self.pending_turn is None:
            return self.turns
        return (*self.turns, self.pending_turn)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "turns": [turn.to_dict() for turn in self.transcript],
            "live_transcript": self.live_transcript,
            "error": self.error,
            "voice_output": self.voice_output,
        }


__all__ = [
    "Phase",
    "Role",
    "Modality",
    "ConversationTurn",
    "TranscriptChunk",
    "StartCapture",
    "TranscriptUpdated",
    "InputFinalized",
    "CaptureFailed",
    "GenerationSucceeded",
    "GenerationFailed",
    "PlaybackFinished",
    "Cancel",
    "DismissError",
    "SetVoiceOutput",
    "Event",
    "BeginListening",
    "StopListening",
    "RequestGeneration",
    "Speak",
    "StopPlayback",
    "Effect",
    "SessionState",
]
