from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from hypebuddy.orchestrator.events import (
    BeginListening,
    Cancel,
    CaptureFailed,
    DismissError,
    GenerationFailed,
    GenerationSucceeded,
    InputFinalized,
    PlaybackFinished,
    RequestGeneration,
    SessionState,
    SetVoiceOutput,
    Speak,
    StartCapture,
    StopListening,
    StopPlayback,
    TranscriptUpdated,
)
from hypebuddy.orchestrator.reducer import transition

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


def capture(state: SessionState, text: str) -> tuple[SessionState, list]:
    state, _ = transition(state, StartCapture())
    return transition(state, InputFinalized(text=text, at=NOW))


def test_start_capture_only_from_idle() -> None:
    state, effects = transition(SessionState(), StartCapture())
    assert state.phase == "capturing"
    assert effects == [BeginListening()]
    again, effects = transition(state, StartCapture())
    assert again is state
    assert effects == []


def test_partial_transcript_updates_live_text() -> None:
    state, _ = transition(SessionState(), StartCapture())
    state, _ = transition(state, TranscriptUpdated(text="I'm ner"))
    assert state.live_transcript == "I'm ner"


def test_empty_final_transcript_returns_to_idle() -> None:
    state, effects = capture(SessionState(), "   ")
    assert state.phase == "idle"
    assert effects == [StopListening()]
    assert state.turns == ()


def test_first_request_includes_memory_once() -> None:
    state, effects = capture(SessionState(), "I'm nervous")
    assert state.phase == "generating"
    request = effects[-1]
    assert isinstance(request, RequestGeneration)
    assert request.include_memory is True
    assert request.history == ()
    assert state.memory_injected is True

    state, _ = transition(state, GenerationSucceeded(request_id=request.request_id, text="Breathe!", at=NOW))
    state, _ = transition(state, PlaybackFinished(request_id=request.request_id))
    state, effects = capture(state, "still nervous")
    second = effects[-1]
    assert second.include_memory is False
    assert [turn.text for turn in second.history] == ["I'm nervous", "Breathe!"]


def test_success_commits_both_turns_and_speaks() -> None:
    state, effects = capture(SessionState(), "hello")
    request_id = effects[-1].request_id
    state, effects = transition(state, GenerationSucceeded(request_id=request_id, text="Hey!", at=NOW))
    assert state.phase == "responding"
    assert [(turn.role, turn.text) for turn in state.turns] == [("user", "hello"), ("assistant", "Hey!")]
    assert state.pending_turn is None
    assert effects == [Speak(request_id=request_id, text="Hey!")]


def test_success_without_voice_output_goes_idle() -> None:
    state, _ = transition(SessionState(), SetVoiceOutput(enabled=False))
    state, effects = capture(state, "hello")
    state, effects = transition(state, GenerationSucceeded(request_id=effects[-1].request_id, text="Hey!", at=NOW))
    assert state.phase == "idle"
    assert effects == []
    assert len(state.turns) == 2


def test_failure_enters_error_without_touching_history() -> None:
    state, effects = capture(SessionState(), "hello")
    state, _ = transition(state, GenerationFailed(request_id=effects[-1].request_id, message="Failed to generate hype: boom"))
    assert state.phase == "error"
    assert state.error == "Failed to generate hype: boom"
    assert state.turns == ()
    assert state.transcript == ()


def test_error_persists_until_dismissed() -> None:
    state = SessionState(phase="error", error="nope")
    for event in (StartCapture(), Cancel(), InputFinalized(text="hi", at=NOW)):
        state, effects = transition(state, event)
        assert state.phase == "error"
        assert effects == []
    state, _ = transition(state, DismissError())
    assert state.phase == "idle"
    assert state.error is None


def test_stale_generation_result_is_dropped() -> None:
    state, effects = capture(SessionState(), "hello")
    stale_id = effects[-1].request_id
    state, effects = transition(state, Cancel())
    assert state.phase == "idle"
    assert effects == []
    late, effects = transition(state, GenerationSucceeded(request_id=stale_id, text="late", at=NOW))
    assert late is state
    assert late.turns == ()


def test_cancel_while_responding_stops_playback() -> None:
    state, effects = capture(SessionState(), "hello")
    state, _ = transition(state, GenerationSucceeded(request_id=effects[-1].request_id, text="Hey!", at=NOW))
    state, effects = transition(state, Cancel())
    assert state.phase == "idle"
    assert effects == [StopPlayback()]
    assert len(state.turns) == 2


def test_cancel_while_capturing_stops_listening() -> None:
    state, _ = transition(SessionState(), StartCapture())
    state, effects = transition(state, Cancel())
    assert state.phase == "idle"
    assert effects == [StopListening()]


def test_capture_failure_moves_to_error() -> None:
    state, _ = transition(SessionState(), StartCapture())
    state, effects = transition(state, CaptureFailed(message="Speech recognition access denied"))
    assert state.phase == "error"
    assert effects == [StopListening()]


def test_request_ids_increase() -> None:
    state = replace(SessionState(), request_id=7)
    _, effects = capture(state, "hi")
    assert effects[-1].request_id == 8


def test_unknown_event_raises() -> None:
    with pytest.raises(TypeError):
        transition(SessionState(), object())  # type: ignore[arg-type]
