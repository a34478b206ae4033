"""Conversation state machine as a pure reducer.

``transition(state, event)`` returns the next state and the side effects the
driver must run. It never performs I/O, so every path can be exercised
without audio, network or storage.

    idle -> capturing -> generating -> responding -> idle
                 \\            \\
                  +-> error <---+        (error -> idle only on DismissError)
"""

from __future__ import annotations

from dataclasses import replace

from hypebuddy.orchestrator.events import (
    BeginListening,
    Cancel,
    CaptureFailed,
    ConversationTurn,
    DismissError,
    Effect,
    Event,
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

Transition = tuple[SessionState, list[Effect]]


def transition(state: SessionState, event: Event) -> Transition:
    if isinstance(event, SetVoiceOutput):
        return replace(state, voice_output=event.enabled), []
    if isinstance(event, StartCapture):
        return _start_capture(state)
    if isinstance(event, TranscriptUpdated):
        if state.phase != "capturing":
            return state, []
        return replace(state, live_transcript=event.text), []
    if isinstance(event, InputFinalized):
        return _finalize_input(state, event)
    if isinstance(event, CaptureFailed):
        if state.phase != "capturing":
            return state, []
        return replace(state, phase="error", error=event.message, live_transcript=""), [StopListening()]
    if isinstance(event, GenerationSucceeded):
        return _generation_succeeded(state, event)
    if isinstance(event, GenerationFailed):
        if state.phase != "generating" or event.request_id != state.request_id:
            return state, []
        return replace(state, phase="error", error=event.message, pending_turn=None), []
    if isinstance(event, PlaybackFinished):
        if state.phase != "responding" or event.request_id != state.request_id:
            return state, []
        return replace(state, phase="idle"), []
    if isinstance(event, Cancel):
        return _cancel(state)
    if isinstance(event, DismissError):
        if state.phase != "error":
            return state, []
        return replace(state, phase="idle", error=None), []
    raise TypeError(f"unsupported event {event!r}")


def _start_capture(state: SessionState) -> Transition:
    if state.phase != "idle":
        return state, []
    return replace(state, phase="capturing", live_transcript=""), [BeginListening()]


def _finalize_input(state: SessionState, event: InputFinalized) -> Transition:
    if state.phase != "capturing":
        return state, []
    text = event.text.strip()
    if not text:
        return replace(state, phase="idle", live_transcript=""), [StopListening()]

    request_id = state.request_id + 1
    # One-shot: memory goes into the first request of the session and never again.
    include_memory = not state.memory_injected and not state.turns
    user_turn = ConversationTurn(text=text, role="user", created_at=event.at)
    next_state = replace(
        state,
        phase="generating",
        pending_turn=user_turn,
        live_transcript="",
        memory_injected=True,
        request_id=request_id,
    )
    request = RequestGeneration(
        request_id=request_id,
        message=text,
        history=state.turns,
        include_memory=include_memory,
    )
    return next_state, [StopListening(), request]


def _generation_succeeded(state: SessionState, event: GenerationSucceeded) -> Transition:
    if state.phase != "generating" or event.request_id != state.request_id or state.pending_turn is None:
        return state, []
    reply = ConversationTurn(text=event.text, role="assistant", created_at=event.at)
    turns = (*state.turns, state.pending_turn, reply)
    if not state.voice_output:
        return replace(state, phase="idle", turns=turns, pending_turn=None), []
    next_state = replace(state, phase="responding", turns=turns, pending_turn=None)
    return next_state, [Speak(request_id=event.request_id, text=event.text)]


def _cancel(state: SessionState) -> Transition:
    if state.phase == "capturing":
        return replace(state, phase="idle", live_transcript=""), [StopListening()]
    if state.phase == "generating":
        # A late reply for this request is dropped by the request_id/phase checks.
        return replace(state, phase="idle", pending_turn=None), []
    if state.phase == "responding":
        return replace(state, phase="idle"), [StopPlayback()]
    return state, []


__all__ = ["transition", "Transition"]
