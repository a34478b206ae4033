from __future__ import annotations

import asyncio
from typing import Any, Protocol, Sequence

from hypebuddy.llm.prompts import WinRecord, build_conversation_prompt
from hypebuddy.llm.types import GenerationError
from hypebuddy.orchestrator.clock import CLOCK, Clock
from hypebuddy.orchestrator.events import (
    BeginListening,
    Cancel,
    CaptureFailed,
    DismissError,
    Effect,
    Event,
    GenerationFailed,
    GenerationSucceeded,
    InputFinalized,
    Modality,
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
from hypebuddy.orchestrator.policies import EntitlementProvider
from hypebuddy.orchestrator.reducer import transition
from hypebuddy.persona import Persona
from hypebuddy.telemetry.logging import bind_chat, get_logger
from hypebuddy.transcription.base import PermissionDenied, SpeechRecognizer


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class WinMemory(Protocol):
    async def recent_wins(self, limit: int = 5, is_premium: bool = False) -> Sequence[WinRecord]: ...


class VoiceOutput(Protocol):
    def configure(self, persona: Persona) -> None: ...

    async def speak(self, text: str) -> None: ...

    async def stop(self) -> None: ...


class StateBridge(Protocol):
    async def publish_state(self, chat_id: str, state: SessionState) -> None: ...


class ConversationOrchestrator:
    """Drives one live conversation.

    State changes go through ``transition``; this class only executes the
    effects it returns. Generation and playback run as background tasks and
    report back by dispatching events, so a late result for a cancelled
    request is discarded by the reducer.
    """

    def __init__(
        self,
        chat_id: str,
        persona: Persona,
        generator: TextGenerator,
        memory: WinMemory,
        voice: VoiceOutput,
        recognizer: SpeechRecognizer,
        entitlements: EntitlementProvider,
        bridge: StateBridge | None = None,
        clock: Clock = CLOCK,
        memory_limit: int = 5,
    ) -> None:
        self.chat_id = chat_id
        self._persona = persona
        self._generator = generator
        self._memory = memory
        self._voice = voice
        self._recognizer = recognizer
        self._entitlements = entitlements
        self._bridge = bridge
        self._clock = clock
        self._memory_limit = memory_limit
        self._state = SessionState()
        self._lock = asyncio.Lock()
        self._listen_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._logger = get_logger(__name__)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def persona(self) -> Persona:
        return self._persona

    @property
    def recognizer(self) -> SpeechRecognizer:
        return self._recognizer

    async def dispatch(self, event: Event) -> SessionState:
        return await self._process([event], modality="voice")

    async def start_capture(self) -> SessionState:
        return await self.dispatch(StartCapture())

    async def finish_capture(self) -> SessionState:
        """End voice capture and wait for the final transcript to be handled."""
        if self._state.phase != "capturing":
            return self._state
        await self._recognizer.finish()
        listener = self._listen_task
        if listener is not None:
            await asyncio.wait({listener})
        return self._state

    async def submit_text(self, text: str) -> SessionState:
        # Typed input is a capture that is finalised straight away.
        return await self._process([StartCapture(), InputFinalized(text=text, at=self._clock.now())], modality="text")

    async def cancel(self) -> SessionState:
        return await self.dispatch(Cancel())

    async def dismiss_error(self) -> SessionState:
        return await self.dispatch(DismissError())

    async def set_voice_output(self, enabled: bool) -> SessionState:
        return await self.dispatch(SetVoiceOutput(enabled=enabled))

    async def wait_settled(self) -> SessionState:
        """Wait until no generation or playback task is outstanding."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))
        return self._state

    async def close(self) -> None:
        await self._recognizer.cancel()
        if self._listen_task is not None:
            self._listen_task.cancel()
        if self._state.phase == "responding":
            await self._voice.stop()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.wait(set(self._tasks))
        self._logger.info("chat.closed", chat_id=self.chat_id, turns=len(self._state.turns))

    async def _process(self, events: list[Event], modality: Modality) -> SessionState:
        bind_chat(self.chat_id)
        async with self._lock:
            before = self._state
            queue = list(events)
            while queue:
                event = queue.pop(0)
                previous = self._state
                self._state, effects = transition(self._state, event)
                if self._state.phase != previous.phase:
                    self._logger.debug(
                        "chat.transition",
                        trigger=type(event).__name__,
                        from_phase=previous.phase,
                        to_phase=self._state.phase,
                    )
                for effect in effects:
                    follow_up = await self._run_effect(effect, modality)
                    if follow_up is not None:
                        queue.append(follow_up)
            state = self._state
        if state != before:
            await self._publish(state)
        return state

    async def _run_effect(self, effect: Effect, modality: Modality) -> Event | None:
        if isinstance(effect, BeginListening):
            if modality == "text":
                return None
            try:
                await self._recognizer.start()
            except PermissionDenied as exc:
                self._logger.warning("chat.capture.denied", error=str(exc))
                return CaptureFailed(message=str(exc))
            self._listen_task = asyncio.create_task(self._listen())
        elif isinstance(effect, StopListening):
            await self._recognizer.cancel()
            listener, self._listen_task = self._listen_task, None
            if listener is not None and listener is not asyncio.current_task():
                listener.cancel()
        elif isinstance(effect, RequestGeneration):
            self._spawn(self._generate(effect))
        elif isinstance(effect, Speak):
            self._spawn(self._play(effect))
        elif isinstance(effect, StopPlayback):
            await self._voice.stop()
        return None

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _listen(self) -> None:
        async for chunk in self._recognizer.chunks():
            if chunk.is_final:
                await self._process([InputFinalized(text=chunk.text, at=self._clock.now())], modality="voice")
                return
            await self._process([TranscriptUpdated(text=chunk.text)], modality="voice")

    async def _generate(self, request: RequestGeneration) -> None:
        memory: Sequence[WinRecord] = ()
        try:
            if request.include_memory:
                memory = await self._memory.recent_wins(
                    limit=self._memory_limit,
                    is_premium=self._entitlements.is_premium(),
                )
            prompt = build_conversation_prompt(self._persona, request.message, request.history, memory)
            text = await self._generator.generate(prompt)
        except GenerationError as exc:
            self._logger.warning("chat.generate.failed", request_id=request.request_id, error=str(exc))
            await self._fail_generation(request, f"Failed to generate hype: {exc}")
            return
        except Exception as exc:
            self._logger.exception("chat.generate.crashed", request_id=request.request_id, error=str(exc))
            await self._fail_generation(request, "Failed to generate hype: unexpected error")
            return
        self._logger.info(
            "chat.generate.complete",
            request_id=request.request_id,
            memory_lines=len(memory),
            history_turns=len(request.history),
        )
        await self._process(
            [GenerationSucceeded(request_id=request.request_id, text=text, at=self._clock.now())],
            modality="voice",
        )

    async def _fail_generation(self, request: RequestGeneration, message: str) -> None:
        await self._process([GenerationFailed(request_id=request.request_id, message=message)], modality="voice")

    async def _play(self, request: Speak) -> None:
        try:
            self._voice.configure(self._persona)
            await self._voice.speak(request.text)
        except Exception as exc:
            self._logger.error("chat.voice.failed", request_id=request.request_id, error=str(exc))
        finally:
            await self._process([PlaybackFinished(request_id=request.request_id)], modality="voice")

    async def _publish(self, state: SessionState) -> None:
        if self._bridge is None:
            return
        await self._bridge.publish_state(self.chat_id, state)


__all__ = ["ConversationOrchestrator", "StateBridge", "TextGenerator", "VoiceOutput", "WinMemory"]
