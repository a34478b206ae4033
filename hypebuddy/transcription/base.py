from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from hypebuddy.orchestrator.events import TranscriptChunk
from hypebuddy.telemetry.logging import get_logger


class PermissionDenied(RuntimeError):
    """Microphone or speech-recognition access was refused."""


class SpeechRecognizer(ABC):
    @abstractmethod
    async def start(self) -> None:
        """Begin a capture; raises PermissionDenied when access is refused."""

    @abstractmethod
    def chunks(self) -> AsyncIterator[TranscriptChunk]:
        """Yield partial chunks, ending with one final chunk."""

    @abstractmethod
    async def finish(self) -> None:
        """Stop listening and emit the final transcript."""

    @abstractmethod
    async def cancel(self) -> None:
        """Abandon the capture without a final transcript."""


class PushRecognizer(SpeechRecognizer):
    """Recognizer fed from outside, e.g. a client doing on-device recognition."""

    def __init__(self, authorized: bool = True) -> None:
        self._authorized = authorized
        self._queue: asyncio.Queue[TranscriptChunk | None] = asyncio.Queue(maxsize=256)
        self._latest = ""
        self._active = False
        self._logger = get_logger(__name__)

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> None:
        if not self._authorized:
            raise PermissionDenied("Speech recognition access denied")
        self._queue = asyncio.Queue(maxsize=256)
        self._latest = ""
        self._active = True
        self._logger.debug("recognizer.push.started")

    async def push_partial(self, text: str) -> None:
        if not self._active:
            return
        self._latest = text
        await self._queue.put(TranscriptChunk(text=text, is_final=False))

    async def push_final(self, text: str | None = None) -> None:
        if not self._active:
            return
        if text is not None:
            self._latest = text
        self._active = False
        await self._queue.put(TranscriptChunk(text=self._latest, is_final=True))

    async def chunks(self) -> AsyncIterator[TranscriptChunk]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk
            if chunk.is_final:
                return

    async def finish(self) -> None:
        # The last partial becomes the final transcript.
        await self.push_final()

    async def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        await self._queue.put(None)
        self._logger.debug("recognizer.push.cancelled")


__all__ = ["SpeechRecognizer", "PushRecognizer", "PermissionDenied"]
