from __future__ import annotations

import asyncio
import io
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from hypebuddy.telemetry.logging import get_logger


class PlaybackError(RuntimeError):
    """The buffer could not be decoded or the output device rejected it."""


class AudioOutputController:
    """Exclusive owner of the device audio output.

    ``claim`` is not reentrant: a second claimant waits until the first one
    releases, so callers stop the current playback before claiming again.
    """

    def __init__(self) -> None:
        self._claim_lock = asyncio.Lock()
        self._current_tag: Optional[str] = None
        self._current_done: Optional[asyncio.Event] = None
        self._logger = get_logger(__name__)

    @asynccontextmanager
    async def claim(self, tag: str) -> AsyncIterator["AudioOutputController"]:
        async with self._claim_lock:
            self._current_tag = tag
            self._logger.debug("audio.output.claimed", tag=tag)
            try:
                yield self
            finally:
                self._current_tag = None
                self._logger.debug("audio.output.released", tag=tag)

    @property
    def owner(self) -> Optional[str]:
        return self._current_tag

    async def play_bytes(self, audio: bytes, tag: str) -> float:
        """Decode an encoded buffer (wav/mp3/ogg) and play it to completion."""
        if not audio:
            self._logger.warning("audio.output.empty_bytes", tag=tag)
            return 0.0
        try:
            with io.BytesIO(audio) as buffer:
                data, samplerate = sf.read(buffer, dtype="float32")
        except sf.LibsndfileError as exc:
            raise PlaybackError(f"could not decode audio: {exc}") from exc
        return await self.play_array(np.asarray(data), int(samplerate), tag)

    async def play_array(self, data: np.ndarray, samplerate: int, tag: str) -> float:
        if samplerate <= 0 or data.size == 0:
            self._logger.warning("audio.output.invalid_payload", tag=tag, samplerate=samplerate, frames=int(data.size))
            return 0.0

        duration = data.shape[0] / float(samplerate)
        loop = asyncio.get_running_loop()
        done_event = asyncio.Event()
        self._current_done = done_event

        def _play() -> None:
            try:
                sd.play(data, samplerate=samplerate, blocking=False)
                sd.wait()
            finally:
                loop.call_soon_threadsafe(done_event.set)

        try:
            await asyncio.to_thread(_play)
        except sd.PortAudioError as exc:
            raise PlaybackError(f"audio device error: {exc}") from exc
        finally:
            self._current_done = None
        return max(duration, 0.0)

    async def stop(self) -> bool:
        """Halt device playback; a no-op when nothing is playing."""
        done = self._current_done
        if done is None:
            return False
        sd.stop()
        await done.wait()
        self._logger.debug("audio.output.stopped", tag=self._current_tag)
        return True


__all__ = ["AudioOutputController", "PlaybackError"]
