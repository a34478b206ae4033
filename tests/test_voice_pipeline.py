from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import FakeAudio, FakeLocalSynth

from hypebuddy.persona import get_persona
from hypebuddy.tts.edge import RemoteSynthesisError
from hypebuddy.tts.native import VoiceInfo
from hypebuddy.tts.pipeline import VoiceDeliveryPipeline, VoiceStatus, strip_emoji


class FakeRemote:
    def __init__(self, error: Exception | None = None, audio: bytes = b"ID3-audio") -> None:
        self.error = error
        self.audio = audio
        self.requests: list[tuple[str, str]] = []

    async def synthesize(self, text: str, persona) -> bytes:
        self.requests.append((text, persona.remote_voice))
        if self.error is not None:
            raise self.error
        return self.audio


def test_strip_emoji_removes_pictographs_and_joiners() -> None:
    assert strip_emoji("Let's go! 🔥🔥 You got this 💪🏽") == "Let's go! You got this"
    assert strip_emoji("Family 👨‍👩‍👧 time") == "Family time"
    assert strip_emoji("Plain text, 100% #1") == "Plain text, 100% #1"


@pytest.mark.anyio
async def test_remote_failure_falls_back_to_local_once() -> None:
    local = FakeLocalSynth(voices=[VoiceInfo(id="v1", name="Alex", language="en-US", gender="male")])
    remote = FakeRemote(error=httpx.ConnectError("edge tts down"))
    pipeline = VoiceDeliveryPipeline(local=local, audio=FakeAudio(), remote=remote, persona=get_persona("sparky"))
    seen: list[VoiceStatus] = []
    pipeline.subscribe(seen.append)

    await pipeline.speak("You're going to crush it! 🔥")

    assert len(local.spoken) == 1
    text, settings = local.spoken[0]
    assert text == "You're going to crush it!"
    assert settings.voice is not None and settings.voice.id == "v1"
    assert settings.rate == pytest.approx(175 * 1.2)
    assert settings.pitch == pytest.approx(1.45)
    assert any(status.using_fallback for status in seen)
    assert pipeline.using_fallback is True
    assert pipeline.is_speaking is False
    assert remote.requests == [("You're going to crush it!", "en-US-GuyNeural")]


@pytest.mark.anyio
async def test_empty_remote_audio_also_falls_back() -> None:
    local = FakeLocalSynth()
    remote = FakeRemote(error=RemoteSynthesisError("remote synthesis returned no audio"))
    pipeline = VoiceDeliveryPipeline(local=local, audio=FakeAudio(), remote=remote)
    await pipeline.speak("Go time")
    assert [text for text, _ in local.spoken] == ["Go time"]


@pytest.mark.anyio
async def test_remote_success_plays_audio_without_local() -> None:
    local = FakeLocalSynth()
    audio = FakeAudio()
    pipeline = VoiceDeliveryPipeline(local=local, audio=audio, remote=FakeRemote(), persona=get_persona("pep"))
    seen: list[VoiceStatus] = []
    pipeline.subscribe(seen.append)

    await pipeline.speak("Deep breath.")

    assert audio.played == [b"ID3-audio"]
    assert audio.claims == ["voice:pep"]
    assert local.spoken == []
    assert seen[0] == VoiceStatus(speaking=True, using_fallback=False, backend="remote")
    assert seen[-1].speaking is False
    assert not any(status.using_fallback for status in seen)


@pytest.mark.anyio
async def test_without_remote_speaks_locally() -> None:
    local = FakeLocalSynth()
    pipeline = VoiceDeliveryPipeline(local=local, audio=FakeAudio())
    await pipeline.speak("Hello")
    assert [text for text, _ in local.spoken] == ["Hello"]
    assert pipeline.using_fallback is False


@pytest.mark.anyio
async def test_emoji_only_text_is_not_spoken() -> None:
    local = FakeLocalSynth()
    pipeline = VoiceDeliveryPipeline(local=local, audio=FakeAudio())
    await pipeline.speak("🔥🔥🔥")
    assert local.spoken == []


@pytest.mark.anyio
async def test_stop_when_idle_is_a_noop() -> None:
    local = FakeLocalSynth()
    audio = FakeAudio()
    pipeline = VoiceDeliveryPipeline(local=local, audio=audio)
    seen: list[VoiceStatus] = []
    pipeline.subscribe(seen.append)
    await pipeline.stop()
    await pipeline.stop()
    assert seen == []
    assert audio.stop_calls == 0
    assert local.stop_calls == 0


@pytest.mark.anyio
async def test_new_speak_interrupts_current_one() -> None:
    local = FakeLocalSynth(blocking=True)
    pipeline = VoiceDeliveryPipeline(local=local, audio=FakeAudio())
    first = asyncio.create_task(pipeline.speak("first"))
    await local.started.wait()
    assert pipeline.is_speaking is True

    await pipeline.speak("second")
    await first

    assert [text for text, _ in local.spoken] == ["first", "second"]
    assert local.stop_calls == 1
    assert pipeline.is_speaking is False


@pytest.mark.anyio
async def test_unsubscribe_stops_notifications() -> None:
    pipeline = VoiceDeliveryPipeline(local=FakeLocalSynth(), audio=FakeAudio())
    seen: list[VoiceStatus] = []
    unsubscribe = pipeline.subscribe(seen.append)
    unsubscribe()
    await pipeline.speak("quiet")
    assert seen == []


class UndecodableAudio(FakeAudio):
    async def play_bytes(self, audio: bytes, tag: str) -> float:
        self.played.append(audio)
        raise RuntimeError("Error opening <_io.BytesIO>: Format not recognised.")


@pytest.mark.anyio
async def test_remote_playback_failure_falls_back_to_local() -> None:
    local = FakeLocalSynth()
    audio = UndecodableAudio()
    pipeline = VoiceDeliveryPipeline(local=local, audio=audio, remote=FakeRemote(audio=b"not-audio"))
    seen: list[VoiceStatus] = []
    pipeline.subscribe(seen.append)

    await pipeline.speak("Go time")

    assert audio.played == [b"not-audio"]
    assert [text for text, _ in local.spoken] == ["Go time"]
    assert pipeline.using_fallback is True
    assert seen[-1] == VoiceStatus(speaking=False, using_fallback=True, backend="local")
