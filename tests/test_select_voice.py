from __future__ import annotations

from hypebuddy.config import VoiceSettings
from hypebuddy.persona import get_persona
from hypebuddy.tts.native import (
    QUALITY_ENHANCED,
    QUALITY_PREMIUM,
    VoiceInfo,
    select_voice,
    utterance_settings,
)

SAMANTHA = VoiceInfo(id="samantha", name="Samantha", language="en-US", gender="female")
AVA = VoiceInfo(id="ava", name="Ava (Premium)", language="en-US", gender="female", quality=QUALITY_PREMIUM)
ALEX = VoiceInfo(id="alex", name="Alex", language="en-US", gender="male")
EVAN = VoiceInfo(id="evan", name="Evan (Enhanced)", language="en_US", gender="male", quality=QUALITY_ENHANCED)
DANIEL = VoiceInfo(id="daniel", name="Daniel", language="en-GB", gender="male")
THOMAS = VoiceInfo(id="thomas", name="Thomas", language="fr-FR", gender="male")


def test_prefers_persona_gender_then_quality() -> None:
    voices = [SAMANTHA, AVA, ALEX, EVAN]
    assert select_voice(voices, get_persona("sparky")) == EVAN
    assert select_voice(voices, get_persona("boost")) == AVA


def test_falls_back_to_any_voice_in_locale() -> None:
    assert select_voice([SAMANTHA, AVA, DANIEL], get_persona("sparky")) == AVA


def test_falls_back_to_default_language() -> None:
    assert select_voice([THOMAS, DANIEL], get_persona("pep")) == DANIEL


def test_no_matching_voice() -> None:
    assert select_voice([THOMAS], get_persona("pep")) is None
    assert select_voice([], get_persona("pep")) is None


def test_utterance_settings_scale_rate_by_persona() -> None:
    settings = utterance_settings(get_persona("pep"), [SAMANTHA], VoiceSettings(base_rate_wpm=200))
    assert settings.voice == SAMANTHA
    assert settings.rate == 200 * 1.1
    assert settings.pitch == 1.35
