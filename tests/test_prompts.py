from __future__ import annotations

from datetime import datetime, timezone

from conftest import Win

from hypebuddy.llm.prompts import (
    CONVERSATION_MEMORY_HEADER,
    HYPE_CLOSING,
    HYPE_MEMORY_HEADER,
    build_conversation_prompt,
    build_hype_prompt,
    build_prompt,
    format_memory_lines,
)
from hypebuddy.orchestrator.events import ConversationTurn
from hypebuddy.persona import get_persona
from hypebuddy.scenarios import Scenario

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


def test_interview_prompt_without_memory() -> None:
    persona = get_persona("sparky")
    prompt = build_hype_prompt(persona, Scenario.INTERVIEW, None, [])
    assert prompt.startswith(persona.personality_prompt)
    assert "User is about to go into a job interview" in prompt
    assert "MEMORY" not in prompt
    assert prompt.endswith(HYPE_CLOSING)


def test_custom_input_only_uses_facing_clause() -> None:
    prompt = build_hype_prompt(get_persona("sparky"), None, "  my driving test  ", [])
    assert "User is facing: my driving test" in prompt


def test_scenario_with_custom_input_quotes_it() -> None:
    prompt = build_hype_prompt(get_persona("boost"), Scenario.PRESENTATION, "board meeting", [])
    assert 'User is about to give a presentation or public speaking. They shared: "board meeting"' in prompt


def test_memory_block_lists_wins() -> None:
    wins = [Win("Job Interview", "Google onsite", "got the offer"), Win("Tough Workout", "leg day")]
    prompt = build_hype_prompt(get_persona("pep"), Scenario.INTERVIEW, None, wins)
    assert HYPE_MEMORY_HEADER in prompt
    assert "- Job Interview: Google onsite (Result: WIN! got the offer)" in prompt
    assert "- Tough Workout: leg day (Result: WIN!)" in prompt
    assert prompt.index(HYPE_MEMORY_HEADER) < prompt.index("User is about to go into a job interview")


def test_format_memory_lines_ignores_blank_notes() -> None:
    assert format_memory_lines([Win("First Date", "dinner", "   ")]) == ["- First Date: dinner (Result: WIN!)"]


def test_conversation_prompt_first_turn_carries_memory() -> None:
    persona = get_persona("sparky")
    prompt = build_conversation_prompt(persona, "I'm nervous", [], [Win("Job Interview", "panel")])
    assert CONVERSATION_MEMORY_HEADER in prompt
    assert "CONVERSATION SO FAR" not in prompt
    assert prompt.endswith("User: I'm nervous\n\nRespond naturally as Sparky:")


def test_conversation_prompt_with_history_drops_memory() -> None:
    persona = get_persona("boost")
    history = [
        ConversationTurn(text="I'm nervous", role="user", created_at=NOW),
        ConversationTurn(text="You've prepared for this!", role="assistant", created_at=NOW),
    ]
    prompt = build_conversation_prompt(persona, "thanks", history, [Win("Job Interview", "panel")])
    assert "MEMORY" not in prompt
    assert "User: I'm nervous\nBoost: You've prepared for this!\n" in prompt
    assert prompt.index("CONVERSATION SO FAR") < prompt.index("NEW MESSAGE")


def test_build_prompt_dispatches_on_message() -> None:
    persona = get_persona("sparky")
    assert "NEW MESSAGE" in build_prompt(persona, message="hello")
    assert "NEW MESSAGE" not in build_prompt(persona, scenario=Scenario.DATE)
