"""Prompt composition for single-shot hypes and live conversations.

Everything here is pure: the same inputs always yield the same prompt text.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from hypebuddy.orchestrator.events import ConversationTurn
from hypebuddy.persona import Persona
from hypebuddy.scenarios import Scenario

HYPE_MEMORY_HEADER = "MEMORY - User's Recent Wins (use these to personalize your hype):"
HYPE_MEMORY_FOOTER = "Reference these past wins naturally to boost their confidence!"
CONVERSATION_MEMORY_HEADER = "MEMORY - User's Recent Wins (reference naturally, don't repeat every turn):"
HYPE_CLOSING = "Give them a quick, powerful hype! (4-5 sentences max, designed to be spoken in 20-30 seconds)"
CONVERSATION_FRAMING = (
    "You are in a LIVE VOICE CONVERSATION. Be conversational, natural, and responsive.\n"
    "Keep responses brief (2-3 sentences) since they'll be spoken aloud.\n"
    "Don't repeat yourself or reference the same wins multiple times.\n"
    "Respond directly to what the user just said."
)


class WinRecord(Protocol):
    scenario: str
    user_input: str
    outcome_notes: str | None


def format_memory_lines(wins: Sequence[WinRecord]) -> list[str]:
    lines: list[str] = []
    for session in wins:
        notes = (session.outcome_notes or "").strip()
        result = f"WIN! {notes}" if notes else "WIN!"
        lines.append(f"- {session.scenario}: {session.user_input} (Result: {result})")
    return lines


def situational_clause(scenario: Scenario | None, custom_input: str | None) -> str:
    clause = "User is "
    if scenario is not None:
        clause += scenario.context_prompt
    text = (custom_input or "").strip()
    if text:
        if scenario is not None:
            clause += f'. They shared: "{text}"'
        else:
            clause += f"facing: {text}"
    return clause


def build_hype_prompt(
    persona: Persona,
    scenario: Scenario | None,
    custom_input: str | None,
    memory: Sequence[WinRecord] = (),
) -> str:
    prompt = persona.personality_prompt
    lines = format_memory_lines(memory)
    if lines:
        prompt += f"\n\n{HYPE_MEMORY_HEADER}\n" + "\n".join(lines) + f"\n\n{HYPE_MEMORY_FOOTER}"
    prompt += "\n\n---\n\n" + situational_clause(scenario, custom_input)
    prompt += f"\n\n{HYPE_CLOSING}"
    return prompt


def build_conversation_prompt(
    persona: Persona,
    message: str,
    history: Sequence[ConversationTurn] = (),
    memory: Sequence[WinRecord] = (),
) -> str:
    prompt = persona.personality_prompt
    # Memory belongs to the opening turn only.
    lines = format_memory_lines(memory) if not history else []
    if lines:
        prompt += f"\n\n{CONVERSATION_MEMORY_HEADER}\n" + "\n".join(lines)
    prompt += f"\n\n{CONVERSATION_FRAMING}"
    if history:
        prompt += "\n\n--- CONVERSATION SO FAR ---\n"
        for turn in history:
            role = "User" if turn.role == "user" else persona.name
            prompt += f"{role}: {turn.text}\n"
    prompt += f"\n\n--- NEW MESSAGE ---\nUser: {message}\n\nRespond naturally as {persona.name}:"
    return prompt


def build_prompt(
    persona: Persona,
    *,
    scenario: Scenario | None = None,
    custom_input: str | None = None,
    memory: Sequence[WinRecord] = (),
    history: Sequence[ConversationTurn] | None = None,
    message: str | None = None,
) -> str:
    """Compose a prompt; passing *message* selects the conversational form."""
    if message is not None:
        return build_conversation_prompt(persona, message, history or (), memory)
    return build_hype_prompt(persona, scenario, custom_input, memory)


__all__ = [
    "format_memory_lines",
    "situational_clause",
    "build_hype_prompt",
    "build_conversation_prompt",
    "build_prompt",
]
