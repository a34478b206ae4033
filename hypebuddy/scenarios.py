from __future__ import annotations

from enum import Enum


class Scenario(str, Enum):
    PRESENTATION = "presentation"
    INTERVIEW = "interview"
    WORKOUT = "workout"
    DATE = "date"
    HARD_CONVO = "hard_convo"

    @property
    def title(self) -> str:
        return _TITLES[self]

    @property
    def context_prompt(self) -> str:
        return _CONTEXT_PROMPTS[self]


_TITLES: dict[Scenario, str] = {
    Scenario.PRESENTATION: "Big Presentation",
    Scenario.INTERVIEW: "Job Interview",
    Scenario.WORKOUT: "Tough Workout",
    Scenario.DATE: "First Date",
    Scenario.HARD_CONVO: "Hard Conversation",
}

_CONTEXT_PROMPTS: dict[Scenario, str] = {
    Scenario.PRESENTATION: "about to give a presentation or public speaking",
    Scenario.INTERVIEW: "about to go into a job interview",
    Scenario.WORKOUT: "about to do a challenging workout or physical activity",
    Scenario.DATE: "about to go on a date and feeling nervous",
    Scenario.HARD_CONVO: "about to have a difficult or uncomfortable conversation",
}


__all__ = ["Scenario"]
