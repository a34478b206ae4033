from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class GenerationError(RuntimeError):
    """Base class for failures surfaced by the generation client."""


class ModelUnavailable(GenerationError):
    def __init__(self, detail: str = "AI model not initialized") -> None:
        super().__init__(detail)


class EmptyResponse(GenerationError):
    def __init__(self, detail: str = "AI returned an empty response") -> None:
        super().__init__(detail)


class GenerationFailed(GenerationError):
    """Transport, HTTP-level or malformed-response failure from the model backend."""


@dataclass(slots=True)
class GenerationResult:
    text: str
    model: str
    finish_reason: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)


class TextProvider:
    name: str

    async def generate(self, prompt: str) -> GenerationResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
