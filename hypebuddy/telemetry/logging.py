from __future__ import annotations

import logging
from typing import Any

import structlog

from hypebuddy.config import TelemetrySettings

# Client libraries that log every request at INFO; kept at WARNING unless debugging.
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "comtypes")

_configured = False


def _service_fields(settings: TelemetrySettings) -> structlog.types.Processor:
    def add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", settings.service_name)
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_service


def configure_logging(settings: TelemetrySettings | None = None) -> None:
    global _configured
    if _configured:
        return
    settings = settings or TelemetrySettings()
    level = settings.log_level.upper()

    logging.basicConfig(
        format="%(message)s",
        level=level,
    )
    if level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Any = structlog.processors.JSONRenderer() if settings.json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_fields(settings),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def bind_chat(chat_id: str) -> None:
    """Attach the chat id to every log line emitted from the current task."""
    structlog.contextvars.bind_contextvars(chat_id=chat_id)


__all__ = ["configure_logging", "get_logger", "bind_chat", "NOISY_LOGGERS"]
