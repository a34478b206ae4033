from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from hypebuddy.telemetry.logging import get_logger

LOGGER = get_logger(__name__)

WIN_LOG_TITLE = "How'd it go?"
DEFAULT_WIN_LOG_DELAY = timedelta(hours=2)


def win_log_id(session_id: str) -> str:
    return f"winlog_{session_id}"


@dataclass(slots=True)
class Reminder:
    id: str
    when: datetime
    title: str
    body: str
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["when"] = self.when.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data


class ReminderScheduler:
    """In-process scheduler for local reminders, one daemon timer per reminder.

    Reminders are keyed by id; scheduling an id that is already pending
    replaces it.
    """

    def __init__(
        self,
        win_log_delay: timedelta = DEFAULT_WIN_LOG_DELAY,
        on_fire: Callable[[Reminder], None] | None = None,
    ) -> None:
        self._win_log_delay = win_log_delay
        self._on_fire = on_fire
        self._reminders: dict[str, Reminder] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def add(self, reminder_id: str, when: datetime, title: str, body: str, payload: dict[str, Any] | None = None) -> Reminder:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        reminder = Reminder(id=reminder_id, when=when, title=title, body=body, payload=payload or {})
        self.cancel(reminder_id)
        with self._lock:
            self._reminders[reminder.id] = reminder
            self._arm_timer(reminder)
        LOGGER.info("reminders.add", reminder=reminder.to_dict())
        return reminder

    def cancel(self, reminder_id: str) -> bool:
        with self._lock:
            reminder = self._reminders.pop(reminder_id, None)
            timer = self._timers.pop(reminder_id, None)
        if timer:
            timer.cancel()
        if reminder:
            LOGGER.info("reminders.cancelled", reminder_id=reminder_id)
            return True
        return False

    def schedule_win_log(self, session_id: str, scenario: str, now: datetime | None = None) -> Reminder:
        """Nudge the user to log how a hyped-up moment went."""
        start = now or datetime.now(timezone.utc)
        return self.add(
            reminder_id=win_log_id(session_id),
            when=start + self._win_log_delay,
            title=WIN_LOG_TITLE,
            body=f"You had a {scenario} moment. Let's log the win!",
            payload={"session_id": session_id},
        )

    def cancel_win_log(self, session_id: str) -> bool:
        return self.cancel(win_log_id(session_id))

    def list_active(self) -> list[dict[str, Any]]:
        with self._lock:
            return [reminder.to_dict() for reminder in self._reminders.values()]

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self._reminders.clear()
        for timer in timers:
            timer.cancel()

    def _arm_timer(self, reminder: Reminder) -> None:
        delta = (reminder.when - datetime.now(timezone.utc)).total_seconds()
        if delta <= 0:
            LOGGER.warning("reminders.late_trigger", reminder=reminder.to_dict())
            delta = 0.0
        timer = threading.Timer(delta, self._trigger, args=(reminder.id,))
        timer.daemon = True
        self._timers[reminder.id] = timer
        timer.start()

    def _trigger(self, reminder_id: str) -> None:
        with self._lock:
            reminder = self._reminders.pop(reminder_id, None)
            self._timers.pop(reminder_id, None)
        if reminder is None:
            return
        LOGGER.info("reminders.fire", reminder=reminder.to_dict())
        if self._on_fire is not None:
            self._on_fire(reminder)


__all__ = ["ReminderScheduler", "Reminder", "win_log_id", "WIN_LOG_TITLE"]
