"""Delivery collaborators invoked once when a reminder fires."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .models import TaskItem

logger = logging.getLogger(__name__)


def format_due(due: Optional[datetime]) -> str:
    """``Mon, Jan 6 at 9:30 AM`` style label, or ``Due now``."""
    if not isinstance(due, datetime):
        return "Due now"
    hour = due.hour % 12 or 12
    return f"{due:%a, %b} {due.day} at {hour}:{due:%M} {due:%p}"


def format_notification(task: TaskItem) -> tuple:
    """Return (title, body) for a due reminder."""
    title = task.title.strip() or "Reminder due"
    body = format_due(task.due)
    if task.notes and task.notes.strip():
        body += "\n" + task.notes.strip()
    return title, body


class ReminderNotifier(ABC):
    """Platform hook that surfaces a due reminder (tray toast, push, ...)."""

    @abstractmethod
    def notify_due(self, task: TaskItem) -> None:
        pass


class LogNotifier(ReminderNotifier):
    """Default notifier: writes the notification to the log."""

    def notify_due(self, task: TaskItem) -> None:
        title, body = format_notification(task)
        logger.info("Reminder due: %s | %s", title, body.replace("\n", " | "))
