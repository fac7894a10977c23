"""Task/reminder items fed to the scheduler by the task-service bridge."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

Due = Union[date, datetime]


@dataclass(frozen=True)
class TaskItem:
    id: str
    title: str
    notes: Optional[str] = None
    due: Optional[Due] = None  # naive local time; a bare date has no time of day
    completed: bool = False
    list_title: Optional[str] = None


def is_date_only(due: Due) -> bool:
    """True for a bare date, or a datetime sitting exactly on midnight.

    The task service stores date-only reminders as midnight, so midnight is
    indistinguishable from "no time of day".
    """
    if not isinstance(due, datetime):
        return True
    return due.time() == time.min


def has_explicit_time(due: Optional[Due]) -> bool:
    return due is not None and not is_date_only(due)
