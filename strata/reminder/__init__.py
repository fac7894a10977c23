"""Due-time reminders: scheduling, delivery and local due-time bookkeeping"""

from .models import TaskItem, is_date_only
from .notifier import LogNotifier, ReminderNotifier, format_notification
from .scheduler import ReminderScheduler
from .due_time_store import TaskDueTimeStore, resolve_due, restore_due_times

__all__ = [
    "TaskItem", "is_date_only",
    "LogNotifier", "ReminderNotifier", "format_notification",
    "ReminderScheduler",
    "TaskDueTimeStore", "resolve_due", "restore_due_times",
]
