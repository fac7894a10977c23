"""Due-time reminder scheduler.

Tracks the latest task list and fires exactly one alert per task per
distinct due time, as close to that time as the event loop allows.

Per task id:
    untracked -> scheduled   task appears with a time-qualified due time
    scheduled -> fired       the due time elapses (immediately if already past)
    scheduled -> scheduled   due time changed: old timer cancelled, new one armed
    any       -> untracked   task left the list: timer cancelled, history dropped

Every read-modify-write of the scheduled/delivered maps happens under one
asyncio.Lock. Timers re-check under that lock that they are still the live
timer for the same due time before firing, so a timer that lost a race
against a replace or removal does nothing.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from strata.events import Event, EventBus, EventTypes
from strata.observability.metrics import MetricsCollector, get_metrics
from strata.utils.clock import Clock, SYSTEM_CLOCK
from .models import TaskItem, is_date_only
from .notifier import LogNotifier, ReminderNotifier

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60.0


@dataclass
class _ScheduledEntry:
    due: datetime
    task: TaskItem
    timer: Optional[asyncio.Task] = None


def should_track(task: TaskItem) -> bool:
    if task.due is None or task.completed:
        return False
    return not is_date_only(task.due)


class ReminderScheduler:
    """Keeps track of upcoming reminder due times and emits alerts when they fire."""

    def __init__(
        self,
        notifier: Optional[ReminderNotifier] = None,
        event_bus: Optional[EventBus] = None,
        clock: Clock = SYSTEM_CLOCK,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.notifier = notifier or LogNotifier()
        self.events = event_bus or EventBus()
        self.metrics = metrics or get_metrics()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._scheduled: Dict[str, _ScheduledEntry] = {}
        self._delivered: Dict[str, datetime] = {}
        self._refresh_task: Optional[asyncio.Task] = None
        self.running = False

    def on_alert(self, handler: Callable[[Event], object]) -> None:
        """Subscribe to reminder alerts. The event data holds the ``task``."""
        self.events.on(EventTypes.REMINDER_DUE, handler)

    async def update_tasks(self, tasks: Iterable[TaskItem]) -> None:
        """Reconcile the scheduler with the latest task list.

        Tasks without a time-qualified due time, and completed tasks, are
        ignored. Tracked tasks missing from ``tasks`` are unscheduled.
        """
        relevant = [t for t in tasks if should_track(t)]
        incoming = {t.id for t in relevant}

        async with self._lock:
            for task_id in set(self._scheduled) - incoming:
                entry = self._scheduled.pop(task_id)
                if entry.timer is not None:
                    entry.timer.cancel()
                self._delivered.pop(task_id, None)
                logger.debug("Unscheduled reminder %s", task_id)

        for task in relevant:
            await self._schedule(task)

    async def _schedule(self, task: TaskItem) -> None:
        due = task.due
        fire_now = False

        async with self._lock:
            existing = self._scheduled.get(task.id)
            if existing is not None and existing.due == due:
                existing.task = task
                armed = existing.timer is not None and not existing.timer.done()
                if armed or self._delivered.get(task.id) == due:
                    return

            if existing is not None and existing.timer is not None:
                existing.timer.cancel()
            if existing is None or existing.due != due:
                self._delivered.pop(task.id, None)

            delay = (due - self._clock.now()).total_seconds()
            if delay <= 0:
                self._scheduled[task.id] = _ScheduledEntry(due, task)
                self._delivered[task.id] = due
                fire_now = True
            else:
                timer = asyncio.create_task(
                    self._wait_and_fire(task.id, due, delay), name=f"reminder:{task.id}"
                )
                self._scheduled[task.id] = _ScheduledEntry(due, task, timer)
                logger.debug("Reminder %s scheduled in %.1fs", task.id, delay)

        if fire_now:
            await self._deliver(task)

    async def _wait_and_fire(self, task_id: str, due: datetime, delay: float) -> None:
        await asyncio.sleep(delay)
        async with self._lock:
            entry = self._scheduled.get(task_id)
            if entry is None or entry.due != due or entry.timer is not asyncio.current_task():
                return
            # Detach so a later replace cannot cancel an alert already being delivered
            entry.timer = None
            if self._delivered.get(task_id) == due:
                return
            # Claimed in the same critical section as the check above, so a
            # replace or removal that gets the lock next sees this as delivered
            self._delivered[task_id] = due
            task = entry.task
        await self._deliver(task)

    async def _deliver(self, task: TaskItem) -> None:
        """Emit and notify for a reminder already marked delivered under the lock."""
        self.metrics.record_reminder_fired()
        logger.info("Reminder due: %s (%s)", task.id, task.due)
        await self.events.emit(Event(type=EventTypes.REMINDER_DUE, data={"task": task}))
        try:
            result = self.notifier.notify_due(task)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Already marked delivered; a broken notifier must not cause a re-fire
            logger.error(f"Reminder notifier failed for {task.id}: {e}", exc_info=True)

    def scheduled_ids(self) -> Set[str]:
        return set(self._scheduled)

    def pending_ids(self) -> Set[str]:
        """Ids whose timer is still waiting."""
        return {
            task_id
            for task_id, entry in self._scheduled.items()
            if entry.timer is not None and not entry.timer.done()
        }

    def delivered_due(self, task_id: str) -> Optional[datetime]:
        return self._delivered.get(task_id)

    async def start(
        self,
        fetch_tasks: Callable[[], Awaitable[List[TaskItem]]],
        interval: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        """Refresh from ``fetch_tasks`` every ``interval`` seconds until stopped."""
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        logger.info("Starting reminder scheduler...")
        self.running = True
        self._refresh_task = asyncio.create_task(self._run_loop(fetch_tasks, interval))

    async def stop(self) -> None:
        """Stop refreshing and cancel every pending timer."""
        logger.info("Stopping reminder scheduler...")
        self.running = False
        if self._refresh_task:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None
        await self.close()

    async def close(self) -> None:
        async with self._lock:
            timers = [e.timer for e in self._scheduled.values() if e.timer is not None]
            self._scheduled.clear()
            self._delivered.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    async def _run_loop(self, fetch_tasks, interval: float) -> None:
        while self.running:
            try:
                tasks = await fetch_tasks()
                await self.update_tasks(tasks)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Reminder refresh failed: {e}", exc_info=True)
            await asyncio.sleep(interval)
