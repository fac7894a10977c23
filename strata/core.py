"""Wires the orchestration components together from Settings"""

import logging
from pathlib import Path
from typing import Optional

from strata.config import Settings
from strata.events import EventBus
from strata.llm.cache import ResponseCache
from strata.llm.openai import OpenAIExecutor
from strata.llm.pipeline import AgentCallPipeline
from strata.llm.usage_guard import UsageGuard
from strata.observability.logging_config import setup_logging
from strata.observability.metrics import get_metrics
from strata.observability.tracing import init_tracing, shutdown_tracing
from strata.persistence.memory_store import MemoryStore
from strata.persistence.plan_store import PendingPlanStore
from strata.reminder.due_time_store import TaskDueTimeStore
from strata.reminder.notifier import ReminderNotifier
from strata.reminder.scheduler import ReminderScheduler
from strata.utils.clock import Clock, SYSTEM_CLOCK

logger = logging.getLogger(__name__)


class StrataCore:
    """One instance per process; owns the stateful services."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        executor=None,
        notifier: Optional[ReminderNotifier] = None,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self.settings = settings or Settings()
        self.clock = clock
        self.events = EventBus()
        self.metrics = get_metrics()
        self.guard = UsageGuard.from_settings(self.settings, clock=clock)
        self.cache = ResponseCache(
            max_entries=self.settings.cache_max_entries,
            ttl_seconds=self.settings.cache_ttl_seconds,
            clock=clock,
        )
        self.pipeline = AgentCallPipeline(
            executor or OpenAIExecutor.from_settings(self.settings),
            guard=self.guard,
            cache=self.cache,
            metrics=self.metrics,
        )
        db_path = str(self.settings.database_path)
        self.plans = PendingPlanStore(db_path, clock=clock)
        self.memory = MemoryStore(db_path, clock=clock)
        self.due_times = TaskDueTimeStore(str(self.settings.due_time_store_path))
        self.reminders = ReminderScheduler(
            notifier=notifier, event_bus=self.events, clock=clock, metrics=self.metrics
        )

    @classmethod
    def from_config(cls, config_path: Optional[str] = None, **kwargs) -> "StrataCore":
        """Load settings, configure logging and tracing, build the core."""
        settings = Settings.load(config_path)
        log_file = settings.log_file
        if log_file:
            Path(log_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
        setup_logging(
            level=settings.log_level,
            json_format=settings.log_json,
            pii_redact=settings.log_pii_redact,
            log_file=log_file,
        )
        if settings.tracing_enabled:
            init_tracing(service_name="strata")
        logger.info("Strata core configured (daily quota: %s)", settings.daily_quota)
        return cls(settings, **kwargs)

    async def shutdown(self) -> None:
        await self.reminders.stop()
        if self.settings.tracing_enabled:
            shutdown_tracing()
