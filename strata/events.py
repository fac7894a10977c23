"""In-process pub/sub carrying reminder alerts and perception updates to the UI layer"""

import inspect
import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, DefaultDict, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], Any]


@dataclass
class Event:
    type: str
    data: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)


class EventBus:
    """Producers (scheduler, perception loop) publish; the UI layer subscribes.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and the remaining handlers still run.
    """

    def __init__(self, max_history: int = 200):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._history: Deque[Event] = deque(maxlen=max_history)

    def on(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed %r to %s", handler, event_type)

    def off(self, event_type: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, ()))

    async def emit(self, event: Event) -> None:
        self._history.append(event)
        for handler in list(self._handlers.get(event.type, ())):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Handler for %s failed: %s", event.type, e, exc_info=True)

    def get_history(self, event_type: Optional[str] = None, limit: int = 100) -> List[Event]:
        """Most recent events last, optionally filtered by type."""
        events = [e for e in self._history if event_type is None or e.type == event_type]
        return events[-limit:]

    def clear_history(self) -> None:
        self._history.clear()


class EventTypes:
    REMINDER_DUE = "reminder_due"
    PERCEPTION_UPDATED = "perception_updated"
