"""Simple in-memory metrics for LLM latency, cache effectiveness, guard blocks and vision calls."""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class MetricPoint:
    """Single metric value with timestamp."""
    value: float
    timestamp: float = field(default_factory=time.time)


class MetricsCollector:
    """Collector for pipeline, perception and reminder metrics."""

    def __init__(self):
        self._lock = threading.Lock()
        self._llm_latencies: List[float] = []
        self._llm_errors: int = 0
        self._llm_calls: int = 0
        self._cache_hits: int = 0
        self._blocked_calls: int = 0
        self._vision_calls: int = 0
        self._vision_skipped: int = 0
        self._reminders_fired: int = 0
        self._max_samples = 1000

    def record_llm_call(self, latency_sec: float, error: bool = False) -> None:
        with self._lock:
            self._llm_calls += 1
            if error:
                self._llm_errors += 1
            else:
                self._llm_latencies.append(latency_sec)
                if len(self._llm_latencies) > self._max_samples:
                    self._llm_latencies.pop(0)

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_blocked(self) -> None:
        with self._lock:
            self._blocked_calls += 1

    def record_vision(self, called: bool) -> None:
        with self._lock:
            if called:
                self._vision_calls += 1
            else:
                self._vision_skipped += 1

    def record_reminder_fired(self) -> None:
        with self._lock:
            self._reminders_fired += 1

    def get_stats(self) -> Dict:
        """Return current metrics snapshot."""
        with self._lock:
            latencies = self._llm_latencies[-100:] if self._llm_latencies else []
            return {
                "llm": {
                    "calls": self._llm_calls,
                    "errors": self._llm_errors,
                    "error_rate": self._llm_errors / self._llm_calls if self._llm_calls else 0,
                    "latency_mean_sec": sum(latencies) / len(latencies) if latencies else 0,
                    "latency_p99_sec": sorted(latencies)[int(len(latencies) * 0.99)] if len(latencies) > 10 else 0,
                    "cache_hits": self._cache_hits,
                    "blocked": self._blocked_calls,
                },
                "perception": {
                    "vision_calls": self._vision_calls,
                    "vision_skipped": self._vision_skipped,
                },
                "reminders": {
                    "fired": self._reminders_fired,
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._llm_latencies.clear()
            self._llm_errors = 0
            self._llm_calls = 0
            self._cache_hits = 0
            self._blocked_calls = 0
            self._vision_calls = 0
            self._vision_skipped = 0
            self._reminders_fired = 0


_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
