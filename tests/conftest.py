"""Shared fixtures: deterministic clock and isolated metrics."""

from datetime import datetime

import pytest

from strata.observability.metrics import MetricsCollector
from strata.utils.clock import FakeClock


@pytest.fixture
def clock():
    """Fake clock starting Monday 2025-01-06 09:00 local time."""
    return FakeClock(datetime(2025, 1, 6, 9, 0, 0))


@pytest.fixture
def metrics():
    return MetricsCollector()
