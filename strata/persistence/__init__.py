"""Durable single-user state: the pending clarification plan and long-term memory notes."""

from .plan_store import PendingPlan, PendingPlanStore
from .memory_store import MemoryStore

__all__ = ["PendingPlan", "PendingPlanStore", "MemoryStore"]
