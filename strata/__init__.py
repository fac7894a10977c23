"""Strata - agent orchestration and resource guards for a personal assistant client."""

__version__ = "0.1.0"
