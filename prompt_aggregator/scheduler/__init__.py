"""Scheduler adapters."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
