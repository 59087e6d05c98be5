"""APScheduler wrapper running one interval job per active source."""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import SourceConfig
from ..logging_conf import configure_logging


def job_id(source_id: str) -> str:
    return f"source::{source_id}"


class APSchedulerAdapter:
    """Manage APScheduler jobs for configured sources."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_source(self, source: SourceConfig, callback: Callable[[str], object]) -> None:
        """Register ``callback(source_id)`` every ``sync_interval_minutes``.

        Coroutine functions are driven on a fresh event loop per run, since
        APScheduler executes jobs on worker threads.
        """

        func = callback
        if asyncio.iscoroutinefunction(callback):

            def func(source_id: str) -> object:
                return asyncio.run(callback(source_id))

        trigger = IntervalTrigger(minutes=source.sync_interval_minutes)
        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id(source.id),
            args=[source.id],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info(
            "job_scheduled", source=source.id, interval_minutes=source.sync_interval_minutes
        )

    def schedule_sources(
        self, sources: Iterable[SourceConfig], callback: Callable[[str], object]
    ) -> int:
        scheduled = 0
        for source in sources:
            if not source.active:
                self.remove_source(source.id)
                continue
            self.schedule_source(source, callback)
            scheduled += 1
        return scheduled

    def remove_source(self, source_id: str) -> None:
        if self.scheduler.get_job(job_id(source_id)) is None:
            return
        self.scheduler.remove_job(job_id(source_id))
        self.logger.info("job_removed", source=source_id)

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "job_id"]
