"""Sync orchestrator wiring registry, worker, pacing and metrics together."""

from __future__ import annotations

import asyncio
from datetime import datetime
from threading import Lock
from typing import Any

import structlog

from .config import GlobalConfig, SourceConfig, SourceRegistry
from .engine import (
    ExternalPromptRecord,
    Fetcher,
    RateLimiter,
    SourceSyncWorker,
    SyncMetrics,
    SyncResult,
)
from .logging_conf import configure_logging
from .store import CorpusStore

IN_PROGRESS_NOTE = "Sync already in progress for this source"


class SyncOrchestrator:
    """Run every active source in registry order and isolate their failures.

    Sources are processed one after another inside a run; a fixed pacing
    delay separates consecutive sources. Metrics are kept per source id and
    overwritten on every run.
    """

    def __init__(
        self,
        worker: SourceSyncWorker,
        pacing_delay: float = 1.0,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.worker = worker
        self.pacing_delay = pacing_delay
        self.logger = logger or configure_logging().bind(component="orchestrator")
        self._lock = Lock()
        self._metrics: dict[str, SyncMetrics] = {}
        self._in_progress: set[str] = set()
        self._last_sync: dict[str, datetime] = {}

    @classmethod
    def from_config(
        cls,
        global_config: GlobalConfig,
        rate_limiter: RateLimiter | None = None,
        fetcher: Fetcher | None = None,
    ) -> "SyncOrchestrator":
        worker = SourceSyncWorker(
            rate_limiter or RateLimiter(),
            fetcher or Fetcher(global_config),
            file_fetch_delay=global_config.file_fetch_delay_seconds,
        )
        return cls(worker, pacing_delay=global_config.pacing_delay_seconds)

    # ------------------------------------------------------------------
    async def sync_all(
        self,
        registry: SourceRegistry,
        store: CorpusStore,
        cancel_event: asyncio.Event | None = None,
    ) -> list[SyncResult]:
        """Sync all active sources and return one result per attempted source.

        A set ``cancel_event`` stops the loop before the next source starts
        and the results gathered so far are returned.
        """

        snapshot = store.load()
        sources = [source for source in registry.list() if source.active]
        self.logger.info("sync_started", sources=len(sources), corpus_size=len(snapshot))

        results: list[SyncResult] = []
        for position, source in enumerate(sources):
            if _cancelled(cancel_event):
                self.logger.info("sync_cancelled", completed=len(results))
                break
            result, fresh = await self._run_source(source, snapshot, store)
            results.append(result)
            snapshot.extend(fresh)
            if position < len(sources) - 1 and await self._pace(cancel_event):
                self.logger.info("sync_cancelled", completed=len(results))
                break

        self.logger.info(
            "sync_completed",
            attempted=len(results),
            failed=sum(1 for result in results if not result.success),
            imported=sum(result.records_imported for result in results),
        )
        return results

    async def sync_source(
        self, source_id: str, registry: SourceRegistry, store: CorpusStore
    ) -> SyncResult:
        """Sync a single source by id; used by scheduled jobs and the CLI."""

        source = registry.get(source_id)
        if source is None:
            return SyncResult.failed(source_id, f"Unknown source: {source_id}")
        result, _ = await self._run_source(source, store.load(), store)
        return result

    def get_metrics(self) -> list[SyncMetrics]:
        with self._lock:
            return list(self._metrics.values())

    def get_sync_status(self, source_id: str) -> dict[str, Any]:
        with self._lock:
            return {
                "in_progress": source_id in self._in_progress,
                "last_sync": self._last_sync.get(source_id),
            }

    # ------------------------------------------------------------------
    async def _run_source(
        self,
        source: SourceConfig,
        snapshot: list[ExternalPromptRecord],
        store: CorpusStore,
    ) -> tuple[SyncResult, list[ExternalPromptRecord]]:
        with self._lock:
            if source.id in self._in_progress:
                self.logger.warning("source_already_syncing", source=source.id)
                skipped = SyncResult(
                    source_id=source.id, success=True, skipped=True, note=IN_PROGRESS_NOTE
                )
                return skipped, []
            self._in_progress.add(source.id)

        metrics = SyncMetrics(source_id=source.id)
        try:
            result, fresh = await self.worker.run(source, snapshot, store=store, metrics=metrics)
        finally:
            with self._lock:
                self._in_progress.discard(source.id)
                self._metrics[source.id] = metrics
                if metrics.ended_at is not None:
                    self._last_sync[source.id] = metrics.ended_at
        return result, fresh

    async def _pace(self, cancel_event: asyncio.Event | None) -> bool:
        """Wait out the pacing delay; return ``True`` when cancelled meanwhile."""

        if cancel_event is None:
            if self.pacing_delay > 0:
                await asyncio.sleep(self.pacing_delay)
            return False
        if self.pacing_delay <= 0:
            return cancel_event.is_set()
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self.pacing_delay)
        except asyncio.TimeoutError:
            return False
        return True


def _cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


__all__ = ["IN_PROGRESS_NOTE", "SyncOrchestrator"]
