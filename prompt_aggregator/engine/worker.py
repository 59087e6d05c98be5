"""Per-source sync pipeline: budget → fetch → parse → stamp → classify → dedup → persist."""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import time
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, Iterable, Protocol
from urllib.parse import urlparse

import httpx
import structlog

from ..config import SourceConfig, SourceKind
from ..errors import AggregatorError, ParseError
from ..logging_conf import source_logger
from .classifier import Classifier
from .dedup import Deduplicator
from .fetcher import FetchRequest, FetchResponse, Fetcher
from .parser import FormatParser, ParseHint, is_prompt_file, unwrap_items
from .rate_limiter import RateLimiter
from .records import ExternalPromptRecord, SyncMetrics, SyncResult

RATE_LIMIT_NOTE = "Rate limit reached; sync deferred until the window resets"


class SupportsAppend(Protocol):
    """The only persistence capability the worker needs."""

    def append(self, records: Iterable[ExternalPromptRecord]) -> int:
        ...


@dataclass
class _Collection:
    records: list[ExternalPromptRecord] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class SourceSyncWorker:
    """Run one source through the pipeline; every failure comes back as a ``SyncResult``."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        fetcher: Fetcher,
        parser: FormatParser | None = None,
        classifier: Classifier | None = None,
        deduplicator: Deduplicator | None = None,
        file_fetch_delay: float = 0.1,
        logger_factory: Callable[[str], structlog.BoundLogger] = source_logger,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.fetcher = fetcher
        self.parser = parser or FormatParser()
        self.classifier = classifier or Classifier()
        self.deduplicator = deduplicator or Deduplicator()
        self.file_fetch_delay = file_fetch_delay
        self.logger_factory = logger_factory
        self._strategies: dict[
            SourceKind,
            Callable[[httpx.AsyncClient, SourceConfig, SyncMetrics, Any], Awaitable[_Collection]],
        ] = {
            SourceKind.REPOSITORY: self._collect_repository,
            SourceKind.API: self._collect_api,
            SourceKind.FEED: self._collect_feed,
            SourceKind.PAGE: self._collect_page,
        }

    async def run(
        self,
        source: SourceConfig,
        corpus_snapshot: Iterable[ExternalPromptRecord],
        store: SupportsAppend | None = None,
        metrics: SyncMetrics | None = None,
    ) -> tuple[SyncResult, list[ExternalPromptRecord]]:
        """Sync ``source`` and return its result with the records that were imported.

        When ``store`` is given the new records are appended to it; otherwise
        persisting the returned records is left to the caller.
        """

        started = time.perf_counter()
        metrics = metrics or SyncMetrics(source_id=source.id)
        log = self._source_log(source.id)

        if not self.rate_limiter.try_acquire(source.id, source.rate_limit):
            log.info("rate_limit_denied", budget=source.rate_limit.requests_per_window)
            metrics.finish()
            return (
                SyncResult(
                    source_id=source.id,
                    success=True,
                    skipped=True,
                    note=RATE_LIMIT_NOTE,
                    duration_ms=_elapsed_ms(started),
                ),
                [],
            )

        log.info("source_sync_started", kind=source.kind.value, endpoint=source.endpoint)
        try:
            async with self.fetcher.open_client() as client:
                collection = await self._strategies[source.kind](client, source, metrics, log)
            prepared = self._prepare(source, collection.records)
            fresh = self.deduplicator.filter_new(prepared, corpus_snapshot)
            imported = len(fresh)
            if fresh and store is not None:
                # The store keeps the first record under a key; count what it wrote.
                imported = store.append(fresh)
                if imported != len(fresh):
                    log.warning("store_kept_existing", offered=len(fresh), written=imported)
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or exc.__class__.__name__
            metrics.errors.append(message)
            metrics.finish()
            log.error("source_sync_failed", error=message, error_type=exc.__class__.__name__)
            return SyncResult.failed(source.id, message, _elapsed_ms(started)), []

        metrics.records_found = len(prepared)
        metrics.records_imported = imported
        metrics.finish()
        log.info(
            "source_sync_completed",
            records_found=len(prepared),
            records_imported=imported,
        )
        return (
            SyncResult(
                source_id=source.id,
                success=True,
                records_found=len(prepared),
                records_imported=imported,
                duration_ms=_elapsed_ms(started),
                note="; ".join(collection.notes) or None,
            ),
            fresh,
        )

    def _source_log(self, source_id: str) -> structlog.BoundLogger:
        try:
            return self.logger_factory(source_id)
        except OSError as exc:
            log = structlog.get_logger("prompt_aggregator.worker").bind(source=source_id)
            log.warning("source_log_unavailable", error=str(exc))
            return log

    # ------------------------------------------------------------------
    # Fetch + parse strategies, one per source kind
    # ------------------------------------------------------------------
    async def _get(
        self,
        client: httpx.AsyncClient,
        source: SourceConfig,
        metrics: SyncMetrics,
        request: FetchRequest | None = None,
    ) -> FetchResponse:
        metrics.total_requests += 1
        response = await self.fetcher.fetch(client, source, request)
        metrics.successful_requests += 1
        return response

    async def _collect_repository(self, client, source, metrics, log) -> _Collection:
        response = await self._get(client, source, metrics)
        if not response.is_json:
            hint = ParseHint(source.id, source.filename or _filename_from_url(response.url))
            return _Collection(self.parser.parse(response.text, hint))

        payload = _load_json(response.text)
        if isinstance(payload, dict) and payload.get("encoding") == "base64":
            return _Collection(self._parse_inline_file(source, payload))
        if isinstance(payload, dict) and payload.get("type") == "file":
            payload = [payload]
        if not _is_listing(payload):
            # Structured prompt data served straight from the endpoint.
            return _Collection(self.parser.parse_items(unwrap_items(payload), ParseHint(source.id)))

        collection = _Collection()
        entries = [
            entry
            for entry in payload
            if entry.get("type") == "file"
            and entry.get("download_url")
            and is_prompt_file(str(entry.get("name", "")))
        ]
        for position, entry in enumerate(entries):
            if not self.rate_limiter.try_acquire(source.id, source.rate_limit):
                note = f"Rate limit reached after {position} of {len(entries)} files"
                collection.notes.append(note)
                log.info("rate_limit_denied", files_fetched=position, files_total=len(entries))
                break
            if position and self.file_fetch_delay:
                await asyncio.sleep(self.file_fetch_delay)
            name = str(entry["name"])
            try:
                file_response = await self._get(
                    client,
                    source,
                    metrics,
                    FetchRequest(url=str(entry["download_url"]), authenticate=False),
                )
                collection.records.extend(
                    self.parser.parse(file_response.text, ParseHint(source.id, name))
                )
            except AggregatorError as exc:
                # A bad file does not sink the rest of the listing.
                metrics.errors.append(f"{name}: {exc}")
                log.warning("file_skipped", file=name, error=str(exc))
        return collection

    async def _collect_api(self, client, source, metrics, log) -> _Collection:
        response = await self._get(client, source, metrics)
        hint = ParseHint(source.id, source.filename)
        if response.is_json:
            return _Collection(self.parser.parse_json(response.text, hint))
        return _Collection(self.parser.parse(response.text, hint))

    async def _collect_feed(self, client, source, metrics, log) -> _Collection:
        response = await self._get(client, source, metrics)
        hint = ParseHint(source.id, source.filename)
        if response.is_json:
            return _Collection(self.parser.parse_json(response.text, hint))
        return _Collection(self.parser.parse_feed(response.text, hint))

    async def _collect_page(self, client, source, metrics, log) -> _Collection:
        response = await self._get(client, source, metrics)
        return _Collection(self.parser.parse_page(response.text, ParseHint(source.id, source.filename)))

    def _parse_inline_file(self, source: SourceConfig, payload: dict[str, Any]) -> list[ExternalPromptRecord]:
        try:
            text = base64.b64decode(str(payload.get("content", ""))).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ParseError(f"Undecodable file content: {exc}") from exc
        name = str(payload.get("name") or source.filename or "")
        return self.parser.parse(text, ParseHint(source.id, name or None))

    # ------------------------------------------------------------------
    def _prepare(
        self, source: SourceConfig, records: Iterable[ExternalPromptRecord]
    ) -> list[ExternalPromptRecord]:
        """Attribute, default and classify records; drop repeated ids within the batch."""

        prepared: list[ExternalPromptRecord] = []
        seen_ids: set[str] = set()
        attribution = source.attribution()
        for record in records:
            if record.id in seen_ids:
                continue
            seen_ids.add(record.id)
            explicit = record.model_fields_set
            updates: dict[str, Any] = {"source_id": source.id, "attribution": attribution}
            if not record.language:
                updates["language"] = (
                    self.classifier.detect_language(record.body) or source.default_language
                )
            if "author" not in explicit:
                updates["author"] = source.name
            if "categories" not in explicit:
                updates["categories"] = sorted(
                    self.classifier.categorize(record.title, record.body, source.categories)
                )
            if "tags" not in explicit:
                updates["tags"] = self.classifier.extract_tags(record.title, record.body)
            if "difficulty" not in explicit:
                updates["difficulty"] = self.classifier.assess_difficulty(record.body)
            prepared.append(record.model_copy(update=updates))
        return prepared


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON payload: {exc}") from exc


def _is_listing(payload: Any) -> bool:
    return (
        isinstance(payload, list)
        and bool(payload)
        and all(isinstance(entry, dict) and "type" in entry and "name" in entry for entry in payload)
    )


def _filename_from_url(url: str) -> str | None:
    name = PurePosixPath(urlparse(url).path).name
    return name if is_prompt_file(name) else None


__all__ = ["RATE_LIMIT_NOTE", "SourceSyncWorker", "SupportsAppend"]
