"""SQLite corpus store keyed by ``(source_id, id)``."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog
from pydantic import ValidationError

from ..engine.records import ExternalPromptRecord
from ..errors import StoreError
from .base import CorpusStore

logger = structlog.get_logger("prompt_aggregator.store")


class SQLiteCorpusStore(CorpusStore):
    """Persist records as JSON payloads; re-appending a known key is ignored."""

    def __init__(self, path: Path, table: str = "prompt_corpus") -> None:
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                source_id TEXT NOT NULL,
                record_id TEXT NOT NULL,
                payload TEXT NOT NULL,
                imported_at TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE (source_id, record_id)
            )
            """
        )
        self.conn.commit()

    def load(self) -> list[ExternalPromptRecord]:
        with self._lock:
            try:
                rows = self.conn.execute(
                    f"SELECT seq, payload FROM {self.table} ORDER BY seq"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to read corpus {self.path}: {exc}") from exc
        records: list[ExternalPromptRecord] = []
        for row in rows:
            try:
                records.append(ExternalPromptRecord.model_validate_json(row["payload"]))
            except ValidationError as exc:
                logger.warning("corpus_row_skipped", path=str(self.path), seq=row["seq"], error=str(exc))
        return records

    def save(self, records: Iterable[ExternalPromptRecord]) -> None:
        rows = [self._row(record) for record in records]
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(f"DELETE FROM {self.table}")
                    self.conn.executemany(
                        f"INSERT OR IGNORE INTO {self.table}(source_id, record_id, payload) VALUES (?, ?, ?)",
                        rows,
                    )
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to save corpus {self.path}: {exc}") from exc

    def append(self, records: Iterable[ExternalPromptRecord]) -> int:
        rows = [self._row(record) for record in records]
        if not rows:
            return 0
        with self._lock:
            before = self.conn.total_changes
            try:
                # One transaction per append: a failure leaves earlier commits intact.
                with self.conn:
                    self.conn.executemany(
                        f"INSERT OR IGNORE INTO {self.table}(source_id, record_id, payload) VALUES (?, ?, ?)",
                        rows,
                    )
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to append to corpus {self.path}: {exc}") from exc
            return self.conn.total_changes - before

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    @staticmethod
    def _row(record: ExternalPromptRecord) -> tuple[str, str, str]:
        payload = json.dumps(record.model_dump(mode="json"), ensure_ascii=False)
        return record.source_id, record.id, payload


__all__ = ["SQLiteCorpusStore"]
