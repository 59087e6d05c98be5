"""JSON-lines corpus store."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog
from pydantic import ValidationError

from ..engine.records import ExternalPromptRecord
from ..errors import StoreError
from .base import CorpusStore, _unseen

logger = structlog.get_logger("prompt_aggregator.store")


class JsonlCorpusStore(CorpusStore):
    """One JSON document per line; appends never rewrite earlier lines."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def load(self) -> list[ExternalPromptRecord]:
        if not self.path.exists():
            return []
        records: list[ExternalPromptRecord] = []
        with self._lock:
            try:
                lines = self.path.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                raise StoreError(f"Failed to read corpus {self.path}: {exc}") from exc
            for line_number, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                try:
                    records.append(ExternalPromptRecord.model_validate_json(line))
                except ValidationError as exc:
                    logger.warning(
                        "corpus_line_skipped", path=str(self.path), line=line_number, error=str(exc)
                    )
        return records

    def save(self, records: Iterable[ExternalPromptRecord]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with self._lock:
            try:
                with tmp_path.open("w", encoding="utf-8") as stream:
                    for record in records:
                        stream.write(self._dump(record))
                tmp_path.replace(self.path)
            except OSError as exc:
                raise StoreError(f"Failed to write corpus {self.path}: {exc}") from exc

    def append(self, records: Iterable[ExternalPromptRecord]) -> int:
        records = list(records)
        if not records:
            return 0
        with self._lock:
            try:
                added = _unseen(records, self._stored_keys())
                if added:
                    with self.path.open("a", encoding="utf-8") as stream:
                        stream.write("".join(self._dump(record) for record in added))
            except OSError as exc:
                raise StoreError(f"Failed to append to corpus {self.path}: {exc}") from exc
        return len(added)

    def _stored_keys(self) -> set[tuple[str, str]]:
        if not self.path.exists():
            return set()
        keys: set[tuple[str, str]] = set()
        for line in self.path.read_text(encoding="utf-8").splitlines():
            try:
                document = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(document, dict):
                keys.add((str(document.get("source_id", "")), str(document.get("id", ""))))
        return keys

    @staticmethod
    def _dump(record: ExternalPromptRecord) -> str:
        return json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n"


__all__ = ["JsonlCorpusStore"]
