"""Persistence store contract consumed by the sync engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ..engine.records import ExternalPromptRecord


class CorpusStore(ABC):
    """Uniform corpus contract; the engine only ever appends."""

    @abstractmethod
    def load(self) -> list[ExternalPromptRecord]:
        """Return every persisted record."""

    @abstractmethod
    def save(self, records: Iterable[ExternalPromptRecord]) -> None:
        """Replace the stored corpus with ``records``."""

    def append(self, records: Iterable[ExternalPromptRecord]) -> int:
        """Add records whose ``(source_id, id)`` is not stored yet; return how many were written."""

        existing = self.load()
        added = _unseen(records, {record.key for record in existing})
        if added:
            self.save([*existing, *added])
        return len(added)

    def close(self) -> None:
        """Release underlying resources."""


def _unseen(
    records: Iterable[ExternalPromptRecord], known: set[tuple[str, str]]
) -> list[ExternalPromptRecord]:
    added: list[ExternalPromptRecord] = []
    for record in records:
        if record.key in known:
            continue
        known.add(record.key)
        added.append(record)
    return added


class MemoryCorpusStore(CorpusStore):
    """Process-local store, handy for embedding and tests."""

    def __init__(self, records: Iterable[ExternalPromptRecord] | None = None) -> None:
        self._records: list[ExternalPromptRecord] = list(records or ())

    def load(self) -> list[ExternalPromptRecord]:
        return list(self._records)

    def save(self, records: Iterable[ExternalPromptRecord]) -> None:
        self._records = list(records)

    def append(self, records: Iterable[ExternalPromptRecord]) -> int:
        added = _unseen(records, {record.key for record in self._records})
        self._records.extend(added)
        return len(added)


__all__ = ["CorpusStore", "MemoryCorpusStore"]
