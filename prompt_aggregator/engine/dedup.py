"""Content fingerprinting and duplicate detection against the corpus."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Iterable

from .records import ExternalPromptRecord


def fingerprint(body: str) -> str:
    """Hash of the body with whitespace runs collapsed, so re-wrapped text collides."""

    normalised = " ".join(body.split())
    return hashlib.sha256(normalised.encode("utf-8")).hexdigest()


@dataclass
class DeduplicationResult:
    title_duplicate: bool
    content_duplicate: bool
    key_duplicate: bool = False

    @property
    def is_duplicate(self) -> bool:
        return self.title_duplicate or self.content_duplicate or self.key_duplicate


@dataclass
class CorpusIndex:
    """Fingerprints, titles and ``(source_id, id)`` keys of known records.

    The index grows as records are accepted. Record ids are positional, so a
    row inserted upstream can reuse the key of a stored record; such a record
    counts as known because the corpus never holds two records under one key.
    """

    fingerprints: set[str] = field(default_factory=set)
    titles: set[str] = field(default_factory=set)
    keys: set[tuple[str, str]] = field(default_factory=set)

    @classmethod
    def build(cls, corpus: Iterable[ExternalPromptRecord]) -> "CorpusIndex":
        index = cls()
        for record in corpus:
            index.add(record)
        return index

    def add(self, record: ExternalPromptRecord) -> None:
        self.fingerprints.add(fingerprint(record.body))
        self.titles.add(record.title)
        self.keys.add(record.key)

    def check(self, record: ExternalPromptRecord) -> DeduplicationResult:
        return DeduplicationResult(
            title_duplicate=record.title in self.titles,
            content_duplicate=fingerprint(record.body) in self.fingerprints,
            key_duplicate=record.key in self.keys,
        )


class Deduplicator:
    """Treat a record as known when its body fingerprint, exact title or key exists.

    The title check ignores source and content: two unrelated prompts that
    share a title collide. That is a known precision loss kept for
    compatibility with existing corpora.
    """

    def is_duplicate(
        self, record: ExternalPromptRecord, existing_corpus: Iterable[ExternalPromptRecord]
    ) -> bool:
        return CorpusIndex.build(existing_corpus).check(record).is_duplicate

    def filter_new(
        self,
        records: Iterable[ExternalPromptRecord],
        existing_corpus: Iterable[ExternalPromptRecord],
    ) -> list[ExternalPromptRecord]:
        """Return records unknown to the corpus and to earlier records of the same batch."""

        index = CorpusIndex.build(existing_corpus)
        fresh: list[ExternalPromptRecord] = []
        for record in records:
            if index.check(record).is_duplicate:
                continue
            index.add(record)
            fresh.append(record)
        return fresh


__all__ = ["CorpusIndex", "DeduplicationResult", "Deduplicator", "fingerprint"]
