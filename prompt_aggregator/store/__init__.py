"""Corpus store implementations."""

from __future__ import annotations

from pathlib import Path

from ..config import GlobalConfig
from .base import CorpusStore, MemoryCorpusStore
from .file_store import JsonlCorpusStore
from .sqlite_store import SQLiteCorpusStore


def build_store(global_config: GlobalConfig, base_dir: Path) -> CorpusStore:
    path = global_config.resolved_corpus_path(base_dir)
    if global_config.store_backend == "sqlite":
        return SQLiteCorpusStore(path.with_suffix(".db"))
    return JsonlCorpusStore(path)


__all__ = [
    "CorpusStore",
    "JsonlCorpusStore",
    "MemoryCorpusStore",
    "SQLiteCorpusStore",
    "build_store",
]
