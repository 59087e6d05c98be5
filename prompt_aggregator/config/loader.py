"""Aggregator home layout and the YAML files that configure it.

Everything lives under one home directory::

    <home>/data/global_config.yaml
    <home>/data/sources/<source-id>.yaml   (``.yml``/``.json`` are read too)
    <home>/data/corpus/
    <home>/logs/
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import GlobalConfig, SourceConfig

HOME_ENV = "PROMPT_AGGREGATOR_HOME"
SOURCE_FILE_SUFFIXES = (".yaml", ".yml", ".json")


def aggregator_home() -> Path:
    """``$PROMPT_AGGREGATOR_HOME`` when set, otherwise the checkout holding the package."""

    configured = os.environ.get(HOME_ENV)
    if configured:
        return Path(configured).expanduser().resolve()
    return Path(__file__).resolve().parents[2]


@dataclass(slots=True)
class ConfigLocator:
    project_root: Path = field(default_factory=aggregator_home)

    def __post_init__(self) -> None:
        self.project_root = Path(self.project_root).expanduser().resolve()

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def sources_dir(self) -> Path:
        return self.data_dir / "sources"

    @property
    def corpus_dir(self) -> Path:
        return self.data_dir / "corpus"

    @property
    def logs_dir(self) -> Path:
        return self.project_root / "logs"

    def global_config_path(self) -> Path:
        return self.data_dir / "global_config.yaml"

    def ensure_directories(self) -> "ConfigLocator":
        for directory in (self.sources_dir, self.corpus_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)
        return self


def _load_mapping(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a mapping, got {type(data).__name__}")
    return data


def _dump_yaml(path: Path, payload: dict[str, Any]) -> None:
    path.write_text(
        yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), encoding="utf-8"
    )


class ConfigRepository:
    """Global engine settings plus one file per prompt source."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = (locator or ConfigLocator()).ensure_directories()
        self._global: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        """Read ``global_config.yaml``, writing the defaults on first use."""

        if self._global is None:
            path = self.locator.global_config_path()
            if path.exists():
                self._global = GlobalConfig.model_validate(_load_mapping(path))
            else:
                self.save_global_config(GlobalConfig())
        return self._global

    def save_global_config(self, config: GlobalConfig) -> None:
        _dump_yaml(self.locator.global_config_path(), config.model_dump(mode="json"))
        self._global = config

    def source_path(self, source_id: str) -> Path:
        return self.locator.sources_dir / f"{source_id}.yaml"

    def list_source_files(self) -> list[Path]:
        # File name order is the registration order.
        return sorted(
            path
            for path in self.locator.sources_dir.iterdir()
            if path.is_file() and path.suffix in SOURCE_FILE_SUFFIXES
        )

    def list_sources(self) -> list[SourceConfig]:
        return [self.load_source(path) for path in self.list_source_files()]

    def load_source(self, identifier: str | Path) -> SourceConfig:
        path = identifier if isinstance(identifier, Path) else self.source_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Source configuration not found: {identifier}")
        return SourceConfig.model_validate(_load_mapping(path))

    def save_source(self, config: SourceConfig) -> Path:
        path = self.source_path(config.id)
        _dump_yaml(path, config.model_dump(mode="json", exclude_none=True))
        return path

    def seed_sources(self, sources: Iterable[SourceConfig]) -> int:
        """Write ``sources`` when no source file exists yet; return how many were written."""

        if self.list_source_files():
            return 0
        written = 0
        for source in sources:
            self.save_source(source)
            written += 1
        return written


__all__ = ["ConfigLocator", "ConfigRepository", "HOME_ENV", "SOURCE_FILE_SUFFIXES", "aggregator_home"]
