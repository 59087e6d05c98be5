"""Shared fixtures: isolated home directory, source builder, fake clock and HTTP mocks."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from prompt_aggregator.config import (
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    RateLimitPolicy,
    SourceConfig,
    SourceKind,
)
from prompt_aggregator.engine import ExternalPromptRecord, Fetcher, RateLimiter, SourceSyncWorker
from prompt_aggregator.store import MemoryCorpusStore

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(scope="session", autouse=True)
def _aggregator_home(tmp_path_factory: pytest.TempPathFactory) -> Iterable[Path]:
    # Logging is configured once per process, so the home must be fixed up front.
    home = tmp_path_factory.mktemp("aggregator-home")
    previous = os.environ.get("PROMPT_AGGREGATOR_HOME")
    os.environ["PROMPT_AGGREGATOR_HOME"] = str(home)
    yield home
    if previous is None:
        os.environ.pop("PROMPT_AGGREGATOR_HOME", None)
    else:
        os.environ["PROMPT_AGGREGATOR_HOME"] = previous


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def global_config() -> GlobalConfig:
    return GlobalConfig(
        pacing_delay_seconds=0.0,
        file_fetch_delay_seconds=0.0,
        fetch_timeout_seconds=2.0,
    )


@pytest.fixture
def make_source() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "id": "example",
            "name": "Example Prompts",
            "kind": SourceKind.API,
            "endpoint": "https://prompts.example.com/api/prompts",
            "rate_limit": RateLimitPolicy(requests_per_window=10, window_minutes=60),
            "attribution_template": "Source: {source}",
            "supported_languages": ["en"],
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def make_record() -> Callable[..., ExternalPromptRecord]:
    def _builder(**overrides: Any) -> ExternalPromptRecord:
        base: dict[str, Any] = {
            "id": "example-json-0",
            "title": "Travel Guide",
            "body": "Act as a travel guide and suggest places to visit nearby.",
            "source_id": "example",
        }
        base.update(overrides)
        return ExternalPromptRecord(**base)

    return _builder


@pytest.fixture
def memory_store() -> MemoryCorpusStore:
    return MemoryCorpusStore()


@pytest.fixture
def make_worker(global_config: GlobalConfig) -> Callable[..., SourceSyncWorker]:
    """Build a worker whose HTTP traffic is served by ``handler``."""

    def _builder(
        handler: Handler,
        rate_limiter: RateLimiter | None = None,
        environ: dict[str, str] | None = None,
        config: GlobalConfig | None = None,
    ) -> SourceSyncWorker:
        fetcher = Fetcher(
            config or global_config,
            transport=httpx.MockTransport(handler),
            environ=environ or {},
        )
        return SourceSyncWorker(rate_limiter or RateLimiter(), fetcher, file_fetch_delay=0.0)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("PROMPT_AGGREGATOR_HOME", str(tmp_path))
    return ConfigRepository(ConfigLocator(project_root=tmp_path))
