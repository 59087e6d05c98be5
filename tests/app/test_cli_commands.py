from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest
import yaml
from rich.console import Console
from typer.testing import CliRunner

from prompt_aggregator import app as app_module
from prompt_aggregator.app import AppState, app
from prompt_aggregator.config import ConfigLocator, ConfigRepository, SourceRegistry
from prompt_aggregator.orchestrator import SyncOrchestrator
from prompt_aggregator.store import MemoryCorpusStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _wide_console(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMPT_AGGREGATOR_HOME", str(tmp_path))
    monkeypatch.setattr(app_module, "console", Console(width=200))


def _handler(request: httpx.Request) -> httpx.Response:
    name = request.url.host.split(".")[0]
    if name == "broken":
        return httpx.Response(500)
    return httpx.Response(
        200, json=[{"title": f"{name} prompt", "prompt": f"Write something about {name}."}]
    )


@pytest.fixture
def stub_state(
    tmp_path, monkeypatch, make_source, make_worker, global_config
) -> Callable[[tuple[str, ...]], AppState]:
    def _build(names: tuple[str, ...]) -> AppState:
        registry = SourceRegistry(
            make_source(id=name, name=name.title(), endpoint=f"https://{name}.example.com/")
            for name in names
        )
        state = AppState(
            repository=ConfigRepository(ConfigLocator(project_root=tmp_path)),
            global_config=global_config,
            registry=registry,
            store=MemoryCorpusStore(),
            orchestrator=SyncOrchestrator(make_worker(_handler), pacing_delay=0),
        )
        monkeypatch.setattr(app_module, "build_state", lambda verbose: state)
        return state

    return _build


def test_source_list_seeds_default_sources(tmp_path: Path) -> None:
    result = runner.invoke(app, ["source", "list"])

    assert result.exit_code == 0, result.output
    assert "awesome-chatgpt-prompts" in result.output
    assert "prompthero-free" in result.output
    assert (tmp_path / "data" / "sources" / "prompthero-free.yaml").exists()


def test_disable_and_enable_persist(tmp_path: Path) -> None:
    path = tmp_path / "data" / "sources" / "prompthero-free.yaml"

    result = runner.invoke(app, ["source", "disable", "prompthero-free"])
    assert result.exit_code == 0, result.output
    assert yaml.safe_load(path.read_text(encoding="utf-8"))["active"] is False

    result = runner.invoke(app, ["source", "enable", "prompthero-free"])
    assert result.exit_code == 0, result.output
    assert yaml.safe_load(path.read_text(encoding="utf-8"))["active"] is True


def test_toggle_unknown_source_fails() -> None:
    result = runner.invoke(app, ["source", "disable", "nope"])
    assert result.exit_code == 1
    assert "Unknown source" in result.output


def test_sync_run_reports_results(stub_state) -> None:
    state = stub_state(("alpha", "gamma"))

    result = runner.invoke(app, ["sync", "run"])

    assert result.exit_code == 0, result.output
    assert "alpha" in result.output and "gamma" in result.output
    assert len(state.store.load()) == 2


def test_sync_run_exit_code_when_a_source_fails(stub_state) -> None:
    stub_state(("alpha", "broken"))
    result = runner.invoke(app, ["sync", "run"])
    assert result.exit_code == 1
    assert "failed" in result.output
    assert "HTTP 500" in result.output


def test_sync_run_single_source(stub_state) -> None:
    state = stub_state(("alpha", "gamma"))

    result = runner.invoke(app, ["sync", "run", "--source", "gamma"])
    assert result.exit_code == 0, result.output
    assert {record.source_id for record in state.store.load()} == {"gamma"}

    result = runner.invoke(app, ["sync", "run", "--source", "missing"])
    assert result.exit_code == 1


def test_corpus_stats(stub_state) -> None:
    stub_state(("alpha", "gamma"))
    runner.invoke(app, ["sync", "run"])

    result = runner.invoke(app, ["corpus", "stats"])
    assert result.exit_code == 0, result.output
    assert "2 records in the corpus." in result.output
    assert "By source" in result.output


def test_log_list_and_show(tmp_path: Path) -> None:
    sources_dir = tmp_path / "logs" / "sources"
    sources_dir.mkdir(parents=True, exist_ok=True)
    (sources_dir / "alpha.log").write_text(
        '{"event": "one"}\n{"event": "two"}\n{"event": "three"}\n', encoding="utf-8"
    )

    result = runner.invoke(app, ["log", "list"])
    assert result.exit_code == 0, result.output
    assert "alpha.log" in result.output

    result = runner.invoke(app, ["log", "show", "--source", "alpha", "--tail", "2"])
    assert result.exit_code == 0, result.output
    assert "two" in result.output and "three" in result.output
    assert '"one"' not in result.output
