from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from prompt_aggregator.config import ConfigLocator, ConfigRepository, GlobalConfig, SourceKind


def test_repository_home_comes_from_env_and_directories_are_created(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PROMPT_AGGREGATOR_HOME", str(tmp_path))
    locator = ConfigRepository().locator
    assert locator.project_root == tmp_path.resolve()
    assert locator.sources_dir == tmp_path.resolve() / "data" / "sources"
    assert locator.global_config_path() == tmp_path.resolve() / "data" / "global_config.yaml"
    for path in (locator.data_dir, locator.sources_dir, locator.corpus_dir, locator.logs_dir):
        assert path.is_dir()


def test_explicit_root_wins_over_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMPT_AGGREGATOR_HOME", str(tmp_path / "elsewhere"))
    locator = ConfigLocator(project_root=tmp_path)
    assert locator.logs_dir == tmp_path.resolve() / "logs"
    assert not locator.logs_dir.exists()


def test_global_config_is_created_then_round_trips(temp_config_repository: ConfigRepository) -> None:
    repo = temp_config_repository
    created = repo.load_global_config()
    assert created == GlobalConfig()
    assert repo.locator.global_config_path().exists()

    updated = GlobalConfig(pacing_delay_seconds=2.5, store_backend="sqlite")
    repo.save_global_config(updated)
    assert ConfigRepository(repo.locator).load_global_config() == updated


def test_source_round_trip_and_listing_order(temp_config_repository, make_source) -> None:
    repo = temp_config_repository
    repo.save_source(make_source(id="zeta", requires_auth=True, auth_ref="ZETA_TOKEN"))
    repo.save_source(make_source(id="alpha", kind=SourceKind.FEED))

    assert [source.id for source in repo.list_sources()] == ["alpha", "zeta"]
    zeta = repo.load_source("zeta")
    assert zeta.requires_auth and zeta.auth_ref == "ZETA_TOKEN"

    payload = yaml.safe_load(repo.source_path("alpha").read_text(encoding="utf-8"))
    assert payload["kind"] == "feed"
    assert "filename" not in payload


def test_seed_sources_only_fills_an_empty_directory(temp_config_repository, make_source) -> None:
    repo = temp_config_repository
    defaults = [make_source(id="one"), make_source(id="two")]

    assert repo.seed_sources(defaults) == 2
    assert [source.id for source in repo.list_sources()] == ["one", "two"]

    repo.save_source(make_source(id="one", active=False))
    assert repo.seed_sources(defaults) == 0
    assert repo.load_source("one").active is False


def test_json_source_files_are_accepted(temp_config_repository) -> None:
    repo = temp_config_repository
    path = repo.locator.sources_dir / "jsonsrc.json"
    path.write_text(
        '{"id": "jsonsrc", "name": "JSON", "kind": "api", "endpoint": "https://x.example.com"}',
        encoding="utf-8",
    )
    assert repo.load_source(path).kind is SourceKind.API


def test_missing_source_raises(temp_config_repository) -> None:
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_source("nope")
