from __future__ import annotations

import pytest

from prompt_aggregator.config import DEFAULT_SOURCES, SourceKind, SourceRegistry


def test_default_registry_order_and_lookup() -> None:
    registry = SourceRegistry.default()
    ids = [source.id for source in registry.list()]

    assert ids[0] == "awesome-chatgpt-prompts"
    assert len(ids) == len(DEFAULT_SOURCES) == 6
    assert registry.get("prompthero-free").kind is SourceKind.API
    assert registry.get("missing") is None
    assert "hebrew-prompts-collection" in registry


def test_repository_defaults_read_token_from_environment() -> None:
    for source in SourceRegistry.default().list():
        if source.kind is SourceKind.REPOSITORY:
            assert source.requires_auth and source.auth_ref == "GITHUB_TOKEN"


def test_register_rejects_duplicates(make_source) -> None:
    registry = SourceRegistry([make_source()])
    with pytest.raises(ValueError):
        registry.register(make_source())


def test_set_active_swaps_a_copy(make_source) -> None:
    original = make_source()
    registry = SourceRegistry([original, make_source(id="other")])

    assert registry.set_active("example", False)
    assert original.active is True
    assert registry.get("example").active is False
    assert [source.id for source in registry.active()] == ["other"]
    assert [source.id for source in registry.list()] == ["example", "other"]
    assert not registry.set_active("missing", True)


def test_from_repository_falls_back_to_defaults(temp_config_repository, make_source) -> None:
    assert len(SourceRegistry.from_repository(temp_config_repository)) == 6
    temp_config_repository.save_source(make_source())
    registry = SourceRegistry.from_repository(temp_config_repository)
    assert [source.id for source in registry.list()] == ["example"]
