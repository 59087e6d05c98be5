from __future__ import annotations

from pathlib import Path

import pytest

from prompt_aggregator.config import GlobalConfig, RateLimitPolicy, SourceConfig, SourceKind


def test_rate_limit_policy_validation() -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(requests_per_window=0)
    with pytest.raises(ValueError):
        RateLimitPolicy(window_minutes=0)
    assert RateLimitPolicy(requests_per_window=5, window_minutes=1.5).window_seconds == 90


def test_source_config_requires_auth_reference(make_source) -> None:
    with pytest.raises(ValueError):
        make_source(requires_auth=True)
    source = make_source(requires_auth=True, auth_ref="GITHUB_TOKEN")
    assert source.auth_ref == "GITHUB_TOKEN"


@pytest.mark.parametrize("bad_id", ["", "Has Spaces", "-leading", "UPPER"])
def test_source_config_rejects_bad_ids(make_source, bad_id: str) -> None:
    with pytest.raises(ValueError):
        make_source(id=bad_id)


def test_source_config_normalises_ordered_sets(make_source) -> None:
    source = make_source(supported_languages=["he", "en", "he", " "], categories="music")
    assert source.supported_languages == ["he", "en"]
    assert source.default_language == "he"
    assert source.categories == ["music"]
    assert make_source(supported_languages=[]).default_language == "en"


def test_attribution_template_placeholders() -> None:
    source = SourceConfig(
        id="awesome",
        name="Awesome Prompts",
        kind=SourceKind.REPOSITORY,
        endpoint="https://api.github.com/repos/f/awesome/contents",
        attribution_template="Source: {source} [{source_id}]",
    )
    assert source.attribution() == "Source: Awesome Prompts [awesome]"
    assert source.model_copy(update={"attribution_template": "Fixed"}).attribution() == "Fixed"


def test_global_config_defaults_and_paths(tmp_path: Path) -> None:
    config = GlobalConfig()
    assert config.pacing_delay_seconds == 1.0
    assert config.file_fetch_delay_seconds == 0.1
    assert config.store_backend == "jsonl"
    expected = tmp_path.resolve() / "data" / "corpus" / "prompts.jsonl"
    assert config.resolved_corpus_path(tmp_path) == expected

    absolute = GlobalConfig(corpus_path=str(tmp_path / "elsewhere.jsonl"))
    assert absolute.resolved_corpus_path(Path("/ignored")) == tmp_path / "elsewhere.jsonl"


def test_global_config_rejects_negative_delays() -> None:
    with pytest.raises(ValueError):
        GlobalConfig(pacing_delay_seconds=-1)
    with pytest.raises(ValueError):
        GlobalConfig(fetch_timeout_seconds=0)
    with pytest.raises(ValueError):
        GlobalConfig(store_backend="mongo")
