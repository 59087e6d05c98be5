"""Ordered catalogue of configured prompt sources."""

from __future__ import annotations

from typing import Iterable

from .loader import ConfigRepository
from .models import RateLimitPolicy, SourceConfig, SourceKind

_GITHUB_BUDGET = RateLimitPolicy(requests_per_window=60, window_minutes=60)

DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(
        id="awesome-chatgpt-prompts",
        name="Awesome ChatGPT Prompts",
        kind=SourceKind.REPOSITORY,
        url="https://github.com/f/awesome-chatgpt-prompts",
        endpoint="https://api.github.com/repos/f/awesome-chatgpt-prompts/contents/prompts.csv",
        rate_limit=_GITHUB_BUDGET,
        attribution_template="Source: {source} (MIT License)",
        supported_languages=["en"],
        categories=["general", "business", "creative", "technical"],
        requires_auth=True,
        auth_ref="GITHUB_TOKEN",
    ),
    SourceConfig(
        id="chatgpt-prompts-hub",
        name="ChatGPT Prompts Hub",
        kind=SourceKind.REPOSITORY,
        url="https://github.com/CodeWithHarry/ChatGPT-Prompts",
        endpoint="https://api.github.com/repos/CodeWithHarry/ChatGPT-Prompts/contents",
        rate_limit=_GITHUB_BUDGET,
        attribution_template="Source: {source} (Open Source)",
        supported_languages=["en"],
        categories=["development", "productivity", "learning"],
        requires_auth=True,
        auth_ref="GITHUB_TOKEN",
    ),
    SourceConfig(
        id="prompthero-free",
        name="PromptHero Free Collection",
        kind=SourceKind.API,
        url="https://prompthero.com",
        endpoint="https://api.prompthero.com/v1/prompts/free",
        rate_limit=RateLimitPolicy(requests_per_window=100, window_minutes=60),
        attribution_template="Source: PromptHero (Free Collection)",
        supported_languages=["en"],
        categories=["art", "creative", "business", "technical"],
    ),
    SourceConfig(
        id="hebrew-prompts-collection",
        name="Hebrew Prompts Collection",
        kind=SourceKind.REPOSITORY,
        url="https://github.com/hebrew-ai/prompts",
        endpoint="https://api.github.com/repos/hebrew-ai/prompts/contents",
        rate_limit=_GITHUB_BUDGET,
        attribution_template="מקור: אוסף פרומפטים עברי (רישיון פתוח)",
        supported_languages=["he", "en"],
        categories=["hebrew", "israeli-business", "culture"],
        requires_auth=True,
        auth_ref="GITHUB_TOKEN",
    ),
    SourceConfig(
        id="music-prompts-creative",
        name="Music & Creative AI Prompts",
        kind=SourceKind.REPOSITORY,
        url="https://github.com/music-ai/creative-prompts",
        endpoint="https://api.github.com/repos/music-ai/creative-prompts/contents",
        rate_limit=_GITHUB_BUDGET,
        attribution_template="Source: Music AI Creative Prompts (CC BY 4.0)",
        supported_languages=["en", "he"],
        categories=["music", "creative", "audio", "production"],
        requires_auth=True,
        auth_ref="GITHUB_TOKEN",
    ),
    SourceConfig(
        id="adhd-productivity-prompts",
        name="ADHD Productivity Prompts",
        kind=SourceKind.REPOSITORY,
        url="https://github.com/adhd-tools/productivity-prompts",
        endpoint="https://api.github.com/repos/adhd-tools/productivity-prompts/contents",
        rate_limit=_GITHUB_BUDGET,
        attribution_template="Source: ADHD Productivity Tools (MIT License)",
        supported_languages=["en"],
        categories=["adhd", "productivity", "focus", "organization"],
        requires_auth=True,
        auth_ref="GITHUB_TOKEN",
    ),
)


class SourceRegistry:
    """Sources in registration order; that order drives scheduling and pacing."""

    def __init__(self, sources: Iterable[SourceConfig] | None = None) -> None:
        self._sources: dict[str, SourceConfig] = {}
        for source in sources or ():
            self.register(source)

    @classmethod
    def default(cls) -> "SourceRegistry":
        return cls(DEFAULT_SOURCES)

    @classmethod
    def from_repository(cls, repository: ConfigRepository) -> "SourceRegistry":
        sources = repository.list_sources()
        if not sources:
            return cls.default()
        return cls(sources)

    def register(self, source: SourceConfig) -> None:
        if source.id in self._sources:
            raise ValueError(f"Duplicate source id: {source.id}")
        self._sources[source.id] = source

    def list(self) -> list[SourceConfig]:
        return list(self._sources.values())

    def active(self) -> list[SourceConfig]:
        return [source for source in self._sources.values() if source.active]

    def get(self, source_id: str) -> SourceConfig | None:
        return self._sources.get(source_id)

    def set_active(self, source_id: str, enabled: bool) -> bool:
        source = self._sources.get(source_id)
        if source is None:
            return False
        # Models are treated as immutable during a run; swap in an updated copy.
        self._sources[source_id] = source.model_copy(update={"active": enabled})
        return True

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources


__all__ = ["DEFAULT_SOURCES", "SourceRegistry"]
