"""Pydantic models describing sources and global engine settings."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

_SOURCE_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class SourceKind(str, Enum):
    """Kinds of external origin; each selects a fetch + parse strategy."""

    REPOSITORY = "repository"
    API = "api"
    FEED = "feed"
    PAGE = "page"


class RateLimitPolicy(BaseModel):
    """Fixed-window request budget for one source."""

    requests_per_window: int = 60
    window_minutes: float = 60.0

    @model_validator(mode="after")
    def _validate_budget(self) -> "RateLimitPolicy":
        if self.requests_per_window < 1:
            raise ValueError("requests_per_window must be >= 1")
        if self.window_minutes <= 0:
            raise ValueError("window_minutes must be > 0")
        return self

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60.0


class SourceConfig(BaseModel):
    """Identity and sync policy of one external prompt source."""

    id: str
    name: str
    kind: SourceKind
    endpoint: str
    url: str | None = None
    description: str = ""
    rate_limit: RateLimitPolicy = Field(default_factory=RateLimitPolicy)
    attribution_template: str = "Source: {source}"
    supported_languages: list[str] = Field(default_factory=lambda: ["en"])
    categories: list[str] = Field(default_factory=list)
    requires_auth: bool = False
    # Name of the environment variable holding the credential; never the secret itself.
    auth_ref: str | None = None
    active: bool = True
    sync_interval_minutes: int = 1440
    filename: str | None = None

    @field_validator("supported_languages", "categories", mode="before")
    @classmethod
    def _dedupe_ordered(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = [value]
        seen: list[str] = []
        for item in value:
            text = str(item).strip()
            if text and text not in seen:
                seen.append(text)
        return seen

    @model_validator(mode="after")
    def _validate_identity(self) -> "SourceConfig":
        if not _SOURCE_ID_PATTERN.match(self.id):
            raise ValueError(f"Invalid source id: {self.id!r}")
        if not self.endpoint:
            raise ValueError("endpoint cannot be empty")
        if self.requires_auth and not self.auth_ref:
            raise ValueError("requires_auth sources must declare auth_ref")
        if self.sync_interval_minutes < 1:
            raise ValueError("sync_interval_minutes must be >= 1")
        return self

    @property
    def default_language(self) -> str:
        return self.supported_languages[0] if self.supported_languages else "en"

    def attribution(self) -> str:
        """Render the attribution template with this source's name and id."""

        return self.attribution_template.replace("{source}", self.name).replace(
            "{source_id}", self.id
        )


class GlobalConfig(BaseModel):
    """Engine-wide controls shared across sources."""

    pacing_delay_seconds: float = 1.0
    file_fetch_delay_seconds: float = 0.1
    fetch_timeout_seconds: float = 15.0
    user_agent: str = "prompt-aggregator/0.1"
    store_backend: Literal["jsonl", "sqlite"] = "jsonl"
    corpus_path: Path = Field(default=Path("data/corpus/prompts.jsonl"))

    @field_validator("corpus_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_timings(self) -> "GlobalConfig":
        if self.pacing_delay_seconds < 0 or self.file_fetch_delay_seconds < 0:
            raise ValueError("Delays must be non-negative")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        return self

    def resolved_corpus_path(self, base_dir: Path) -> Path:
        if not self.corpus_path.is_absolute():
            return (base_dir / self.corpus_path).resolve()
        return self.corpus_path


__all__ = ["GlobalConfig", "RateLimitPolicy", "SourceConfig", "SourceKind"]
