"""Value types flowing through the sync pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_TAGS = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique_strings(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple, set)):
        raise ValueError(f"expected a string or a list of strings, got {type(value).__name__}")
    cleaned: list[str] = []
    for item in value:
        text = str(item).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ExternalPromptRecord(BaseModel):
    """Canonical unit of ingested prompt content."""

    id: str
    title: str
    body: str
    categories: list[str] = Field(default_factory=lambda: ["general"])
    tags: list[str] = Field(default_factory=list)
    author: str = ""
    source_id: str = ""
    attribution: str = ""
    description: str | None = None
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    language: str | None = None
    usage_count: int = 0
    rating: float | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("body")
    @classmethod
    def _body_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("body cannot be empty")
        return value

    @field_validator("categories", mode="before")
    @classmethod
    def _categories_default(cls, value: Any) -> list[str]:
        return _unique_strings(value) or ["general"]

    @field_validator("tags", mode="before")
    @classmethod
    def _cap_tags(cls, value: Any) -> list[str]:
        return _unique_strings(value)[:MAX_TAGS]

    @field_validator("usage_count", mode="before")
    @classmethod
    def _non_negative_usage(cls, value: Any) -> int:
        try:
            count = int(value or 0)
        except (TypeError, ValueError):
            return 0
        return max(count, 0)

    @property
    def key(self) -> tuple[str, str]:
        return self.source_id, self.id


@dataclass(slots=True)
class SyncMetrics:
    """Observability record for one source within one run."""

    source_id: str
    started_at: datetime = field(default_factory=utcnow)
    ended_at: datetime | None = None
    total_requests: int = 0
    successful_requests: int = 0
    records_found: int = 0
    records_imported: int = 0
    errors: list[str] = field(default_factory=list)

    def finish(self) -> None:
        self.ended_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["started_at"] = self.started_at.isoformat()
        payload["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        return payload


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Externally visible outcome of syncing one source."""

    source_id: str
    success: bool
    records_found: int = 0
    records_imported: int = 0
    records_updated: int = 0
    errors: tuple[str, ...] = ()
    duration_ms: int = 0
    skipped: bool = False
    note: str | None = None

    @classmethod
    def failed(cls, source_id: str, message: str, duration_ms: int = 0) -> "SyncResult":
        return cls(source_id=source_id, success=False, errors=(message,), duration_ms=duration_ms)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["errors"] = list(self.errors)
        return payload


__all__ = [
    "Difficulty",
    "ExternalPromptRecord",
    "MAX_TAGS",
    "SyncMetrics",
    "SyncResult",
    "utcnow",
]
