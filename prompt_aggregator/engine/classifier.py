"""Heuristic categorisation and tagging of prompt text."""

from __future__ import annotations

import re
from typing import Iterable

from .records import MAX_TAGS, Difficulty

DEFAULT_CATEGORY = "general"

# Keyword families are anchored at word starts, so "startup" hits business but
# "restart" does not hit creative through "art".
CATEGORY_FAMILIES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("business", re.compile(r"\b(?:business|sales|marketing|entrepreneur|startup)", re.IGNORECASE)),
    ("creative", re.compile(r"\b(?:creative|art|music|design|writing|story)", re.IGNORECASE)),
    ("technical", re.compile(r"\b(?:code|programming|development|technical|software)", re.IGNORECASE)),
    ("hebrew", re.compile(r"\b(?:hebrew|israeli|israel|עברית)", re.IGNORECASE)),
    ("productivity", re.compile(r"\b(?:adhd|focus|productivity|organization|task)", re.IGNORECASE)),
    ("music", re.compile(r"\b(?:music|song|beat|audio|sound|production)", re.IGNORECASE)),
)

ROLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bact as ([\w ]+)"),
    re.compile(r"\byou are ([\w ]+)"),
    re.compile(r"\brole[: ]+([\w ]+)"),
    re.compile(r"\bpersona[: ]+([\w ]+)"),
)
MIN_TAG_LENGTH = 2
MAX_TAG_LENGTH = 20

_COMPLEXITY_MARKERS = re.compile(r"[{\[$|]")
_HEBREW = re.compile(r"[א-ת]")
_CYRILLIC = re.compile(r"[а-я]", re.IGNORECASE)


class Classifier:
    """Derive categories, tags, difficulty and language from title + body."""

    def categorize(
        self, title: str, body: str, source_default_categories: Iterable[str] = ()
    ) -> set[str]:
        text = f"{title} {body}"
        matched = {name for name, pattern in CATEGORY_FAMILIES if pattern.search(text)}
        if matched:
            return matched
        defaults = {category for category in source_default_categories if category}
        return defaults or {DEFAULT_CATEGORY}

    def extract_tags(self, title: str, body: str) -> list[str]:
        text = f"{title} {body}".lower()
        tags: list[str] = []
        for pattern in ROLE_PATTERNS:
            for match in pattern.finditer(text):
                tag = " ".join(match.group(1).split())
                if MIN_TAG_LENGTH <= len(tag) <= MAX_TAG_LENGTH and tag not in tags:
                    tags.append(tag)
                if len(tags) >= MAX_TAGS:
                    return tags
        return tags

    def assess_difficulty(self, body: str) -> Difficulty:
        length = len(body)
        complexity = len(_COMPLEXITY_MARKERS.findall(body))
        if length < 100 and complexity < 2:
            return Difficulty.BEGINNER
        if length < 300 and complexity < 5:
            return Difficulty.INTERMEDIATE
        if length < 600 and complexity < 10:
            return Difficulty.ADVANCED
        return Difficulty.EXPERT

    def detect_language(self, body: str) -> str | None:
        """Return a language code when the script is recognisable, else ``None``."""

        if _HEBREW.search(body):
            return "he"
        if _CYRILLIC.search(body):
            return "ru"
        return None


__all__ = ["CATEGORY_FAMILIES", "Classifier", "DEFAULT_CATEGORY"]
