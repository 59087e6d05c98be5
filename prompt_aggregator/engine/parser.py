"""Format-specific parsing of raw prompt payloads into canonical records."""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Iterable

import structlog
import yaml
from pydantic import ValidationError
from selectolax.parser import HTMLParser

from ..errors import ParseError
from .records import Difficulty, ExternalPromptRecord

MIN_MARKDOWN_BODY = 20
PROMPT_FILE_EXTENSIONS = (".csv", ".json", ".md", ".txt", ".yml", ".yaml")

_CSV_ROW = re.compile(r'^"([^"]*)",\s*"([^"]*)"$')
_CSV_SNIFF = re.compile(r'"[^"\n]*",\s*"')
_MD_HEADING = re.compile(r"^#+\s+", re.MULTILINE)
_BODY_KEYS = ("prompt", "content", "text")
_DIFFICULTIES = {member.value for member in Difficulty}
_PAGE_BLOCKS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "pre", "blockquote"})

logger = structlog.get_logger("prompt_aggregator.parser")


class PromptFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    YAML = "yaml"
    MARKDOWN = "md"


@dataclass(slots=True, frozen=True)
class ParseHint:
    """Where a payload came from; drives id generation and format selection."""

    source_id: str
    filename: str | None = None

    def record_id(self, fmt: str, ordinal: int) -> str:
        if self.filename:
            stem = re.sub(r"[^0-9A-Za-z_-]+", "_", PurePosixPath(self.filename).stem) or "file"
            return f"{self.source_id}-{stem}-{fmt}-{ordinal}"
        return f"{self.source_id}-{fmt}-{ordinal}"


def is_prompt_file(filename: str) -> bool:
    return filename.lower().endswith(PROMPT_FILE_EXTENSIONS)


def unwrap_items(data: Any) -> list[Any]:
    """Accept a bare list or the ``{"prompts": [...]}`` envelope."""

    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("prompts"), list):
        return data["prompts"]
    return []


class FormatParser:
    """Turn CSV, JSON or Markdown payloads into ``ExternalPromptRecord`` lists.

    Individual malformed rows are dropped silently; only a payload that cannot
    be decoded at all raises :class:`ParseError`.
    """

    def select_format(self, raw: str, filename: str | None = None) -> PromptFormat:
        if filename:
            suffix = PurePosixPath(filename.lower()).suffix
            if suffix == ".csv":
                return PromptFormat.CSV
            if suffix == ".json":
                return PromptFormat.JSON
            if suffix in (".yml", ".yaml"):
                return PromptFormat.YAML
            if suffix in (".md", ".markdown"):
                return PromptFormat.MARKDOWN
        stripped = raw.strip()
        if stripped.startswith(("[", "{")):
            return PromptFormat.JSON
        if _CSV_SNIFF.search(raw):
            return PromptFormat.CSV
        return PromptFormat.MARKDOWN

    def parse(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        fmt = self.select_format(raw, hint.filename)
        if fmt is PromptFormat.CSV:
            return self.parse_csv(raw, hint)
        if fmt is PromptFormat.JSON:
            return self.parse_json(raw, hint)
        if fmt is PromptFormat.YAML:
            return self.parse_yaml(raw, hint)
        return self.parse_markdown(raw, hint)

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------
    def parse_csv(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        records: list[ExternalPromptRecord] = []
        lines = raw.splitlines()
        # Line 0 is the header row.
        for index in range(1, len(lines)):
            line = lines[index].strip()
            if not line:
                continue
            match = _CSV_ROW.match(line)
            if not match:
                continue
            title, body = match.group(1).strip(), match.group(2).strip()
            if not title or not body:
                continue
            record = self._build(hint, PromptFormat.CSV.value, index, {"title": title, "body": body})
            if record is not None:
                records.append(record)
        return records

    def parse_json(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid JSON payload: {exc}") from exc
        return self.parse_items(unwrap_items(data), hint, fmt=PromptFormat.JSON.value)

    def parse_yaml(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ParseError(f"Invalid YAML payload: {exc}") from exc
        return self.parse_items(unwrap_items(data), hint, fmt=PromptFormat.YAML.value)

    def parse_markdown(
        self, raw: str, hint: ParseHint, fmt: str = PromptFormat.MARKDOWN.value
    ) -> list[ExternalPromptRecord]:
        records: list[ExternalPromptRecord] = []
        for index, section in enumerate(_MD_HEADING.split(raw)):
            lines = section.strip().split("\n")
            if len(lines) < 2:
                continue
            title = lines[0].strip()
            body = "\n".join(lines[1:]).strip()
            if not title or len(body) <= MIN_MARKDOWN_BODY:
                continue
            record = self._build(hint, fmt, index, {"title": title, "body": body})
            if record is not None:
                records.append(record)
        return records

    def parse_items(
        self, items: Iterable[Any], hint: ParseHint, fmt: str = PromptFormat.JSON.value
    ) -> list[ExternalPromptRecord]:
        """Build records from decoded mappings exposing ``prompt|content|text``."""

        records: list[ExternalPromptRecord] = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            body = next((item[key] for key in _BODY_KEYS if item.get(key)), None)
            if not isinstance(body, str) or not body.strip():
                continue
            fields: dict[str, Any] = {
                "title": str(item.get("title") or item.get("name") or f"Prompt {index + 1}"),
                "body": body.strip(),
            }
            # Wrongly typed optional fields are ignored; the row itself is kept.
            categories = item.get("categories") or item.get("category")
            if categories and isinstance(categories, (str, list)):
                fields["categories"] = categories
            tags = item.get("tags")
            if tags and isinstance(tags, (str, list)):
                fields["tags"] = tags
            if item.get("author"):
                author = item["author"]
                fields["author"] = str(author.get("name") or "") if isinstance(author, dict) else str(author)
            difficulty = item.get("difficulty")
            if isinstance(difficulty, str) and difficulty in _DIFFICULTIES:
                fields["difficulty"] = difficulty
            if item.get("language"):
                fields["language"] = str(item["language"])
            for target, keys in (
                ("usage_count", ("usage_count", "downloads")),
                ("description", ("description",)),
                ("rating", ("rating",)),
                ("created_at", ("created_at",)),
                ("updated_at", ("updated_at",)),
            ):
                value = next((item[key] for key in keys if item.get(key) is not None), None)
                if value is not None:
                    fields[target] = value
            record = self._build(hint, fmt, index, fields)
            if record is not None:
                records.append(record)
        return records

    # ------------------------------------------------------------------
    # Feed and page payloads
    # ------------------------------------------------------------------
    def parse_feed(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        """Parse RSS ``<item>`` or Atom ``<entry>`` elements."""

        try:
            root = ET.fromstring(raw)
        except ET.ParseError as exc:
            raise ParseError(f"Invalid feed XML: {exc}") from exc
        items: list[dict[str, Any]] = []
        for node in root.iter():
            if _local_name(node.tag) not in ("item", "entry"):
                continue
            content = (
                _child_text(node, "encoded")
                or _child_text(node, "content")
                or _child_text(node, "description")
                or _child_text(node, "summary")
            )
            item: dict[str, Any] = {
                "title": (_child_text(node, "title") or "").strip(),
                "content": _html_to_text(content) if content else None,
                "author": _feed_author(node),
            }
            published = _feed_date(node)
            if published is not None:
                item["created_at"] = published
            items.append(item)
        return self.parse_items(items, hint, fmt="feed")

    def parse_page(self, raw: str, hint: ParseHint) -> list[ExternalPromptRecord]:
        """Convert HTML headings and text blocks to Markdown sections, then parse."""

        tree = HTMLParser(raw)
        root = tree.css_first("article") or tree.css_first("main") or tree.body
        if root is None:
            return []
        lines: list[str] = []
        for node in root.traverse(include_text=False):
            if node.tag not in _PAGE_BLOCKS:
                continue
            text = node.text(separator=" ", strip=True)
            if not text:
                continue
            if node.tag in ("h1", "h2", "h3", "h4", "h5", "h6"):
                lines.append(f"{'#' * int(node.tag[1])} {text}")
            else:
                lines.append(text)
        return self.parse_markdown("\n".join(lines), hint, fmt="page")

    # ------------------------------------------------------------------
    @staticmethod
    def _build(
        hint: ParseHint, fmt: str, ordinal: int, fields: dict[str, Any]
    ) -> ExternalPromptRecord | None:
        try:
            return ExternalPromptRecord(
                id=hint.record_id(fmt, ordinal), source_id=hint.source_id, **fields
            )
        except ValidationError as exc:
            logger.debug(
                "record_dropped", source=hint.source_id, ordinal=ordinal, error=str(exc)
            )
            return None


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(node: ET.Element, local_name: str) -> str | None:
    for child in list(node):
        if _local_name(child.tag) == local_name and child.text:
            return child.text
    return None


def _feed_author(node: ET.Element) -> str | None:
    for child in list(node):
        if _local_name(child.tag) in ("author", "creator"):
            name = _child_text(child, "name")
            return (name or child.text or "").strip() or None
    return None


def _feed_date(node: ET.Element) -> datetime | None:
    """RFC 822 ``pubDate`` or ISO-8601 ``published``/``updated``; unreadable dates are ignored."""

    rss_date = _child_text(node, "pubDate")
    if rss_date:
        try:
            return parsedate_to_datetime(rss_date.strip())
        except (TypeError, ValueError):
            return None
    atom_date = _child_text(node, "published") or _child_text(node, "updated")
    if not atom_date:
        return None
    text = atom_date.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("feed_date_ignored", value=atom_date)
        return None


def _html_to_text(fragment: str) -> str:
    if "<" not in fragment:
        return fragment.strip()
    tree = HTMLParser(fragment)
    node = tree.body or tree.root
    if node is None:
        return fragment.strip()
    return node.text(separator=" ", strip=True)


__all__ = ["FormatParser", "ParseHint", "PromptFormat", "is_prompt_file", "unwrap_items", "MIN_MARKDOWN_BODY"]
