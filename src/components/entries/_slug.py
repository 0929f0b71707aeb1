"""
Slug generation for entries.

Key behaviors:
- Source text is the explicit slug if given, else the title
- HTML tags are stripped, text is lowercased (Unicode-aware)
- Runs of Unicode letters/digits become words joined by "-"
- Empty result is a valid (empty) slug and skips the uniqueness check
- Uniqueness is scoped to (section_id, locale), excluding the entry itself;
  candidates are tried in order: base, base-1, base-2, ...
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Iterator
from dataclasses import dataclass

from src.core.entities import Entry
from src.core.ports.db import EntryLocaleRepoPort

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<(.*?)>")

# [^\W_] is "word character minus underscore": Unicode letters and digits
_WORD_RE = re.compile(r"[^\W_]+")


@dataclass(frozen=True)
class SlugConfig:
    """Collision handling limits."""

    max_sequential_attempts: int = 1000
    random_fallback: bool = True
    random_suffix_length: int = 6


DEFAULT_SLUG_CONFIG = SlugConfig()


def normalize_slug(text: str | None) -> str:
    """Derive the base slug from free text. Deterministic, no storage access."""
    if not text:
        return ""
    text = _TAG_RE.sub("", text)
    text = text.lower()
    return "-".join(_WORD_RE.findall(text))


def _candidates(base: str, config: SlugConfig) -> Iterator[str]:
    yield base
    i = 1
    while True:
        if config.random_fallback and i >= config.max_sequential_attempts:
            suffix = secrets.token_hex(config.random_suffix_length)
            yield f"{base}-{suffix[: config.random_suffix_length]}"
        else:
            yield f"{base}-{i}"
        i += 1


class SlugGenerator:
    """Assigns a normalized, scope-unique slug to an entry."""

    def __init__(
        self,
        entry_locales: EntryLocaleRepoPort,
        config: SlugConfig | None = None,
    ) -> None:
        self._entry_locales = entry_locales
        self._config = config or DEFAULT_SLUG_CONFIG

    def generate(self, entry: Entry) -> str:
        base = normalize_slug(entry.slug if entry.slug else entry.title)
        if not base:
            return ""

        if entry.section_id is None:
            return base

        candidates = _candidates(base, self._config)
        candidate = next(candidates)
        while self._entry_locales.slug_exists(
            entry.section_id, entry.locale, candidate, exclude_entry_id=entry.id
        ):
            candidate = next(candidates)

        if candidate != base:
            logger.debug("slug %r taken, using %r", base, candidate)
        return candidate
