"""
Dev Search Index Adapter.

In-memory attribute index for development and testing. Each save replaces
the indexed keywords for (entry id, locale).

Key behaviors:
- Keywords are lowercased word tokens of slug, title, uri and string fields
- search() matches entries containing every term
- Indexing never touches the database transaction
"""

from __future__ import annotations

import logging
import re
import threading

from src.core.entities import Entry

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[^\W_]+")


def _keywords(text: str | None) -> set[str]:
    return set(_TOKEN_RE.findall(text.lower())) if text else set()


class InMemorySearchIndex:
    def __init__(self) -> None:
        self._index: dict[tuple[int, str], dict[str, set[str]]] = {}
        self._lock = threading.Lock()

    def index_attributes(self, entry: Entry, locale: str) -> None:
        if entry.id is None:
            return
        attributes = {
            "slug": _keywords(entry.slug),
            "title": _keywords(entry.title),
            "uri": _keywords(entry.uri),
        }
        for handle, value in entry.fields.items():
            if isinstance(value, str):
                attributes[f"field:{handle}"] = _keywords(value)

        with self._lock:
            self._index[(entry.id, locale)] = attributes
        logger.debug("indexed entry %s (%s)", entry.id, locale)

    def attributes_for(self, entry_id: int, locale: str) -> dict[str, set[str]] | None:
        with self._lock:
            return self._index.get((entry_id, locale))

    def search(self, query: str, locale: str) -> list[int]:
        terms = _keywords(query)
        if not terms:
            return []
        with self._lock:
            hits = [
                entry_id
                for (entry_id, loc), attributes in self._index.items()
                if loc == locale and terms <= set().union(*attributes.values())
            ]
        return sorted(hits)

    def clear(self) -> None:
        with self._lock:
            self._index.clear()
