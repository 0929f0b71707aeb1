"""
Database adapter interfaces.

Protocol-based interfaces for the records that make up an entry.
Implementations: SQLite (src/adapters/sqlite_db.py).

All repositories handed out by a unit of work share one connection, so every
write made between __enter__ and commit() lands atomically.
"""

from __future__ import annotations

from typing import Any, Protocol

from src.core.entities import (
    ContentRecord,
    ElementLocaleRecord,
    ElementRecord,
    EntryLocaleRecord,
    EntryRecord,
    StructureNode,
)


class UniqueViolationError(Exception):
    """A write collided with a uniqueness constraint (slug or URI)."""


class ElementRepoPort(Protocol):
    def get(self, element_id: int) -> ElementRecord | None:
        ...

    def save(self, record: ElementRecord) -> ElementRecord:
        """Insert or update. Assigns record.id on insert."""
        ...


class ElementLocaleRepoPort(Protocol):
    def get(self, element_id: int, locale: str) -> ElementLocaleRecord | None:
        ...

    def save(self, record: ElementLocaleRecord) -> ElementLocaleRecord:
        ...

    def uri_taken(self, uri: str, locale: str, exclude_element_id: int | None) -> bool:
        ...


class EntryRecordRepoPort(Protocol):
    def get(self, entry_id: int) -> EntryRecord | None:
        ...

    def save(self, record: EntryRecord) -> EntryRecord:
        ...


class EntryLocaleRepoPort(Protocol):
    def get(self, entry_id: int, locale: str) -> EntryLocaleRecord | None:
        ...

    def first_locale(self, entry_id: int) -> str | None:
        ...

    def save(self, record: EntryLocaleRecord) -> EntryLocaleRecord:
        ...

    def slug_exists(
        self,
        section_id: int,
        locale: str,
        slug: str,
        exclude_entry_id: int | None = None,
    ) -> bool:
        ...


class ContentRepoPort(Protocol):
    def get(self, element_id: int, locale: str) -> ContentRecord | None:
        ...

    def save(self, record: ContentRecord) -> ContentRecord:
        ...


class StructureRepoPort(Protocol):
    """
    Nested-set storage.

    shift() and shift_subtree() are the only bulk mutations; the tree
    manager composes them into inserts and moves.
    """

    def get_by_entry(self, entry_id: int) -> StructureNode | None:
        ...

    def get_root(self, section_id: int) -> StructureNode | None:
        ...

    def insert(self, node: StructureNode) -> StructureNode:
        ...

    def shift(self, section_id: int, first: int, delta: int) -> None:
        """Add delta to every lft and rgt that is >= first."""
        ...

    def shift_subtree(
        self, section_id: int, lft: int, rgt: int, delta: int, depth_delta: int
    ) -> None:
        """Move the nodes inside [lft, rgt] by delta and change their depth."""
        ...

    def list_between(
        self,
        section_id: int,
        *,
        ancestors_of: StructureNode | None = None,
        descendants_of: StructureNode | None = None,
        min_depth: int | None = None,
        max_depth: int | None = None,
    ) -> list[StructureNode]:
        """Nodes strictly containing / contained by a node, ordered by lft."""
        ...

    def parent_of(self, node: StructureNode) -> StructureNode | None:
        ...


class UnitOfWorkPort(Protocol):
    elements: ElementRepoPort
    element_locales: ElementLocaleRepoPort
    entries: EntryRecordRepoPort
    entry_locales: EntryLocaleRepoPort
    content: ContentRepoPort
    structure: StructureRepoPort

    def __enter__(self) -> UnitOfWorkPort:
        ...

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...
