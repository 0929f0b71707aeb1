"""
Entries component port definitions.

Narrow interfaces onto the collaborators the save pipeline consumes.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol

from src.core.entities import (
    ContentRecord,
    Entry,
    EntryType,
    EntryValidationError,
    FieldLayout,
    Section,
)
from src.core.ports.db import UnitOfWorkPort


class SectionCatalogPort(Protocol):
    """Read access to section configuration."""

    def get_section_by_id(self, section_id: int) -> Section | None:
        ...


class EntryTypePort(Protocol):
    """Entry types and their field layouts."""

    def get_entry_type_for(self, entry: Entry) -> EntryType | None:
        """Entry type named by entry.type_id, else the section's first type."""
        ...

    def get_field_layout(self, entry_type: EntryType) -> FieldLayout:
        ...


class ContentServicePort(Protocol):
    """
    Prepares and validates content records.

    Persistence goes through UnitOfWorkPort.content so the content row
    commits with the other records.
    """

    def prepare_for_save(self, entry: Entry, layout: FieldLayout) -> ContentRecord:
        ...

    def validate(
        self, content: ContentRecord, layout: FieldLayout, entry_type: EntryType
    ) -> list[EntryValidationError]:
        ...

    def post_save_hooks(self, entry: Entry, content: ContentRecord) -> None:
        ...


class UriRendererPort(Protocol):
    """Renders a section URL format against an entry context."""

    def render_uri_template(self, url_format: str, context: Mapping[str, Any]) -> str:
        ...


class SearchIndexPort(Protocol):
    """Fire-and-forget attribute indexing after commit."""

    def index_attributes(self, entry: Entry, locale: str) -> None:
        ...


class RevisionStorePort(Protocol):
    """Version snapshots, used when structure editing is enabled."""

    def save_version(self, entry: Entry) -> None:
        ...


class TimePort(Protocol):
    def now_utc(self) -> datetime:
        ...


UnitOfWorkFactory = Callable[[], UnitOfWorkPort]
