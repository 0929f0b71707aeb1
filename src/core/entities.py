"""
Domain entities for structured-entries.

An Entry is one logical entity spread across several stored records:
- ElementRecord / ElementLocaleRecord: identity, enabled state, per-locale URI
- EntryRecord / EntryLocaleRecord: section, type, author, dates, per-locale slug
- ContentRecord: title and custom field values per locale
- StructureNode: nested-set position for entries in Structure sections

Invariants:
- exactly one localized row per (entry id, locale)
- (section_id, locale, slug) unique among different entries
- Single entries have author_id=None, expiry_date=None, enabled=True
- node intervals strictly nest descendants and exclude siblings
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

SectionType = Literal["single", "channel", "structure"]

# parent_id value meaning "top level of the section"
ROOT_PARENT_ID = 0

ELEMENT_TYPE_ENTRY = "entry"


# --- Validation ---


@dataclass(frozen=True)
class EntryValidationError:
    """A field-level validation message accumulated during save."""

    code: str
    message: str
    field: str | None = None


# --- Sections ---


class SectionLocale(BaseModel):
    locale: str
    url_format: str | None = None
    nested_url: str | None = None
    nested_url_format: str | None = None


class Section(BaseModel):
    id: int | None = None
    name: str
    handle: str
    type: SectionType = "channel"
    has_urls: bool = True
    locales: dict[str, SectionLocale] = Field(default_factory=dict)

    @property
    def is_structure(self) -> bool:
        return self.type == "structure"

    @property
    def is_single(self) -> bool:
        return self.type == "single"


# --- Entry types / field layouts ---


class FieldDefinition(BaseModel):
    handle: str
    name: str = ""
    required: bool = False
    max_length: int | None = None


class FieldLayout(BaseModel):
    fields: list[FieldDefinition] = Field(default_factory=list)


class EntryType(BaseModel):
    id: int | None = None
    section_id: int
    name: str
    handle: str
    has_title_field: bool = True
    field_layout: FieldLayout = Field(default_factory=FieldLayout)


# --- Entry (aggregate root) ---


class Entry(BaseModel):
    """
    A localized content entry.

    lft/rgt/depth are read-only mirrors of the entry's StructureNode and are
    only populated by storage. parent_id=None means "not specified";
    ROOT_PARENT_ID places the entry at the top level of its section.
    """

    id: int | None = None
    section_id: int | None = None
    type_id: int | None = None
    locale: str
    author_id: int | None = None

    post_date: datetime | None = None
    expiry_date: datetime | None = None
    enabled: bool = True

    parent_id: int | None = None
    lft: int | None = None
    rgt: int | None = None
    depth: int | None = None

    slug: str | None = None
    uri: str | None = None
    title: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)

    errors: list[EntryValidationError] = Field(default_factory=list)

    def add_errors(self, errors: list[EntryValidationError]) -> None:
        self.errors.extend(errors)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def clear_errors(self) -> None:
        self.errors = []


# --- Stored records ---


class ElementRecord(BaseModel):
    id: int | None = None
    type: str = ELEMENT_TYPE_ENTRY
    enabled: bool = True
    date_created: datetime | None = None
    date_updated: datetime | None = None


class ElementLocaleRecord(BaseModel):
    id: int | None = None
    element_id: int | None = None
    locale: str
    uri: str | None = None


class EntryRecord(BaseModel):
    id: int | None = None
    section_id: int | None = None
    type_id: int | None = None
    author_id: int | None = None
    post_date: datetime | None = None
    expiry_date: datetime | None = None


class EntryLocaleRecord(BaseModel):
    id: int | None = None
    entry_id: int | None = None
    section_id: int | None = None
    locale: str
    slug: str = ""


class ContentRecord(BaseModel):
    id: int | None = None
    element_id: int | None = None
    locale: str
    title: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)


class StructureNode(BaseModel):
    """Nested-set position. The synthetic section root has entry_id=None."""

    id: int | None = None
    section_id: int
    entry_id: int | None = None
    lft: int = 0
    rgt: int = 0
    depth: int = 0

    @property
    def is_root(self) -> bool:
        return self.entry_id is None

    def contains(self, other: StructureNode) -> bool:
        return self.lft < other.lft and other.rgt < self.rgt


# --- Revisions / notifications ---


class EntryVersion(BaseModel):
    id: int | None = None
    entry_id: int
    locale: str
    num: int
    snapshot_json: str
    created_at: datetime


@dataclass(frozen=True)
class EntrySaved:
    """Raised after a save transaction commits."""

    entry: Entry
    is_new_entry: bool
