from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.core.entities import Entry


# --- Validation errors ---
class ValidationErrorModel(BaseModel):
    code: str
    message: str
    field: str | None = None


# --- Entries ---
class EntrySaveRequest(BaseModel):
    id: int | None = None
    section_id: int | None = None
    type_id: int | None = None
    locale: str
    author_id: int | None = None
    post_date: datetime | None = None
    expiry_date: datetime | None = None
    enabled: bool = True
    parent_id: int | None = None
    slug: str | None = None
    title: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)
    preserve_existing_slug: bool | None = None

    def to_entry(self) -> Entry:
        return Entry(**self.model_dump(exclude={"preserve_existing_slug"}))


class EntryResponse(BaseModel):
    id: int | None
    section_id: int | None
    type_id: int | None
    locale: str
    author_id: int | None
    post_date: datetime | None
    expiry_date: datetime | None
    enabled: bool
    parent_id: int | None
    lft: int | None
    rgt: int | None
    depth: int | None
    slug: str | None
    uri: str | None
    title: str
    fields: dict[str, Any]

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        return cls(**entry.model_dump(exclude={"errors"}))


class EntrySaveResponse(BaseModel):
    entry: EntryResponse
    is_new_entry: bool


class EntryMoveRequest(BaseModel):
    """Exactly one of parent_id / after_id; parent_id=None with no after_id means top level."""

    parent_id: int | None = None
    after_id: int | None = None
    prepend: bool = False
