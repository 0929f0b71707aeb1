"""
Entries component input/output models and error types.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.entities import Entry, EntryValidationError

# --- Fatal errors ---


class EntryError(Exception):
    """Base class for structural failures that abort a save or move."""


class NotFoundError(EntryError):
    """A referenced section, entry, parent or entry type does not exist."""

    def __init__(self, kind: str, ident: object = None) -> None:
        self.kind = kind
        self.ident = ident
        if ident is None:
            msg = f"No {kind} is available"
        else:
            msg = f"No {kind} exists with the ID '{ident}'"
        super().__init__(msg)


class LocaleNotEnabledError(EntryError):
    """The section is not enabled for the entry's locale."""

    def __init__(self, section: str, locale: str) -> None:
        self.section = section
        self.locale = locale
        super().__init__(f"The section '{section}' is not enabled for the locale {locale}")


class InvalidConfigurationError(EntryError):
    """Section configuration is inconsistent (e.g. URL format without {slug})."""


class InvalidMoveError(EntryError):
    """A tree move that cannot be performed."""

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        msg = "That move isn't possible"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RootMissingError(EntryError):
    """A Structure section has no synthetic root node."""

    def __init__(self, section_id: int) -> None:
        self.section_id = section_id
        super().__init__(f"There's no root node in section {section_id}")


class SlugConflictError(EntryError):
    """
    A uniqueness constraint failed at commit time.

    Two concurrent saves raced between the slug check and the insert.
    Nothing was written; the caller may retry the save.
    """


# --- Input Models ---


@dataclass(frozen=True)
class SaveEntryInput:
    """Input for saving an entry (insert when entry.id is None)."""

    entry: Entry
    preserve_existing_slug: bool | None = None


@dataclass(frozen=True)
class GetEntryInput:
    """Input for a point lookup, regardless of enabled state."""

    entry_id: int
    locale: str | None = None


@dataclass(frozen=True)
class TreeQueryInput:
    """Input for ancestor / descendant queries."""

    entry_id: int
    locale: str | None = None
    max_delta: int | None = None


@dataclass(frozen=True)
class MoveUnderInput:
    """Move an entry to be the last (or first) child of parent_id (None = root)."""

    entry_id: int
    parent_id: int | None = None
    prepend: bool = False


@dataclass(frozen=True)
class MoveAfterInput:
    """Move an entry to immediately follow prev_entry_id."""

    entry_id: int
    prev_entry_id: int


# --- Output Models ---


@dataclass(frozen=True)
class SaveEntryOutput:
    """Output for a save. errors mirrors entry.errors."""

    entry: Entry
    is_new_entry: bool
    errors: list[EntryValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class EntryOutput:
    """Output containing a single entry."""

    entry: Entry | None
    errors: list[EntryValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class EntryListOutput:
    """Output containing ordered entries (ancestors or descendants)."""

    entries: list[Entry]
    errors: list[EntryValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class MoveOutput:
    """Output for tree moves."""

    entry: Entry | None = None
    errors: list[EntryValidationError] = field(default_factory=list)
    success: bool = True
