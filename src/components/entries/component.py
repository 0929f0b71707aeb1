"""
Entries component - save, lookup and tree operations for entries.

Thin entry points over EntryService / EntryReader. Validation failures come
back as outputs with success=False and the accumulated errors; structural
failures (EntryError subclasses) propagate to the caller.

Key behaviors:
- run_save inserts when entry.id is None, otherwise updates
- run_get ignores enabled/publish state
- run_ancestors / run_descendants return [] for non-structure sections
- run_move_under / run_move_after re-read the entry after the move
"""

from __future__ import annotations

from src.core.entities import Entry, EntryValidationError

from ._impl import EntryReader, EntryService
from .models import (
    EntryListOutput,
    EntryOutput,
    GetEntryInput,
    MoveAfterInput,
    MoveOutput,
    MoveUnderInput,
    SaveEntryInput,
    SaveEntryOutput,
    TreeQueryInput,
)


def _not_found(entry_id: int) -> EntryValidationError:
    return EntryValidationError(
        code="not_found", message=f"No entry exists with the ID '{entry_id}'", field="entry_id"
    )


def run_save(inp: SaveEntryInput, *, service: EntryService) -> SaveEntryOutput:
    """
    Validate and persist an entry.

    Args:
        inp: Input containing the entry and slug preservation override.
        service: Configured EntryService.

    Returns:
        SaveEntryOutput; success=False carries the validation errors.
    """
    is_new_entry = inp.entry.id is None
    ok, entry = service.save_entry(inp.entry, preserve_existing_slug=inp.preserve_existing_slug)
    return SaveEntryOutput(
        entry=entry,
        is_new_entry=is_new_entry,
        errors=list(entry.errors),
        success=ok,
    )


def run_get(inp: GetEntryInput, *, reader: EntryReader) -> EntryOutput:
    entry = reader.get_by_id(inp.entry_id, inp.locale)
    if entry is None:
        return EntryOutput(entry=None, errors=[_not_found(inp.entry_id)], success=False)
    return EntryOutput(entry=entry)


def run_ancestors(inp: TreeQueryInput, *, reader: EntryReader) -> EntryListOutput:
    """Ancestors of an entry, outermost first, optionally limited to max_delta levels."""
    entry = reader.get_by_id(inp.entry_id, inp.locale)
    if entry is None:
        return EntryListOutput(entries=[], errors=[_not_found(inp.entry_id)], success=False)
    return EntryListOutput(entries=reader.ancestors(entry, inp.max_delta))


def run_descendants(inp: TreeQueryInput, *, reader: EntryReader) -> EntryListOutput:
    """Descendants of an entry in tree order, optionally limited to max_delta levels."""
    entry = reader.get_by_id(inp.entry_id, inp.locale)
    if entry is None:
        return EntryListOutput(entries=[], errors=[_not_found(inp.entry_id)], success=False)
    return EntryListOutput(entries=reader.descendants(entry, inp.max_delta))


def _reload(reader: EntryReader, entry: Entry) -> Entry:
    assert entry.id is not None
    return reader.get_by_id(entry.id, entry.locale) or entry


def run_move_under(
    inp: MoveUnderInput, *, service: EntryService, reader: EntryReader
) -> MoveOutput:
    """
    Move an entry under a parent (None = top level of its section).

    Raises:
        InvalidMoveError: cross-section parent or move into own subtree
        InvalidConfigurationError: structure editing disabled
    """
    entry = reader.get_by_id(inp.entry_id)
    if entry is None:
        return MoveOutput(errors=[_not_found(inp.entry_id)], success=False)

    parent: Entry | None = None
    if inp.parent_id is not None:
        parent = reader.get_by_id(inp.parent_id, entry.locale)
        if parent is None:
            return MoveOutput(entry=entry, errors=[_not_found(inp.parent_id)], success=False)

    service.move_entry_under(entry, parent, prepend=inp.prepend)
    return MoveOutput(entry=_reload(reader, entry))


def run_move_after(
    inp: MoveAfterInput, *, service: EntryService, reader: EntryReader
) -> MoveOutput:
    entry = reader.get_by_id(inp.entry_id)
    if entry is None:
        return MoveOutput(errors=[_not_found(inp.entry_id)], success=False)

    prev_entry = reader.get_by_id(inp.prev_entry_id, entry.locale)
    if prev_entry is None:
        return MoveOutput(entry=entry, errors=[_not_found(inp.prev_entry_id)], success=False)

    service.move_entry_after(entry, prev_entry)
    return MoveOutput(entry=_reload(reader, entry))


def run(
    inp: SaveEntryInput | GetEntryInput | MoveUnderInput | MoveAfterInput,
    *,
    service: EntryService,
    reader: EntryReader,
) -> SaveEntryOutput | EntryOutput | MoveOutput:
    """
    Main entry point for the entries component.

    Dispatches to appropriate handler based on input type. Tree queries
    need a direction, so they go through run_ancestors / run_descendants.
    """
    if isinstance(inp, SaveEntryInput):
        return run_save(inp, service=service)

    elif isinstance(inp, GetEntryInput):
        return run_get(inp, reader=reader)

    elif isinstance(inp, MoveUnderInput):
        return run_move_under(inp, service=service, reader=reader)

    elif isinstance(inp, MoveAfterInput):
        return run_move_after(inp, service=service, reader=reader)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
