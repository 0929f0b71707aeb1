"""
Field-layout content handling.

Builds the ContentRecord for an entry and validates it against the entry
type's field layout. Storage of the record is left to the unit of work.

Key behaviors:
- Only fields declared in the layout are kept; unknown keys are dropped
- Title is required when the entry type has a title field
- Required fields reject None, empty strings and empty collections
- max_length applies to string values
"""

from __future__ import annotations

import logging
from typing import Any

from src.core.entities import (
    ContentRecord,
    Entry,
    EntryType,
    EntryValidationError,
    FieldLayout,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class FieldLayoutContentService:
    def prepare_for_save(self, entry: Entry, layout: FieldLayout) -> ContentRecord:
        fields = {
            definition.handle: entry.fields.get(definition.handle)
            for definition in layout.fields
            if definition.handle in entry.fields
        }
        dropped = set(entry.fields) - set(fields)
        if dropped:
            logger.debug("ignoring fields outside the layout: %s", sorted(dropped))

        return ContentRecord(
            element_id=entry.id,
            locale=entry.locale,
            title=entry.title.strip() if entry.title else None,
            fields=fields,
        )

    def validate(
        self, content: ContentRecord, layout: FieldLayout, entry_type: EntryType
    ) -> list[EntryValidationError]:
        errors: list[EntryValidationError] = []

        if entry_type.has_title_field:
            if not content.title:
                errors.append(
                    EntryValidationError(
                        code="title_required", message="Title cannot be blank.", field="title"
                    )
                )
            elif len(content.title) > MAX_TITLE_LENGTH:
                errors.append(
                    EntryValidationError(
                        code="title_too_long",
                        message=f"Title should contain at most {MAX_TITLE_LENGTH} characters",
                        field="title",
                    )
                )

        for definition in layout.fields:
            value = content.fields.get(definition.handle)
            label = definition.name or definition.handle

            if definition.required and _is_blank(value):
                errors.append(
                    EntryValidationError(
                        code="field_required",
                        message=f"{label} cannot be blank.",
                        field=definition.handle,
                    )
                )
                continue

            if (
                definition.max_length is not None
                and isinstance(value, str)
                and len(value) > definition.max_length
            ):
                errors.append(
                    EntryValidationError(
                        code="field_too_long",
                        message=f"{label} should contain at most {definition.max_length} characters",
                        field=definition.handle,
                    )
                )

        return errors

    def post_save_hooks(self, entry: Entry, content: ContentRecord) -> None:
        # Keep the caller's view in sync with what was stored
        entry.title = content.title or ""
        entry.fields = dict(content.fields)
