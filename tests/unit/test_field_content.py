from __future__ import annotations

import pytest

from src.components.entries import FieldLayoutContentService
from src.core.entities import Entry, EntryType, FieldDefinition, FieldLayout

LAYOUT = FieldLayout(
    fields=[
        FieldDefinition(handle="body", name="Body", required=True),
        FieldDefinition(handle="summary", name="Summary", max_length=10),
    ]
)


@pytest.fixture
def service() -> FieldLayoutContentService:
    return FieldLayoutContentService()


def _type(has_title_field: bool = True) -> EntryType:
    return EntryType(
        id=1, section_id=1, name="Post", handle="post", has_title_field=has_title_field
    )


class TestPrepare:
    def test_keeps_only_layout_fields(self, service: FieldLayoutContentService) -> None:
        entry = Entry(locale="en", title=" Hi ", fields={"body": "x", "stray": 1})
        content = service.prepare_for_save(entry, LAYOUT)
        assert content.fields == {"body": "x"}
        assert content.title == "Hi"
        assert content.locale == "en"

    def test_blank_title_is_none(self, service: FieldLayoutContentService) -> None:
        content = service.prepare_for_save(Entry(locale="en"), LAYOUT)
        assert content.title is None


class TestValidate:
    def test_valid(self, service: FieldLayoutContentService) -> None:
        entry = Entry(locale="en", title="Hi", fields={"body": "text", "summary": "short"})
        content = service.prepare_for_save(entry, LAYOUT)
        assert service.validate(content, LAYOUT, _type()) == []

    def test_collects_every_problem(self, service: FieldLayoutContentService) -> None:
        entry = Entry(locale="en", fields={"body": "  ", "summary": "far too long"})
        content = service.prepare_for_save(entry, LAYOUT)
        codes = [e.code for e in service.validate(content, LAYOUT, _type())]
        assert codes == ["title_required", "field_required", "field_too_long"]

    def test_title_optional_without_title_field(
        self, service: FieldLayoutContentService
    ) -> None:
        entry = Entry(locale="en", fields={"body": "text"})
        content = service.prepare_for_save(entry, LAYOUT)
        assert service.validate(content, LAYOUT, _type(has_title_field=False)) == []

    @pytest.mark.parametrize("value", [None, "", [], {}])
    def test_required_blank_values(
        self, service: FieldLayoutContentService, value: object
    ) -> None:
        entry = Entry(locale="en", title="Hi", fields={"body": value})
        content = service.prepare_for_save(entry, LAYOUT)
        errors = service.validate(content, LAYOUT, _type())
        assert [e.field for e in errors] == ["body"]

    def test_zero_is_not_blank(self, service: FieldLayoutContentService) -> None:
        entry = Entry(locale="en", title="Hi", fields={"body": 0})
        content = service.prepare_for_save(entry, LAYOUT)
        assert service.validate(content, LAYOUT, _type()) == []


class TestPostSave:
    def test_entry_mirrors_stored_content(self, service: FieldLayoutContentService) -> None:
        entry = Entry(locale="en", title=" Hi ", fields={"body": "x", "stray": 1})
        content = service.prepare_for_save(entry, LAYOUT)
        service.post_save_hooks(entry, content)
        assert entry.title == "Hi"
        assert entry.fields == {"body": "x"}
