from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from src.adapters.clock import FixedClock
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.context import ServiceContext
from src.core.entities import EntryType, FieldDefinition, FieldLayout, Section, SectionLocale
from src.rules.loader import DEFAULT_RULES_PATH, load_rules
from src.rules.models import Rules

SectionFactory = Callable[..., tuple[Section, EntryType]]


@pytest.fixture
def rules() -> Rules:
    """The real rules.yaml shipped at the project root."""
    return load_rules(DEFAULT_RULES_PATH)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """A migrated SQLite database in a temp directory."""
    path = str(tmp_path / "entries.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def ctx(db_path: str, rules: Rules, clock: FixedClock) -> ServiceContext:
    """Full ServiceContext backed by the temporary database."""
    return ServiceContext.create(db_path, rules, clock=clock)


@pytest.fixture
def make_section(ctx: ServiceContext) -> SectionFactory:
    """
    Create a section with one entry type.

    URL formats default per type: singles live at their handle, channels at
    "<handle>/{slug}", structures at "{slug}" / "{parent.uri}/{slug}".
    """

    def factory(
        handle: str,
        type: str = "channel",
        *,
        locales: tuple[str, ...] = ("en",),
        has_urls: bool = True,
        url_format: str | None = None,
        nested_url: str | None = None,
        nested_url_format: str | None = None,
        fields: list[FieldDefinition] | None = None,
        has_title_field: bool = True,
    ) -> tuple[Section, EntryType]:
        if type == "single":
            url_format = url_format or handle
        elif type == "structure":
            nested_url = nested_url or "{slug}"
            nested_url_format = nested_url_format or "{parent.uri}/{slug}"
        else:
            nested_url = nested_url or f"{handle}/{{slug}}"

        section = ctx.sections.save_section(
            Section(
                name=handle.title(),
                handle=handle,
                type=type,  # type: ignore[arg-type]
                has_urls=has_urls,
                locales={
                    locale: SectionLocale(
                        locale=locale,
                        url_format=url_format,
                        nested_url=nested_url,
                        nested_url_format=nested_url_format,
                    )
                    for locale in locales
                },
            )
        )
        assert section.id is not None
        entry_type = ctx.entry_types.save_entry_type(
            EntryType(
                section_id=section.id,
                name="Default",
                handle="default",
                has_title_field=has_title_field,
                field_layout=FieldLayout(fields=fields or []),
            )
        )
        return section, entry_type

    return factory
