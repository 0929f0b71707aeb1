from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.adapters.clock import SystemClock
from src.adapters.dev_search import InMemorySearchIndex
from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.adapters.sqlite_db import (
    SQLiteEntryTypeRepo,
    SQLiteRevisionStore,
    SQLiteSectionCatalog,
    SQLiteStructureRepo,
    SQLiteUnitOfWork,
)
from src.adapters.uri_templates import JinjaUriRenderer
from src.components.entries import (
    EntriesConfig,
    EntryEventBus,
    EntryReader,
    EntryService,
    FieldLayoutContentService,
)
from src.rules.models import Rules


@dataclass
class ServiceContext:
    entry_service: EntryService
    entry_reader: EntryReader
    sections: SQLiteSectionCatalog
    entry_types: SQLiteEntryTypeRepo
    revisions: SQLiteRevisionStore
    search: InMemorySearchIndex
    events: EntryEventBus
    config: EntriesConfig
    rules: Rules
    db_path: str
    clock: Any = None  # For testing/injection

    @classmethod
    def create(cls, db_path: str, rules: Rules, clock: Any = None) -> ServiceContext:
        config = EntriesConfig.from_rules(rules)

        # Adapters
        sections = SQLiteSectionCatalog(db_path)
        entry_types = SQLiteEntryTypeRepo(db_path)
        revisions = SQLiteRevisionStore(db_path)
        search = InMemorySearchIndex()
        clock = clock or SystemClock()
        events = EntryEventBus()

        def writer() -> SQLiteUnitOfWork:
            return SQLiteUnitOfWork(db_path)

        def reader() -> SQLiteUnitOfWork:
            return SQLiteUnitOfWork(db_path, immediate=False)

        # Services
        entry_service = EntryService(
            uow_factory=writer,
            sections=sections,
            entry_types=entry_types,
            content=FieldLayoutContentService(),
            renderer=JinjaUriRenderer(),
            search=search,
            time=clock,
            revisions=revisions,
            events=events,
            config=config,
        )
        entry_reader = EntryReader(uow_factory=reader, sections=sections, config=config)

        return cls(
            entry_service=entry_service,
            entry_reader=entry_reader,
            sections=sections,
            entry_types=entry_types,
            revisions=revisions,
            search=search,
            events=events,
            config=config,
            rules=rules,
            db_path=db_path,
            clock=clock,
        )

    def migrate(self) -> list[str]:
        migrations_dir = self.rules.database.migrations_dir or DEFAULT_MIGRATIONS_DIR
        return SQLiteMigrator(self.db_path, migrations_dir).run_migrations()

    def structure(self, section_id: int) -> list[Any]:
        """All nodes of a section's tree, root first, in lft order."""
        return SQLiteStructureRepo(self.db_path).list_section(section_id)
