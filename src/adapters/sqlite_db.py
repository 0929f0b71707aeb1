"""
SQLite Database Adapter.

Implements the entry record repositories (src/core/ports/db.py), the unit
of work, and SQLite-backed section / entry type / revision collaborators.

Key behaviors:
- A unit of work opens one connection and starts the transaction up front
  (BEGIN IMMEDIATE for writers), so validation reads, nested-set updates
  and record writes all happen under the database write lock
- Unique index violations on slugs and URIs surface as UniqueViolationError
- Repositories constructed without a connection open and commit their own
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any

from src.core.entities import (
    ContentRecord,
    ElementLocaleRecord,
    ElementRecord,
    Entry,
    EntryLocaleRecord,
    EntryRecord,
    EntryType,
    EntryVersion,
    FieldLayout,
    Section,
    SectionLocale,
    StructureNode,
)
from src.core.ports.db import UniqueViolationError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def format_dt(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _raise_if_unique(e: sqlite3.IntegrityError) -> None:
    if "UNIQUE constraint failed" in str(e):
        raise UniqueViolationError(str(e)) from e


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Element records
# -----------------------------------------------------------------------------


class SQLiteElementRepo(SQLiteRepoBase):
    def get(self, element_id: int) -> ElementRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM elements WHERE id = ?", (element_id,)).fetchone()
            if not row:
                return None
            return ElementRecord(
                id=row["id"],
                type=row["type"],
                enabled=bool(row["enabled"]),
                date_created=parse_dt(row["date_created"]),
                date_updated=parse_dt(row["date_updated"]),
            )
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: ElementRecord) -> ElementRecord:
        conn = self._get_conn()
        try:
            params = (
                record.type,
                record.enabled,
                format_dt(record.date_created),
                format_dt(record.date_updated),
            )
            if record.id is None:
                cur = conn.execute(
                    "INSERT INTO elements (type, enabled, date_created, date_updated) "
                    "VALUES (?, ?, ?, ?)",
                    params,
                )
                record.id = cur.lastrowid
            else:
                conn.execute(
                    "UPDATE elements SET type = ?, enabled = ?, date_created = ?, "
                    "date_updated = ? WHERE id = ?",
                    (*params, record.id),
                )
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()


class SQLiteElementLocaleRepo(SQLiteRepoBase):
    def get(self, element_id: int, locale: str) -> ElementLocaleRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM elements_i18n WHERE element_id = ? AND locale = ?",
                (element_id, locale),
            ).fetchone()
            if not row:
                return None
            return ElementLocaleRecord(
                id=row["id"], element_id=row["element_id"], locale=row["locale"], uri=row["uri"]
            )
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: ElementLocaleRecord) -> ElementLocaleRecord:
        conn = self._get_conn()
        try:
            try:
                if record.id is None:
                    cur = conn.execute(
                        "INSERT INTO elements_i18n (element_id, locale, uri) VALUES (?, ?, ?)",
                        (record.element_id, record.locale, record.uri),
                    )
                    record.id = cur.lastrowid
                else:
                    conn.execute(
                        "UPDATE elements_i18n SET element_id = ?, locale = ?, uri = ? WHERE id = ?",
                        (record.element_id, record.locale, record.uri, record.id),
                    )
            except sqlite3.IntegrityError as e:
                _raise_if_unique(e)
                raise
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()

    def uri_taken(self, uri: str, locale: str, exclude_element_id: int | None) -> bool:
        conn = self._get_conn()
        try:
            query = "SELECT COUNT(*) AS cnt FROM elements_i18n WHERE uri = ? AND locale = ?"
            params: list[Any] = [uri, locale]
            if exclude_element_id is not None:
                query += " AND element_id != ?"
                params.append(exclude_element_id)
            row = conn.execute(query, params).fetchone()
            return bool(row and row["cnt"])
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Entry records
# -----------------------------------------------------------------------------


class SQLiteEntryRepo(SQLiteRepoBase):
    def get(self, entry_id: int) -> EntryRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
            if not row:
                return None
            return EntryRecord(
                id=row["id"],
                section_id=row["section_id"],
                type_id=row["type_id"],
                author_id=row["author_id"],
                post_date=parse_dt(row["post_date"]),
                expiry_date=parse_dt(row["expiry_date"]),
            )
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: EntryRecord) -> EntryRecord:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO entries (id, section_id, type_id, author_id, post_date, expiry_date)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    section_id=excluded.section_id,
                    type_id=excluded.type_id,
                    author_id=excluded.author_id,
                    post_date=excluded.post_date,
                    expiry_date=excluded.expiry_date
                """,
                (
                    record.id,
                    record.section_id,
                    record.type_id,
                    record.author_id,
                    format_dt(record.post_date),
                    format_dt(record.expiry_date),
                ),
            )
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()


class SQLiteEntryLocaleRepo(SQLiteRepoBase):
    def get(self, entry_id: int, locale: str) -> EntryLocaleRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM entries_i18n WHERE entry_id = ? AND locale = ?",
                (entry_id, locale),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def first_locale(self, entry_id: int) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT locale FROM entries_i18n WHERE entry_id = ? ORDER BY id ASC LIMIT 1",
                (entry_id,),
            ).fetchone()
            return row["locale"] if row else None
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: EntryLocaleRecord) -> EntryLocaleRecord:
        conn = self._get_conn()
        try:
            try:
                if record.id is None:
                    cur = conn.execute(
                        "INSERT INTO entries_i18n (entry_id, section_id, locale, slug) "
                        "VALUES (?, ?, ?, ?)",
                        (record.entry_id, record.section_id, record.locale, record.slug),
                    )
                    record.id = cur.lastrowid
                else:
                    conn.execute(
                        "UPDATE entries_i18n SET entry_id = ?, section_id = ?, locale = ?, "
                        "slug = ? WHERE id = ?",
                        (record.entry_id, record.section_id, record.locale, record.slug, record.id),
                    )
            except sqlite3.IntegrityError as e:
                _raise_if_unique(e)
                raise
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()

    def slug_exists(
        self,
        section_id: int,
        locale: str,
        slug: str,
        exclude_entry_id: int | None = None,
    ) -> bool:
        conn = self._get_conn()
        try:
            query = (
                "SELECT COUNT(id) AS cnt FROM entries_i18n "
                "WHERE section_id = ? AND locale = ? AND slug = ?"
            )
            params: list[Any] = [section_id, locale, slug]
            if exclude_entry_id is not None:
                query += " AND entry_id != ?"
                params.append(exclude_entry_id)
            row = conn.execute(query, params).fetchone()
            return bool(row and row["cnt"])
        finally:
            if self._should_close():
                conn.close()

    def list_slugs(self, section_id: int, locale: str) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT slug FROM entries_i18n WHERE section_id = ? AND locale = ? ORDER BY id",
                (section_id, locale),
            ).fetchall()
            return [r["slug"] for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> EntryLocaleRecord:
        return EntryLocaleRecord(
            id=row["id"],
            entry_id=row["entry_id"],
            section_id=row["section_id"],
            locale=row["locale"],
            slug=row["slug"],
        )


class SQLiteContentRepo(SQLiteRepoBase):
    def get(self, element_id: int, locale: str) -> ContentRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM content WHERE element_id = ? AND locale = ?",
                (element_id, locale),
            ).fetchone()
            if not row:
                return None
            return ContentRecord(
                id=row["id"],
                element_id=row["element_id"],
                locale=row["locale"],
                title=row["title"],
                fields=json.loads(row["fields_json"]),
            )
        finally:
            if self._should_close():
                conn.close()

    def save(self, record: ContentRecord) -> ContentRecord:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO content (element_id, locale, title, fields_json)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(element_id, locale) DO UPDATE SET
                    title=excluded.title,
                    fields_json=excluded.fields_json
                """,
                (record.element_id, record.locale, record.title, json.dumps(record.fields)),
            )
            row = conn.execute(
                "SELECT id FROM content WHERE element_id = ? AND locale = ?",
                (record.element_id, record.locale),
            ).fetchone()
            record.id = row["id"] if row else None
            if self._should_close():
                conn.commit()
            return record
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Structure (nested set)
# -----------------------------------------------------------------------------


class SQLiteStructureRepo(SQLiteRepoBase):
    """Nested-set rows in structure_nodes, one tree per section."""

    def get_by_entry(self, entry_id: int) -> StructureNode | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM structure_nodes WHERE entry_id = ?", (entry_id,)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def get_root(self, section_id: int) -> StructureNode | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM structure_nodes WHERE section_id = ? AND entry_id IS NULL",
                (section_id,),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def create_root(self, section_id: int) -> StructureNode:
        return self.insert(StructureNode(section_id=section_id, lft=1, rgt=2, depth=0))

    def insert(self, node: StructureNode) -> StructureNode:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT INTO structure_nodes (section_id, entry_id, lft, rgt, depth) "
                "VALUES (?, ?, ?, ?, ?)",
                (node.section_id, node.entry_id, node.lft, node.rgt, node.depth),
            )
            if self._should_close():
                conn.commit()
            return node.model_copy(update={"id": cur.lastrowid})
        finally:
            if self._should_close():
                conn.close()

    def shift(self, section_id: int, first: int, delta: int) -> None:
        conn = self._get_conn()
        try:
            # lft and rgt change in one statement so CHECK (lft < rgt) holds per row
            conn.execute(
                """
                UPDATE structure_nodes SET
                    lft = CASE WHEN lft >= ? THEN lft + ? ELSE lft END,
                    rgt = CASE WHEN rgt >= ? THEN rgt + ? ELSE rgt END
                WHERE section_id = ? AND rgt >= ?
                """,
                (first, delta, first, delta, section_id, first),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def shift_subtree(
        self, section_id: int, lft: int, rgt: int, delta: int, depth_delta: int
    ) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE structure_nodes SET lft = lft + ?, rgt = rgt + ?, depth = depth + ? "
                "WHERE section_id = ? AND lft >= ? AND rgt <= ?",
                (delta, delta, depth_delta, section_id, lft, rgt),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def list_between(
        self,
        section_id: int,
        *,
        ancestors_of: StructureNode | None = None,
        descendants_of: StructureNode | None = None,
        min_depth: int | None = None,
        max_depth: int | None = None,
    ) -> list[StructureNode]:
        query = "SELECT * FROM structure_nodes WHERE section_id = ?"
        params: list[Any] = [section_id]
        if ancestors_of is not None:
            query += " AND lft < ? AND rgt > ?"
            params += [ancestors_of.lft, ancestors_of.rgt]
        if descendants_of is not None:
            query += " AND lft > ? AND rgt < ?"
            params += [descendants_of.lft, descendants_of.rgt]
        if min_depth is not None:
            query += " AND depth >= ?"
            params.append(min_depth)
        if max_depth is not None:
            query += " AND depth <= ?"
            params.append(max_depth)
        query += " ORDER BY lft ASC"

        conn = self._get_conn()
        try:
            return [self._map_row(r) for r in conn.execute(query, params).fetchall()]
        finally:
            if self._should_close():
                conn.close()

    def parent_of(self, node: StructureNode) -> StructureNode | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM structure_nodes WHERE section_id = ? AND lft < ? AND rgt > ? "
                "ORDER BY lft DESC LIMIT 1",
                (node.section_id, node.lft, node.rgt),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_section(self, section_id: int) -> list[StructureNode]:
        return self.list_between(section_id)

    def _map_row(self, row: dict[str, Any]) -> StructureNode:
        return StructureNode(
            id=row["id"],
            section_id=row["section_id"],
            entry_id=row["entry_id"],
            lft=row["lft"],
            rgt=row["rgt"],
            depth=row["depth"],
        )


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Provides transaction management and access to the entry repositories.
    Uses a shared connection for all operations within a transaction.
    Writers take the database write lock at __enter__ (BEGIN IMMEDIATE) so
    nested-set recomputation is never interleaved with another writer.
    """

    def __init__(self, db_path: str, *, immediate: bool = True, timeout: float = 5.0):
        self.db_path = db_path
        self.immediate = immediate
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None

        # Lazy-initialized repositories
        self._elements: SQLiteElementRepo | None = None
        self._element_locales: SQLiteElementLocaleRepo | None = None
        self._entries: SQLiteEntryRepo | None = None
        self._entry_locales: SQLiteEntryLocaleRepo | None = None
        self._content: SQLiteContentRepo | None = None
        self._structure: SQLiteStructureRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        self._conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        self._conn.row_factory = dict_factory
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("BEGIN IMMEDIATE" if self.immediate else "BEGIN")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._conn:
            if self._conn.in_transaction:
                self._conn.rollback()
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn:
            self._conn.commit()

    def rollback(self) -> None:
        if self._conn:
            self._conn.rollback()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Unit of work used outside of a 'with' block")
        return self._conn

    @property
    def elements(self) -> SQLiteElementRepo:
        if self._elements is None:
            self._elements = SQLiteElementRepo(self.db_path, self._connection())
        return self._elements

    @property
    def element_locales(self) -> SQLiteElementLocaleRepo:
        if self._element_locales is None:
            self._element_locales = SQLiteElementLocaleRepo(self.db_path, self._connection())
        return self._element_locales

    @property
    def entries(self) -> SQLiteEntryRepo:
        if self._entries is None:
            self._entries = SQLiteEntryRepo(self.db_path, self._connection())
        return self._entries

    @property
    def entry_locales(self) -> SQLiteEntryLocaleRepo:
        if self._entry_locales is None:
            self._entry_locales = SQLiteEntryLocaleRepo(self.db_path, self._connection())
        return self._entry_locales

    @property
    def content(self) -> SQLiteContentRepo:
        if self._content is None:
            self._content = SQLiteContentRepo(self.db_path, self._connection())
        return self._content

    @property
    def structure(self) -> SQLiteStructureRepo:
        if self._structure is None:
            self._structure = SQLiteStructureRepo(self.db_path, self._connection())
        return self._structure


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------


class SQLiteSectionCatalog(SQLiteRepoBase):
    """Section storage. Structure sections get their synthetic root on save."""

    def get_section_by_id(self, section_id: int) -> Section | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM sections WHERE id = ?", (section_id,)).fetchone()
            return self._map_row(conn, row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def get_section_by_handle(self, handle: str) -> Section | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM sections WHERE handle = ?", (handle,)).fetchone()
            return self._map_row(conn, row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def save_section(self, section: Section) -> Section:
        conn = self._get_conn()
        try:
            if section.id is None:
                cur = conn.execute(
                    "INSERT INTO sections (name, handle, type, has_urls, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        section.name,
                        section.handle,
                        section.type,
                        section.has_urls,
                        datetime.now(UTC).isoformat(),
                    ),
                )
                section.id = cur.lastrowid
            else:
                conn.execute(
                    "UPDATE sections SET name = ?, handle = ?, type = ?, has_urls = ? WHERE id = ?",
                    (section.name, section.handle, section.type, section.has_urls, section.id),
                )

            conn.execute("DELETE FROM sections_i18n WHERE section_id = ?", (section.id,))
            for locale, config in section.locales.items():
                conn.execute(
                    "INSERT INTO sections_i18n "
                    "(section_id, locale, url_format, nested_url, nested_url_format) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        section.id,
                        locale,
                        config.url_format,
                        config.nested_url,
                        config.nested_url_format,
                    ),
                )

            if section.is_structure:
                assert section.id is not None
                structure = SQLiteStructureRepo(self.db_path, conn)
                if structure.get_root(section.id) is None:
                    structure.create_root(section.id)
                    logger.info("created structure root for section %s", section.handle)

            if self._should_close():
                conn.commit()
            return section
        except Exception:
            if self._should_close():
                conn.rollback()
            raise
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, conn: sqlite3.Connection, row: dict[str, Any]) -> Section:
        locale_rows = conn.execute(
            "SELECT * FROM sections_i18n WHERE section_id = ? ORDER BY id", (row["id"],)
        ).fetchall()
        return Section(
            id=row["id"],
            name=row["name"],
            handle=row["handle"],
            type=row["type"],
            has_urls=bool(row["has_urls"]),
            locales={
                r["locale"]: SectionLocale(
                    locale=r["locale"],
                    url_format=r["url_format"],
                    nested_url=r["nested_url"],
                    nested_url_format=r["nested_url_format"],
                )
                for r in locale_rows
            },
        )


# -----------------------------------------------------------------------------
# Entry types
# -----------------------------------------------------------------------------


class SQLiteEntryTypeRepo(SQLiteRepoBase):
    def get_by_id(self, type_id: int) -> EntryType | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM entry_types WHERE id = ?", (type_id,)).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_for_section(self, section_id: int) -> list[EntryType]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM entry_types WHERE section_id = ? ORDER BY position, id",
                (section_id,),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def get_entry_type_for(self, entry: Entry) -> EntryType | None:
        if entry.section_id is None:
            return None
        types = self.list_for_section(entry.section_id)
        for entry_type in types:
            if entry_type.id == entry.type_id:
                return entry_type
        return types[0] if types else None

    def get_field_layout(self, entry_type: EntryType) -> FieldLayout:
        return entry_type.field_layout

    def save_entry_type(self, entry_type: EntryType, position: int = 0) -> EntryType:
        conn = self._get_conn()
        try:
            params = (
                entry_type.section_id,
                entry_type.name,
                entry_type.handle,
                entry_type.has_title_field,
                entry_type.field_layout.model_dump_json(),
                position,
            )
            if entry_type.id is None:
                cur = conn.execute(
                    "INSERT INTO entry_types (section_id, name, handle, has_title_field, "
                    "field_layout_json, position) VALUES (?, ?, ?, ?, ?, ?)",
                    params,
                )
                entry_type.id = cur.lastrowid
            else:
                conn.execute(
                    "UPDATE entry_types SET section_id = ?, name = ?, handle = ?, "
                    "has_title_field = ?, field_layout_json = ?, position = ? WHERE id = ?",
                    (*params, entry_type.id),
                )
            if self._should_close():
                conn.commit()
            return entry_type
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> EntryType:
        return EntryType(
            id=row["id"],
            section_id=row["section_id"],
            name=row["name"],
            handle=row["handle"],
            has_title_field=bool(row["has_title_field"]),
            field_layout=FieldLayout.model_validate_json(row["field_layout_json"]),
        )


# -----------------------------------------------------------------------------
# Revisions
# -----------------------------------------------------------------------------


class SQLiteRevisionStore(SQLiteRepoBase):
    """Append-only entry snapshots, numbered per (entry, locale)."""

    def save_version(self, entry: Entry) -> None:
        if entry.id is None:
            return
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT COALESCE(MAX(num), 0) AS last FROM entry_versions "
                "WHERE entry_id = ? AND locale = ?",
                (entry.id, entry.locale),
            ).fetchone()
            num = (row["last"] if row else 0) + 1
            conn.execute(
                "INSERT INTO entry_versions (entry_id, locale, num, snapshot_json, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.locale,
                    num,
                    entry.model_dump_json(exclude={"errors"}),
                    datetime.now(UTC).isoformat(),
                ),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def list_versions(self, entry_id: int, locale: str) -> list[EntryVersion]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM entry_versions WHERE entry_id = ? AND locale = ? ORDER BY num",
                (entry_id, locale),
            ).fetchall()
            return [
                EntryVersion(
                    id=r["id"],
                    entry_id=r["entry_id"],
                    locale=r["locale"],
                    num=r["num"],
                    snapshot_json=r["snapshot_json"],
                    created_at=datetime.fromisoformat(r["created_at"]),
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()
