"""
EntryService - transactional save pipeline for entries.

Saving an entry stages and validates every record it spans (element,
element locale, entry, entry locale, content), then writes them in one unit
of work. Validation never short-circuits: every validator runs so the
caller sees all problems at once, and nothing is written when any fails.

Section-type rules:
- single: author and expiry are cleared, the entry is always enabled,
  and the URI is the section's fixed url_format
- channel: URI comes from nested_url when the section has URLs and the
  entry is enabled, otherwise it is None
- structure: as channel, but entries with a parent use nested_url_format,
  and (when structures are enabled) the entry owns a tree position

Fatal problems (missing section / parent / entry type, unsupported locale,
bad URL format) raise EntryError subclasses instead of being collected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.core.entities import (
    ROOT_PARENT_ID,
    ContentRecord,
    ElementLocaleRecord,
    ElementRecord,
    Entry,
    EntryLocaleRecord,
    EntryRecord,
    EntrySaved,
    EntryValidationError,
    Section,
    StructureNode,
)
from src.core.ports.db import UniqueViolationError, UnitOfWorkPort
from src.rules.models import Rules

from ._events import EntryEventBus
from ._locale import LocaleResolver
from ._slug import SlugConfig, SlugGenerator
from ._tree import TreePositionManager
from .models import (
    InvalidConfigurationError,
    InvalidMoveError,
    NotFoundError,
    SlugConflictError,
)
from .ports import (
    ContentServicePort,
    EntryTypePort,
    RevisionStorePort,
    SearchIndexPort,
    SectionCatalogPort,
    TimePort,
    UnitOfWorkFactory,
    UriRendererPort,
)

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 255
MAX_URI_LENGTH = 255


@dataclass(frozen=True)
class EntriesConfig:
    """Capability flags, resolved once when services are built."""

    structures_enabled: bool = True
    preserve_existing_slug: bool = True
    slug: SlugConfig = field(default_factory=SlugConfig)

    @classmethod
    def from_rules(cls, rules: Rules) -> EntriesConfig:
        return cls(
            structures_enabled=rules.entries.structures_enabled,
            preserve_existing_slug=rules.entries.preserve_existing_slug,
            slug=SlugConfig(
                max_sequential_attempts=rules.slugs.max_sequential_attempts,
                random_fallback=rules.slugs.random_fallback,
                random_suffix_length=rules.slugs.random_suffix_length,
            ),
        )


DEFAULT_CONFIG = EntriesConfig()


# --- Record validation ---


def _as_utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def validate_entry_record(record: EntryRecord) -> list[EntryValidationError]:
    errors: list[EntryValidationError] = []

    if record.section_id is None:
        errors.append(
            EntryValidationError(
                code="section_required", message="Section is required", field="section_id"
            )
        )

    if (
        record.post_date
        and record.expiry_date
        and _as_utc(record.expiry_date) <= _as_utc(record.post_date)
    ):
        errors.append(
            EntryValidationError(
                code="expiry_before_post",
                message="Expiry Date must be after the Post Date",
                field="expiry_date",
            )
        )

    return errors


def validate_element_record(record: ElementRecord) -> list[EntryValidationError]:
    if not record.type:
        return [
            EntryValidationError(code="type_required", message="Type is required", field="type")
        ]
    return []


def validate_entry_locale_record(record: EntryLocaleRecord) -> list[EntryValidationError]:
    errors: list[EntryValidationError] = []

    if not record.locale:
        errors.append(
            EntryValidationError(code="locale_required", message="Locale is required", field="locale")
        )

    if len(record.slug) > MAX_SLUG_LENGTH:
        errors.append(
            EntryValidationError(
                code="slug_too_long",
                message=f"Slug should contain at most {MAX_SLUG_LENGTH} characters",
                field="slug",
            )
        )

    return errors


def validate_element_locale_record(
    record: ElementLocaleRecord, uow: UnitOfWorkPort
) -> list[EntryValidationError]:
    errors: list[EntryValidationError] = []
    if record.uri is None:
        return errors

    if len(record.uri) > MAX_URI_LENGTH:
        errors.append(
            EntryValidationError(
                code="uri_too_long",
                message=f"URI should contain at most {MAX_URI_LENGTH} characters",
                field="uri",
            )
        )
    elif uow.element_locales.uri_taken(record.uri, record.locale, record.element_id):
        errors.append(
            EntryValidationError(
                code="uri_taken",
                message=f"URI '{record.uri}' has already been taken",
                field="uri",
            )
        )

    return errors


# --- Loading ---


def stored_parent_id(uow: UnitOfWorkPort, node: StructureNode) -> int:
    parent = uow.structure.parent_of(node)
    if parent is None or parent.is_root or parent.entry_id is None:
        return ROOT_PARENT_ID
    return parent.entry_id


def load_entry(uow: UnitOfWorkPort, entry_id: int, locale: str | None = None) -> Entry | None:
    """Assemble an Entry from its records, regardless of enabled state."""
    record = uow.entries.get(entry_id)
    element = uow.elements.get(entry_id)
    if record is None or element is None:
        return None

    if locale is None:
        locale = uow.entry_locales.first_locale(entry_id)
        if locale is None:
            return None

    entry_locale = uow.entry_locales.get(entry_id, locale)
    if entry_locale is None:
        return None

    element_locale = uow.element_locales.get(entry_id, locale)
    content = uow.content.get(entry_id, locale)
    node = uow.structure.get_by_entry(entry_id)

    return Entry(
        id=entry_id,
        section_id=record.section_id,
        type_id=record.type_id,
        locale=locale,
        author_id=record.author_id,
        post_date=record.post_date,
        expiry_date=record.expiry_date,
        enabled=element.enabled,
        parent_id=stored_parent_id(uow, node) if node else None,
        lft=node.lft if node else None,
        rgt=node.rgt if node else None,
        depth=node.depth if node else None,
        slug=entry_locale.slug,
        uri=element_locale.uri if element_locale else None,
        title=(content.title or "") if content else "",
        fields=dict(content.fields) if content else {},
    )


def uri_context(entry: Entry, section: Section, parent: Entry | None) -> dict[str, Any]:
    """Values available to URL format templates, e.g. {slug} or {parent.uri}."""
    context = entry.model_dump(exclude={"errors"})
    context["section"] = {"id": section.id, "handle": section.handle, "name": section.name}
    context["parent"] = parent.model_dump(exclude={"errors"}) if parent else None
    return context


# --- Save pipeline ---


class EntryService:
    """
    Orchestrates entry saves and structural moves.

    Collaborators are injected as ports; capability flags come from
    EntriesConfig and are never looked up at call time.
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        sections: SectionCatalogPort,
        entry_types: EntryTypePort,
        content: ContentServicePort,
        renderer: UriRendererPort,
        search: SearchIndexPort,
        time: TimePort,
        revisions: RevisionStorePort | None = None,
        events: EntryEventBus | None = None,
        config: EntriesConfig | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._sections = sections
        self._entry_types = entry_types
        self._content = content
        self._renderer = renderer
        self._search = search
        self._time = time
        self._revisions = revisions
        self._config = config or DEFAULT_CONFIG
        self.events = events or EntryEventBus()
        self._locales = LocaleResolver()

    @property
    def config(self) -> EntriesConfig:
        return self._config

    def save_entry(
        self, entry: Entry, *, preserve_existing_slug: bool | None = None
    ) -> tuple[bool, Entry]:
        """
        Validate and persist an entry.

        Returns (True, entry) on success with id, slug, uri and tree fields
        filled in. Returns (False, entry) with entry.errors populated when
        validation fails; nothing is written in that case.

        Raises:
            NotFoundError: unknown entry, section, parent or entry type
            LocaleNotEnabledError: section does not support entry.locale
            InvalidConfigurationError: section URL format lacks {slug}
            SlugConflictError: a concurrent save claimed the slug or URI first
        """
        if preserve_existing_slug is None:
            preserve_existing_slug = self._config.preserve_existing_slug

        entry.clear_errors()
        is_new_entry = entry.id is None

        with self._uow_factory() as uow:
            tree = TreePositionManager(uow.structure)

            # Entry data
            if is_new_entry:
                entry_record = EntryRecord()
                element_record = ElementRecord()
                current_node = None
            else:
                assert entry.id is not None
                found_record = uow.entries.get(entry.id)
                found_element = uow.elements.get(entry.id)
                if found_record is None or found_element is None:
                    raise NotFoundError("entry", entry.id)
                entry_record, element_record = found_record, found_element
                current_node = tree.node_for(entry.id)

                # Front-end edits may omit the section
                if entry.section_id is None:
                    entry.section_id = entry_record.section_id

            section = (
                self._sections.get_section_by_id(entry.section_id)
                if entry.section_id is not None
                else None
            )
            if section is None:
                raise NotFoundError("section", entry.section_id)

            self._locales.resolve(section, entry.locale)

            # Parent
            uses_structure = self._config.structures_enabled and section.is_structure
            if uses_structure and entry.parent_id is None:
                entry.parent_id = (
                    stored_parent_id(uow, current_node) if current_node else ROOT_PARENT_ID
                )

            has_new_parent = uses_structure and self._has_new_parent(uow, entry, current_node)

            parent_entry: Entry | None = None
            if section.is_structure and entry.parent_id not in (None, ROOT_PARENT_ID):
                assert entry.parent_id is not None
                # A parent not yet translated into this locale still provides its URI
                parent_entry = load_entry(uow, entry.parent_id, entry.locale) or load_entry(
                    uow, entry.parent_id
                )
                if parent_entry is None and has_new_parent:
                    raise NotFoundError("entry", entry.parent_id)

            # Section type rules
            entry_record.section_id = entry.section_id
            if section.is_single:
                entry.author_id = None
                entry.expiry_date = None
                entry.enabled = True

            entry_record.author_id = entry.author_id
            entry_record.expiry_date = entry.expiry_date
            element_record.enabled = entry.enabled

            if entry.enabled and entry.post_date is None:
                entry.post_date = self._time.now_utc()
            entry_record.post_date = entry.post_date

            entry.add_errors(validate_entry_record(entry_record))
            entry.add_errors(validate_element_record(element_record))

            # Entry locale data
            entry_locale = None
            if not is_new_entry:
                assert entry.id is not None
                entry_locale = uow.entry_locales.get(entry.id, entry.locale)
                if entry_locale and entry.slug is None and entry_locale.slug and preserve_existing_slug:
                    entry.slug = entry_locale.slug

            if entry_locale is None:
                entry_locale = EntryLocaleRecord(section_id=entry.section_id, locale=entry.locale)
            entry_locale.section_id = entry.section_id

            if entry_locale.id is None or entry.slug != entry_locale.slug:
                entry.slug = SlugGenerator(uow.entry_locales, self._config.slug).generate(entry)
                entry_locale.slug = entry.slug

            entry.add_errors(validate_entry_locale_record(entry_locale))

            # Element locale data
            element_locale = None
            if not is_new_entry:
                assert entry.id is not None
                element_locale = uow.element_locales.get(entry.id, entry.locale)
            if element_locale is None:
                element_locale = ElementLocaleRecord(element_id=entry.id, locale=entry.locale)

            entry.uri = element_locale.uri = self._build_uri(entry, section, parent_entry)
            entry.add_errors(validate_element_locale_record(element_locale, uow))

            # Entry content
            entry_type = self._entry_types.get_entry_type_for(entry)
            if entry_type is None:
                raise NotFoundError("entry type")
            entry.type_id = entry_record.type_id = entry_type.id

            layout = self._entry_types.get_field_layout(entry_type)
            content = self._content.prepare_for_save(entry, layout)
            entry.add_errors(self._content.validate(content, layout, entry_type))

            if entry.has_errors():
                uow.rollback()
                logger.info(
                    "entry %s not saved: %s",
                    entry.id if entry.id is not None else "(new)",
                    ", ".join(e.code for e in entry.errors),
                )
                return False, entry

            try:
                self._persist(
                    uow,
                    tree,
                    entry,
                    section,
                    has_new_parent=has_new_parent,
                    current_node=current_node,
                    entry_record=entry_record,
                    element_record=element_record,
                    entry_locale=entry_locale,
                    element_locale=element_locale,
                    content=content,
                )
            except UniqueViolationError as e:
                self._forget_new_entry(entry, is_new_entry)
                raise SlugConflictError(
                    f"Slug '{entry.slug}' or URI '{entry.uri}' was claimed concurrently; retry"
                ) from e
            except Exception:
                self._forget_new_entry(entry, is_new_entry)
                raise

        self._after_save(entry, content, is_new_entry)
        return True, entry

    def _has_new_parent(
        self, uow: UnitOfWorkPort, entry: Entry, current_node: StructureNode | None
    ) -> bool:
        if entry.parent_id is None:
            return False
        if current_node is None:
            return True
        # Already at the top level; avoid a root-to-root reparent
        if entry.parent_id == ROOT_PARENT_ID and current_node.depth == 1:
            return False
        return stored_parent_id(uow, current_node) != entry.parent_id

    def _build_uri(self, entry: Entry, section: Section, parent: Entry | None) -> str | None:
        if section.is_single:
            url_format = self._locales.uri_format_for(section, entry.locale, has_parent=False)
            if not url_format:
                return None
            return self._renderer.render_uri_template(url_format, uri_context(entry, section, None))

        if section.has_urls and entry.enabled:
            has_parent = entry.parent_id not in (None, ROOT_PARENT_ID)
            url_format = self._locales.require_slug_placeholder(
                section, self._locales.uri_format_for(section, entry.locale, has_parent)
            )
            return self._renderer.render_uri_template(
                url_format, uri_context(entry, section, parent)
            )

        return None

    def _persist(
        self,
        uow: UnitOfWorkPort,
        tree: TreePositionManager,
        entry: Entry,
        section: Section,
        *,
        has_new_parent: bool,
        current_node: StructureNode | None,
        entry_record: EntryRecord,
        element_record: ElementRecord,
        entry_locale: EntryLocaleRecord,
        element_locale: ElementLocaleRecord,
        content: ContentRecord,
    ) -> None:
        now = self._time.now_utc()
        if element_record.date_created is None:
            element_record.date_created = now
        element_record.date_updated = now

        # The element row assigns the id everything else hangs off
        element_record = uow.elements.save(element_record)
        if entry.id is None:
            entry.id = element_record.id
        entry_record.id = entry.id
        uow.entries.save(entry_record)

        if has_new_parent:
            assert section.id is not None and entry.id is not None
            if entry.parent_id == ROOT_PARENT_ID:
                target = tree.root_for(section.id)
            else:
                assert entry.parent_id is not None
                found = tree.node_for(entry.parent_id)
                if found is None:
                    raise NotFoundError("entry", entry.parent_id)
                target = found

            if current_node is None:
                node = tree.append_child(
                    StructureNode(section_id=section.id, entry_id=entry.id), target
                )
            else:
                node = tree.move_as_last(current_node, target)

            entry.lft, entry.rgt, entry.depth = node.lft, node.rgt, node.depth
        elif current_node is not None:
            entry.lft, entry.rgt, entry.depth = current_node.lft, current_node.rgt, current_node.depth

        entry_locale.entry_id = entry.id
        element_locale.element_id = entry.id
        content.element_id = entry.id

        uow.entry_locales.save(entry_locale)
        uow.element_locales.save(element_locale)
        uow.content.save(content)
        uow.commit()

    def _forget_new_entry(self, entry: Entry, is_new_entry: bool) -> None:
        # The transaction rolled back, so ids handed out inside it are void
        if is_new_entry:
            entry.id = None
            entry.lft = entry.rgt = entry.depth = None

    def _after_save(self, entry: Entry, content: ContentRecord, is_new_entry: bool) -> None:
        try:
            self._search.index_attributes(entry, entry.locale)
        except Exception:
            logger.exception("search indexing failed for entry %s", entry.id)

        # The save has committed; later failures are logged, never raised
        if self._config.structures_enabled and self._revisions is not None:
            try:
                self._revisions.save_version(entry)
            except Exception:
                logger.exception("revision snapshot failed for entry %s", entry.id)

        try:
            self._content.post_save_hooks(entry, content)
        except Exception:
            logger.exception("post-save hooks failed for entry %s", entry.id)

        self.events.emit(EntrySaved(entry=entry, is_new_entry=is_new_entry))
        logger.info("saved entry id=%s locale=%s new=%s", entry.id, entry.locale, is_new_entry)

    # --- Structure moves ---

    def move_entry_under(
        self, entry: Entry, parent: Entry | None = None, *, prepend: bool = False
    ) -> Entry:
        """Make entry the last (or first, with prepend) child of parent; None = top level."""
        self._require_structures()
        if entry.id is None:
            raise NotFoundError("entry", None)
        if parent is not None and parent.section_id != entry.section_id:
            raise InvalidMoveError("entries belong to different sections")

        with self._uow_factory() as uow:
            tree = TreePositionManager(uow.structure)
            node = tree.node_for(entry.id)
            if node is None:
                raise NotFoundError("entry", entry.id)

            if parent is None:
                target = tree.root_for(node.section_id)
            else:
                assert parent.id is not None
                found = tree.node_for(parent.id)
                if found is None:
                    raise NotFoundError("entry", parent.id)
                target = found

            if prepend:
                moved = tree.move_as_first(node, target)
            else:
                moved = tree.move_as_last(node, target)
            uow.commit()

        entry.parent_id = parent.id if parent is not None else ROOT_PARENT_ID
        entry.lft, entry.rgt, entry.depth = moved.lft, moved.rgt, moved.depth
        return entry

    def move_entry_after(self, entry: Entry, prev_entry: Entry) -> Entry:
        """Place entry immediately after prev_entry, at prev_entry's level."""
        self._require_structures()
        if entry.id is None:
            raise NotFoundError("entry", None)
        if prev_entry.id is None:
            raise NotFoundError("entry", None)

        with self._uow_factory() as uow:
            tree = TreePositionManager(uow.structure)
            node = tree.node_for(entry.id)
            if node is None:
                raise NotFoundError("entry", entry.id)
            prev_node = tree.node_for(prev_entry.id)
            if prev_node is None:
                raise NotFoundError("entry", prev_entry.id)

            moved = tree.move_after(node, prev_node)
            entry.parent_id = stored_parent_id(uow, moved)
            uow.commit()

        entry.lft, entry.rgt, entry.depth = moved.lft, moved.rgt, moved.depth
        return entry

    def _require_structures(self) -> None:
        if not self._config.structures_enabled:
            raise InvalidConfigurationError("Structure editing is not enabled")


# --- Reader ---


class EntryReader:
    """Point lookups and tree queries; ignores enabled/publish state."""

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        sections: SectionCatalogPort,
        config: EntriesConfig | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._sections = sections
        self._config = config or DEFAULT_CONFIG

    def get_by_id(self, entry_id: int, locale: str | None = None) -> Entry | None:
        with self._uow_factory() as uow:
            return load_entry(uow, entry_id, locale)

    def ancestors(self, entry: Entry, max_delta: int | None = None) -> list[Entry]:
        if not self._tree_enabled(entry):
            return []
        return self._related(entry, max_delta, ancestors=True)

    def descendants(self, entry: Entry, max_delta: int | None = None) -> list[Entry]:
        if not self._tree_enabled(entry):
            return []
        return self._related(entry, max_delta, ancestors=False)

    def _tree_enabled(self, entry: Entry) -> bool:
        if not self._config.structures_enabled or entry.id is None or entry.section_id is None:
            return False
        section = self._sections.get_section_by_id(entry.section_id)
        return section is not None and section.is_structure

    def _related(self, entry: Entry, max_delta: int | None, *, ancestors: bool) -> list[Entry]:
        assert entry.id is not None
        with self._uow_factory() as uow:
            tree = TreePositionManager(uow.structure)
            node = tree.node_for(entry.id)
            if node is None:
                return []
            nodes = tree.ancestors(node, max_delta) if ancestors else tree.descendants(node, max_delta)
            found = (load_entry(uow, n.entry_id, entry.locale) for n in nodes if n.entry_id)
            return [e for e in found if e is not None]
