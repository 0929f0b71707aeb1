"""
Entries component - transactional save pipeline for hierarchical, localized entries.
"""

from ._content import FieldLayoutContentService
from ._events import EntryEventBus
from ._impl import DEFAULT_CONFIG, EntriesConfig, EntryReader, EntryService, load_entry
from ._locale import LocaleResolver
from ._slug import SlugConfig, SlugGenerator, normalize_slug
from ._tree import TreePositionManager, verify_nested_set
from .component import (
    run,
    run_ancestors,
    run_descendants,
    run_get,
    run_move_after,
    run_move_under,
    run_save,
)
from .models import (
    EntryError,
    EntryListOutput,
    EntryOutput,
    GetEntryInput,
    InvalidConfigurationError,
    InvalidMoveError,
    LocaleNotEnabledError,
    MoveAfterInput,
    MoveOutput,
    MoveUnderInput,
    NotFoundError,
    RootMissingError,
    SaveEntryInput,
    SaveEntryOutput,
    SlugConflictError,
    TreeQueryInput,
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

__all__ = [
    # Entry points
    "run",
    "run_ancestors",
    "run_descendants",
    "run_get",
    "run_move_after",
    "run_move_under",
    "run_save",
    # Services
    "DEFAULT_CONFIG",
    "EntriesConfig",
    "EntryEventBus",
    "EntryReader",
    "EntryService",
    "FieldLayoutContentService",
    "LocaleResolver",
    "SlugConfig",
    "SlugGenerator",
    "TreePositionManager",
    "load_entry",
    "normalize_slug",
    "verify_nested_set",
    # Errors
    "EntryError",
    "InvalidConfigurationError",
    "InvalidMoveError",
    "LocaleNotEnabledError",
    "NotFoundError",
    "RootMissingError",
    "SlugConflictError",
    # Models
    "EntryListOutput",
    "EntryOutput",
    "GetEntryInput",
    "MoveAfterInput",
    "MoveOutput",
    "MoveUnderInput",
    "SaveEntryInput",
    "SaveEntryOutput",
    "TreeQueryInput",
    # Ports
    "ContentServicePort",
    "EntryTypePort",
    "RevisionStorePort",
    "SearchIndexPort",
    "SectionCatalogPort",
    "TimePort",
    "UnitOfWorkFactory",
    "UriRendererPort",
]
