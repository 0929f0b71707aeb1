# structured-entries: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.db import (
    ContentRepoPort,
    ElementLocaleRepoPort,
    ElementRepoPort,
    EntryLocaleRepoPort,
    EntryRecordRepoPort,
    StructureRepoPort,
    UniqueViolationError,
    UnitOfWorkPort,
)

__all__ = [
    # Storage
    "ContentRepoPort",
    "ElementLocaleRepoPort",
    "ElementRepoPort",
    "EntryLocaleRepoPort",
    "EntryRecordRepoPort",
    "StructureRepoPort",
    "UniqueViolationError",
    "UnitOfWorkPort",
]
