import logging
import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.app_shell.context import ServiceContext
from src.components.entries import EntryReader, EntryService
from src.rules.loader import DEFAULT_RULES_PATH, load_rules
from src.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(os.environ.get("ENTRIES_RULES_PATH", str(DEFAULT_RULES_PATH)))
        self.data_dir = os.environ.get("ENTRIES_DATA_DIR")

    def db_path(self, rules: Rules) -> str:
        if self.data_dir:
            return f"{self.data_dir}/entries.db"
        return rules.database.path


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Services ---
@lru_cache
def get_context() -> ServiceContext:
    rules = get_rules()
    db_path = get_settings().db_path(rules)
    ctx = ServiceContext.create(db_path, rules)
    applied = ctx.migrate()
    if applied:
        logger.info("applied migrations: %s", ", ".join(applied))
    return ctx


def get_entry_service(ctx: ServiceContext = Depends(get_context)) -> EntryService:
    return ctx.entry_service


def get_entry_reader(ctx: ServiceContext = Depends(get_context)) -> EntryReader:
    return ctx.entry_reader
