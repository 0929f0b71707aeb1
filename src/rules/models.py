from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class EntriesRules(BaseModel):
    structures_enabled: bool = True
    preserve_existing_slug: bool = True


class SlugRules(BaseModel):
    max_sequential_attempts: int = Field(default=1000, ge=1)
    random_fallback: bool = True
    random_suffix_length: int = Field(default=6, ge=4, le=32)


class DatabaseRules(BaseModel):
    path: str = "data/entries.db"
    migrations_dir: str | None = None


class LoggingRules(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class Rules(BaseModel):
    project: ProjectRules
    entries: EntriesRules = Field(default_factory=EntriesRules)
    slugs: SlugRules = Field(default_factory=SlugRules)
    database: DatabaseRules = Field(default_factory=DatabaseRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)
