# gtfs_loader/setup/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for loader configuration.

Defines the structured settings for a load run, with defaults, type
annotations and descriptions. Values can come from the model defaults,
environment variables, a YAML file or the command line; see config_loader.
"""

import codecs
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gtfs_loader.processors.pipeline_definitions import (
    DEFAULT_SKIPPED_TABLES,
    DEFAULT_TABLE_FILE_EXTENSION,
)

# --- Default Static Values (can be overridden by config file/env/cli) ---
FEEDS_ROOT_DEFAULT: Path = Path("feeds")
DATABASE_PATH_DEFAULT: Path = Path("feeds.sqlite")
SCHEMA_PATH_DEFAULT: Path = (
    Path(__file__).resolve().parent.parent / "schema" / "gtfs_structure.sql"
)
ENCODING_DEFAULT: str = "utf-8-sig"
LOG_LEVEL_DEFAULT: str = "INFO"

PGHOST_DEFAULT: str = "127.0.0.1"
PGPORT_DEFAULT: int = 5432
PGDATABASE_DEFAULT: str = "gtfs"
PGUSER_DEFAULT: str = "gtfsuser"
PGPASSWORD_DEFAULT: str = "yourStrongPasswordHere"


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""
    model_config = SettingsConfigDict(
        env_prefix='PG_',
        extra='ignore'
    )

    host: str = Field(default=PGHOST_DEFAULT, description="PostgreSQL host.")
    port: int = Field(default=PGPORT_DEFAULT, description="PostgreSQL port.")
    database: str = Field(default=PGDATABASE_DEFAULT, description="PostgreSQL database name.")
    user: str = Field(default=PGUSER_DEFAULT, description="PostgreSQL username.")
    password: str = Field(default=PGPASSWORD_DEFAULT, description="PostgreSQL password.", exclude=True)


class LoaderSettings(BaseSettings):
    """Settings for one load run."""
    model_config = SettingsConfigDict(
        env_prefix='GTFS_LOADER_',
        extra='ignore'
    )

    feeds_root: Path = Field(default=FEEDS_ROOT_DEFAULT,
                             description="Directory holding one sub-directory per feed.")
    schema_path: Path = Field(default=SCHEMA_PATH_DEFAULT,
                              description="SQL file with the schema DDL, applied once before loading.")
    database_path: Path = Field(default=DATABASE_PATH_DEFAULT,
                                description="SQLite file: snapshot destination, or the live database in live mode.")

    backend: Literal["sqlite", "postgres"] = Field(default="sqlite", description="Destination store.")
    output_mode: Literal["snapshot", "live"] = Field(
        default="snapshot",
        description="snapshot: load into memory and write a fresh file at the end; live: write to the store directly."
    )
    transaction_scope: Literal["feed", "session"] = Field(
        default="feed",
        description="feed: one transaction per feed; session: one transaction around all feeds."
    )
    on_feed_error: Literal["abort", "continue"] = Field(
        default="abort",
        description="abort: stop the run on the first failing feed; continue: roll it back and go on."
    )
    relax_durability: bool = Field(
        default=True,
        description="Trade crash safety for insert speed (SQLite synchronous=OFF, PostgreSQL synchronous_commit=off)."
    )

    table_file_extension: str = Field(default=DEFAULT_TABLE_FILE_EXTENSION,
                                      description="Only files with this extension are loaded as tables.")
    skipped_tables: List[str] = Field(default_factory=lambda: list(DEFAULT_SKIPPED_TABLES),
                                      description="Tables that are never loaded.")
    encoding: str = Field(default=ENCODING_DEFAULT, description="Text encoding of the table files.")

    log_level: str = Field(default=LOG_LEVEL_DEFAULT, description="Logging level.")
    log_file: Optional[Path] = Field(default=None, description="Optional JSON log file.")
    metrics_port: Optional[int] = Field(default=None,
                                        description="Serve Prometheus metrics on this port while loading.")

    pg: PostgresSettings = Field(default_factory=PostgresSettings)

    @field_validator("table_file_extension")
    @classmethod
    def _normalise_extension(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith("."):
            value = f".{value}"
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"unknown text encoding '{value}'") from e
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_backend_supports_mode(self) -> "LoaderSettings":
        if self.output_mode == "snapshot" and self.backend != "sqlite":
            raise ValueError("snapshot output mode requires the sqlite backend")
        return self
