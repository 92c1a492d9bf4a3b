# -*- coding: utf-8 -*-
"""
Destination stores: SQLite (in-memory working store or file) and PostgreSQL.
"""

import sqlite3
from pathlib import Path
from typing import Any, Sequence, Tuple, Type

import psycopg
from psycopg import sql
from psycopg.pq import TransactionStatus

from gtfs_loader.common.db_utils import (
    SQLITE_MEMORY,
    get_db_connection,
    open_sqlite_connection,
)
from gtfs_loader.common.store_interface import StoreInterface
from gtfs_loader.setup.config_models import LoaderSettings

from .exceptions import SchemaError


class SqliteStore(StoreInterface):
    """Store backed by a sqlite3 connection in autocommit mode."""

    @property
    def backend_name(self) -> str:
        return "sqlite"

    @property
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        return (sqlite3.Error,)

    @property
    def in_transaction(self) -> bool:
        return self.connection.in_transaction

    def is_constraint_violation(self, error: BaseException) -> bool:
        return isinstance(error, sqlite3.IntegrityError)

    def execute_script(self, script: str) -> None:
        self.connection.executescript(script)

    def build_insert(self, table_name: str, columns: Sequence[str]) -> str:
        quoted_columns = ", ".join(self.quote_identifier(column) for column in columns)
        placeholders = ", ".join("?" for _ in columns)
        return (
            f"INSERT INTO {self.quote_identifier(table_name)} "
            f"({quoted_columns}) VALUES ({placeholders})"
        )

    def execute_row(self, cursor: Any, statement: str, params: Sequence[Any]) -> None:
        # sqlite3 keeps the compiled statement in its cache, keyed by text.
        cursor.execute(statement, params)

    def _apply_relaxed_durability(self) -> None:
        self.connection.execute("PRAGMA synchronous = OFF")
        self.connection.execute("PRAGMA journal_mode = MEMORY")

    def snapshot_to(self, path: Path) -> None:
        """
        Write the whole database to a fresh file at `path`.

        Any existing file at that path is deleted first, so the result never
        mixes old and new data.
        """
        target_path = Path(path)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.unlink(missing_ok=True)
        target = sqlite3.connect(str(target_path))
        try:
            self.connection.backup(target)
        finally:
            target.close()
        self.logger.info(f"Snapshot written to {target_path}")


class PostgresStore(StoreInterface):
    """Store backed by a Psycopg 3 connection in autocommit mode."""

    @property
    def backend_name(self) -> str:
        return "postgres"

    @property
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        return (psycopg.Error,)

    @property
    def in_transaction(self) -> bool:
        return self.connection.info.transaction_status != TransactionStatus.IDLE

    def is_constraint_violation(self, error: BaseException) -> bool:
        return isinstance(error, psycopg.IntegrityError)

    def execute_script(self, script: str) -> None:
        with self.connection.transaction():
            self.connection.execute(script)

    def build_insert(self, table_name: str, columns: Sequence[str]) -> sql.Composed:
        return sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            sql.Identifier(table_name),
            sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            sql.SQL(", ").join([sql.Placeholder()] * len(columns)),
        )

    def execute_row(self, cursor: Any, statement: sql.Composed, params: Sequence[Any]) -> None:
        cursor.execute(statement, params, prepare=True)

    def _apply_relaxed_durability(self) -> None:
        # Session-scoped; a crash can lose recent commits but not corrupt data.
        self.connection.execute("SET synchronous_commit TO OFF")


def open_store(settings: LoaderSettings) -> StoreInterface:
    """
    Open the destination store described by `settings`.

    Snapshot mode always works on a private in-memory SQLite database; the
    file at `database_path` is only written when the run finishes.

    Raises:
        SchemaError: If the store cannot be opened.
    """
    if settings.backend == "postgres":
        conn = get_db_connection(settings.pg)
        if conn is None:
            raise SchemaError(
                f"Could not connect to PostgreSQL database {settings.pg.database} "
                f"on {settings.pg.host}:{settings.pg.port}"
            )
        return PostgresStore(conn)

    database = SQLITE_MEMORY if settings.output_mode == "snapshot" else settings.database_path
    try:
        return SqliteStore(open_sqlite_connection(database))
    except sqlite3.Error as e:
        raise SchemaError(f"Could not open SQLite database {database}", original_error=e) from e
