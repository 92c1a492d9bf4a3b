# -*- coding: utf-8 -*-
"""
Connection helpers for the stores the loader can write to.
"""
import logging
import os
import sqlite3
from pathlib import Path
from typing import Optional, Union

import psycopg

from gtfs_loader.setup.config_models import PGPASSWORD_DEFAULT, PostgresSettings

module_logger = logging.getLogger(__name__)

SQLITE_MEMORY = ":memory:"


def get_db_connection(
    pg_settings: Optional[PostgresSettings] = None,
) -> Optional[psycopg.Connection]:
    """
    Connect to PostgreSQL with Psycopg 3.

    The connection is put in autocommit mode; the loader issues its own
    BEGIN/COMMIT so that transaction boundaries are explicit.

    Args:
        pg_settings: Connection settings. Defaults to PostgresSettings(),
            which reads the PG_* environment variables.

    Returns:
        The open connection, or None if the connection failed.
    """
    settings = pg_settings or PostgresSettings()

    if (
        settings.password == PGPASSWORD_DEFAULT
        and os.environ.get("PGPASSWORD") in (None, PGPASSWORD_DEFAULT)
    ):
        module_logger.critical(
            "CRITICAL: Default placeholder password is being used for database "
            "connection. Please configure a strong password via PG_PASSWORD or PGPASSWORD."
        )

    conn_kwargs = {
        "dbname": settings.database,
        "user": settings.user,
        "password": settings.password,
        "host": settings.host,
        "port": settings.port,
    }
    try:
        module_logger.debug(
            f"Attempting to connect to database {settings.database} on {settings.host}:{settings.port}"
        )
        conn = psycopg.connect(autocommit=True, **conn_kwargs)
        module_logger.info(
            f"Connected to database {settings.database} on "
            f"{settings.host}:{settings.port} using Psycopg 3."
        )
        return conn
    except psycopg.OperationalError as e:
        module_logger.error(
            f"Psycopg 3 database connection failed (OperationalError): {e}",
            exc_info=True,
        )
    except psycopg.Error as e:
        module_logger.error(
            f"Psycopg 3 database connection failed: {e}", exc_info=True
        )
    return None


def open_sqlite_connection(
    database: Union[str, Path] = SQLITE_MEMORY,
) -> sqlite3.Connection:
    """
    Open a SQLite connection in autocommit mode with foreign keys enforced.

    Args:
        database: Database file, or ":memory:" for a private in-memory store.

    Returns:
        The open connection.
    """
    target = str(database)
    conn = sqlite3.connect(target, isolation_level=None)
    conn.execute("PRAGMA foreign_keys = ON")
    module_logger.info(
        "Opened in-memory SQLite working store"
        if target == SQLITE_MEMORY
        else f"Opened SQLite database {target}"
    )
    return conn
