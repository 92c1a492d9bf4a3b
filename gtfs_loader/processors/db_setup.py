# gtfs_loader/processors/db_setup.py
# -*- coding: utf-8 -*-
"""
Applies the schema DDL to the destination store before any feed is loaded.

The schema is an external SQL script; every table in it is expected to carry
a leading `feed` column in addition to the GTFS columns.
"""
import logging
from pathlib import Path

from gtfs_loader.common.store_interface import StoreInterface

from .exceptions import SchemaError

module_logger = logging.getLogger(__name__)


def read_schema(schema_path: Path) -> str:
    """
    Read the schema script in full.

    Raises:
        SchemaError: If the file is missing, unreadable or empty.
    """
    path = Path(schema_path)
    try:
        script = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise SchemaError(f"Schema file {path} not found", original_error=e) from e
    except (OSError, UnicodeDecodeError) as e:
        raise SchemaError(f"Schema file {path} could not be read", original_error=e) from e

    if not script.strip():
        raise SchemaError(f"Schema file {path} is empty")
    return script


def apply_schema(store: StoreInterface, schema_path: Path) -> None:
    """
    Create the destination tables from the schema script.

    Raises:
        SchemaError: If the script cannot be read or the store rejects it.
    """
    module_logger.info(f"Applying schema from {schema_path} to the {store.backend_name} store...")
    script = read_schema(schema_path)
    try:
        store.execute_script(script)
    except store.driver_errors as e:
        raise SchemaError(
            f"Schema from {schema_path} was rejected by the store", original_error=e
        ) from e
    module_logger.info("Database schema created.")
