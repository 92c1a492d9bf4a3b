#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Handles inserting the rows of one GTFS table into the destination store.

One parameterized INSERT is built per table, with the feed identifier as the
first column, and executed once per row on a single cursor so the store
prepares it only once. Every value, the feed identifier included, is bound as
a parameter; empty strings are bound as NULL.
"""

import logging
import time
from typing import Iterable, Optional, Sequence, Tuple

from gtfs_loader.common.metrics import LoaderMetrics
from gtfs_loader.common.store_interface import StoreInterface

from .exceptions import BindError, ConstraintError
from .pipeline_definitions import FEED_COLUMN

module_logger = logging.getLogger(__name__)

Row = Sequence[Optional[str]]


def normalize_value(value: Optional[str]) -> Optional[str]:
    """Map an empty field to NULL, keep every other value as is."""
    if value is None or value == "":
        return None
    return value


def build_params(feed_name: str, row: Row) -> Tuple[Optional[str], ...]:
    return (feed_name,) + tuple(normalize_value(value) for value in row)


class BulkInserter:
    """
    Inserts table rows through one prepared statement per table.
    """

    def __init__(
        self,
        store: StoreInterface,
        metrics: Optional[LoaderMetrics] = None,
    ):
        self.store = store
        self.metrics = metrics

    def load(
        self,
        table_name: str,
        feed_name: str,
        header: Sequence[str],
        rows: Iterable[Row],
    ) -> int:
        """
        Insert every row of a table, tagged with `feed_name`.

        Args:
            table_name: Destination table.
            feed_name: Feed identifier written to the feed column of each row.
            header: Column names, in the order the row values are given.
            rows: Row values aligned with `header`.

        Returns:
            The number of rows inserted.

        Raises:
            ConstraintError: If the store rejects a row for violating a constraint.
            BindError: If a row does not match the header or cannot be bound.
            ParseError: Propagated from `rows` if the source is malformed.
        """
        statement = self.store.build_insert(table_name, [FEED_COLUMN, *header])
        column_count = len(header)
        start_time = time.monotonic()
        inserted = 0

        cursor = self.store.cursor()
        try:
            for row_number, row in enumerate(rows, start=1):
                if len(row) != column_count:
                    raise BindError(
                        f"Row {row_number} has {len(row)} values but the header has {column_count} columns",
                        feed_name=feed_name,
                        table_name=table_name,
                    )
                try:
                    self.store.execute_row(cursor, statement, build_params(feed_name, row))
                except self.store.driver_errors as e:
                    error_class = (
                        ConstraintError
                        if self.store.is_constraint_violation(e)
                        else BindError
                    )
                    raise error_class(
                        f"Insert of row {row_number} failed",
                        feed_name=feed_name,
                        table_name=table_name,
                        original_error=e,
                    ) from e
                inserted += 1
        finally:
            cursor.close()

        duration = time.monotonic() - start_time
        if self.metrics is not None:
            self.metrics.record_rows_inserted(feed_name, table_name, inserted)
            self.metrics.record_table_load_time(table_name, duration)
        module_logger.debug(
            f"Inserted {inserted} rows into {table_name} for feed {feed_name} in {duration:.2f}s"
        )
        return inserted
