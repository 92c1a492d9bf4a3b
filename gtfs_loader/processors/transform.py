# -*- coding: utf-8 -*-
"""
Row-level transformations applied between reading a GTFS table and inserting it.

Only tables listed in SELF_REFERENCING_COLUMNS are touched: their rows are
reordered so that parent rows reach the store before the rows that point at
them. Every other table streams through unchanged.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from .pipeline_definitions import SELF_REFERENCING_COLUMNS

module_logger = logging.getLogger(__name__)

Row = Sequence[Optional[str]]


def self_reference_index(table_name: str, header: Sequence[str]) -> Optional[int]:
    """Return the header position of the table's self-reference column, if any."""
    column = SELF_REFERENCING_COLUMNS.get(table_name)
    if column is None:
        return None
    try:
        return list(header).index(column)
    except ValueError:
        return None


def has_self_reference(row: Row, index: int) -> bool:
    """True when the row carries a non-empty value at the self-reference position."""
    if index >= len(row):
        return False
    value = row[index]
    return value is not None and value != ""


def reorder_rows(
    table_name: str, header: Sequence[str], rows: Iterable[Row]
) -> Iterable[Row]:
    """
    Put parent rows before child rows for self-referencing tables.

    This is a stable partition, not a topological sort: rows without a
    self-reference keep their relative order and come first, followed by the
    rows that have one, also in their original relative order. Hierarchies
    deeper than parent/child are not resolved.

    Args:
        table_name: Name of the table the rows belong to.
        header: Column names of the table.
        rows: The table's rows.

    Returns:
        `rows` itself for tables that need no reordering (laziness is kept),
        otherwise a new, fully materialised list.
    """
    index = self_reference_index(table_name, header)
    if index is None:
        return rows

    roots: List[Row] = []
    children: List[Row] = []
    for row in rows:
        if has_self_reference(row, index):
            children.append(row)
        else:
            roots.append(row)

    module_logger.debug(
        f"Reordered '{table_name}': {len(roots)} parent rows ahead of {len(children)} child rows."
    )
    return roots + children
