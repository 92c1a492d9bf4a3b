# gtfs_loader/processors/pipeline_definitions.py
# -*- coding: utf-8 -*-
"""
Static definitions for the GTFS load pipeline: table load order, tables that
are never loaded, and tables whose rows reference other rows of the same table.
"""
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")

# Tables other tables depend on come first.
TABLE_RANKS: Dict[str, int] = {
    "feed_info": 0,
    "agency": 1,
    "levels": 2,
    "stops": 3,
    "routes": 4,
    "trips": 5,
    "location_groups": 6,
    "stop_times": 7,
    "calendar": 8,
    "calendar_dates": 9,
    "areas": 10,
    "stop_areas": 11,
    "networks": 12,
    "route_networks": 13,
    "shapes": 14,
    "frequencies": 15,
    "pathways": 16,
}

UNKNOWN_TABLE_RANK: int = 70

DEFAULT_TABLE_FILE_EXTENSION: str = ".txt"

# shapes.txt is large and nothing else references it.
DEFAULT_SKIPPED_TABLES: tuple = ("shapes",)

# table name -> nullable column pointing at another row of the same table
SELF_REFERENCING_COLUMNS: Dict[str, str] = {
    "stops": "parent_station",
}

FEED_COLUMN: str = "feed"


def table_rank(table_name: str) -> int:
    """Return the load rank of a table; unknown tables share the last rank."""
    return TABLE_RANKS.get(table_name, UNKNOWN_TABLE_RANK)


def order_tables(
    tables: Iterable[T], key: Optional[Callable[[T], str]] = None
) -> List[T]:
    """
    Order tables for loading by ascending rank.

    The sort is stable, so tables sharing a rank (only possible for unknown
    tables) keep the order they were given in.

    Args:
        tables: Table names, or objects from which `key` extracts a table name.
        key: Optional callable returning the table name of an item.

    Returns:
        A new list in load order.
    """
    name_of = key if key is not None else (lambda item: item)
    return sorted(tables, key=lambda item: table_rank(name_of(item)))
