# -*- coding: utf-8 -*-
from unittest.mock import MagicMock

import pytest

from gtfs_loader.processors.exceptions import BindError, ConstraintError
from gtfs_loader.processors.load import BulkInserter, build_params, normalize_value


def test_normalize_value():
    assert normalize_value("") is None
    assert normalize_value(None) is None
    assert normalize_value("0") == "0"
    assert normalize_value(" ") == " "


def test_build_params_puts_feed_first():
    assert build_params("agencyX", ("1", "", "Acme")) == ("agencyX", "1", None, "Acme")


def test_load_tags_rows_with_feed(sqlite_store):
    inserter = BulkInserter(sqlite_store)
    count = inserter.load(
        "agency", "agencyX", ["agency_id", "agency_name"], [("1", "Acme"), ("2", "Other")]
    )
    assert count == 2
    rows = sqlite_store.connection.execute(
        "SELECT feed, agency_id, agency_name FROM agency ORDER BY agency_id"
    ).fetchall()
    assert rows == [("agencyX", "1", "Acme"), ("agencyX", "2", "Other")]


def test_load_writes_null_for_empty_values(sqlite_store):
    BulkInserter(sqlite_store).load(
        "stops", "f", ["stop_id", "stop_name", "parent_station"], [("A", "", None)]
    )
    rows = sqlite_store.connection.execute(
        "SELECT stop_name IS NULL, parent_station IS NULL FROM stops"
    ).fetchall()
    assert rows == [(1, 1)]


def test_feed_name_is_bound_not_interpolated(sqlite_store):
    feed_name = "o'brien\"; DROP TABLE agency; --"
    BulkInserter(sqlite_store).load("agency", feed_name, ["agency_name"], [("Acme",)])
    rows = sqlite_store.connection.execute("SELECT feed FROM agency").fetchall()
    assert rows == [(feed_name,)]


def test_load_with_no_rows(sqlite_store):
    assert BulkInserter(sqlite_store).load("agency", "f", ["agency_name"], []) == 0


def test_statement_is_built_once_and_executed_per_row():
    """One statement per table, one execution per row, on one cursor."""
    store = MagicMock()
    store.driver_errors = (RuntimeError,)
    cursor = store.cursor.return_value

    count = BulkInserter(store).load(
        "routes", "f", ["route_id", "route_desc"], [("1", ""), ("2", "x"), ("3", "y")]
    )

    assert count == 3
    store.build_insert.assert_called_once_with("routes", ["feed", "route_id", "route_desc"])
    statement = store.build_insert.return_value
    assert store.execute_row.call_count == 3
    store.execute_row.assert_any_call(cursor, statement, ("f", "1", None))
    cursor.close.assert_called_once()


def test_duplicate_key_is_a_constraint_error(sqlite_store):
    inserter = BulkInserter(sqlite_store)
    with pytest.raises(ConstraintError) as exc_info:
        inserter.load("routes", "f", ["route_id"], [("R1",), ("R1",)])
    error = exc_info.value
    assert error.feed_name == "f"
    assert error.table_name == "routes"
    assert "row 2" in error.message


def test_unknown_column_is_a_bind_error(sqlite_store):
    with pytest.raises(BindError):
        BulkInserter(sqlite_store).load("agency", "f", ["agency_colour"], [("red",)])


def test_row_length_mismatch_is_a_bind_error():
    store = MagicMock()
    store.driver_errors = (RuntimeError,)
    with pytest.raises(BindError):
        BulkInserter(store).load("agency", "f", ["agency_id", "agency_name"], [("1",)])
    store.execute_row.assert_not_called()
    store.cursor.return_value.close.assert_called_once()


def test_rows_inserted_metric(sqlite_store, metrics):
    BulkInserter(sqlite_store, metrics=metrics).load(
        "agency", "f", ["agency_name"], [("Acme",), ("Other",)]
    )
    value = metrics.registry.get_sample_value(
        "gtfs_loader_rows_inserted_total", {"feed_name": "f", "table_name": "agency"}
    )
    assert value == 2.0
