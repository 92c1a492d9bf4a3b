# -*- coding: utf-8 -*-
import sqlite3
from unittest.mock import MagicMock

import psycopg
import pytest
from psycopg.pq import TransactionStatus

from gtfs_loader.common.db_utils import open_sqlite_connection
from gtfs_loader.processors.exceptions import SchemaError
from gtfs_loader.processors.stores import PostgresStore, SqliteStore, open_store
from gtfs_loader.setup.config_models import LoaderSettings


def test_sqlite_build_insert():
    store = SqliteStore(open_sqlite_connection())
    statement = store.build_insert("agency", ["feed", "agency_id", "agency_name"])
    assert statement == 'INSERT INTO "agency" ("feed", "agency_id", "agency_name") VALUES (?, ?, ?)'
    store.close()


def test_quote_identifier_doubles_quotes():
    assert SqliteStore.quote_identifier('we"ird') == '"we""ird"'


def test_sqlite_transaction_and_rollback(sqlite_store):
    sqlite_store.begin()
    assert sqlite_store.in_transaction
    sqlite_store.connection.execute("INSERT INTO agency (feed, agency_name) VALUES ('f', 'Acme')")
    sqlite_store.rollback()
    assert not sqlite_store.in_transaction
    assert sqlite_store.connection.execute("SELECT count(*) FROM agency").fetchone() == (0,)


def test_sqlite_rollback_to_savepoint_keeps_outer_work(sqlite_store):
    conn = sqlite_store.connection
    sqlite_store.begin()
    conn.execute("INSERT INTO agency (feed, agency_name) VALUES ('f1', 'Kept')")
    sqlite_store.savepoint("feed_f2")
    conn.execute("INSERT INTO agency (feed, agency_name) VALUES ('f2', 'Dropped')")
    sqlite_store.rollback_to_savepoint("feed_f2")
    sqlite_store.commit()
    assert conn.execute("SELECT feed FROM agency").fetchall() == [("f1",)]


def test_sqlite_foreign_keys_are_enforced(sqlite_store):
    with pytest.raises(sqlite3.IntegrityError) as exc_info:
        sqlite_store.connection.execute(
            "INSERT INTO stops (feed, stop_id, parent_station) VALUES ('f', 'B', 'A')"
        )
    assert sqlite_store.is_constraint_violation(exc_info.value)


def test_sqlite_snapshot_replaces_existing_file(sqlite_store, tmp_path):
    target = tmp_path / "out" / "feeds.sqlite"
    target.parent.mkdir()
    target.write_bytes(b"stale content")
    sqlite_store.connection.execute("INSERT INTO agency (feed, agency_name) VALUES ('f', 'Acme')")

    sqlite_store.snapshot_to(target)

    snapshot = sqlite3.connect(str(target))
    try:
        assert snapshot.execute("SELECT feed, agency_name FROM agency").fetchall() == [("f", "Acme")]
    finally:
        snapshot.close()


def test_relax_durability_runs_once(mocker):
    connection = MagicMock()
    store = SqliteStore(connection)
    warning = mocker.patch.object(store.logger, "warning")

    store.relax_durability()
    store.relax_durability()

    connection.execute.assert_any_call("PRAGMA synchronous = OFF")
    assert connection.execute.call_count == 2
    warning.assert_called_once()


def test_postgres_execute_row_prepares_statement():
    store = PostgresStore(MagicMock())
    cursor = MagicMock()
    store.execute_row(cursor, "statement", ("f", "1"))
    cursor.execute.assert_called_once_with("statement", ("f", "1"), prepare=True)


def test_postgres_in_transaction():
    connection = MagicMock()
    store = PostgresStore(connection)
    connection.info.transaction_status = TransactionStatus.IDLE
    assert not store.in_transaction
    connection.info.transaction_status = TransactionStatus.INTRANS
    assert store.in_transaction


def test_postgres_relax_durability():
    connection = MagicMock()
    PostgresStore(connection).relax_durability()
    connection.execute.assert_called_once_with("SET synchronous_commit TO OFF")


def test_postgres_constraint_violation():
    store = PostgresStore(MagicMock())
    assert store.is_constraint_violation(psycopg.errors.UniqueViolation("duplicate key"))
    assert not store.is_constraint_violation(psycopg.errors.UndefinedColumn("no such column"))


def test_postgres_has_no_snapshot(tmp_path):
    with pytest.raises(NotImplementedError):
        PostgresStore(MagicMock()).snapshot_to(tmp_path / "x.sqlite")


def test_open_store_snapshot_mode_uses_memory(settings):
    store = open_store(settings)
    try:
        assert isinstance(store, SqliteStore)
        assert not settings.database_path.exists()
    finally:
        store.close()


def test_open_store_live_mode_opens_file(settings):
    live = settings.model_copy(update={"output_mode": "live"})
    store = open_store(live)
    store.close()
    assert live.database_path.exists()


def test_open_store_postgres_connection_failure(mocker):
    mocker.patch("gtfs_loader.processors.stores.get_db_connection", return_value=None)
    settings = LoaderSettings(backend="postgres", output_mode="live")
    with pytest.raises(SchemaError):
        open_store(settings)


def test_open_store_postgres(mocker):
    connection = MagicMock()
    mocker.patch("gtfs_loader.processors.stores.get_db_connection", return_value=connection)
    store = open_store(LoaderSettings(backend="postgres", output_mode="live"))
    assert isinstance(store, PostgresStore)
    assert store.connection is connection
