# tests/conftest.py
from pathlib import Path
from typing import Dict

import pytest
from prometheus_client import CollectorRegistry

from gtfs_loader.common.db_utils import open_sqlite_connection
from gtfs_loader.common.metrics import LoaderMetrics
from gtfs_loader.processors.db_setup import apply_schema
from gtfs_loader.processors.stores import SqliteStore
from gtfs_loader.setup.config_models import SCHEMA_PATH_DEFAULT, LoaderSettings

AGENCY_TXT = "agency_id,agency_name\n1,Acme Transit\n"
# Child stop first: the loader has to put the parent in before it.
STOPS_TXT = "stop_id,stop_name,parent_station\nB,Stop B,A\nA,Stop A,\n"


@pytest.fixture
def feeds_root(tmp_path: Path) -> Path:
    root = tmp_path / "feeds"
    root.mkdir()
    return root


@pytest.fixture
def write_feed(feeds_root: Path):
    """Create a feed directory under the feed root from {file name: content}."""

    def _write_feed(feed_name: str, files: Dict[str, str]) -> Path:
        feed_dir = feeds_root / feed_name
        feed_dir.mkdir()
        for file_name, content in files.items():
            (feed_dir / file_name).write_text(content, encoding="utf-8")
        return feed_dir

    return _write_feed


@pytest.fixture
def settings(tmp_path: Path, feeds_root: Path) -> LoaderSettings:
    return LoaderSettings(
        feeds_root=feeds_root,
        database_path=tmp_path / "feeds.sqlite",
    )


@pytest.fixture
def sqlite_store():
    """In-memory SQLite store with the bundled GTFS schema applied."""
    store = SqliteStore(open_sqlite_connection())
    apply_schema(store, SCHEMA_PATH_DEFAULT)
    yield store
    store.close()


@pytest.fixture
def metrics() -> LoaderMetrics:
    return LoaderMetrics(registry=CollectorRegistry())
