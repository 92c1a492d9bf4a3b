# -*- coding: utf-8 -*-
"""
Loads one GTFS feed inside a single transaction.

The feed's tables are loaded in rank order so that referenced tables exist
before the tables pointing at them. Either every table of the feed is
committed, or the transaction is rolled back and nothing of the feed is left
in the store.

When a session-wide transaction is already open, the feed runs inside a
savepoint instead, so it can still be rolled back on its own.
"""

import logging
import time
from enum import Enum
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel, Field

from gtfs_loader.common.metrics import LoaderMetrics
from gtfs_loader.common.store_interface import StoreInterface
from gtfs_loader.setup.config_models import LoaderSettings

from .discovery import TableFile
from .exceptions import BindError, CommitError, GtfsLoaderError
from .load import BulkInserter
from .pipeline_definitions import SELF_REFERENCING_COLUMNS, order_tables, table_rank
from .record_stream import open_record_stream
from .transform import reorder_rows

module_logger = logging.getLogger(__name__)


class FeedLoadState(str, Enum):
    IDLE = "idle"
    TRANSACTION_OPEN = "transaction_open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TableAction(str, Enum):
    LOAD = "load"
    SKIP_EXTENSION = "skip_extension"
    SKIP_LISTED = "skip_listed"


class TablePlanEntry(NamedTuple):
    table_file: TableFile
    rank: int
    action: TableAction


class ProgressEvent(BaseModel):
    """A progress notification for one feed or one table of a feed."""

    kind: str
    feed_name: str
    table_name: Optional[str] = None
    row_count: Optional[int] = None


ProgressSink = Callable[[ProgressEvent], None]


def log_progress(event: ProgressEvent) -> None:
    """Default progress sink: one log line per event."""
    if event.kind == "feed_started":
        module_logger.info(f"Loading feed {event.feed_name}")
    elif event.kind == "table_started":
        module_logger.info(f"  Loading table {event.table_name}")
    elif event.kind == "table_loaded":
        module_logger.info(f"  Loaded {event.row_count} rows into {event.table_name}")
    elif event.kind == "table_skipped":
        module_logger.debug(f"  Skipping {event.table_name}")
    elif event.kind == "feed_committed":
        module_logger.info(f"Feed {event.feed_name} loaded, committed {event.row_count} rows")
    elif event.kind == "feed_rolled_back":
        module_logger.warning(f"Feed {event.feed_name} rolled back")


class FeedResult(BaseModel):
    """Outcome of loading one feed."""

    feed_name: str
    state: FeedLoadState
    table_rows: Dict[str, int] = Field(default_factory=dict)
    skipped_tables: List[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_rows(self) -> int:
        return sum(self.table_rows.values())


def plan_tables(
    table_files: Iterable[TableFile], settings: LoaderSettings
) -> List[TablePlanEntry]:
    """
    Decide the load order of a feed's files and which of them to skip.

    Files are ordered by table rank; files sharing a rank keep their input
    order. Files without the table extension and skip-listed tables are kept
    in the plan, marked as skipped.
    """
    plan = []
    for table_file in order_tables(table_files, key=lambda tf: tf.table_name):
        if table_file.extension != settings.table_file_extension:
            action = TableAction.SKIP_EXTENSION
        elif table_file.table_name in settings.skipped_tables:
            action = TableAction.SKIP_LISTED
        else:
            action = TableAction.LOAD
        plan.append(TablePlanEntry(table_file, table_rank(table_file.table_name), action))
    return plan


class FeedLoader:
    """
    Loads the tables of one feed atomically.
    """

    def __init__(
        self,
        store: StoreInterface,
        settings: Optional[LoaderSettings] = None,
        progress: Optional[ProgressSink] = None,
        metrics: Optional[LoaderMetrics] = None,
    ):
        self.store = store
        self.settings = settings or LoaderSettings()
        self.progress = progress or log_progress
        self.metrics = metrics
        self.inserter = BulkInserter(store, metrics=metrics)
        self.state = FeedLoadState.IDLE

    def load_feed(self, feed_name: str, table_files: Iterable[TableFile]) -> FeedResult:
        """
        Load every eligible table of a feed, then commit.

        Args:
            feed_name: Identifier written to the feed column of every row.
            table_files: The files found in the feed directory.

        Returns:
            The committed feed's result.

        Raises:
            GtfsLoaderError: Any failure. The feed has been rolled back and
                the error carries the feed name.
        """
        start_time = time.monotonic()
        self.state = FeedLoadState.IDLE
        self._emit("feed_started", feed_name)

        plan = plan_tables(table_files, self.settings)
        savepoint = self._open_transaction(feed_name)

        table_rows: Dict[str, int] = {}
        skipped: List[str] = []
        try:
            for entry in plan:
                table_name = entry.table_file.table_name
                if entry.action is not TableAction.LOAD:
                    skipped.append(entry.table_file.file_name)
                    self._emit("table_skipped", feed_name, table_name)
                    continue
                self._emit("table_started", feed_name, table_name)
                table_rows[table_name] = self._load_table(feed_name, entry.table_file)
                self._emit("table_loaded", feed_name, table_name, table_rows[table_name])
        except GtfsLoaderError as e:
            self._abort(feed_name, savepoint, start_time)
            raise e.with_context(feed_name=feed_name)
        except self.store.driver_errors as e:
            self._abort(feed_name, savepoint, start_time)
            raise BindError(
                "Store error while loading", feed_name=feed_name, original_error=e
            ) from e
        except Exception:
            self._abort(feed_name, savepoint, start_time)
            raise

        self._commit(feed_name, savepoint, start_time)

        result = FeedResult(
            feed_name=feed_name,
            state=self.state,
            table_rows=table_rows,
            skipped_tables=skipped,
            duration_seconds=time.monotonic() - start_time,
        )
        if self.metrics is not None:
            self.metrics.record_feed_processed(FeedLoadState.COMMITTED.value)
            self.metrics.record_feed_load_time(result.duration_seconds)
        self._emit("feed_committed", feed_name, row_count=result.total_rows)
        return result

    def _load_table(self, feed_name: str, table_file: TableFile) -> int:
        table_name = table_file.table_name
        with open_record_stream(table_file, encoding=self.settings.encoding) as stream:
            rows = stream
            if table_name in SELF_REFERENCING_COLUMNS:
                rows = reorder_rows(table_name, stream.header, stream.materialize())
            return self.inserter.load(table_name, feed_name, stream.header, rows)

    def _open_transaction(self, feed_name: str) -> Optional[str]:
        """Open the feed's transaction, or a savepoint inside the session's."""
        savepoint = None
        try:
            if self.store.in_transaction:
                savepoint = f"feed_{feed_name}"
                self.store.savepoint(savepoint)
            else:
                if self.settings.relax_durability:
                    self.store.relax_durability()
                self.store.begin()
        except self.store.driver_errors as e:
            raise CommitError(
                "Could not open a transaction", feed_name=feed_name, original_error=e
            ) from e
        self.state = FeedLoadState.TRANSACTION_OPEN
        return savepoint

    def _commit(self, feed_name: str, savepoint: Optional[str], start_time: float) -> None:
        try:
            if savepoint is not None:
                self.store.release_savepoint(savepoint)
            else:
                self.store.commit()
        except self.store.driver_errors as e:
            self._abort(feed_name, savepoint, start_time)
            raise CommitError(
                "The store rejected the commit", feed_name=feed_name, original_error=e
            ) from e
        self.state = FeedLoadState.COMMITTED

    def _abort(self, feed_name: str, savepoint: Optional[str], start_time: float) -> None:
        try:
            if savepoint is not None:
                self.store.rollback_to_savepoint(savepoint)
            elif self.store.in_transaction:
                self.store.rollback()
        except self.store.driver_errors as e:
            module_logger.error(f"Rollback of feed {feed_name} failed: {e}")
        self.state = FeedLoadState.ROLLED_BACK
        if self.metrics is not None:
            self.metrics.record_feed_processed(FeedLoadState.ROLLED_BACK.value)
            self.metrics.record_feed_load_time(time.monotonic() - start_time)
        self._emit("feed_rolled_back", feed_name)

    def _emit(
        self,
        kind: str,
        feed_name: str,
        table_name: Optional[str] = None,
        row_count: Optional[int] = None,
    ) -> None:
        self.progress(
            ProgressEvent(
                kind=kind, feed_name=feed_name, table_name=table_name, row_count=row_count
            )
        )
