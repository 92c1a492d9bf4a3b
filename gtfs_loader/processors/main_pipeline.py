#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main orchestrator for a GTFS load run.

A run creates the schema once, then loads every feed under the feed root one
after the other, and finally persists the result: in snapshot mode the
in-memory working store is written to a fresh database file, in live mode the
data is already in place.
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from gtfs_loader.common.metrics import LoaderMetrics, get_metrics
from gtfs_loader.common.store_interface import StoreInterface
from gtfs_loader.setup.config_models import LoaderSettings

from .db_setup import apply_schema
from .discovery import FeedSource, discover_feeds
from .exceptions import CommitError, GtfsLoaderError
from .feed_loader import FeedLoader, FeedResult, ProgressSink
from .stores import open_store

module_logger = logging.getLogger(__name__)


class FeedFailure(BaseModel):
    """A feed that was rolled back, with the reason."""

    feed_name: str
    error_type: str
    message: str


class SessionReport(BaseModel):
    """Summary of a load run."""

    loaded: List[FeedResult] = Field(default_factory=list)
    failed: List[FeedFailure] = Field(default_factory=list)
    snapshot_path: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def total_rows(self) -> int:
        return sum(result.total_rows for result in self.loaded)


class LoadSession:
    """
    Loads all feeds under the feed root into one store.

    Args:
        settings: Run configuration.
        store: An already open store to write to. When omitted the session
            opens (and closes) the store described by `settings`.
        progress: Optional progress sink, passed to every FeedLoader.
        metrics: Metrics collector; defaults to the global instance.
    """

    def __init__(
        self,
        settings: LoaderSettings,
        store: Optional[StoreInterface] = None,
        progress: Optional[ProgressSink] = None,
        metrics: Optional[LoaderMetrics] = None,
    ):
        self.settings = settings
        self.store = store
        self._owns_store = store is None
        self.progress = progress
        self.metrics = metrics if metrics is not None else get_metrics()

    def run(self) -> SessionReport:
        """
        Execute the run.

        Returns:
            The session report. Under the `continue` policy it lists the
            feeds that were rolled back.

        Raises:
            SchemaError, DiscoveryError: Before any feed is loaded.
            GtfsLoaderError: Under the `abort` policy, the first feed failure.
                Feeds committed before it stay committed (feed scope) or are
                rolled back with it (session scope); no snapshot is written.
        """
        start_time = time.monotonic()
        module_logger.info(
            f"===== GTFS load started at {datetime.now().isoformat()} "
            f"({self.settings.backend}, {self.settings.output_mode} mode, "
            f"{self.settings.transaction_scope} transactions) ====="
        )
        if self.store is None:
            self.store = open_store(self.settings)
        try:
            report = self._run(self.store)
        except GtfsLoaderError as e:
            self.metrics.record_error(e.error_type)
            module_logger.critical(f"GTFS load aborted: {e}")
            raise
        finally:
            if self._owns_store:
                self.store.close()
                self.store = None

        report.duration_seconds = time.monotonic() - start_time
        module_logger.info(
            f"===== GTFS load finished: {len(report.loaded)} feed(s) loaded, "
            f"{len(report.failed)} failed, {report.total_rows} rows in "
            f"{report.duration_seconds:.1f}s ====="
        )
        return report

    def _run(self, store: StoreInterface) -> SessionReport:
        apply_schema(store, self.settings.schema_path)
        feeds = discover_feeds(self.settings.feeds_root)

        report = SessionReport()
        session_transaction = self.settings.transaction_scope == "session"
        if session_transaction:
            if self.settings.relax_durability:
                store.relax_durability()
            store.begin()

        try:
            for feed in feeds:
                self._load_feed(store, feed, report)
        except GtfsLoaderError:
            if session_transaction and store.in_transaction:
                store.rollback()
            raise

        if session_transaction:
            try:
                store.commit()
            except store.driver_errors as e:
                if store.in_transaction:
                    store.rollback()
                raise CommitError("The store rejected the session commit", original_error=e) from e

        self._finalize(store, report)
        return report

    def _load_feed(self, store: StoreInterface, feed: FeedSource, report: SessionReport) -> None:
        loader = FeedLoader(store, self.settings, progress=self.progress, metrics=self.metrics)
        try:
            result = loader.load_feed(feed.name, feed.table_files())
        except GtfsLoaderError as e:
            e.with_context(feed_name=feed.name)
            if self.settings.on_feed_error == "abort":
                raise
            self.metrics.record_error(e.error_type)
            module_logger.error(f"Feed {feed.name} failed and was rolled back: {e}")
            report.failed.append(
                FeedFailure(feed_name=feed.name, error_type=e.error_type, message=str(e))
            )
            return
        report.loaded.append(result)

    def _finalize(self, store: StoreInterface, report: SessionReport) -> None:
        if self.settings.output_mode != "snapshot":
            return
        path = self.settings.database_path
        module_logger.info(f"Writing snapshot to {path}...")
        try:
            store.snapshot_to(path)
        except (OSError, *store.driver_errors) as e:
            raise CommitError(f"Could not write snapshot {path}", original_error=e) from e
        report.snapshot_path = str(path)


def run_gtfs_load(
    settings: LoaderSettings,
    progress: Optional[ProgressSink] = None,
) -> bool:
    """
    Run a full load and report success as a boolean.

    Loader errors are not raised; LoadSession.run has already logged them.
    """
    try:
        report = LoadSession(settings, progress=progress).run()
    except GtfsLoaderError:
        return False

    for failure in report.failed:
        module_logger.error(f"Feed {failure.feed_name} was not loaded: {failure.message}")
    return report.succeeded
