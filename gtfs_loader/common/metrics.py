"""
Prometheus metrics collection for the GTFS loader.

Counts feeds, rows and errors, and times table and feed loads, so that a long
rebuild can be watched from a Prometheus scrape while it runs.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)


class LoaderMetrics:
    """Metrics collectors for a load run."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics collectors.

        Args:
            registry: Optional custom registry. Uses default if None.
        """
        self.registry = registry or REGISTRY

        self.feeds_processed = Counter(
            "gtfs_loader_feeds_processed_total",
            "Total number of feeds processed by the loader",
            ["status"],
            registry=self.registry,
        )

        self.rows_inserted = Counter(
            "gtfs_loader_rows_inserted_total",
            "Total number of rows inserted",
            ["feed_name", "table_name"],
            registry=self.registry,
        )

        self.table_load_duration = Histogram(
            "gtfs_loader_table_load_duration_seconds",
            "Time spent loading a single table of a feed",
            ["table_name"],
            registry=self.registry,
        )

        self.feed_load_duration = Histogram(
            "gtfs_loader_feed_load_duration_seconds",
            "Time spent loading a whole feed, commit included",
            registry=self.registry,
        )

        self.errors = Counter(
            "gtfs_loader_errors_total",
            "Total number of errors raised while loading",
            ["error_type"],
            registry=self.registry,
        )

        logger.debug("Loader metrics initialized")

    def record_feed_processed(self, status: str):
        """Record a feed that was committed or rolled back."""
        self.feeds_processed.labels(status=status).inc()

    def record_rows_inserted(self, feed_name: str, table_name: str, count: int):
        """Record rows inserted into a table for a feed."""
        self.rows_inserted.labels(
            feed_name=feed_name, table_name=table_name
        ).inc(count)

    def record_table_load_time(self, table_name: str, duration: float):
        self.table_load_duration.labels(table_name=table_name).observe(duration)

    def record_feed_load_time(self, duration: float):
        self.feed_load_duration.observe(duration)

    def record_error(self, error_type: str):
        """Record an error by type (parse, bind, constraint, ...)."""
        self.errors.labels(error_type=error_type).inc()


# Global metrics instance
_metrics_instance: Optional[LoaderMetrics] = None


def get_metrics() -> LoaderMetrics:
    """Get the global metrics instance."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = LoaderMetrics()
    return _metrics_instance


def start_metrics_server(port: int = 8000, addr: str = "0.0.0.0"):
    """Start the Prometheus metrics HTTP server.

    Args:
        port: Port to serve metrics on
        addr: Address to bind to
    """
    try:
        start_http_server(port, addr)
        logger.info(f"Prometheus metrics server started on {addr}:{port}")
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        raise
