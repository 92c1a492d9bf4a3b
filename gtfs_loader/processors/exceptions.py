# -*- coding: utf-8 -*-
"""
Error taxonomy for the GTFS loader.

Every failure raised by the loader is one of the classes below. Each error
aborts the smallest transactional unit it happens in (one feed) and carries
enough context to produce a single readable message for the operator.
"""

from typing import Optional


class GtfsLoaderError(Exception):
    """Base class for all loader errors."""

    error_type = "loader"

    def __init__(
        self,
        message: str,
        feed_name: Optional[str] = None,
        table_name: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.message = message
        self.feed_name = feed_name
        self.table_name = table_name
        self.original_error = original_error
        super().__init__(message)

    def with_context(
        self, feed_name: Optional[str] = None, table_name: Optional[str] = None
    ) -> "GtfsLoaderError":
        """Fill in feed/table context that was not known where the error was raised."""
        if self.feed_name is None:
            self.feed_name = feed_name
        if self.table_name is None:
            self.table_name = table_name
        return self

    def __str__(self) -> str:
        location = []
        if self.feed_name:
            location.append(f"feed '{self.feed_name}'")
        if self.table_name:
            location.append(f"table '{self.table_name}'")
        prefix = f"[{', '.join(location)}] " if location else ""
        text = f"{self.__class__.__name__}: {prefix}{self.message}"
        if self.original_error is not None:
            text += f" ({self.original_error})"
        return text


class SchemaError(GtfsLoaderError):
    """Schema DDL is missing, unreadable or rejected by the store."""

    error_type = "schema"


class DiscoveryError(GtfsLoaderError):
    """Feed root, feed directory or table file could not be read."""

    error_type = "discovery"


class ParseError(GtfsLoaderError):
    """A table file holds a malformed header or record."""

    error_type = "parse"


class BindError(GtfsLoaderError):
    """A row could not be bound to the insert statement."""

    error_type = "bind"


class ConstraintError(GtfsLoaderError):
    """The store rejected a row because it violates a constraint."""

    error_type = "constraint"


class CommitError(GtfsLoaderError):
    """The store rejected a commit, or the snapshot could not be written."""

    error_type = "commit"
