# -*- coding: utf-8 -*-
"""
Discovery of GTFS feeds and table files on the filesystem.

A feed root holds one directory per feed; the feed is named after its
directory. Each regular file inside a feed directory is a candidate table,
named after the file with its extension stripped. Whether a file is actually
loaded is decided by the feed loader (extension filter, skip list).
"""

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, List

from .exceptions import DiscoveryError

module_logger = logging.getLogger(__name__)


class TableFile:
    """A table file inside a feed directory."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def table_name(self) -> str:
        return self.path.stem

    @property
    def extension(self) -> str:
        return self.path.suffix

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"TableFile({str(self.path)!r})"


class InMemoryTableFile(TableFile):
    """A table whose content is already in memory (injected sources, tests)."""

    def __init__(self, file_name: str, content: bytes):
        super().__init__(Path(file_name))
        self.content = content

    def open(self) -> BinaryIO:
        return io.BytesIO(self.content)

    def __repr__(self) -> str:
        return f"InMemoryTableFile({self.file_name!r}, {len(self.content)} bytes)"


class FeedSource:
    """A feed directory under the feed root."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    def table_files(self) -> List[TableFile]:
        """
        List the regular files of the feed directory in name order.

        Raises:
            DiscoveryError: If the directory cannot be read.
        """
        try:
            with os.scandir(self.path) as entries:
                files = [
                    TableFile(Path(entry.path))
                    for entry in entries
                    if entry.is_file()
                ]
        except OSError as e:
            raise DiscoveryError(
                f"Cannot read feed directory {self.path}",
                feed_name=self.name,
                original_error=e,
            ) from e
        return sorted(files, key=lambda table_file: table_file.file_name)

    def __repr__(self) -> str:
        return f"FeedSource({str(self.path)!r})"


def discover_feeds(feeds_root: Path) -> List[FeedSource]:
    """
    Find the feeds under `feeds_root`.

    Every immediate sub-directory is a feed; any other entry is ignored.
    Feeds are returned in directory name order.

    Raises:
        DiscoveryError: If the feed root is missing or cannot be read.
    """
    root = Path(feeds_root)
    if not root.is_dir():
        raise DiscoveryError(f"Feed root {root} does not exist or is not a directory")
    try:
        with os.scandir(root) as entries:
            feeds = [FeedSource(Path(entry.path)) for entry in entries if entry.is_dir()]
    except OSError as e:
        raise DiscoveryError(f"Cannot read feed root {root}", original_error=e) from e

    feeds.sort(key=lambda feed: feed.name)
    module_logger.info(
        f"Discovered {len(feeds)} feed(s) under {root}: {[feed.name for feed in feeds]}"
    )
    return feeds
