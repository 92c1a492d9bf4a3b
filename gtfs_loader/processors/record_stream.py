# -*- coding: utf-8 -*-
"""
Streaming access to the rows of a single GTFS table file.

Rows are tokenized one at a time with a strict CSV reader, so only the current
row is held in memory however large the file is. All values are kept as text;
an empty field is surfaced as None, which is how NULL is written in GTFS.
Every row must have exactly as many fields as the header.
"""

import csv
import io
import logging
from typing import BinaryIO, Iterator, List, Optional, Tuple

from .discovery import TableFile
from .exceptions import DiscoveryError, ParseError

module_logger = logging.getLogger(__name__)

DEFAULT_ENCODING: str = "utf-8-sig"

Row = Tuple[Optional[str], ...]

_PARSE_ERRORS = (csv.Error, UnicodeDecodeError)


class RecordStream:
    """
    Header plus a lazy, single-pass sequence of rows for one table.

    The header is read when the stream is created. Rows are read while
    iterating; a stream can be iterated only once.
    """

    def __init__(
        self,
        source: BinaryIO,
        table_name: str,
        encoding: str = DEFAULT_ENCODING,
    ):
        self.table_name = table_name
        self._consumed = False
        self._text = io.TextIOWrapper(source, encoding=encoding, newline="")
        self._reader = csv.reader(self._text, strict=True)

        header = self._next_record()
        if header is None:
            raise ParseError(
                "File is empty, a header row is required", table_name=table_name
            )
        self.header: List[str] = header

    def _next_record(self) -> Optional[List[str]]:
        # Blank lines carry no record and are skipped.
        try:
            for record in self._reader:
                if record:
                    return record
        except _PARSE_ERRORS as e:
            raise ParseError(
                f"Malformed record at line {self._reader.line_num}",
                table_name=self.table_name,
                original_error=e,
            ) from e
        return None

    def __iter__(self) -> Iterator[Row]:
        if self._consumed:
            raise RuntimeError(f"Rows of table '{self.table_name}' were already read")
        self._consumed = True
        return self._rows()

    def _rows(self) -> Iterator[Row]:
        column_count = len(self.header)
        record = self._next_record()
        while record is not None:
            if len(record) != column_count:
                raise ParseError(
                    f"Line {self._reader.line_num} has {len(record)} fields "
                    f"but the header has {column_count}",
                    table_name=self.table_name,
                )
            yield tuple(value if value != "" else None for value in record)
            record = self._next_record()

    def materialize(self) -> List[Row]:
        """Read every remaining row into memory."""
        return list(self)

    def close(self) -> None:
        self._text.close()

    def __enter__(self) -> "RecordStream":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


def open_record_stream(
    table_file: TableFile,
    encoding: str = DEFAULT_ENCODING,
) -> RecordStream:
    """
    Open a table file and wrap it in a RecordStream.

    Raises:
        DiscoveryError: If the file cannot be opened.
        ParseError: If the header cannot be read.
    """
    try:
        source = table_file.open()
    except OSError as e:
        raise DiscoveryError(
            f"Cannot open table file {table_file.file_name}",
            table_name=table_file.table_name,
            original_error=e,
        ) from e

    try:
        stream = RecordStream(source, table_file.table_name, encoding=encoding)
    except Exception:
        source.close()
        raise
    module_logger.debug(
        f"Opened {table_file.file_name} with columns {stream.header}"
    )
    return stream
