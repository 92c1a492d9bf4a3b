# -*- coding: utf-8 -*-
"""
StoreInterface - Abstract base class for the relational stores the loader writes to.

The loader only needs a small surface from a store: run a DDL script, open and
close transactions and savepoints, build one insert statement per table and
execute it once per row. Each backend implements that surface in its own
dialect so that the load logic stays backend-agnostic.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Sequence, Tuple, Type


class StoreInterface(ABC):
    """
    Abstract base class defining the operations every destination store provides.
    """

    def __init__(self, connection: Any):
        """
        Initialize the store around an open DB-API connection.

        Args:
            connection: Open connection, already in autocommit mode so that
                BEGIN/COMMIT issued by the loader delimit transactions.
        """
        self.connection = connection
        self.logger = logging.getLogger(self.__class__.__name__)
        self._durability_relaxed = False

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend (e.g., 'sqlite', 'postgres')."""
        pass

    @property
    @abstractmethod
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        """Exception classes raised by the underlying driver."""
        pass

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        """True while a transaction is open on the connection."""
        pass

    @abstractmethod
    def is_constraint_violation(self, error: BaseException) -> bool:
        """True when a driver error reports a violated constraint."""
        pass

    @abstractmethod
    def execute_script(self, script: str) -> None:
        """Run one or more DDL statements."""
        pass

    @abstractmethod
    def build_insert(self, table_name: str, columns: Sequence[str]) -> Any:
        """
        Build a parameterized INSERT for `table_name` with one positional
        placeholder per column.
        """
        pass

    @abstractmethod
    def execute_row(self, cursor: Any, statement: Any, params: Sequence[Any]) -> None:
        """Execute a prepared insert for a single row."""
        pass

    @abstractmethod
    def _apply_relaxed_durability(self) -> None:
        pass

    def cursor(self) -> Any:
        return self.connection.cursor()

    def begin(self) -> None:
        self.connection.execute("BEGIN")

    def commit(self) -> None:
        self.connection.execute("COMMIT")

    def rollback(self) -> None:
        self.connection.execute("ROLLBACK")

    def savepoint(self, name: str) -> None:
        self.connection.execute(f"SAVEPOINT {self.quote_identifier(name)}")

    def release_savepoint(self, name: str) -> None:
        self.connection.execute(f"RELEASE SAVEPOINT {self.quote_identifier(name)}")

    def rollback_to_savepoint(self, name: str) -> None:
        self.connection.execute(f"ROLLBACK TO SAVEPOINT {self.quote_identifier(name)}")
        self.release_savepoint(name)

    def relax_durability(self) -> None:
        """
        Trade crash safety for bulk insert speed, once per connection.

        Must be called outside of a transaction.
        """
        if self._durability_relaxed:
            return
        self._apply_relaxed_durability()
        self._durability_relaxed = True
        self.logger.warning(
            f"Durability relaxed on the {self.backend_name} store: a crash during this run "
            f"may lose or corrupt data. Only use this for rebuildable databases."
        )

    def snapshot_to(self, path: Path) -> None:
        """Persist the whole store to a fresh file at `path`."""
        raise NotImplementedError(
            f"The {self.backend_name} store does not support snapshots"
        )

    def close(self) -> None:
        try:
            self.connection.close()
        except Exception as e:
            self.logger.warning(f"Failed to close {self.backend_name} connection: {e}")

    @staticmethod
    def quote_identifier(name: str) -> str:
        """Quote a table or column name for use in SQL text."""
        return '"' + name.replace('"', '""') + '"'
