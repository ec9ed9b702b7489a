"""Keyspace and table bootstrap.

Every step is safe to re-run: keyspace and table creation use
``IF NOT EXISTS``, and seeding inserts fresh keys each time.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from .errors import QueryError, StoreError
from .models import FactInput

if TYPE_CHECKING:
    from .facts import FactStore

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,47}$")


def validate_identifier(name: str) -> str:
    """Return name if it is a valid unquoted CQL identifier.

    Raises:
        ValueError: Otherwise.
    """
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid CQL identifier: {name!r}")
    return name


def qualified_table(keyspace: str, table: str) -> str:
    return f"{validate_identifier(keyspace)}.{validate_identifier(table)}"


@dataclass
class MigrationReport:
    """Outcome of a migration run.

    Attributes:
        reset: None if no reset was requested, otherwise whether the
            truncate succeeded.
        seeded: Keys created by the seed step, in insertion order.
    """

    reset: bool | None = None
    seeded: list[UUID] = field(default_factory=list)


class SchemaManager:
    """Creates the keyspace and table and seeds example data."""

    def __init__(self, store: FactStore) -> None:
        self.store = store
        self.connection = store.connection
        self.keyspace = validate_identifier(store.keyspace)
        self.table = qualified_table(store.keyspace, store.table)

    def _log_step(self, step: str, success: bool, error: Exception | None = None, **extra) -> None:
        if self.connection.query_log is not None:
            self.connection.query_log.log_migration(
                step,
                success,
                error=str(error) if error is not None else None,
                **extra,
            )

    def _execute(self, query: str, operation: str) -> None:
        level = self.store.policy.snapshot().write
        with self.connection.exclusive():
            self.connection.execute(query, None, consistency=level, operation=operation)

    def create_keyspace(self) -> None:
        """Create the keyspace if missing. Failure is fatal."""
        replicas = self.store.policy.replica_count
        query = (
            f"CREATE KEYSPACE IF NOT EXISTS {self.keyspace} WITH replication = "
            f"{{'class': 'SimpleStrategy', 'replication_factor': {replicas}}}"
        )
        try:
            self._execute(query, "create_keyspace")
        except StoreError as e:
            self._log_step("create_keyspace", False, e)
            raise
        logger.info("Keyspace %s ready (replication factor %d)", self.keyspace, replicas)
        self._log_step("create_keyspace", True, replication_factor=replicas)

    def create_table(self) -> None:
        """Create the facts table if missing. Failure is fatal."""
        query = (
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            "key timeuuid PRIMARY KEY, fact text, kind text)"
        )
        try:
            self._execute(query, "create_table")
        except StoreError as e:
            self._log_step("create_table", False, e)
            raise
        logger.info("Table %s ready", self.table)
        self._log_step("create_table", True)

    def reset_data(self) -> bool:
        """Truncate the table, tolerating failure.

        Returns:
            True if the table was truncated, False if the truncate failed.
        """
        try:
            self._execute(f"TRUNCATE {self.table}", "reset_data")
        except QueryError as e:
            logger.warning("Could not truncate %s, keeping existing rows: %s", self.table, e)
            self._log_step("reset_data", False, e)
            return False
        logger.info("Truncated %s", self.table)
        self._log_step("reset_data", True)
        return True

    def seed(self, corpus: Iterable[FactInput]) -> list[UUID]:
        """Insert each corpus entry in order. The first failure aborts.

        Returns:
            Keys of the inserted facts.
        """
        keys: list[UUID] = []
        for item in corpus:
            try:
                keys.append(self.store.create(item.fact, item.kind))
            except StoreError as e:
                logger.error("Seeding aborted after %d fact(s): %s", len(keys), e)
                self._log_step("seed", False, e, inserted=len(keys))
                raise
        logger.info("Seeded %d fact(s)", len(keys))
        self._log_step("seed", True, inserted=len(keys))
        return keys

    def run_migrations(
        self,
        corpus: Iterable[FactInput],
        reset: bool = False,
    ) -> MigrationReport:
        """Create keyspace and table, optionally reset, then seed.

        Raises:
            StoreError: Keyspace, table or seed failure. Reset failures are
                suppressed.
        """
        report = MigrationReport()
        self.create_keyspace()
        self.create_table()
        if reset:
            report.reset = self.reset_data()
        report.seeded = self.seed(corpus)
        return report
