"""Shared fixtures: an in-memory stand-in for a Cassandra session."""

from pathlib import Path
from typing import Any

import pytest

from factstore.logging import JSONLLogger
from factstore.store import ConnectionManager, FactStore


class FakeSession:
    """Understands exactly the CQL statements the store issues.

    Rows live in a dict keyed by primary key. ``fail_on`` maps a statement
    prefix (e.g. "INSERT", "TRUNCATE") to an exception raised instead of
    running the statement.
    """

    def __init__(self) -> None:
        self.rows: dict[Any, dict[str, Any]] = {}
        self.keyspaces: dict[str, str] = {}
        self.tables: set[str] = set()
        self.calls: list[tuple[str, Any, int]] = []
        self.fail_on: dict[str, Exception] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.is_shutdown = False

    def shutdown(self) -> None:
        self.is_shutdown = True

    def execute(self, statement, params=None):
        query = statement.query_string
        self.calls.append((query, params, statement.consistency_level))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for prefix, error in self.fail_on.items():
                if query.startswith(prefix):
                    raise error
            return self._run(query, params)
        finally:
            self.in_flight -= 1

    def _run(self, query: str, params):
        if query.startswith("CREATE KEYSPACE IF NOT EXISTS"):
            name = query.split()[5]
            self.keyspaces.setdefault(name, query)
            return []
        if query.startswith("CREATE TABLE IF NOT EXISTS"):
            self.tables.add(query.split()[5])
            return []
        if query.startswith("TRUNCATE"):
            self.rows.clear()
            return []
        if query.startswith("INSERT INTO"):
            key, fact, kind = params
            self.rows[key] = {"key": key, "fact": fact, "kind": kind}
            return []
        if query.startswith("SELECT key FROM"):
            return [{"key": key} for key in self.rows]
        if query.startswith("SELECT key, fact, kind FROM"):
            (key,) = params
            row = self.rows.get(key)
            return [dict(row)] if row is not None else []
        if query.startswith("UPDATE"):
            fact, kind, key = params
            self.rows[key] = {"key": key, "fact": fact, "kind": kind}
            return []
        if query.startswith("DELETE FROM"):
            (key,) = params
            self.rows.pop(key, None)
            return []
        raise AssertionError(f"Unexpected statement: {query}")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def connection(session: FakeSession) -> ConnectionManager:
    return ConnectionManager(session)


@pytest.fixture
def store(connection: ConnectionManager) -> FactStore:
    return FactStore(connection)


@pytest.fixture
def query_log(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")
