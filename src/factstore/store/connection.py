"""Cluster connection with serialized access."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from cassandra import DriverException
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, NoHostAvailable
from cassandra.connection import ConnectionException
from cassandra.protocol import ErrorMessage
from cassandra.query import SimpleStatement, dict_factory

from .consistency import level_name
from .errors import QueryError, StoreConnectionError

if TYPE_CHECKING:
    from ..config import StoreSettings
    from ..logging import JSONLLogger

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionState(Enum):
    """Lifecycle of a connected session. Transitions only move forward."""

    CONNECTED = "connected"
    FAILED = "failed"
    CLOSED = "closed"


class ConnectionManager:
    """Owns the single cluster session and serializes access to it.

    Every statement runs while holding one of ``query_slots`` slots
    (default 1: at most one statement in flight). There is no retry and no
    reconnection; once the session is lost every later call raises
    StoreConnectionError until the process restarts.
    """

    def __init__(
        self,
        session: Any,
        cluster: Cluster | None = None,
        query_slots: int = 1,
        query_log: JSONLLogger | None = None,
    ) -> None:
        if query_slots < 1:
            raise ValueError("query_slots must be at least 1")
        self.session = session
        self.cluster = cluster
        self.query_slots = query_slots
        self.query_log = query_log
        self._slots = threading.BoundedSemaphore(query_slots)
        self._local = threading.local()
        self._state = ConnectionState.CONNECTED
        self._state_lock = threading.Lock()

    @classmethod
    def connect(
        cls,
        settings: StoreSettings,
        query_log: JSONLLogger | None = None,
    ) -> ConnectionManager:
        """Connect to the cluster described by settings.

        Raises:
            StoreConnectionError: If no node is reachable. Not retried.
        """
        auth_provider = None
        if settings.username is not None:
            auth_provider = PlainTextAuthProvider(
                username=settings.username,
                password=settings.password,
            )

        profile_options: dict[str, Any] = {"row_factory": dict_factory}
        if settings.request_timeout is not None:
            profile_options["request_timeout"] = settings.request_timeout

        cluster = None
        try:
            cluster = Cluster(
                contact_points=settings.contact_points,
                port=settings.port,
                auth_provider=auth_provider,
                execution_profiles={EXEC_PROFILE_DEFAULT: ExecutionProfile(**profile_options)},
            )
            session = cluster.connect()
        except (NoHostAvailable, ConnectionException, DriverException, OSError) as e:
            if cluster is not None:
                cluster.shutdown()
            hosts = ", ".join(f"{host}:{settings.port}" for host in settings.contact_points)
            logger.error("Failed to connect to %s: %s", hosts, e)
            raise StoreConnectionError(f"Cannot connect to cluster at {hosts}: {e}") from e

        logger.info(
            "Connected to cluster %s (%d query slot(s))",
            ", ".join(settings.contact_points),
            settings.query_slots,
        )
        return cls(session, cluster=cluster, query_slots=settings.query_slots, query_log=query_log)

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _holds_slot(self) -> bool:
        return getattr(self._local, "held", False)

    @contextmanager
    def exclusive(self) -> Iterator[ConnectionManager]:
        """Hold a query slot for the duration of the block. Not re-entrant."""
        if self._holds_slot():
            raise RuntimeError("Exclusive access is already held by this thread")
        self._slots.acquire()
        self._local.held = True
        try:
            yield self
        finally:
            self._local.held = False
            self._slots.release()

    def with_exclusive_access(self, op: Callable[[], T]) -> T:
        """Run op while holding a query slot and return its result."""
        with self.exclusive():
            return op()

    def _ensure_usable(self) -> None:
        if self._state is ConnectionState.FAILED:
            raise StoreConnectionError("Cluster session was lost; restart required")
        if self._state is not ConnectionState.CONNECTED:
            raise StoreConnectionError(f"Cluster session is {self._state.value}")

    def _mark_failed(self, error: Exception) -> None:
        with self._state_lock:
            if self._state is ConnectionState.CONNECTED:
                self._state = ConnectionState.FAILED
                logger.error("Cluster session lost: %s", error)

    def execute(
        self,
        query: str,
        params: Sequence[Any] | None = None,
        *,
        consistency: int,
        operation: str,
        **intent: Any,
    ) -> list[dict[str, Any]]:
        """Run one parameterized statement and return its rows.

        Must be called inside :meth:`exclusive`.

        Args:
            query: CQL with %s placeholders.
            params: Values for the placeholders.
            consistency: Driver consistency level for this statement.
            operation: Store operation name, used in errors and logs.
            **intent: Key and fields the statement acts on.

        Raises:
            StoreConnectionError: The session is unusable or was just lost.
            QueryError: The driver rejected or failed the statement.
        """
        if not self._holds_slot():
            raise RuntimeError("execute() requires exclusive access")
        self._ensure_usable()

        statement = SimpleStatement(query, consistency_level=consistency)
        start_time = time.monotonic()
        rows: list[dict[str, Any]] | None = None
        error: str | None = None
        try:
            rows = list(self.session.execute(statement, params) or [])
            return rows
        except (NoHostAvailable, ConnectionException) as e:
            error = str(e) or type(e).__name__
            self._mark_failed(e)
            raise StoreConnectionError(f"{operation} failed: cluster session lost: {error}") from e
        except (DriverException, ErrorMessage) as e:
            error = str(e) or type(e).__name__
            raise QueryError(operation, error, **intent) from e
        finally:
            self._log_query(operation, consistency, start_time, rows, error, intent)

    def _log_query(
        self,
        operation: str,
        consistency: int,
        start_time: float,
        rows: list[dict[str, Any]] | None,
        error: str | None,
        intent: dict[str, Any],
    ) -> None:
        duration_ms = (time.monotonic() - start_time) * 1000
        if error is not None:
            logger.warning("%s failed after %.1f ms: %s", operation, duration_ms, error)
        if self.query_log is None:
            return
        self.query_log.log_query(
            operation,
            consistency=level_name(consistency),
            duration_ms=round(duration_ms, 3),
            key=intent.get("key"),
            row_count=len(rows) if rows is not None else None,
            error=error,
        )

    def close(self) -> None:
        """Shut down the cluster. Later operations raise StoreConnectionError."""
        with self._state_lock:
            if self._state is ConnectionState.CLOSED:
                return
            self._state = ConnectionState.CLOSED
        if self.cluster is not None:
            self.cluster.shutdown()
        else:
            self.session.shutdown()
        logger.info("Cluster connection closed")
