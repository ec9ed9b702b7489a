"""CRUD operations for facts."""

from __future__ import annotations

import logging
from random import Random, choice
from typing import TYPE_CHECKING, Any
from uuid import UUID

from .connection import ConnectionManager
from .consistency import ConsistencyPolicy
from .errors import NotFoundError
from .keys import KeyGenerator
from .models import Fact, row_to_fact, row_to_key
from .schema import SchemaManager, qualified_table

if TYPE_CHECKING:
    from ..config import StoreSettings
    from ..logging import JSONLLogger

logger = logging.getLogger(__name__)


class FactStore:
    """Create, read, list, update and delete facts.

    Every operation holds exclusive access to the connection for its
    statement and uses one snapshot of the consistency policy.

    ``update`` and ``delete`` do not check that the key exists. CQL
    ``UPDATE`` is an upsert, so updating an unknown key creates the row;
    deleting an unknown key is a no-op.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        policy: ConsistencyPolicy | None = None,
        keyspace: str = "pfacts",
        table: str = "facts",
        key_generator: KeyGenerator | None = None,
    ) -> None:
        self.connection = connection
        self.policy = policy or ConsistencyPolicy()
        self.keyspace = keyspace
        self.table = table
        self.key_generator = key_generator or KeyGenerator()

        name = qualified_table(keyspace, table)
        self._insert = f"INSERT INTO {name} (key, fact, kind) VALUES (%s, %s, %s)"
        self._select_keys = f"SELECT key FROM {name}"
        self._select_one = f"SELECT key, fact, kind FROM {name} WHERE key = %s"
        self._update = f"UPDATE {name} SET fact = %s, kind = %s WHERE key = %s"
        self._delete = f"DELETE FROM {name} WHERE key = %s"

    @classmethod
    def from_settings(
        cls,
        settings: StoreSettings,
        query_log: JSONLLogger | None = None,
    ) -> FactStore:
        """Connect to the cluster and build a store from settings.

        Raises:
            StoreConnectionError: If the cluster is unreachable.
        """
        connection = ConnectionManager.connect(settings, query_log=query_log)
        return cls(
            connection,
            ConsistencyPolicy(settings.consistency()),
            keyspace=settings.keyspace,
            table=settings.table,
        )

    def schema(self) -> SchemaManager:
        """Return a schema manager bound to this store."""
        return SchemaManager(self)

    def _run(
        self,
        query: str,
        params: tuple[Any, ...] | None,
        consistency: int,
        operation: str,
        **intent: Any,
    ) -> list[dict[str, Any]]:
        with self.connection.exclusive():
            return self.connection.execute(
                query,
                params,
                consistency=consistency,
                operation=operation,
                **intent,
            )

    def create(self, fact: str, kind: str) -> UUID:
        """Insert a new fact and return its generated key."""
        key = self.key_generator.new_key()
        level = self.policy.snapshot().write
        self._run(self._insert, (key, fact, kind), level, "create", key=key, kind=kind)
        logger.debug("Created fact %s", key)
        return key

    def list_keys(self) -> list[UUID]:
        """Return the keys of every stored fact, in no particular order."""
        level = self.policy.snapshot().scan_level
        rows = self._run(self._select_keys, None, level, "list_keys")
        return [row_to_key(row) for row in rows]

    def read(self, key: UUID) -> Fact:
        """Fetch one fact.

        Raises:
            NotFoundError: No row exists for key. Keys that are not
                time-ordered UUIDs are never stored, so they fail here
                without a query.
            QueryError: The read itself failed.
        """
        if key.version != 1:
            raise NotFoundError(key)
        level = self.policy.snapshot().read
        rows = self._run(self._select_one, (key,), level, "read", key=key)
        if not rows:
            raise NotFoundError(key)
        return row_to_fact(rows[0])

    def update(self, key: UUID, fact: str, kind: str) -> None:
        """Replace the fact text and kind stored under key."""
        level = self.policy.snapshot().write
        self._run(self._update, (fact, kind, key), level, "update", key=key, kind=kind)

    def delete(self, key: UUID) -> None:
        """Delete the fact stored under key. Unknown keys are ignored."""
        if key.version != 1:
            return
        level = self.policy.snapshot().write
        self._run(self._delete, (key,), level, "delete", key=key)

    def random(self, rng: Random | None = None) -> Fact:
        """Read a uniformly chosen fact.

        Lists the keys, then reads one of them as a separate call. A key
        deleted in between surfaces as NotFoundError.

        Raises:
            NotFoundError: The table is empty or the chosen key vanished.
        """
        keys = self.list_keys()
        if not keys:
            raise NotFoundError(None, "No facts stored")
        key = rng.choice(keys) if rng is not None else choice(keys)
        return self.read(key)

    def close(self) -> None:
        self.connection.close()
