"""Data-access layer for fact records in a Cassandra keyspace."""

from .connection import ConnectionManager, ConnectionState
from .consistency import ConsistencyPolicy, ConsistencySettings
from .errors import (
    NotFoundError,
    QueryError,
    SerializationError,
    StoreConnectionError,
    StoreError,
)
from .facts import FactStore
from .keys import KeyGenerator
from .models import Fact, FactInput, parse_key
from .schema import MigrationReport, SchemaManager

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConsistencyPolicy",
    "ConsistencySettings",
    "Fact",
    "FactInput",
    "FactStore",
    "KeyGenerator",
    "MigrationReport",
    "NotFoundError",
    "QueryError",
    "SchemaManager",
    "SerializationError",
    "StoreConnectionError",
    "StoreError",
    "parse_key",
]
