"""Tunable consistency levels for store operations."""

import threading
from dataclasses import dataclass, replace

from cassandra import ConsistencyLevel

DEFAULT_READ_CONSISTENCY = ConsistencyLevel.ONE
DEFAULT_WRITE_CONSISTENCY = ConsistencyLevel.LOCAL_QUORUM
DEFAULT_REPLICA_COUNT = 3


def parse_level(level: int | str) -> int:
    """Resolve a consistency level name or value to the driver's value.

    Args:
        level: A ``cassandra.ConsistencyLevel`` value, or its name
            (case-insensitive, e.g. 'one', 'LOCAL_QUORUM').

    Raises:
        ValueError: If the level is unknown.
    """
    if isinstance(level, str):
        name = level.strip().upper()
        if name not in ConsistencyLevel.name_to_value:
            raise ValueError(f"Unknown consistency level: {level!r}")
        return ConsistencyLevel.name_to_value[name]
    if level not in ConsistencyLevel.value_to_name:
        raise ValueError(f"Unknown consistency level: {level!r}")
    return level


def level_name(level: int) -> str:
    return ConsistencyLevel.value_to_name.get(level, str(level))


@dataclass(frozen=True)
class ConsistencySettings:
    """An immutable view of the consistency configuration.

    Attributes:
        read: Level for single-key reads.
        write: Level for inserts, updates and deletes.
        scan: Level for full key scans (list_keys); None means "same as read".
        replica_count: Replication factor used when creating the keyspace.
    """

    read: int = DEFAULT_READ_CONSISTENCY
    write: int = DEFAULT_WRITE_CONSISTENCY
    scan: int | None = None
    replica_count: int = DEFAULT_REPLICA_COUNT

    def __post_init__(self) -> None:
        object.__setattr__(self, "read", parse_level(self.read))
        object.__setattr__(self, "write", parse_level(self.write))
        if self.scan is not None:
            object.__setattr__(self, "scan", parse_level(self.scan))
        if self.replica_count < 1:
            raise ValueError("replica_count must be at least 1")

    @property
    def scan_level(self) -> int:
        return self.read if self.scan is None else self.scan


class ConsistencyPolicy:
    """Holds the current consistency settings, mutable at runtime.

    The settings live in one immutable snapshot. Setters serialize on a
    lock and swap in a new snapshot; getters read the current snapshot
    without locking, so readers never block and never see a partial update.
    An operation should call :meth:`snapshot` once and use that value for
    its whole execution.
    """

    def __init__(self, settings: ConsistencySettings | None = None) -> None:
        self._settings = settings or ConsistencySettings()
        self._write_lock = threading.Lock()

    def snapshot(self) -> ConsistencySettings:
        """Return the current settings."""
        return self._settings

    def get_read_consistency(self) -> int:
        return self._settings.read

    def get_write_consistency(self) -> int:
        return self._settings.write

    def get_list_consistency(self) -> int:
        return self._settings.scan_level

    @property
    def replica_count(self) -> int:
        return self._settings.replica_count

    def _update(self, **changes) -> None:
        with self._write_lock:
            self._settings = replace(self._settings, **changes)

    def set_read_consistency(self, level: int | str) -> None:
        """Set the read level for operations issued after this returns."""
        self._update(read=parse_level(level))

    def set_write_consistency(self, level: int | str) -> None:
        """Set the write level for operations issued after this returns."""
        self._update(write=parse_level(level))

    def set_list_consistency(self, level: int | str | None) -> None:
        """Set the key-scan level. None makes scans follow the read level."""
        self._update(scan=None if level is None else parse_level(level))
