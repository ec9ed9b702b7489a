"""Time-ordered key generation.

Keys are RFC 4122 version 1 UUIDs, which Cassandra stores natively as
``timeuuid``. Generation happens client-side so the ordering guarantee does
not depend on the backing engine's ``now()`` function:

- 100 ns timestamp resolution, counted from the Gregorian epoch.
- Strictly monotonic per generator: a tick equal to or behind the last
  issued one is bumped to ``last + 1``.
- Random 14-bit clock sequence and random multicast node id per
  generator, so separate processes do not collide.
"""

import secrets
import threading
import time
from datetime import datetime
from uuid import UUID

from cassandra.util import datetime_from_uuid1

# 100 ns intervals between 1582-10-15 and 1970-01-01
GREGORIAN_OFFSET = 0x01B21DD213814000


class KeyGenerator:
    """Generates strictly increasing time-ordered UUIDs. Thread-safe."""

    def __init__(self, node: int | None = None, clock_seq: int | None = None) -> None:
        if node is None:
            # Multicast bit set marks a random node id (RFC 4122 4.5)
            node = secrets.randbits(48) | 0x010000000000
        if clock_seq is None:
            clock_seq = secrets.randbits(14)
        self.node = node
        self.clock_seq = clock_seq
        self._last = 0
        self._lock = threading.Lock()

    def _now(self) -> int:
        return time.time_ns() // 100 + GREGORIAN_OFFSET

    def _next_timestamp(self) -> int:
        with self._lock:
            timestamp = max(self._now(), self._last + 1)
            self._last = timestamp
            return timestamp

    def new_key(self) -> UUID:
        """Return a new key, later than every key this generator issued."""
        timestamp = self._next_timestamp()
        time_low = timestamp & 0xFFFFFFFF
        time_mid = (timestamp >> 32) & 0xFFFF
        time_hi_version = (timestamp >> 48) & 0x0FFF
        clock_seq_low = self.clock_seq & 0xFF
        clock_seq_hi_variant = (self.clock_seq >> 8) & 0x3F
        return UUID(
            fields=(time_low, time_mid, time_hi_version, clock_seq_hi_variant, clock_seq_low, self.node),
            version=1,
        )


def key_timestamp(key: UUID) -> int:
    """Return the raw 100 ns timestamp of a version 1 key."""
    if key.version != 1:
        raise ValueError(f"Not a time-ordered key: {key}")
    return key.time


def key_datetime(key: UUID) -> datetime:
    """Return the creation time encoded in a key."""
    key_timestamp(key)
    return datetime_from_uuid1(key)
