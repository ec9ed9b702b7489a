"""Store configuration.

Settings are read from ``FACTSTORE_*`` environment variables. The entry
point loads a ``.env`` file first, so a local file can provide them too.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from .store.consistency import (
    DEFAULT_READ_CONSISTENCY,
    DEFAULT_REPLICA_COUNT,
    DEFAULT_WRITE_CONSISTENCY,
    ConsistencySettings,
    level_name,
    parse_level,
)
from .store.schema import validate_identifier

DEFAULT_PORT = 9042
DEFAULT_KEYSPACE = "pfacts"
DEFAULT_TABLE = "facts"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_contact_points(value: str) -> tuple[list[str], int]:
    """Split 'host[:port],host[:port]' into hosts and their shared port.

    Raises:
        ValueError: If no host is given, a port is invalid, or hosts use
            different ports.
    """
    hosts: list[str] = []
    ports: set[int] = set()
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        host, sep, port = item.rpartition(":")
        if not sep:
            host, port = item, ""
        if not host:
            raise ValueError(f"Invalid contact point: {item!r}")
        if port:
            if not port.isdigit() or not 0 < int(port) < 65536:
                raise ValueError(f"Invalid port in contact point: {item!r}")
            ports.add(int(port))
        hosts.append(host)

    if not hosts:
        raise ValueError("At least one contact point is required")
    if len(ports) > 1:
        raise ValueError("All contact points must use the same port")
    return hosts, ports.pop() if ports else DEFAULT_PORT


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_str(name: str) -> str | None:
    return os.environ.get(name, "").strip() or None


def _env_secret(name: str) -> str | None:
    # Taken verbatim: an empty or padded password is still a password
    return os.environ.get(name)


@dataclass
class StoreSettings:
    """Configuration for connecting to and bootstrapping the store.

    Attributes:
        contact_points: Seed node hosts.
        port: CQL native port shared by all contact points.
        username: Optional username; enables password authentication.
        password: Password for username.
        keyspace: Keyspace holding the facts table.
        table: Table name.
        replica_count: Replication factor for keyspace creation.
        read_consistency: Consistency level name for reads.
        write_consistency: Consistency level name for writes.
        list_consistency: Level name for key scans; None follows reads.
        query_slots: Number of statements allowed in flight at once.
        request_timeout: Driver request timeout in seconds; None keeps the
            driver default.
        reset_on_migrate: Truncate the table before seeding.
        seed_file: Optional JSON corpus replacing the bundled seed data.
        log_dir: Directory for the JSONL query log.
    """

    contact_points: list[str] = field(default_factory=lambda: ["127.0.0.1"])
    port: int = DEFAULT_PORT
    username: str | None = None
    password: str | None = None
    keyspace: str = DEFAULT_KEYSPACE
    table: str = DEFAULT_TABLE
    replica_count: int = DEFAULT_REPLICA_COUNT
    read_consistency: str = level_name(DEFAULT_READ_CONSISTENCY)
    write_consistency: str = level_name(DEFAULT_WRITE_CONSISTENCY)
    list_consistency: str | None = None
    query_slots: int = 1
    request_timeout: float | None = None
    reset_on_migrate: bool = False
    seed_file: Path | None = None
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate settings and set defaults."""
        if not self.contact_points:
            raise ValueError("At least one contact point is required")
        if self.query_slots < 1:
            raise ValueError("query_slots must be at least 1")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be set together")
        validate_identifier(self.keyspace)
        validate_identifier(self.table)
        if self.log_dir is None:
            self.log_dir = Path.home() / ".factstore" / "logs"
        # Fail early on unknown level names
        self.consistency()

    def consistency(self) -> ConsistencySettings:
        """Build the initial consistency settings."""
        return ConsistencySettings(
            read=parse_level(self.read_consistency),
            write=parse_level(self.write_consistency),
            scan=parse_level(self.list_consistency) if self.list_consistency else None,
            replica_count=self.replica_count,
        )

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """Build settings from FACTSTORE_* environment variables.

        Raises:
            ValueError: If a variable has an invalid value.
        """
        hosts, port = parse_contact_points(
            os.environ.get("FACTSTORE_CONTACT_POINTS", f"127.0.0.1:{DEFAULT_PORT}")
        )
        timeout = _env_str("FACTSTORE_REQUEST_TIMEOUT")
        seed_file = _env_str("FACTSTORE_SEED_FILE")
        log_dir = _env_str("FACTSTORE_LOG_DIR")
        username = _env_str("FACTSTORE_USERNAME")
        password = _env_secret("FACTSTORE_PASSWORD")
        if username is None and not password:
            password = None
        try:
            request_timeout = float(timeout) if timeout else None
        except ValueError as e:
            raise ValueError(f"FACTSTORE_REQUEST_TIMEOUT must be a number, got {timeout!r}") from e

        return cls(
            contact_points=hosts,
            port=port,
            username=username,
            password=password,
            replica_count=_env_int("FACTSTORE_REPLICA_COUNT", DEFAULT_REPLICA_COUNT),
            read_consistency=_env_str("FACTSTORE_READ_CONSISTENCY")
            or level_name(DEFAULT_READ_CONSISTENCY),
            write_consistency=_env_str("FACTSTORE_WRITE_CONSISTENCY")
            or level_name(DEFAULT_WRITE_CONSISTENCY),
            list_consistency=_env_str("FACTSTORE_LIST_CONSISTENCY"),
            query_slots=_env_int("FACTSTORE_QUERY_SLOTS", 1),
            request_timeout=request_timeout,
            reset_on_migrate=_env_bool("FACTSTORE_RESET_ON_MIGRATE", False),
            seed_file=Path(seed_file).expanduser() if seed_file else None,
            log_dir=Path(log_dir).expanduser() if log_dir else None,
        )
