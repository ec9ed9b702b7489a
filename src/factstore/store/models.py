"""Data models for the fact store and their row/wire mappings."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from .errors import SerializationError
from .keys import key_datetime, key_timestamp


@dataclass(frozen=True)
class Fact:
    """A single stored fact.

    Attributes:
        key: Time-ordered unique identifier assigned by the store.
        fact: The fact content.
        kind: Short category tag (e.g., 'Cat fact', 'Printer fact').
    """

    key: UUID
    fact: str
    kind: str

    @property
    def created_at(self) -> datetime:
        """Timestamp encoded in the key (UTC, naive)."""
        return key_datetime(self.key)

    def to_dict(self) -> dict[str, str]:
        """Convert to the JSON wire shape."""
        return {"key": str(self.key), "fact": self.fact, "kind": self.kind}


@dataclass(frozen=True)
class FactInput:
    """The caller-supplied part of a fact. Keys are never accepted from input."""

    fact: str
    kind: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FactInput":
        """Create from a JSON-like mapping.

        Args:
            data: Mapping with 'fact' and 'kind' string fields. A 'key'
                field, if present, is ignored.

        Raises:
            ValueError: If a field is missing or not a string.
        """
        values = {}
        for name in ("fact", "kind"):
            value = data.get(name)
            if not isinstance(value, str):
                raise ValueError(f"Field '{name}' must be a string")
            values[name] = value
        return cls(**values)


def parse_key(text: str) -> UUID:
    """Parse the string form of a fact key.

    Raises:
        ValueError: If the text is not a time-ordered (version 1) UUID.
    """
    try:
        key = UUID(text)
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Invalid fact key: {text!r}") from e
    key_timestamp(key)
    return key


def row_to_key(row: Mapping[str, Any]) -> UUID:
    """Extract the key column from a row."""
    try:
        key = row["key"]
    except KeyError as e:
        raise SerializationError("map_row", "missing column 'key'") from e
    except TypeError as e:
        raise SerializationError("map_row", f"row is not a mapping: {type(row).__name__}") from e
    if not isinstance(key, UUID):
        raise SerializationError("map_row", "column 'key' is not a UUID", key=key)
    return key


def row_to_fact(row: Mapping[str, Any]) -> Fact:
    """Convert a (key, fact, kind) row to a Fact.

    Raises:
        SerializationError: If a column is missing or has the wrong type.
    """
    key = row_to_key(row)
    values = {}
    for name in ("fact", "kind"):
        if name not in row:
            raise SerializationError("map_row", f"missing column '{name}'", key=key)
        value = row[name]
        if not isinstance(value, str):
            raise SerializationError("map_row", f"column '{name}' is not text", key=key)
        values[name] = value
    return Fact(key=key, **values)
