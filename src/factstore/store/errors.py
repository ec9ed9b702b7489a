"""Error taxonomy for the fact store."""

from typing import Any
from uuid import UUID


class StoreError(Exception):
    """Base class for every error raised by the store."""


class StoreConnectionError(StoreError):
    """The cluster session could not be established or has been lost."""


class QueryError(StoreError):
    """The driver reported a failure while running a statement.

    Attributes:
        operation: Name of the store operation that failed (e.g. 'read').
        intent: Key and fields the statement was acting on.
    """

    def __init__(self, operation: str, message: str, **intent: Any) -> None:
        self.operation = operation
        self.intent = intent
        details = ", ".join(f"{name}={value!r}" for name, value in intent.items())
        text = f"{operation} failed: {message}"
        if details:
            text = f"{text} ({details})"
        super().__init__(text)


class SerializationError(QueryError):
    """A row could not be mapped to a Fact."""


class NotFoundError(StoreError):
    """A read returned zero rows for the requested key."""

    def __init__(self, key: UUID | None, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"No fact with key {key}")
