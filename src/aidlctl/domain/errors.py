"""Error taxonomy shared by every layer.

Lower layers raise :class:`AidlError` subclasses. Each carries a stable
:class:`ErrorKind` so services can shape a ``ServiceResult`` (and adapters a
tool response) without inspecting message text.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable error kinds surfaced to the adapter boundary."""

    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID = "INVALID"
    CONFLICT = "CONFLICT"
    IO = "IO"


class AidlError(Exception):
    """Base class for all domain and store failures."""

    kind: ErrorKind = ErrorKind.IO

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AidlError):
    """A record or a reference to one does not exist."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(AidlError):
    """A record with the requested ID already exists."""

    kind = ErrorKind.ALREADY_EXISTS


class InvalidError(AidlError):
    """Schema, allow-list, or status-enum violation."""

    kind = ErrorKind.INVALID


class ConflictError(AidlError):
    """Mutation of a record in a terminal state."""

    kind = ErrorKind.CONFLICT


class LockConflictError(ConflictError):
    """Lock acquisition retry budget exhausted."""


class StoreIOError(AidlError):
    """Filesystem failure or unreadable persisted state."""

    kind = ErrorKind.IO
