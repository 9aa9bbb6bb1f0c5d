"""Record status lifecycle.

Every non-terminal status is reachable from every other one through the
generic status-set operation. ``SUPERSEDED`` is terminal and reachable only
through supersession.
"""

from __future__ import annotations

from enum import StrEnum

from aidlctl.domain.errors import ConflictError, InvalidError
from aidlctl.domain.ids import display_number


class RecordStatus(StrEnum):
    """Status of a decision record."""

    PROPOSED = "PROPOSED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    SUPERSEDED = "SUPERSEDED"


INITIAL_STATUS = RecordStatus.PROPOSED

# Statuses accepted by the generic status-set operation.
SETTABLE_STATUSES: frozenset[RecordStatus] = frozenset(RecordStatus) - {RecordStatus.SUPERSEDED}


def is_terminal(status: str) -> bool:
    """True for statuses that admit no further mutation."""
    return status == RecordStatus.SUPERSEDED


def parse_settable_status(value: str) -> RecordStatus:
    """Coerce *value* into a status accepted by the generic status-set operation.

    Matching is case-insensitive.

    Raises:
        InvalidError: For unknown statuses and for ``SUPERSEDED``.
    """
    try:
        status = RecordStatus(value.strip().upper())
    except ValueError:
        allowed = ", ".join(sorted(SETTABLE_STATUSES))
        msg = f"Invalid status: {value!r}. Allowed: {allowed}"
        raise InvalidError(msg) from None
    if status not in SETTABLE_STATUSES:
        msg = f"Invalid status: {value}. Use supersede for SUPERSEDED status."
        raise InvalidError(msg)
    return status


def check_status_change(current: str) -> None:
    """Validate that a record in *current* status may take a new status.

    Raises:
        ConflictError: When *current* is terminal.
    """
    if is_terminal(current):
        msg = "Cannot change status of superseded record"
        raise ConflictError(msg)


def check_supersede(current: str) -> None:
    """Validate that a record in *current* status may be superseded."""
    if is_terminal(current):
        msg = "Record is already superseded"
        raise ConflictError(msg)


def status_display(status: str, superseded_by: str | None = None) -> str:
    """Render a status the way documents show it.

    ``ACCEPTED`` becomes ``Accepted``; a superseded record reads
    ``Superseded by ADR-<n>``.
    """
    if status == RecordStatus.SUPERSEDED and superseded_by:
        return f"Superseded by {display_number(superseded_by)}"
    return status.capitalize()
