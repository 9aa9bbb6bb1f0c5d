"""IndexManager — the shared index artifact and its sequence allocator.

INVARIANT: The index is only mutated inside :func:`locked_update`, and every
business rule is checked against the state read under that lock, so two
concurrent callers can never both observe the same ``next_sequence``.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from aidlctl.domain.errors import (
    AlreadyExistsError,
    ConflictError,
    InvalidError,
    NotFoundError,
    StoreIOError,
)
from aidlctl.domain.ids import is_sequence_ref
from aidlctl.domain.lifecycle import (
    INITIAL_STATUS,
    RecordStatus,
    check_status_change,
    check_supersede,
    is_terminal,
)
from aidlctl.domain.record import Index, IndexEntry
from aidlctl.infrastructure.filesystem import (
    DEFAULT_LOCK_POLICY,
    LockPolicy,
    locked_update,
    read_json,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def coerce_index(state: dict[str, Any]) -> Index:
    """Build an :class:`Index` from raw JSON state, salvaging what it can.

    Entries that fail validation are dropped with a warning. ``next_sequence``
    is raised above every surviving entry so numbers are never reused.
    """
    if not state:
        return Index()
    try:
        return Index.model_validate(state)
    except ValidationError:
        logger.warning("Index failed validation; salvaging valid entries")

    items: dict[str, IndexEntry] = {}
    raw_items = state.get("items")
    if isinstance(raw_items, dict):
        for record_id, raw in raw_items.items():
            try:
                items[record_id] = IndexEntry.model_validate(raw)
            except ValidationError:
                logger.warning("Dropping malformed index entry %r", record_id)

    raw_next = state.get("next_sequence")
    next_sequence = raw_next if isinstance(raw_next, int) and raw_next >= 1 else 1
    highest = max((e.sequence_number for e in items.values()), default=0)
    return Index(next_sequence=max(next_sequence, highest + 1), items=items)


def dump_index(index: Index) -> dict[str, Any]:
    """JSON-ready form of *index*."""
    return index.model_dump(mode="json")


class IndexManager:
    """Owns ``index.json``: allocation, status transitions, metadata patches."""

    def __init__(self, path: Path, policy: LockPolicy = DEFAULT_LOCK_POLICY) -> None:
        self.path = path
        self.policy = policy

    # ------------------------------------------------------------------
    # Reads (lock-free)
    # ------------------------------------------------------------------

    def read(self) -> Index:
        """Current index. A missing file reads as an empty index.

        Raises:
            StoreIOError: If the file is unparseable or fails validation.
        """
        try:
            state = read_json(self.path)
        except NotFoundError:
            return Index()
        try:
            return Index.model_validate(state)
        except ValidationError as exc:
            msg = f"Corrupted index {self.path}: {exc.error_count()} validation error(s)"
            raise StoreIOError(msg) from exc

    def get_entry(self, record_id: str) -> IndexEntry | None:
        """Index entry for *record_id*, or None."""
        return self.read().items.get(record_id)

    # ------------------------------------------------------------------
    # Mutations (all under the index lock)
    # ------------------------------------------------------------------

    def _mutate(self, fn: Callable[[Index], _T]) -> _T:
        """Apply *fn* to the locked index and persist it; return *fn*'s result."""
        outcome: list[_T] = []

        def apply(state: dict[str, Any]) -> dict[str, Any]:
            index = coerce_index(state)
            outcome.append(fn(index))
            return dump_index(index)

        locked_update(self.path, apply, policy=self.policy)
        return outcome[0]

    def initialize(self) -> bool:
        """Create the index file if absent. Returns True if it was created."""
        if self.path.is_file():
            return False
        self._mutate(lambda index: None)
        return True

    def allocate(self, record_id: str, title: str, date: dt.date) -> IndexEntry:
        """Assign the next sequence number to a new record.

        Raises:
            AlreadyExistsError: If *record_id* is already indexed.
        """

        def apply(index: Index) -> IndexEntry:
            if record_id in index.items:
                msg = f"Record already exists: {record_id}"
                raise AlreadyExistsError(msg)
            entry = IndexEntry(
                title=title,
                id=record_id,
                sequence_number=index.next_sequence,
                status=INITIAL_STATUS,
                date=date,
            )
            index.items[record_id] = entry
            index.next_sequence += 1
            return entry

        entry = self._mutate(apply)
        logger.debug("Allocated sequence %d to %s", entry.sequence_number, record_id)
        return entry

    def set_status(self, record_id: str, status: RecordStatus) -> IndexEntry:
        """Move a record to *status* through the generic lifecycle rules."""

        def apply(index: Index) -> IndexEntry:
            entry = _require(index, record_id)
            check_status_change(entry.status)
            updated = entry.model_copy(update={"status": status})
            index.items[record_id] = updated
            return updated

        return self._mutate(apply)

    def supersede(self, record_id: str, reference: str | int) -> IndexEntry:
        """Mark *record_id* as superseded by the record *reference* names.

        *reference* is a record ID or a sequence number (int or digits).

        Raises:
            NotFoundError: If either record is missing.
            InvalidError: If *reference* resolves to *record_id* itself.
            ConflictError: If *record_id* is already superseded.
        """

        def apply(index: Index) -> IndexEntry:
            entry = _require(index, record_id)
            successor = resolve_reference(index, reference)
            if successor is None:
                msg = f"Superseding record not found: {reference}"
                raise NotFoundError(msg)
            if successor.id == record_id:
                msg = "A record cannot supersede itself"
                raise InvalidError(msg)
            check_supersede(entry.status)
            updated = entry.model_copy(
                update={
                    "status": RecordStatus.SUPERSEDED,
                    "superseded_by": str(successor.sequence_number),
                }
            )
            index.items[record_id] = updated
            return updated

        return self._mutate(apply)

    def patch_entry(
        self, record_id: str, *, title: str, allow_terminal: bool = False
    ) -> IndexEntry:
        """Mirror a title change into the index entry.

        Raises:
            ConflictError: If the record was superseded in the meantime and
                *allow_terminal* is not set.
        """

        def apply(index: Index) -> IndexEntry:
            entry = _require(index, record_id)
            if is_terminal(entry.status) and not allow_terminal:
                msg = "Cannot update superseded record"
                raise ConflictError(msg)
            updated = entry.model_copy(update={"title": title})
            index.items[record_id] = updated
            return updated

        return self._mutate(apply)

    def remove(self, record_id: str) -> bool:
        """Drop an entry without touching ``next_sequence``.

        Used to compensate a create whose document write failed.
        """

        def apply(index: Index) -> bool:
            return index.items.pop(record_id, None) is not None

        return self._mutate(apply)

    # ------------------------------------------------------------------
    # Repair primitives
    # ------------------------------------------------------------------

    def salvage(self) -> Index:
        """Rewrite the index keeping only what validates."""
        return self._mutate(lambda index: index.model_copy())

    def adopt(self, entry: IndexEntry) -> IndexEntry:
        """Index a record known only from its document header.

        Raises:
            AlreadyExistsError: If the ID is already indexed.
            ConflictError: If its sequence number belongs to another record.
        """

        def apply(index: Index) -> IndexEntry:
            if entry.id in index.items:
                msg = f"Record already exists: {entry.id}"
                raise AlreadyExistsError(msg)
            holder = index.find_by_sequence(entry.sequence_number)
            if holder is not None:
                msg = f"Sequence {entry.sequence_number} already belongs to {holder.id}"
                raise ConflictError(msg)
            index.items[entry.id] = entry
            index.next_sequence = max(index.next_sequence, entry.sequence_number + 1)
            return entry

        return self._mutate(apply)

    def reconcile_sequence(self) -> int:
        """Raise ``next_sequence`` above every allocated number; return it."""

        def apply(index: Index) -> int:
            highest = max((e.sequence_number for e in index.items.values()), default=0)
            index.next_sequence = max(index.next_sequence, highest + 1)
            return index.next_sequence

        return self._mutate(apply)


def resolve_reference(index: Index, reference: str | int) -> IndexEntry | None:
    """Entry named by *reference*: a sequence number or a record ID."""
    if isinstance(reference, int):
        return index.find_by_sequence(reference)
    if is_sequence_ref(reference):
        return index.find_by_sequence(int(reference))
    return index.items.get(reference)


def _require(index: Index, record_id: str) -> IndexEntry:
    entry = index.items.get(record_id)
    if entry is None:
        msg = f"Record not found: {record_id}"
        raise NotFoundError(msg)
    return entry
