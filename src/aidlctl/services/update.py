"""UpdateService — status transitions, supersession, and field updates.

Status-changing operations mutate the index first (under its lock) and then
re-project the document from the index. Field updates hold the document lock
for their whole read-merge-write cycle and re-check the record's status
inside it.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from aidlctl.domain.errors import AidlError, ConflictError, NotFoundError
from aidlctl.domain.lifecycle import is_terminal, parse_settable_status
from aidlctl.domain.record import UPDATABLE_FIELDS, IndexEntry, Record, RecordFields
from aidlctl.services.base import BaseService
from aidlctl.services.result import ServiceResult
from aidlctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class UpdateService(BaseService):
    """Mutations of existing records."""

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @traced
    def update_status(self, record_id: str, status: str) -> ServiceResult:
        """Set a record's status to any non-terminal status."""
        op = "update_status"
        try:
            self._store.document_path(record_id)
            target = parse_settable_status(status)
            with trace_span("index"):
                entry = self._store.index.set_status(record_id, target)
        except AidlError as exc:
            return self._fail(op, exc)

        warnings = self._project(record_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": record_id,
                "status": str(entry.status),
                "date": entry.date.isoformat(),
            },
            warnings=warnings,
        )

    @traced
    def supersede(self, record_id: str, superseded_by: str | int) -> ServiceResult:
        """Mark a record superseded by another, named by ID or sequence number."""
        op = "supersede"
        try:
            self._store.document_path(record_id)
            with trace_span("index"):
                entry = self._store.index.supersede(record_id, superseded_by)
        except AidlError as exc:
            return self._fail(op, exc)

        warnings = self._project(record_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": record_id,
                "status": str(entry.status),
                "superseded_by": entry.superseded_by,
            },
            warnings=warnings,
        )

    def _project(self, record_id: str) -> list[str]:
        """Bring the document in line with the index after a committed change.

        The index change stands even if this fails; the failure is reported
        as a warning and ``check --repair`` can finish the job.
        """
        with trace_span("project"):
            try:
                self._store.project_document(record_id)
            except AidlError as exc:
                logger.warning("Document projection failed for %s: %s", record_id, exc.message)
                return [f"Document for {record_id} not updated: {exc.message}"]
        return []

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @traced
    def update(self, record_id: str, changes: dict[str, Any]) -> ServiceResult:
        """Patch allow-listed content fields. All-or-nothing."""
        op = "update"

        with trace_span("validate"):
            if not changes:
                return self._invalid(op, "No fields to update")
            unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
            if unknown:
                allowed = ", ".join(UPDATABLE_FIELDS)
                return self._invalid(
                    op,
                    f"Field(s) not updatable: {', '.join(unknown)}. Allowed: {allowed}",
                )

        try:
            with self._store.document_lock(record_id) as path:
                entry = self._store.index.get_entry(record_id)
                if entry is None:
                    msg = f"Record not found: {record_id}"
                    raise NotFoundError(msg)
                if is_terminal(entry.status):
                    msg = "Cannot update superseded record"
                    raise ConflictError(msg)

                current = self._store.read_document(record_id)
                fields = RecordFields.model_validate({**current.content(), **changes})

                if fields.title != entry.title:
                    with trace_span("index"):
                        entry = self._store.index.patch_entry(record_id, title=fields.title)

                with trace_span("persist"):
                    self._store.replace_document(path, _compose(record_id, fields, entry))
        except (AidlError, ValidationError) as exc:
            return self._fail(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={"id": record_id, "updated_fields": list(changes)},
        )


def _compose(record_id: str, fields: RecordFields, entry: IndexEntry) -> Record:
    return Record(
        **fields.model_dump(),
        id=record_id,
        sequence_number=entry.sequence_number,
        status=entry.status,
        date=entry.date,
        superseded_by=entry.superseded_by,
    )
