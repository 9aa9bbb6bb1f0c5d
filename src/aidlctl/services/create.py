"""CreateService — record creation pipeline.

Pipeline: VALIDATE → INIT → CHECK → ALLOCATE → PERSIST → RESPOND

The index allocation happens before the document write. If the write fails,
the new index entry is removed again; its sequence number stays consumed.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from aidlctl.domain.errors import AidlError, AlreadyExistsError
from aidlctl.domain.ids import validate_id
from aidlctl.domain.record import Record, RecordFields
from aidlctl.services._helpers import today
from aidlctl.services.base import BaseService
from aidlctl.services.result import ServiceResult
from aidlctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class CreateService(BaseService):
    """Handles creation of new decision records."""

    @traced
    def create(
        self,
        record_id: str,
        title: str,
        *,
        context: str,
        decision: str,
        rationale: str,
        assumptions: list[str] | None = None,
        risks: dict[str, Any] | None = None,
        cost: dict[str, Any] | None = None,
        consequences: dict[str, Any] | None = None,
        expected_result: list[str] | None = None,
    ) -> ServiceResult:
        """Create a record in PROPOSED status with the next sequence number."""
        op = "create"

        # ── VALIDATE ──────────────────────────────────────────────
        with trace_span("validate"):
            if not validate_id(record_id):
                return self._invalid(
                    op,
                    f"Invalid record ID: {record_id!r} "
                    "(lowercase letter, then 2-64 of [a-z0-9_])",
                )
            payload: dict[str, Any] = {
                "title": title,
                "context": context,
                "decision": decision,
                "rationale": rationale,
            }
            optional = {
                "assumptions": assumptions,
                "risks": risks,
                "cost": cost,
                "consequences": consequences,
                "expected_result": expected_result,
            }
            payload.update({k: v for k, v in optional.items() if v is not None})
            try:
                fields = RecordFields.model_validate(payload)
            except ValidationError as exc:
                return self._fail(op, exc)

        try:
            # ── INIT → CHECK ──────────────────────────────────────
            with trace_span("check"):
                self._store.initialize()
                if self._store.document_exists(record_id):
                    msg = f"Record already exists: {record_id}"
                    raise AlreadyExistsError(msg)

            # ── ALLOCATE ──────────────────────────────────────────
            with trace_span("allocate") as span:
                entry = self._store.index.allocate(record_id, fields.title, today())
                if span is not None:
                    span.annotate("sequence_number", entry.sequence_number)
        except AidlError as exc:
            return self._fail(op, exc)

        # ── PERSIST ───────────────────────────────────────────────
        with trace_span("persist"):
            record = Record(
                **fields.model_dump(),
                id=record_id,
                sequence_number=entry.sequence_number,
                status=entry.status,
                date=entry.date,
            )
            try:
                self._store.write_document(record)
            except AidlError as exc:
                self._compensate(record_id)
                return self._fail(op, exc)

        # ── RESPOND ───────────────────────────────────────────────
        logger.info("Created %s as sequence %d", record_id, entry.sequence_number)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": record_id,
                "sequence_number": entry.sequence_number,
                "status": str(entry.status),
                "date": entry.date.isoformat(),
                "path": str(self._store.document_path(record_id)),
            },
        )

    def _compensate(self, record_id: str) -> None:
        """Drop the index entry of a create whose document write failed."""
        try:
            self._store.index.remove(record_id)
        except AidlError:
            logger.warning("Compensation failed; %s stays indexed without a document", record_id)
        else:
            logger.warning("Document write failed; removed index entry for %s", record_id)
