"""BaseService — abstract foundation for all aidlctl services.

Every service receives a :class:`RecordStore` at construction time. The
store provides locked access to the index and the record documents.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from aidlctl.domain.errors import AidlError, ErrorKind
from aidlctl.services.result import ServiceResult

if TYPE_CHECKING:
    from aidlctl.infrastructure.store import RecordStore

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Subclasses implement domain-specific operations (create, update, query,
    check) using the store for all data access. Store failures arrive as
    :class:`AidlError` and leave the service as a failed ServiceResult.

    Usage::

        class CreateService(BaseService):
            def create(self, fields: RecordFields, record_id: str) -> ServiceResult:
                try:
                    ...
                except AidlError as exc:
                    return self._fail("create", exc)
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    @staticmethod
    def _fail(op: str, exc: AidlError | ValidationError) -> ServiceResult:
        """Convert a raised store or validation failure into a ServiceResult."""
        if isinstance(exc, ValidationError):
            code = ErrorKind.INVALID
            message = _summarize_validation(exc)
        else:
            code = exc.kind
            message = exc.message
        logger.debug("%s failed: %s %s", op, code, message)
        return ServiceResult.failure(op, code, message)

    @staticmethod
    def _invalid(op: str, message: str) -> ServiceResult:
        return ServiceResult.failure(op, ErrorKind.INVALID, message)


def _summarize_validation(exc: ValidationError) -> str:
    """One line per pydantic error: ``field.path: message``."""
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)
