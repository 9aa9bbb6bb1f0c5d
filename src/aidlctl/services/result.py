"""ServiceResult: what every record operation hands back to its adapter.

INVARIANT: Service methods return a ServiceResult and never raise for a
store or validation failure. The CLI renders it and picks the exit code;
the MCP tools flatten it with :meth:`ServiceResult.to_tool_response`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from aidlctl.domain.errors import ErrorKind


class ServiceError(BaseModel):
    """Why an operation failed, as one of the stable error kinds."""

    model_config = {"frozen": True}

    code: ErrorKind
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one record operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name (``"create"``, ``"update_status"``, ...).
        data: Operation payload on success; mutations carry the record ``id``.
        warnings: Non-fatal issues, such as a document left behind its
            index entry after a committed status change.
        error: Set when ``ok`` is False.
        meta: Span tree under ``"telemetry"`` when tracing is on.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(cls, op: str, kind: ErrorKind, message: str) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError(code=kind, message=message))

    def to_tool_response(self) -> dict[str, Any]:
        """Flat ``{"ok": True, **data}`` or ``{"ok": False, "error", "message"}``."""
        if not self.ok:
            if self.error is None:
                return {"ok": False, "error": str(ErrorKind.IO), "message": "Unknown error"}
            return {"ok": False, "error": str(self.error.code), "message": self.error.message}
        response: dict[str, Any] = {"ok": True, **self.data}
        if self.warnings:
            response["warnings"] = self.warnings
        return response
