"""InitService — lay out an empty record store."""

from __future__ import annotations

from aidlctl.domain.errors import AidlError
from aidlctl.services.base import BaseService
from aidlctl.services.result import ServiceResult
from aidlctl.services.telemetry import traced


class InitService(BaseService):
    """Creates the base directory and the empty index (idempotent)."""

    @traced
    def init(self) -> ServiceResult:
        try:
            created = self._store.initialize()
        except AidlError as exc:
            return self._fail("init", exc)

        warnings: list[str] = []
        if not created:
            warnings.append(f"Record store already initialized at {self._store.root}")
        return ServiceResult(
            ok=True,
            op="init",
            data={
                "path": str(self._store.root),
                "index": str(self._store.index.path),
                "created": created,
            },
            warnings=warnings,
        )
