"""CheckService — index/document consistency and repair.

Single command following the linter pattern. ``check`` only reports;
``repair`` applies the fixes each issue names and reports what it could not
fix. Repair is always explicit, never triggered by another operation.

Authority: the index owns identity, sequence, status, date and supersession;
the document owns content, including the title.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from aidlctl.domain.document import DocumentFormatError, decode
from aidlctl.domain.errors import AidlError, NotFoundError, StoreIOError
from aidlctl.domain.record import IndexEntry
from aidlctl.infrastructure.filesystem import read_text
from aidlctl.services.base import BaseService
from aidlctl.services.result import ServiceResult
from aidlctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from aidlctl.domain.record import Index, Record

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Issue severity, category, and fix constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_INDEX = "index_integrity"
CAT_CONSISTENCY = "index_document_consistency"
CAT_STALE = "stale_files"

FIX_SALVAGE_INDEX = "salvage_index"
FIX_ADOPT_DOCUMENT = "adopt_document"
FIX_RECONCILE_SEQUENCE = "reconcile_sequence"
FIX_SYNC_TITLE = "sync_index_title"
FIX_REPROJECT = "reproject_document"
FIX_REMOVE_TEMP = "remove_temp_file"

# Fixes run in this order; later fixes rely on a sound index.
_FIX_ORDER: tuple[str, ...] = (
    FIX_ADOPT_DOCUMENT,
    FIX_RECONCILE_SEQUENCE,
    FIX_SYNC_TITLE,
    FIX_REPROJECT,
    FIX_REMOVE_TEMP,
)

# Temp files younger than this may belong to a write in progress.
STALE_TEMP_SECONDS = 60.0


def _issue(
    category: str,
    severity: str,
    message: str,
    *,
    record_id: str | None = None,
    path: str | None = None,
    fix_action: str | None = None,
) -> dict[str, Any]:
    return {
        "category": category,
        "severity": severity,
        "record_id": record_id,
        "path": path,
        "message": message,
        "fix_action": fix_action,
    }


class CheckService(BaseService):
    """Handles store integrity checking and repair."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def check(self) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        try:
            issues = self._scan()
        except AidlError as exc:
            return self._fail("check", exc)
        return ServiceResult(
            ok=True,
            op="check",
            data={"issues": issues, "count": len(issues)},
        )

    @traced
    def repair(self) -> ServiceResult:
        """Apply every available fix; report what remains unresolved."""
        fixed: list[str] = []
        unresolved: list[dict[str, Any]] = []
        try:
            issues = self._scan()
            if any(i["fix_action"] == FIX_SALVAGE_INDEX for i in issues):
                with trace_span("salvage_index"):
                    self._store.index.salvage()
                logger.warning("Salvaged corrupted index %s", self._store.index.path)
                fixed.append(f"Salvaged index {self._store.index.path.name}")
                issues = self._scan()
        except AidlError as exc:
            return self._fail("repair", exc)

        handlers: dict[str, Callable[[dict[str, Any]], str]] = {
            FIX_ADOPT_DOCUMENT: self._fix_adopt_document,
            FIX_RECONCILE_SEQUENCE: self._fix_reconcile_sequence,
            FIX_SYNC_TITLE: self._fix_sync_title,
            FIX_REPROJECT: self._fix_reproject,
            FIX_REMOVE_TEMP: self._fix_remove_temp,
        }
        ordered = sorted(issues, key=_fix_rank)
        done: set[tuple[str, str | None]] = set()
        for issue in ordered:
            action = issue["fix_action"]
            if action is None:
                unresolved.append(issue)
                continue
            key = (action, issue["record_id"] or issue["path"])
            if key in done:
                continue
            with trace_span(action):
                try:
                    fixed.append(handlers[action](issue))
                except AidlError as exc:
                    logger.warning("Repair %s failed: %s", action, exc.message)
                    unresolved.append({**issue, "message": f"{issue['message']} ({exc.message})"})
                    continue
            done.add(key)
            logger.info("Repaired: %s", fixed[-1])

        return ServiceResult(
            ok=True,
            op="repair",
            data={"fixed": fixed, "unresolved": unresolved, "count": len(fixed)},
        )

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def _scan(self) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        if not self._store.root.is_dir():
            return issues

        try:
            index = self._store.index.read()
        except AidlError as exc:
            issues.append(
                _issue(
                    CAT_INDEX,
                    SEVERITY_ERROR,
                    exc.message,
                    path=str(self._store.index.path),
                    fix_action=FIX_SALVAGE_INDEX,
                )
            )
            return issues

        with trace_span("index_integrity"):
            issues.extend(self._check_index(index))
        with trace_span("index_document_consistency") as span:
            issues.extend(self._check_documents(index))
            if span is not None:
                span.annotate("records", len(index.items))
        with trace_span("stale_files"):
            issues.extend(self._check_temp_files())
        return issues

    def _check_index(self, index: Index) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        owners: dict[int, str] = {}
        for entry in sorted(index.items.values(), key=lambda e: e.id):
            other = owners.setdefault(entry.sequence_number, entry.id)
            if other != entry.id:
                issues.append(
                    _issue(
                        CAT_INDEX,
                        SEVERITY_ERROR,
                        f"Sequence {entry.sequence_number} shared by {other} and {entry.id}",
                        record_id=entry.id,
                    )
                )

        highest = max(owners, default=0)
        if highest >= index.next_sequence:
            issues.append(
                _issue(
                    CAT_INDEX,
                    SEVERITY_ERROR,
                    f"next_sequence {index.next_sequence} not above allocated {highest}",
                    fix_action=FIX_RECONCILE_SEQUENCE,
                )
            )
        return issues

    def _check_documents(self, index: Index) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        on_disk = {self._store.record_id_of(p): p for p in self._store.find_documents()}

        for record_id, entry in sorted(index.items.items()):
            path = on_disk.get(record_id)
            if path is None:
                issues.append(
                    _issue(
                        CAT_CONSISTENCY,
                        SEVERITY_ERROR,
                        f"Indexed record has no document: {record_id}",
                        record_id=record_id,
                    )
                )
                continue
            record = self._decode(path, issues, record_id=record_id)
            if record is None:
                continue
            issues.extend(_compare(entry, record))

        for record_id, path in sorted(on_disk.items()):
            if record_id in index.items:
                continue
            record = self._decode(path, issues, record_id=record_id)
            if record is None:
                continue
            issues.append(
                _issue(
                    CAT_CONSISTENCY,
                    SEVERITY_ERROR,
                    f"Document has no index entry: {path.name}",
                    record_id=record_id,
                    path=str(path),
                    fix_action=FIX_ADOPT_DOCUMENT if record.id == record_id else None,
                )
            )
        return issues

    def _decode(
        self,
        path: Path,
        issues: list[dict[str, Any]],
        *,
        record_id: str,
    ) -> Record | None:
        try:
            return decode(read_text(path))
        except NotFoundError:
            return None
        except DocumentFormatError as exc:
            issues.append(
                _issue(
                    CAT_CONSISTENCY,
                    SEVERITY_ERROR,
                    f"Unreadable document {path.name}: {exc}",
                    record_id=record_id,
                    path=str(path),
                )
            )
            return None

    def _check_temp_files(self) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        cutoff = time.time() - STALE_TEMP_SECONDS
        for path in self._store.find_temp_files():
            try:
                mtime = path.stat().st_mtime
            except FileNotFoundError:
                continue
            if mtime > cutoff:
                continue
            issues.append(
                _issue(
                    CAT_STALE,
                    SEVERITY_WARNING,
                    f"Leftover temp file: {path.name}",
                    path=str(path),
                    fix_action=FIX_REMOVE_TEMP,
                )
            )
        return issues

    # ------------------------------------------------------------------
    # Fixes
    # ------------------------------------------------------------------

    def _fix_adopt_document(self, issue: dict[str, Any]) -> str:
        record = self._store.read_document(issue["record_id"])
        entry = IndexEntry(
            title=record.title,
            id=record.id,
            sequence_number=record.sequence_number,
            status=record.status,
            date=record.date,
            superseded_by=record.superseded_by,
        )
        self._store.index.adopt(entry)
        return f"Indexed {record.id} from its document (sequence {record.sequence_number})"

    def _fix_reconcile_sequence(self, issue: dict[str, Any]) -> str:
        next_sequence = self._store.index.reconcile_sequence()
        return f"Raised next_sequence to {next_sequence}"

    def _fix_sync_title(self, issue: dict[str, Any]) -> str:
        record_id = issue["record_id"]
        record = self._store.read_document(record_id)
        self._store.index.patch_entry(record_id, title=record.title, allow_terminal=True)
        return f"Copied title of {record_id} into the index"

    def _fix_reproject(self, issue: dict[str, Any]) -> str:
        record_id = issue["record_id"]
        self._store.project_document(record_id)
        return f"Re-projected document for {record_id} from the index"

    def _fix_remove_temp(self, issue: dict[str, Any]) -> str:
        path = self._store.root / issue["path"].rsplit("/", 1)[-1]
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Failed to remove {path.name}: {exc}"
            raise StoreIOError(msg) from exc
        return f"Removed temp file {path.name}"


def _fix_rank(issue: dict[str, Any]) -> int:
    action = issue["fix_action"]
    return _FIX_ORDER.index(action) if action in _FIX_ORDER else len(_FIX_ORDER)


def _compare(entry: IndexEntry, record: Record) -> list[dict[str, Any]]:
    """Issues for header fields that disagree with the index entry."""
    issues: list[dict[str, Any]] = []
    mismatched = [
        name
        for name in ("sequence_number", "status", "date", "superseded_by")
        if getattr(entry, name) != getattr(record, name)
    ]
    if record.id != entry.id:
        mismatched.insert(0, "id")
    if mismatched:
        issues.append(
            _issue(
                CAT_CONSISTENCY,
                SEVERITY_ERROR,
                f"Document header of {entry.id} disagrees with index: {', '.join(mismatched)}",
                record_id=entry.id,
                fix_action=FIX_REPROJECT,
            )
        )
    if record.title != entry.title:
        issues.append(
            _issue(
                CAT_CONSISTENCY,
                SEVERITY_WARNING,
                f"Title mismatch for {entry.id}: index={entry.title!r}, document={record.title!r}",
                record_id=entry.id,
                fix_action=FIX_SYNC_TITLE,
            )
        )
    return issues
