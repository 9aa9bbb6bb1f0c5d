"""QueryService — read-only access: get, title search, full-text search, list.

INVARIANT: Read-only. Never mutates files. Takes no locks.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any

from aidlctl.domain.document import plain_text
from aidlctl.domain.errors import AidlError, NotFoundError
from aidlctl.domain.lifecycle import RecordStatus
from aidlctl.infrastructure.filesystem import read_text
from aidlctl.services._helpers import parse_date, total_pages
from aidlctl.services.base import BaseService
from aidlctl.services.result import ServiceResult
from aidlctl.services.telemetry import trace_span, traced

UNKNOWN_TITLE = "Unknown"


class QueryService(BaseService):
    """Handles read-only queries against the index and documents."""

    # ------------------------------------------------------------------
    # get
    # ------------------------------------------------------------------

    @traced
    def get(self, record_id: str) -> ServiceResult:
        """Full record: document content with the index entry's metadata."""
        op = "get"
        try:
            self._store.document_path(record_id)
            entry = self._store.index.get_entry(record_id)
            if entry is None:
                msg = f"Record not found: {record_id}"
                raise NotFoundError(msg)
            record = self._store.read_document(record_id).with_metadata(entry)
        except AidlError as exc:
            return self._fail(op, exc)

        return ServiceResult(ok=True, op=op, data=record.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # search (titles)
    # ------------------------------------------------------------------

    @traced
    def search(self, keyword: str) -> ServiceResult:
        """Case-insensitive title substring search.

        Results map title → id, newest first. When titles collide the most
        recent record wins.
        """
        op = "search"
        needle = keyword.strip().lower()
        if not needle:
            return self._invalid(op, "Search keyword must not be blank")

        try:
            index = self._store.index.read()
        except AidlError as exc:
            return self._fail(op, exc)

        results: dict[str, str] = {}
        for entry in index.sorted_entries():
            if needle in entry.title.lower():
                results.setdefault(entry.title, entry.id)

        return ServiceResult(
            ok=True,
            op=op,
            data={"results": results, "count": len(results)},
        )

    # ------------------------------------------------------------------
    # detail_search (full text)
    # ------------------------------------------------------------------

    @traced
    def detail_search(self, keyword: str) -> ServiceResult:
        """Full-text search over every document's plain text.

        Ranked by occurrence count (desc), then first-match position (asc),
        then id.
        """
        op = "detail_search"
        if not keyword.strip():
            return self._invalid(op, "Search keyword must not be blank")
        pattern = re.compile(re.escape(keyword), re.IGNORECASE)

        radius = self._store.settings.search.excerpt_radius
        hits: list[dict[str, Any]] = []
        try:
            titles = {rid: e.title for rid, e in self._store.index.read().items.items()}
            with trace_span("scan") as span:
                documents = self._store.find_documents()
                for path in documents:
                    try:
                        text = plain_text(read_text(path))
                    except NotFoundError:
                        continue

                    first = pattern.search(text)
                    if first is None:
                        continue
                    record_id = self._store.record_id_of(path)
                    start = max(0, first.start() - radius)
                    end = min(len(text), first.end() + radius)
                    hits.append(
                        {
                            "name": titles.get(record_id, UNKNOWN_TITLE),
                            "id": record_id,
                            "position": first.start(),
                            "occurrences": len(pattern.findall(text)),
                            "result": f"...{text[start:end]}...",
                        }
                    )
                if span:
                    span.annotate("documents", len(documents))
        except AidlError as exc:
            return self._fail(op, exc)

        hits.sort(key=lambda h: (-h["occurrences"], h["position"], h["id"]))
        return ServiceResult(
            ok=True,
            op=op,
            data={"results": hits, "count": len(hits)},
        )

    # ------------------------------------------------------------------
    # list
    # ------------------------------------------------------------------

    @traced
    def list_records(
        self,
        *,
        status: str | None = None,
        date_from: str | dt.date | None = None,
        date_to: str | dt.date | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> ServiceResult:
        """Filter by exact status and inclusive date range, newest first, paginated."""
        op = "list"
        listing = self._store.settings.listing
        if page_size is None:
            page_size = listing.default_page_size

        if page < 1:
            return self._invalid(op, f"page must be >= 1 (got {page})")
        if not 1 <= page_size <= listing.max_page_size:
            return self._invalid(
                op,
                f"page_size must be between 1 and {listing.max_page_size} (got {page_size})",
            )

        wanted: RecordStatus | None = None
        if status is not None:
            try:
                wanted = RecordStatus(status.upper())
            except ValueError:
                allowed = ", ".join(RecordStatus)
                return self._invalid(op, f"Invalid status: {status!r}. Allowed: {allowed}")

        try:
            start = parse_date(date_from)
            end = parse_date(date_to)
        except ValueError as exc:
            return self._invalid(op, f"Invalid date (expected YYYY-MM-DD): {exc}")

        try:
            index = self._store.index.read()
        except AidlError as exc:
            return self._fail(op, exc)

        matching = [
            entry
            for entry in index.sorted_entries()
            if (wanted is None or entry.status == wanted)
            and (start is None or entry.date >= start)
            and (end is None or entry.date <= end)
        ]

        total = len(matching)
        pages = total_pages(total, page_size)
        offset = (page - 1) * page_size
        items = [e.model_dump(mode="json") for e in matching[offset : offset + page_size]]

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "items": items,
                "pagination": {
                    "page": page,
                    "page_size": page_size,
                    "total_items": total,
                    "total_pages": pages,
                    "has_next": page < pages,
                    "has_prev": page > 1,
                },
            },
        )
