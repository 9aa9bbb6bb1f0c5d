"""Tests for format_result output mode selection."""

from __future__ import annotations

import json

from aidlctl.output.formatters import OutputSettings, format_result
from aidlctl.services.result import ServiceError, ServiceResult

LISTING = ServiceResult(
    ok=True,
    op="list",
    data={
        "items": [
            {
                "id": "cache_policy",
                "title": "Cache policy",
                "sequence_number": 1,
                "status": "ACCEPTED",
                "date": "2026-01-01",
                "superseded_by": None,
            }
        ],
        "pagination": {"page": 1, "total_pages": 1, "total_items": 1},
    },
)


class TestModes:
    def test_json_wins(self) -> None:
        out = format_result(LISTING, settings=OutputSettings(json_output=True, quiet=True))
        parsed = json.loads(out)
        assert parsed["ok"] is True
        assert parsed["data"]["items"][0]["id"] == "cache_policy"

    def test_quiet_lists_ids(self) -> None:
        assert format_result(LISTING, settings=OutputSettings(quiet=True)) == "cache_policy"

    def test_quiet_search_lists_ids(self) -> None:
        result = ServiceResult(
            ok=True, op="search", data={"results": {"A": "rec_a", "B": "rec_b"}, "count": 2}
        )
        assert format_result(result, settings=OutputSettings(quiet=True)) == "rec_a\nrec_b"

    def test_quiet_error(self) -> None:
        result = ServiceResult(
            ok=False, op="get", error=ServiceError(code="NOT_FOUND", message="Record not found")
        )
        out = format_result(result, settings=OutputSettings(quiet=True))
        assert out.startswith("ERROR: get")
        assert "Record not found" in out

    def test_rich_default(self) -> None:
        out = format_result(LISTING)
        assert "cache_policy" in out
        assert "Accepted" in out
        assert "page 1/1" in out
