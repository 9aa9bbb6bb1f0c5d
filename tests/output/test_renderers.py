"""Tests for operation-specific Rich renderers."""

from __future__ import annotations

from aidlctl.output.renderers import render_result
from aidlctl.services.result import ServiceError, ServiceResult


class TestMutation:
    def test_create(self) -> None:
        out = render_result(
            ServiceResult(
                ok=True,
                op="create",
                data={
                    "id": "cache_policy",
                    "sequence_number": 3,
                    "status": "PROPOSED",
                    "date": "2026-01-01",
                    "path": "/tmp/x.md",
                },
            )
        )
        first = out.splitlines()[0]
        assert first.startswith("OK")
        assert "create" in first
        assert "ADR-3" in out
        assert "PROPOSED" in out

    def test_update_fields(self) -> None:
        out = render_result(
            ServiceResult(
                ok=True, op="update", data={"id": "abc", "updated_fields": ["title", "cost"]}
            )
        )
        assert "updated_fields: title, cost" in out


class TestError:
    def test_error_line_keeps_brackets(self) -> None:
        out = render_result(
            ServiceResult(
                ok=False,
                op="create",
                error=ServiceError(code="INVALID", message="Invalid record ID: '[bad]'"),
            )
        )
        assert out.startswith("ERROR")
        assert "[INVALID]" in out
        assert "'[bad]'" in out


class TestRecord:
    def test_panel(self) -> None:
        out = render_result(
            ServiceResult(
                ok=True,
                op="get",
                data={
                    "id": "cache_policy",
                    "title": "Cache [policy]",
                    "sequence_number": 2,
                    "status": "SUPERSEDED",
                    "superseded_by": "5",
                    "date": "2026-01-01",
                    "context": "Reads dominate",
                    "decision": "Use LRU",
                    "rationale": "Simple",
                    "risks": {
                        "stampede": {"impact": "MED", "probability": "LOW", "mitigation": "Coalesce"}
                    },
                    "cost": {"one_off": ["Build"], "ongoing": []},
                    "consequences": {"positive": [], "negative": []},
                    "assumptions": [],
                    "expected_result": [],
                },
            )
        )
        assert "ADR-2 cache_policy" in out
        assert "Cache [policy]" in out
        assert "Superseded by ADR-5" in out
        assert "stampede: impact MED" in out
        assert "One-off cost" in out


class TestQueries:
    def test_detail_search_verbose_excerpt(self) -> None:
        result = ServiceResult(
            ok=True,
            op="detail_search",
            data={
                "results": [
                    {
                        "name": "Cache",
                        "id": "cache_policy",
                        "position": 10,
                        "occurrences": 3,
                        "result": "...use LRU\neviction...",
                    }
                ],
                "count": 1,
            },
        )
        assert "1 results" in render_result(result)
        assert "...use LRU eviction..." in render_result(result, verbose=True)

    def test_check_clean(self) -> None:
        out = render_result(ServiceResult(ok=True, op="check", data={"issues": [], "count": 0}))
        assert "No issues found" in out

    def test_check_issues(self) -> None:
        issue = {
            "category": "index_document_consistency",
            "severity": "error",
            "record_id": "cache_policy",
            "path": None,
            "message": "Indexed record has no document: cache_policy",
            "fix_action": None,
        }
        result = ServiceResult(ok=True, op="check", data={"issues": [issue], "count": 1})
        out = render_result(result)
        assert "index_document_consistency" in out
        assert "error [cache_policy]" in out
        assert "1 errors, 0 warnings" in out

    def test_repair(self) -> None:
        out = render_result(
            ServiceResult(
                ok=True,
                op="repair",
                data={"fixed": ["Raised next_sequence to 4"], "unresolved": [], "count": 1},
            )
        )
        assert "fixed: 1" in out
        assert "Raised next_sequence to 4" in out

    def test_verbose_meta_tree(self) -> None:
        result = ServiceResult(
            ok=True,
            op="create",
            data={"id": "abc"},
            meta={"telemetry": {"name": "CreateService.create", "duration_ms": 1.5}},
        )
        assert "CreateService.create" in render_result(result, verbose=True)
        assert "CreateService.create" not in render_result(result)

    def test_verbose_meta_shows_lock_waits(self) -> None:
        tree = {
            "name": "UpdateService.update_status",
            "duration_ms": 40.0,
            "children": [
                {
                    "name": "index",
                    "duration_ms": 35.0,
                    "locks": [{"file": "index.json", "attempts": 4, "waited_ms": 31.2}],
                }
            ],
        }
        result = ServiceResult(
            ok=True,
            op="update_status",
            data={"id": "cache_policy", "status": "ACCEPTED"},
            meta={"telemetry": tree},
        )
        out = render_result(result, verbose=True)
        assert "lock index.json waited 31.20ms, 4 attempts" in out
