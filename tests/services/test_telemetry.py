"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from aidlctl.infrastructure.filesystem import LockWait
from aidlctl.infrastructure.store import RecordStore
from aidlctl.services.result import ServiceError, ServiceResult
from aidlctl.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    trace_span,
    traced,
)
from tests.conftest import create_record


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_span.set(None)


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="open").duration_ms == 0.0

    def test_to_dict_nests_children_and_annotations(self) -> None:
        root = Span(name="root")
        child = Span(name="scan")
        child.annotate("documents", 3)
        child.end()
        root.children.append(child)
        root.end()
        d = root.to_dict()
        assert d["children"][0] == {
            "name": "scan",
            "duration_ms": d["children"][0]["duration_ms"],
            "annotations": {"documents": 3},
        }
        assert "annotations" not in d

    def test_lock_wait_sums_children(self) -> None:
        root = Span(name="root")
        child = Span(name="index")
        child.locks.append(LockWait(name="index.json", attempts=3, waited_ms=12.5))
        root.children.append(child)
        root.locks.append(LockWait(name="cache_policy.md", attempts=1, waited_ms=0.5))
        assert root.lock_wait_ms == pytest.approx(13.0)
        assert root.to_dict()["children"][0]["locks"] == [
            {"file": "index.json", "attempts": 3, "waited_ms": 12.5}
        ]


class TestTraceSpan:
    def test_yields_none_when_disabled(self) -> None:
        with trace_span("x") as span:
            assert span is None

    def test_yields_none_without_root(self) -> None:
        enable_telemetry()
        with trace_span("x") as span:
            assert span is None

    def test_attaches_to_parent(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _current_span.set(root)
        try:
            with trace_span("child") as span:
                assert span is not None
                assert _current_span.get() is span
            assert _current_span.get() is root
            assert [c.name for c in root.children] == ["child"]
        finally:
            _current_span.reset(token)


class TestTraced:
    def test_noop_when_disabled(self) -> None:
        @traced
        def op() -> ServiceResult:
            return ServiceResult(ok=True, op="test")

        assert op().meta is None

    def test_injects_meta_and_children(self) -> None:
        @traced
        def op() -> ServiceResult:
            with trace_span("validate"):
                pass
            with trace_span("persist"):
                pass
            return ServiceResult(ok=True, op="test", meta={"existing": 1})

        enable_telemetry()
        result = op()
        assert result.meta is not None
        assert result.meta["existing"] == 1
        assert [c["name"] for c in result.meta["telemetry"]["children"]] == [
            "validate",
            "persist",
        ]

    def test_error_result_gets_telemetry(self) -> None:
        @traced
        def op() -> ServiceResult:
            return ServiceResult(
                ok=False, op="test", error=ServiceError(code="INVALID", message="bad")
            )

        enable_telemetry()
        assert "telemetry" in (op().meta or {})

    def test_exception_propagates_and_resets(self) -> None:
        @traced
        def op() -> ServiceResult:
            msg = "boom"
            raise ValueError(msg)

        enable_telemetry()
        with pytest.raises(ValueError, match="boom"):
            op()
        assert _current_span.get() is None

    def test_non_result_passthrough(self) -> None:
        @traced
        def op() -> str:
            return "plain"

        enable_telemetry()
        assert op() == "plain"


class TestServicesTraced:
    def test_create_has_pipeline_spans(self, store: RecordStore) -> None:
        from aidlctl.services.create import CreateService

        enable_telemetry()
        result = CreateService(store).create(
            "cache_policy", "Cache policy", context="c", decision="d", rationale="r"
        )
        tel = result.meta["telemetry"]
        assert tel["name"] == "CreateService.create"
        assert [c["name"] for c in tel["children"]] == [
            "validate",
            "check",
            "allocate",
            "persist",
        ]

    def test_detail_search_annotates_scan(self, store: RecordStore) -> None:
        from aidlctl.services.query import QueryService

        create_record(store, "cache_policy")
        enable_telemetry()
        result = QueryService(store).detail_search("LRU")
        scan = result.meta["telemetry"]["children"][0]
        assert scan["name"] == "scan"
        assert scan["annotations"] == {"documents": 1}

    def test_create_tags_record_and_sequence(self, store: RecordStore) -> None:
        from aidlctl.services.create import CreateService

        create_record(store, "first")
        enable_telemetry()
        result = CreateService(store).create(
            "cache_policy", "Cache policy", context="c", decision="d", rationale="r"
        )
        annotations = result.meta["telemetry"]["annotations"]
        assert annotations["record_id"] == "cache_policy"
        assert annotations["sequence_number"] == 2
        assert annotations["lock_wait_ms"] >= 0

    def test_status_change_charges_locks_to_steps(self, store: RecordStore) -> None:
        from aidlctl.services.update import UpdateService

        create_record(store, "cache_policy")
        enable_telemetry()
        result = UpdateService(store).update_status("cache_policy", "ACCEPTED")
        tel = result.meta["telemetry"]
        steps = {c["name"]: c for c in tel["children"]}
        assert [w["file"] for w in steps["index"]["locks"]] == ["index.json"]
        assert [w["file"] for w in steps["project"]["locks"]] == ["cache_policy.md"]
        assert "locks" not in tel

    def test_failed_call_keeps_requested_record(self, store: RecordStore) -> None:
        from aidlctl.services.update import UpdateService

        enable_telemetry()
        result = UpdateService(store).update_status("missing", "ACCEPTED")
        assert not result.ok
        assert result.meta["telemetry"]["annotations"]["record_id"] == "missing"

    def test_calls_without_record_are_untagged(self, store: RecordStore) -> None:
        from aidlctl.services.query import QueryService

        enable_telemetry()
        annotations = QueryService(store).list_records().meta["telemetry"]["annotations"]
        assert "record_id" not in annotations
        assert annotations["lock_wait_ms"] == 0
