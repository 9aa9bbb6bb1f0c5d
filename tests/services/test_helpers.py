"""Tests for shared service helpers and BaseService error shaping."""

from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError

from aidlctl.domain.errors import ConflictError, NotFoundError
from aidlctl.domain.record import RecordFields
from aidlctl.services._helpers import parse_date, today, total_pages
from aidlctl.services.base import BaseService


class TestHelpers:
    def test_today_is_date(self) -> None:
        assert isinstance(today(), dt.date)

    def test_parse_date(self) -> None:
        assert parse_date("2026-03-01") == dt.date(2026, 3, 1)
        assert parse_date(None) is None
        assert parse_date(dt.date(2026, 1, 1)) == dt.date(2026, 1, 1)
        with pytest.raises(ValueError):
            parse_date("03/01/2026")

    @pytest.mark.parametrize(
        ("total", "size", "pages"), [(0, 20, 0), (1, 20, 1), (20, 20, 1), (45, 20, 3)]
    )
    def test_total_pages(self, total: int, size: int, pages: int) -> None:
        assert total_pages(total, size) == pages


class TestBaseServiceFail:
    def test_domain_error_kind(self) -> None:
        result = BaseService._fail("get", NotFoundError("Record not found: x"))
        assert not result.ok
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "Record not found: x"

    def test_conflict(self) -> None:
        result = BaseService._fail("update", ConflictError("Cannot update superseded record"))
        assert result.error.code == "CONFLICT"

    def test_validation_error_is_invalid(self) -> None:
        with pytest.raises(ValidationError) as info:
            RecordFields.model_validate({"title": "T"})
        result = BaseService._fail("create", info.value)
        assert result.error.code == "INVALID"
        assert "context" in result.error.message
