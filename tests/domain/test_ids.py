"""Tests for record ID and sequence-reference patterns."""

import pytest

from aidlctl.domain.ids import display_number, is_sequence_ref, validate_id


class TestValidateId:
    @pytest.mark.parametrize("record_id", ["cache_policy", "db2", "a_b", "abc"])
    def test_valid(self, record_id: str) -> None:
        assert validate_id(record_id)

    @pytest.mark.parametrize(
        "record_id",
        ["", "ab", "Cache", "2fast", "_lead", "has-dash", "has space", "a" * 66, "../etc"],
    )
    def test_invalid(self, record_id: str) -> None:
        assert not validate_id(record_id)


class TestSequenceRef:
    def test_digits(self) -> None:
        assert is_sequence_ref("7")
        assert is_sequence_ref("042")

    def test_ids_are_not_sequence_refs(self) -> None:
        assert not is_sequence_ref("cache_policy")
        assert not is_sequence_ref("7a")
        assert not is_sequence_ref("")


def test_display_number() -> None:
    assert display_number(7) == "ADR-7"
    assert display_number("12") == "ADR-12"
