"""Record, index, and payload models.

All persisted shapes are Pydantic models. Content models are frozen; the
:class:`Index` is mutated in place while its file lock is held.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, field_validator

from aidlctl.domain.ids import RECORD_ID_PATTERN
from aidlctl.domain.lifecycle import RecordStatus

# Fields a caller may patch through the update operation.
UPDATABLE_FIELDS: tuple[str, ...] = (
    "title",
    "context",
    "decision",
    "rationale",
    "assumptions",
    "risks",
    "cost",
    "consequences",
    "expected_result",
)

# Separates the fields of a rendered risk line.
RISK_FIELD_SEPARATOR = " — "


def normalize_newlines(value: str) -> str:
    """Fold CRLF and lone CR line breaks into LF."""
    return value.replace("\r\n", "\n").replace("\r", "\n")


# Free text stored with LF line breaks only, the form it reads back in.
Text = Annotated[str, AfterValidator(normalize_newlines)]


# Fields mirrored from the index entry into the document header.
METADATA_FIELDS: tuple[str, ...] = (
    "id",
    "sequence_number",
    "status",
    "date",
    "superseded_by",
)


class RiskLevel(StrEnum):
    """Impact / probability grade of a risk."""

    LOW = "LOW"
    MED = "MED"
    HIGH = "HIGH"


class Risk(BaseModel):
    """One entry of a record's risk register."""

    model_config = {"frozen": True, "extra": "forbid"}

    impact: RiskLevel
    probability: RiskLevel
    mitigation: Text


class Cost(BaseModel):
    """Total cost of ownership split into one-off and ongoing items."""

    model_config = {"frozen": True, "extra": "forbid"}

    one_off: list[Text] = Field(default_factory=list)
    ongoing: list[Text] = Field(default_factory=list)


class Consequences(BaseModel):
    """Expected implications of a decision."""

    model_config = {"frozen": True, "extra": "forbid"}

    positive: list[Text] = Field(default_factory=list)
    negative: list[Text] = Field(default_factory=list)


class RecordFields(BaseModel):
    """Caller-authored content of a record (the updatable surface)."""

    model_config = {"frozen": True, "extra": "forbid"}

    title: str
    context: str
    decision: str
    rationale: str
    assumptions: list[Text] = Field(default_factory=list)
    risks: dict[str, Risk] = Field(default_factory=dict)
    cost: Cost = Field(default_factory=Cost)
    consequences: Consequences = Field(default_factory=Consequences)
    expected_result: list[Text] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: str) -> str:
        value = normalize_newlines(value)
        if "\n" in value:
            msg = "title must be a single line"
            raise ValueError(msg)
        return value

    @field_validator("context", "decision", "rationale")
    @classmethod
    def _trim_text(cls, value: str) -> str:
        return normalize_newlines(value).strip("\n")

    @field_validator("risks")
    @classmethod
    def _check_risk_names(cls, value: dict[str, Risk]) -> dict[str, Risk]:
        for name in value:
            if not name or "\n" in name or "\r" in name or RISK_FIELD_SEPARATOR in name:
                msg = (
                    "risk name must be a non-empty single line"
                    f" without {RISK_FIELD_SEPARATOR!r}: {name!r}"
                )
                raise ValueError(msg)
        return value

    def content(self) -> dict[str, Any]:
        """Updatable fields as plain data."""
        return self.model_dump(mode="json", include=set(UPDATABLE_FIELDS))


class Record(RecordFields):
    """A full decision record: content plus index-owned metadata."""

    id: str
    sequence_number: int = Field(ge=1)
    status: RecordStatus = RecordStatus.PROPOSED
    date: dt.date
    superseded_by: str | None = None

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if RECORD_ID_PATTERN.match(value) is None:
            msg = f"Invalid record ID: {value!r}"
            raise ValueError(msg)
        return value

    def with_metadata(self, entry: IndexEntry) -> Record:
        """Overlay the index entry's metadata (the index is authoritative)."""
        return self.model_copy(
            update={
                "id": entry.id,
                "sequence_number": entry.sequence_number,
                "status": entry.status,
                "date": entry.date,
                "superseded_by": entry.superseded_by,
            }
        )


class IndexEntry(BaseModel):
    """Lightweight metadata projection of a record kept in the index."""

    model_config = {"frozen": True}

    title: str
    id: str
    sequence_number: int
    status: RecordStatus = RecordStatus.PROPOSED
    date: dt.date
    superseded_by: str | None = None


class Index(BaseModel):
    """The shared index artifact: sequence allocator plus metadata table.

    INVARIANT: every ``items[id].sequence_number < next_sequence`` and
    ``next_sequence`` never decreases.
    """

    next_sequence: int = Field(default=1, ge=1)
    items: dict[str, IndexEntry] = Field(default_factory=dict)

    def find_by_sequence(self, sequence_number: int) -> IndexEntry | None:
        """Return the entry holding *sequence_number*, if any."""
        for entry in self.items.values():
            if entry.sequence_number == sequence_number:
                return entry
        return None

    def sorted_entries(self) -> list[IndexEntry]:
        """Entries newest first: date descending, then sequence descending."""
        return sorted(
            self.items.values(),
            key=lambda e: (e.date, e.sequence_number),
            reverse=True,
        )
