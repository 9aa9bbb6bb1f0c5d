"""Record ID and sequence-reference patterns.

Record IDs are caller-supplied slugs. INVARIANT: IDs are permanent; once a
record is created its ID never changes.
"""

from __future__ import annotations

import re

RECORD_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]{2,64}$")

# A supersede reference made only of digits is a sequence number.
SEQUENCE_REF_PATTERN = re.compile(r"^\d+$")


def validate_id(record_id: str) -> bool:
    """Check whether *record_id* is a well-formed record slug."""
    return RECORD_ID_PATTERN.match(record_id) is not None


def is_sequence_ref(reference: str) -> bool:
    """True if *reference* names a record by sequence number rather than ID."""
    return SEQUENCE_REF_PATTERN.match(reference) is not None


def display_number(sequence_number: int | str) -> str:
    """Human-facing label for a sequence number, e.g. ``ADR-7``."""
    return f"ADR-{sequence_number}"
