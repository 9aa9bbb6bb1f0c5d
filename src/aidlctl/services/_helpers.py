"""Shared service-layer helper functions."""

from __future__ import annotations

import datetime as dt


def today() -> dt.date:
    """Today's UTC calendar date."""
    return dt.datetime.now(dt.UTC).date()


def parse_date(value: str | dt.date | None) -> dt.date | None:
    """Parse a ``YYYY-MM-DD`` string; None passes through.

    Raises:
        ValueError: If *value* is not an ISO calendar date.
    """
    if value is None or isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(value.strip())


def total_pages(total_items: int, page_size: int) -> int:
    """Number of pages needed for *total_items* (0 when empty).

    Examples:
        >>> total_pages(45, 20)
        3
        >>> total_pages(0, 20)
        0
    """
    return -(-total_items // page_size)
