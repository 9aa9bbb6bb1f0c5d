"""Command group: retrieval, search, and listing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlGroup
from aidlctl.services.query import QueryService

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext

_QUERY_EXAMPLES = """\
  aidlctl query get cache_policy
  aidlctl query search cache
  aidlctl query detail eviction
  aidlctl query list --status ACCEPTED --from 2026-01-01 --page 2"""


@click.group(cls=AidlGroup, examples=_QUERY_EXAMPLES)
@click.pass_obj
def query(app: AppContext) -> None:
    """Get, search, and list decision records."""


@query.command(
    examples="""\
  aidlctl query get cache_policy
  aidlctl --json query get cache_policy"""
)
@click.argument("record_id")
@click.pass_obj
def get(app: AppContext, record_id: str) -> None:
    """Show a full record by ID."""
    app.emit(QueryService(app.store).get(record_id))


@query.command(
    examples="""\
  aidlctl query search cache
  aidlctl --json query search "database"
  aidlctl -q query search policy"""
)
@click.argument("keyword")
@click.pass_obj
def search(app: AppContext, keyword: str) -> None:
    """Find records whose title contains KEYWORD (case-insensitive)."""
    app.emit(QueryService(app.store).search(keyword))


@query.command(
    examples="""\
  aidlctl query detail eviction
  aidlctl --json query detail "vendor lock-in" """
)
@click.argument("keyword")
@click.pass_obj
def detail(app: AppContext, keyword: str) -> None:
    """Full-text search across record content, with excerpts."""
    app.emit(QueryService(app.store).detail_search(keyword))


@query.command(
    "list",
    examples="""\
  aidlctl query list
  aidlctl query list --status proposed
  aidlctl query list --from 2026-01-01 --to 2026-03-31
  aidlctl --json query list --page 2 --page-size 50""",
)
@click.option("--status", default=None, help="Only records with this status.")
@click.option("--from", "date_from", default=None, help="Earliest date (YYYY-MM-DD).")
@click.option("--to", "date_to", default=None, help="Latest date (YYYY-MM-DD).")
@click.option("--page", default=1, type=int, help="Page number (1-based).")
@click.option("--page-size", default=None, type=int, help="Records per page.")
@click.pass_obj
def list_cmd(
    app: AppContext,
    status: str | None,
    date_from: str | None,
    date_to: str | None,
    page: int,
    page_size: int | None,
) -> None:
    """List records newest first, with status and date filters."""
    app.emit(
        QueryService(app.store).list_records(
            status=status,
            date_from=date_from,
            date_to=date_to,
            page=page,
            page_size=page_size,
        )
    )
