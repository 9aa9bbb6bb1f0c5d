"""Command: record a new decision."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from aidlctl.commands._base import AidlCommand
from aidlctl.commands._fields import collect_fields, content_options
from aidlctl.domain.record import UPDATABLE_FIELDS
from aidlctl.services.create import CreateService

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext

_REQUIRED = ("title", "context", "decision", "rationale")

_CREATE_EXAMPLES = """\
  aidlctl create cache_policy --title "Cache policy" \\
      --context "Reads dominate" --decision "Use LRU" --rationale "Simple, predictable"
  aidlctl create cache_policy --from-json decision.json
  aidlctl create db_choice --title "Primary DB" --context "..." --decision "Postgres" \\
      --rationale "Team skills" --risk "lock-in|MED|LOW|Stick to SQL standard" \\
      --positive "Mature tooling" --negative "Ops burden" --one-off-cost "Migration" """


@click.command(cls=AidlCommand, examples=_CREATE_EXAMPLES)
@click.argument("record_id")
@content_options
@click.pass_obj
def create(app: AppContext, record_id: str, **options: Any) -> None:
    """Record a new decision as RECORD_ID (starts PROPOSED)."""
    fields = collect_fields(**options)
    unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if unknown:
        raise click.UsageError(f"Unknown field(s) in JSON payload: {', '.join(unknown)}")
    missing = [key for key in _REQUIRED if key not in fields]
    if missing:
        flags = ", ".join(f"--{key}" for key in missing)
        raise click.UsageError(f"Missing required field(s): {flags}")

    result = CreateService(app.store).create(
        record_id,
        fields.pop("title"),
        context=fields.pop("context"),
        decision=fields.pop("decision"),
        rationale=fields.pop("rationale"),
        **fields,
    )
    app.emit(result)
