"""Command: update the content fields of a record."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from aidlctl.commands._base import AidlCommand
from aidlctl.commands._fields import collect_fields, content_options

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext


@click.command(
    cls=AidlCommand,
    examples="""\
  aidlctl update cache_policy --title "Cache eviction policy"
  aidlctl update cache_policy --assumption "Working set fits in RAM" --assumption "Reads > writes"
  aidlctl update cache_policy --risk "stampede|MED|LOW|Request coalescing"
  echo '{"decision": "Use LFU"}' | aidlctl update cache_policy --from-json -""",
)
@click.argument("record_id")
@content_options
@click.pass_obj
def update(app: AppContext, record_id: str, **options: Any) -> None:
    """Replace content fields of RECORD_ID.

    Each given field is replaced as a whole; list options replace the list.
    """
    from aidlctl.services.update import UpdateService

    changes = collect_fields(**options)
    if not changes:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)

    app.emit(UpdateService(app.store).update(record_id, changes))
