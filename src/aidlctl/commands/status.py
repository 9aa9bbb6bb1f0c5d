"""Command: change the status of a record."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlCommand
from aidlctl.domain.lifecycle import SETTABLE_STATUSES

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext


@click.command(
    cls=AidlCommand,
    examples="""\
  aidlctl status cache_policy ACCEPTED
  aidlctl status cache_policy finished
  aidlctl --json status cache_policy REJECTED""",
)
@click.argument("record_id")
@click.argument(
    "new_status",
    metavar="STATUS",
    type=click.Choice(sorted(SETTABLE_STATUSES), case_sensitive=False),
)
@click.pass_obj
def status(app: AppContext, record_id: str, new_status: str) -> None:
    """Set RECORD_ID to STATUS (use `supersede` for SUPERSEDED)."""
    from aidlctl.services.update import UpdateService

    app.emit(UpdateService(app.store).update_status(record_id, new_status.upper()))
