"""Command: supersede a decision with a newer one."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlCommand

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext


@click.command(
    cls=AidlCommand,
    examples="""\
  aidlctl supersede cache_policy cache_policy_v2
  aidlctl supersede cache_policy 7
  aidlctl --json supersede old_decision new_decision""",
)
@click.argument("record_id")
@click.argument("superseded_by")
@click.pass_obj
def supersede(app: AppContext, record_id: str, superseded_by: str) -> None:
    """Mark RECORD_ID as superseded by SUPERSEDED_BY (an ID or sequence number)."""
    from aidlctl.services.update import UpdateService

    app.emit(UpdateService(app.store).supersede(record_id, superseded_by))
