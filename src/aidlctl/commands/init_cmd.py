"""Command: store initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlCommand

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  aidlctl init
  aidlctl --base-dir docs/decisions init
  aidlctl --json init"""


@click.command("init", cls=AidlCommand, examples=_INIT_EXAMPLES)
@click.pass_obj
def init_cmd(app: AppContext) -> None:
    """Create the record store directory and an empty index."""
    from aidlctl.services.init import InitService

    app.emit(InitService(app.store).init())
