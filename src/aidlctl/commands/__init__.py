"""Subcommand modules for aidlctl.

Provides register_commands() which uses deferred imports to keep
``aidlctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the query group and the standalone commands on the root group.

    Registration order is the order ``aidlctl --help`` lists them.
    """
    from aidlctl.commands.check import check
    from aidlctl.commands.create import create
    from aidlctl.commands.init_cmd import init_cmd
    from aidlctl.commands.query import query
    from aidlctl.commands.serve import serve
    from aidlctl.commands.status import status
    from aidlctl.commands.supersede import supersede
    from aidlctl.commands.update import update

    cli.add_command(init_cmd)
    cli.add_command(create)
    cli.add_command(status)
    cli.add_command(supersede)
    cli.add_command(update)
    cli.add_command(query)
    cli.add_command(check)
    cli.add_command(serve)
