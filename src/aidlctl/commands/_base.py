"""Custom Click base classes with --examples support.

AidlCommand and AidlGroup accept an ``examples`` parameter. When
``--examples`` is passed, the command prints usage examples and exits, which
keeps ``--help`` concise. Groups list their subcommands in registration
order (lifecycle order reads better than alphabetical).
"""

from __future__ import annotations

from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class AidlCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class AidlGroup(click.Group):
    """Click Group subclass with ``--examples`` and registration-ordered help.

    Sets ``command_class = AidlCommand`` so all subcommands accept the
    ``examples`` parameter without an explicit ``cls=``.
    """

    command_class = AidlCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands)
