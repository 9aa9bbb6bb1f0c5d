"""Root CLI group for aidlctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from aidlctl import __version__
from aidlctl.commands import register_commands
from aidlctl.commands._base import AidlGroup
from aidlctl.commands._context import AppContext
from aidlctl.config.settings import AidlSettings


@click.group(cls=AidlGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="aidlctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Store directory (overrides [store] dir).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    base_dir: Path | None,
) -> None:
    """aidlctl — AI decision log control utility."""
    ctx.ensure_object(dict)
    settings = AidlSettings.from_cli(
        config_path=config_path,
        base_dir=base_dir,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
