"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy RecordStore construction and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from aidlctl.config.settings import AidlSettings
    from aidlctl.infrastructure.store import RecordStore
    from aidlctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The store is lazily
    created on first use so ``--help`` and ``--version`` never touch
    the filesystem.
    """

    def __init__(self, settings: AidlSettings) -> None:
        self.settings = settings
        self._store: RecordStore | None = None

        # Configure structured logging
        from aidlctl.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            store_dir=settings.store_dir,
        )

        # Enable telemetry context var when verbose
        if settings.verbose:
            from aidlctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def store(self) -> RecordStore:
        """The record store (created lazily on first access)."""
        if self._store is None:
            from aidlctl.infrastructure.store import RecordStore

            self._store = RecordStore(self.settings)
        return self._store

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
