"""Command: store integrity checking and repair."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from aidlctl.commands._base import AidlCommand

if TYPE_CHECKING:
    from aidlctl.commands._context import AppContext


@click.command(
    cls=AidlCommand,
    examples="""\
  aidlctl check
  aidlctl check --errors-only
  aidlctl check --repair
  aidlctl -v check --repair""",
)
@click.option("--errors-only", is_flag=True, help="Hide warnings.")
@click.option("--repair", is_flag=True, help="Repair issues (documents re-projected from the index).")
@click.pass_obj
def check(app: AppContext, errors_only: bool, repair: bool) -> None:
    """Check index/document consistency and optionally repair issues."""
    from aidlctl.services.check import SEVERITY_ERROR, CheckService
    from aidlctl.services.result import ServiceResult

    svc = CheckService(app.store)
    if repair:
        app.emit(svc.repair())
        return

    result = svc.check()
    if result.ok and errors_only:
        issues = [i for i in result.data["issues"] if i["severity"] == SEVERITY_ERROR]
        result = ServiceResult(
            ok=True,
            op=result.op,
            data={"issues": issues, "count": len(issues)},
            meta=result.meta,
        )
    app.emit(result)
