"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aidlctl.domain.ids import display_number
from aidlctl.domain.lifecycle import status_display
from aidlctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from aidlctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    # For list-like results, return IDs only
    items = result.data.get("items")
    if result.op == "detail_search":
        items = result.data.get("results")
    if items and isinstance(items, list):
        return "\n".join(str(item["id"]) for item in items if isinstance(item, dict))
    if result.op == "search":
        return "\n".join(result.data.get("results", {}).values())

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/ERROR status line."""
    label = Text("OK", style="aidl.ok")
    op = Text(f"  {result.op}", style="aidl.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="aidl.key")
    if key == "id":
        v = Text(str(value), style="aidl.id")
    elif key == "path":
        v = Text(str(value), style="aidl.path")
    elif key == "title":
        v = Text(str(value), style="aidl.title")
    elif key == "status":
        v = Text(str(value), style=style_for_status(str(value)))
    elif key == "sequence_number":
        v = Text(display_number(value), style="aidl.seq")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for lock in span_data.get("locks", []):
        waited = f"lock {lock['file']} waited {lock['waited_ms']:.2f}ms"
        if lock["attempts"] > 1:
            waited += f", {lock['attempts']} attempts"
        console.print(f"{prefix}{' ' * 10}[dim]{escape(waited)}[/dim]")

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _bullets(items: list[str]) -> str:
    return "\n".join(f"  - {escape(item)}" for item in items)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="aidl.error")
    op = Text(f"  {result.op}", style="aidl.op")
    code = Text(f" [{err.code}]" if err else "", style="aidl.error")
    sep = Text(" — ")
    console.print(label, op, code, sep, Text(msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update_status/supersede/update results."""
    _status_line(console, result)
    mutation_keys = (
        "id",
        "sequence_number",
        "status",
        "superseded_by",
        "date",
        "path",
    )
    for key in mutation_keys:
        if result.data.get(key) is not None:
            _field(console, key, result.data[key])
    if "updated_fields" in result.data:
        _field(console, "updated_fields", ", ".join(result.data["updated_fields"]))
    if verbose:
        _render_meta(console, result)


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "path", result.data.get("path", ""))
    _field(console, "created", result.data.get("created", False))


# ── Query renderers ───────────────────────────────────────────────────


def _render_record(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a full record as a panel."""
    d = result.data
    lines = [
        f"status: {status_display(str(d.get('status', '')), d.get('superseded_by'))}",
        f"date: {d.get('date', '')}",
        "",
    ]
    for key in ("context", "decision", "rationale"):
        if d.get(key):
            lines.extend([f"[bold]{key.title()}[/bold]", escape(str(d[key]).strip()), ""])

    consequences = d.get("consequences") or {}
    for bucket in ("positive", "negative"):
        if consequences.get(bucket):
            lines.extend([f"[bold]Consequences ({bucket})[/bold]", _bullets(consequences[bucket])])

    risks = d.get("risks") or {}
    if risks:
        lines.append("[bold]Risks[/bold]")
        for name, risk in risks.items():
            lines.append(
                f"  - {escape(name)}: impact {risk['impact']}, probability {risk['probability']}"
                f" — {escape(risk['mitigation'])}"
            )

    for key, label in (("expected_result", "Acceptance criteria"), ("assumptions", "Assumptions")):
        if d.get(key):
            lines.extend([f"[bold]{label}[/bold]", _bullets(d[key])])

    cost = d.get("cost") or {}
    for bucket, label in (("one_off", "One-off cost"), ("ongoing", "Ongoing cost")):
        if cost.get(bucket):
            lines.extend([f"[bold]{label}[/bold]", _bullets(cost[bucket])])

    title = escape(
        f"{display_number(d.get('sequence_number', '?'))} {d.get('id', '?')} — {d.get('title', '')}"
    )
    style = style_for_status(str(d.get("status", "")))
    panel = Panel("\n".join(lines).rstrip(), title=title, border_style=style or "dim", expand=False)
    console.print(panel)
    if verbose:
        _render_meta(console, result)


def _render_title_search(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    results: dict[str, str] = result.data.get("results", {})
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="aidl.id", no_wrap=True)
    table.add_column("Title", style="aidl.title")
    for title, record_id in results.items():
        table.add_row(record_id, title)
    console.print(table)
    console.print(f"\n{result.data.get('count', len(results))} results")


def _render_detail_search(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    hits: list[dict[str, Any]] = result.data.get("results", [])
    table = Table(show_header=True, show_lines=verbose, pad_edge=False, expand=False)
    table.add_column("ID", style="aidl.id", no_wrap=True)
    table.add_column("Title", style="aidl.title")
    table.add_column("Hits", justify="right")
    table.add_column("Pos", justify="right", style="dim")
    if verbose:
        table.add_column("Excerpt")
    for hit in hits:
        row = [str(hit["id"]), str(hit["name"]), str(hit["occurrences"]), str(hit["position"])]
        if verbose:
            row.append(" ".join(str(hit["result"]).split()))
        table.add_row(*row)
    console.print(table)
    console.print(f"\n{result.data.get('count', len(hits))} results")


def _render_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items: list[dict[str, Any]] = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", style="aidl.seq", justify="right")
    table.add_column("ID", style="aidl.id", no_wrap=True)
    table.add_column("Title", style="aidl.title")
    table.add_column("Status")
    table.add_column("Date", style="dim")
    for item in items:
        status = str(item.get("status", ""))
        table.add_row(
            str(item.get("sequence_number", "")),
            str(item.get("id", "")),
            str(item.get("title", "")),
            Text(status_display(status, item.get("superseded_by")), style=style_for_status(status)),
            str(item.get("date", "")),
        )
    console.print(table)
    p = result.data.get("pagination", {})
    console.print(
        f"\npage {p.get('page', 1)}/{max(p.get('total_pages', 1), 1)}"
        f" — {p.get('total_items', len(items))} items"
    )


# ── Check renderers ───────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    count = result.data.get("count", len(issues))

    if count == 0:
        console.print("[aidl.ok]OK[/aidl.ok]  No issues found.")
        return

    severity_styles = {"error": "aidl.error", "warning": "aidl.warning"}

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        cat = str(issue.get("category", "unknown"))
        by_category.setdefault(cat, []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            rid = issue.get("record_id")
            tag = f" \\[{rid}]" if rid else ""
            console.print(f"  {prefix}{tag}: {escape(str(issue.get('message', '')))}")
            if verbose and issue.get("fix_action"):
                console.print(f"    fix: {issue['fix_action']}")

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {count - errors} warnings")


def _render_repair(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    fixed = result.data.get("fixed", [])
    unresolved = result.data.get("unresolved", [])
    _field(console, "fixed", len(fixed))
    _field(console, "unresolved", len(unresolved))
    for fix in fixed:
        console.print(f"  - {escape(fix)}")
    for issue in unresolved:
        console.print(
            f"  [aidl.warning]unresolved[/aidl.warning]: {escape(str(issue.get('message', '')))}"
        )


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Mutations
    "create": _render_mutation,
    "update_status": _render_mutation,
    "supersede": _render_mutation,
    "update": _render_mutation,
    "init": _render_init,
    # Query
    "get": _render_record,
    "search": _render_title_search,
    "detail_search": _render_detail_search,
    "list": _render_list,
    # Check
    "check": _render_check,
    "repair": _render_repair,
}
