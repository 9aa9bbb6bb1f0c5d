"""Shared Click options for record content fields (create and update).

List-valued fields are repeatable options; risks use
``NAME|IMPACT|PROBABILITY|MITIGATION``. A JSON payload (``--from-json``)
supplies any field at once and is overridden by explicit options.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

_RISK_FORMAT = "NAME|IMPACT|PROBABILITY|MITIGATION"


def _parse_risks(
    ctx: click.Context, _param: click.Parameter, values: tuple[str, ...]
) -> dict[str, dict[str, str]] | None:
    if not values:
        return None
    risks: dict[str, dict[str, str]] = {}
    for raw in values:
        parts = [p.strip() for p in raw.split("|", 3)]
        if len(parts) != 4 or not parts[0]:
            raise click.BadParameter(f"{raw!r} does not match {_RISK_FORMAT}")
        name, impact, probability, mitigation = parts
        risks[name] = {
            "impact": impact.upper(),
            "probability": probability.upper(),
            "mitigation": mitigation,
        }
    return risks


def _load_json(
    ctx: click.Context, _param: click.Parameter, value: str | None
) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        raw = (
            click.get_text_stream("stdin").read()
            if value == "-"
            else Path(value).read_text(encoding="utf-8")
        )
    except OSError as exc:
        raise click.BadParameter(f"cannot read {value}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise click.BadParameter("expected a JSON object")
    return payload


_OPTIONS: tuple[Callable[[Any], Any], ...] = (
    click.option("--title", default=None, help="Record title."),
    click.option("--context", default=None, help="Background of the decision."),
    click.option("--decision", default=None, help="What was decided."),
    click.option("--rationale", default=None, help="Why (drivers)."),
    click.option("--assumption", "assumptions", multiple=True, help="Assumption (repeatable)."),
    click.option(
        "--risk",
        "risks",
        multiple=True,
        callback=_parse_risks,
        help=f"Risk as {_RISK_FORMAT}, levels LOW/MED/HIGH (repeatable).",
    ),
    click.option("--one-off-cost", "one_off", multiple=True, help="One-off cost item (repeatable)."),
    click.option("--ongoing-cost", "ongoing", multiple=True, help="Ongoing cost item (repeatable)."),
    click.option("--positive", multiple=True, help="Positive consequence (repeatable)."),
    click.option("--negative", multiple=True, help="Negative consequence (repeatable)."),
    click.option(
        "--expect",
        "expected_result",
        multiple=True,
        help="Acceptance criterion (repeatable).",
    ),
    click.option(
        "--from-json",
        "payload",
        default=None,
        callback=_load_json,
        help="JSON object with field values ('-' reads stdin).",
    ),
)


def content_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorate a command with every content field option."""
    for option in reversed(_OPTIONS):
        func = option(func)
    return func


def collect_fields(
    *,
    payload: dict[str, Any] | None,
    title: str | None,
    context: str | None,
    decision: str | None,
    rationale: str | None,
    assumptions: tuple[str, ...],
    risks: dict[str, dict[str, str]] | None,
    one_off: tuple[str, ...],
    ongoing: tuple[str, ...],
    positive: tuple[str, ...],
    negative: tuple[str, ...],
    expected_result: tuple[str, ...],
) -> dict[str, Any]:
    """Merge the JSON payload with explicitly given options."""
    fields: dict[str, Any] = dict(payload or {})
    for key, text in (
        ("title", title),
        ("context", context),
        ("decision", decision),
        ("rationale", rationale),
    ):
        if text is not None:
            fields[key] = text
    if assumptions:
        fields["assumptions"] = list(assumptions)
    if expected_result:
        fields["expected_result"] = list(expected_result)
    if risks is not None:
        fields["risks"] = risks
    if one_off or ongoing:
        fields["cost"] = {"one_off": list(one_off), "ongoing": list(ongoing)}
    if positive or negative:
        fields["consequences"] = {"positive": list(positive), "negative": list(negative)}
    return fields
