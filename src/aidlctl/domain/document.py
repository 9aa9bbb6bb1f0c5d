"""Document codec — Record <-> markdown with a YAML frontmatter header.

The header carries the index-owned metadata (id, sequence number, status,
date, and ``superseded_by`` once set). The body is rendered from the
``record.md.j2`` template under fixed section headings and parsed back by
section-bounded scanning.

Round-trip law: ``decode(encode(record)) == record`` for every valid record.
Decoding hand-edited documents is best-effort: risk bullets that do not
match the ``name — Impact:X / Prob:Y — mitigation`` layout are dropped, as
are unindented non-bullet lines inside list sections.

Pure frontmatter utilities (``parse_frontmatter``, ``order_frontmatter``,
``render_frontmatter``) live here so infrastructure depends on domain, never
the reverse.
"""

from __future__ import annotations

import re
from io import StringIO
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from aidlctl.domain.lifecycle import status_display
from aidlctl.domain.record import METADATA_FIELDS, Record, RiskLevel
from aidlctl.infrastructure.templates import build_template_environment

TEMPLATE_NAME = "record.md.j2"

# Header keys a document must carry to be decodable.
REQUIRED_HEADER_FIELDS: tuple[str, ...] = ("id", "sequence_number", "status", "date")

_FRONTMATTER_DELIMITER = "---"


class DocumentFormatError(ValueError):
    """A document could not be decoded into a Record."""


# ---------------------------------------------------------------------------
# YAML parser (round-trip preserves comments and quote styles)
# ---------------------------------------------------------------------------


def _new_yaml() -> YAML:
    """Create a fresh round-trip YAML parser.

    ruamel.yaml's YAML object is stateful; a failed dump can leave a shared
    instance broken, so every call gets its own.
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    return y


# ---------------------------------------------------------------------------
# Frontmatter utilities
# ---------------------------------------------------------------------------


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter and body from markdown content.

    Handles both ``\\n`` and ``\\r\\n`` line endings.

    Returns:
        A ``(frontmatter_dict, body_text)`` tuple. If no valid frontmatter
        delimiters are found, returns ``({}, content)``.
    """
    normalized = content.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return {}, content

    end_idx: int | None = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            end_idx = i
            break

    if end_idx is None:
        return {}, content

    yaml_block = "\n".join(lines[1:end_idx])
    body = "\n".join(lines[end_idx + 1 :])

    if body.startswith("\n"):
        body = body[1:]

    fm: dict[str, Any] = _new_yaml().load(yaml_block) or {}
    return fm, body


def order_frontmatter(fm: dict[str, Any]) -> dict[str, Any]:
    """Return *fm* with keys in canonical order, ``None`` values omitted.

    Keys in :data:`METADATA_FIELDS` come first, any others follow sorted.
    """
    ordered: dict[str, Any] = {}
    for key in METADATA_FIELDS:
        if key in fm and fm[key] is not None:
            ordered[key] = fm[key]

    for key in sorted(fm.keys()):
        if key not in ordered and fm[key] is not None:
            ordered[key] = fm[key]

    return ordered


def render_frontmatter(frontmatter: dict[str, Any], body: str) -> str:
    """Render a frontmatter dict and body text into markdown."""
    ordered = order_frontmatter(frontmatter)
    buf = StringIO()
    _new_yaml().dump(ordered, buf)
    yaml_text = buf.getvalue()

    parts = [_FRONTMATTER_DELIMITER, "\n", yaml_text, _FRONTMATTER_DELIMITER, "\n"]
    if body:
        parts.append(body)
    return "".join(parts)


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

# Continuation lines of a multi-line bullet hang under its text.
_ITEM_INDENT = "  "
_COST_ITEM_INDENT = "    "

# Free-text lines starting with these would read back as structure.
_ESCAPED_PREFIXES = ("#", "\\")


def header_of(record: Record) -> dict[str, Any]:
    """The frontmatter header for *record*."""
    data = record.model_dump(mode="json", include=set(METADATA_FIELDS))
    return order_frontmatter(data)


def _escape_text(text: str) -> str:
    return "\n".join(
        "\\" + line if line.startswith(_ESCAPED_PREFIXES) else line for line in text.split("\n")
    )


def _hang(item: str, indent: str = _ITEM_INDENT) -> str:
    return item.replace("\n", "\n" + indent)


def _render_context(record: Record) -> dict[str, Any]:
    data = record.model_dump(mode="json")
    for key in _TEXT_SECTIONS:
        data[key] = _escape_text(data[key])
    for key in _LIST_SECTIONS:
        data[key] = [_hang(item) for item in data[key]]
    for bucket in ("positive", "negative"):
        data["consequences"][bucket] = [_hang(i) for i in data["consequences"][bucket]]
    for bucket in ("one_off", "ongoing"):
        data["cost"][bucket] = [_hang(i, _COST_ITEM_INDENT) for i in data["cost"][bucket]]
    for risk in data["risks"].values():
        risk["mitigation"] = _hang(risk["mitigation"])
    data["status_display"] = status_display(record.status, record.superseded_by)
    return data


def encode(record: Record) -> str:
    """Render *record* as a markdown document.

    Free-text lines starting with ``#`` or ``\\`` get a backslash escape and
    continuation lines of multi-line bullets are indented, so ``decode``
    reads every field back exactly.
    """
    template = build_template_environment("content").get_template(TEMPLATE_NAME)
    return render_frontmatter(header_of(record), template.render(**_render_context(record)))


# ---------------------------------------------------------------------------
# Header projection
# ---------------------------------------------------------------------------

_PREAMBLE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^# ADR-\d+:", re.MULTILINE), "# ADR-{sequence_number}:"),
    (re.compile(r"^- \*\*Status\*\*:.*$", re.MULTILINE), "- **Status**: {status_display}"),
    (re.compile(r"^- \*\*Date\*\*:.*$", re.MULTILINE), "- **Date**: {date}"),
)


def reheader(content: str, record: Record) -> str:
    """Rewrite the index-owned parts of *content* to match *record*.

    Only the frontmatter and the number, status and date lines above the
    first section change; every section below them is left as it is.
    """
    _, body = parse_frontmatter(content)
    cut = body.find("\n## ")
    preamble, rest = (body, "") if cut == -1 else (body[:cut], body[cut:])
    values = {
        "sequence_number": record.sequence_number,
        "status_display": status_display(record.status, record.superseded_by),
        "date": record.date.isoformat(),
    }
    for pattern, line in _PREAMBLE_RULES:
        replacement = line.format(**values)
        preamble = pattern.sub(lambda _m, r=replacement: r, preamble, count=1)
    return render_frontmatter(header_of(record), preamble + rest)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

_TITLE_RE = re.compile(r"^# ADR-\d+:\s?(.*)$")
_RISK_RE = re.compile(
    r"^- (?P<name>.+?) — Impact:(?P<impact>\w+) / Prob:(?P<probability>\w+) — (?P<mitigation>.*)$"
)
_COST_ONE_OFF_RE = re.compile(r"^- One-off[:：]\s*$")
_COST_ONGOING_RE = re.compile(r"^- Ongoing[:：]\s*$")

# Heading prefix -> section key, matched against the text after "## ".
_SECTIONS: tuple[tuple[str, str], ...] = (
    ("Context", "context"),
    ("Decision", "decision"),
    ("Rationale", "rationale"),
    ("Consequences", "consequences"),
    ("Risks", "risks"),
    ("Acceptance", "expected_result"),
    ("Assumptions", "assumptions"),
    ("Cost", "cost"),
)

_TEXT_SECTIONS = frozenset({"context", "decision", "rationale"})
_LIST_SECTIONS = frozenset({"assumptions", "expected_result"})
_RISK_LEVELS = frozenset(level.value for level in RiskLevel)


def _section_for(heading: str) -> str | None:
    for prefix, key in _SECTIONS:
        if heading.startswith(prefix):
            return key
    return None


def _bullet_text(line: str) -> str | None:
    """Text of a top-level ``- `` bullet, or None if *line* is not one."""
    if line.startswith("- "):
        return line[2:]
    if line == "-":
        return ""
    return None


def _unescape(line: str) -> str:
    return line[1:] if line.startswith("\\") else line


class _Items:
    """Bullets of one list, each a list of lines until joined."""

    def __init__(self) -> None:
        self.lines: list[list[str]] = []

    def start(self, text: str) -> list[str]:
        self.lines.append([text])
        return self.lines[-1]

    def joined(self) -> list[str]:
        return ["\n".join(item) for item in self.lines]


def parse_body(body: str) -> dict[str, Any]:
    """Scan a document body into the record's content fields.

    Free-text sections keep every line (escapes removed); list sections
    keep their bullets with the marker stripped and indented continuation
    lines folded back in; malformed risk bullets are dropped.
    """
    title = ""
    text: dict[str, list[str]] = {key: [] for key in _TEXT_SECTIONS}
    lists: dict[str, _Items] = {key: _Items() for key in _LIST_SECTIONS}
    consequences = {"positive": _Items(), "negative": _Items()}
    cost = {"one_off": _Items(), "ongoing": _Items()}
    risks: dict[str, list[str]] = {}
    levels: dict[str, tuple[str, str]] = {}

    section: str | None = None
    bucket: _Items | None = None
    open_item: list[str] | None = None
    seen_title = False

    for line in body.replace("\r\n", "\n").split("\n"):
        if section is None and not seen_title:
            match = _TITLE_RE.match(line)
            if match:
                title = match.group(1)
                seen_title = True
                continue

        if line.startswith("## "):
            section = _section_for(line[3:].strip())
            bucket = None
            open_item = None
            continue

        if section is None:
            continue

        if section in _TEXT_SECTIONS:
            text[section].append(_unescape(line))
            continue

        indent = _COST_ITEM_INDENT if section == "cost" else _ITEM_INDENT
        if open_item is not None and line.startswith(indent):
            open_item.append(line[len(indent) :])
            continue
        open_item = None

        if section in _LIST_SECTIONS:
            item = _bullet_text(line)
            if item is not None:
                open_item = lists[section].start(item)
        elif section == "risks":
            match = _RISK_RE.match(line)
            if match and {match["impact"], match["probability"]} <= _RISK_LEVELS:
                levels[match["name"]] = (match["impact"], match["probability"])
                risks[match["name"]] = open_item = [match["mitigation"]]
        elif section == "consequences":
            if line == "**Positive**":
                bucket = consequences["positive"]
            elif line.startswith("**Negative"):
                bucket = consequences["negative"]
            else:
                item = _bullet_text(line)
                if item is not None and bucket is not None:
                    open_item = bucket.start(item)
        elif section == "cost":
            if _COST_ONE_OFF_RE.match(line):
                bucket = cost["one_off"]
            elif _COST_ONGOING_RE.match(line):
                bucket = cost["ongoing"]
            elif line.startswith("  - ") and bucket is not None:
                open_item = bucket.start(line[4:])

    return {
        "title": title,
        **{key: "\n".join(lines).strip("\n") for key, lines in text.items()},
        **{key: items.joined() for key, items in lists.items()},
        "risks": {
            name: {
                "impact": levels[name][0],
                "probability": levels[name][1],
                "mitigation": "\n".join(mitigation),
            }
            for name, mitigation in risks.items()
        },
        "consequences": {key: items.joined() for key, items in consequences.items()},
        "cost": {key: items.joined() for key, items in cost.items()},
    }


def decode(content: str) -> Record:
    """Parse a markdown document back into a :class:`Record`.

    Raises:
        DocumentFormatError: If the header is missing or malformed.
    """
    try:
        fm, body = parse_frontmatter(content)
    except YAMLError as exc:
        msg = f"Unreadable document header: {exc}"
        raise DocumentFormatError(msg) from exc

    missing = [key for key in REQUIRED_HEADER_FIELDS if key not in fm]
    if missing:
        msg = f"Document header missing fields: {', '.join(missing)}"
        raise DocumentFormatError(msg)

    superseded_by = fm.get("superseded_by")
    data: dict[str, Any] = {
        **parse_body(body),
        "id": str(fm["id"]),
        "sequence_number": fm["sequence_number"],
        "status": str(fm["status"]),
        "date": str(fm["date"]),
        "superseded_by": str(superseded_by) if superseded_by is not None else None,
    }
    try:
        return Record.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid document content: {exc}"
        raise DocumentFormatError(msg) from exc


# ---------------------------------------------------------------------------
# Plain-text projection for full-text search
# ---------------------------------------------------------------------------

_FRONTMATTER_BLOCK_RE = re.compile(r"\A---\n.*?\n---\n?", re.DOTALL)
_MARKUP_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\\(?=[#\\])", re.MULTILINE), ""),
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"\[(.+?)\]\(.+?\)"), r"\1"),
)


def plain_text(content: str) -> str:
    """Strip the header and markdown markup from a document."""
    text = _FRONTMATTER_BLOCK_RE.sub("", content.replace("\r\n", "\n"), count=1)
    for pattern, replacement in _MARKUP_RULES:
        text = pattern.sub(replacement, text)
    return text
