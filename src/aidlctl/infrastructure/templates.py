"""Shared Jinja2 template loading for packaged document templates."""

from __future__ import annotations

from functools import cache

from jinja2 import Environment, PackageLoader, StrictUndefined


@cache
def build_template_environment(group: str) -> Environment:
    """Build (once per group) a Jinja2 environment over ``aidlctl/templates/<group>``.

    Block tags swallow their own line so loops render one line per item.
    """
    return Environment(
        loader=PackageLoader("aidlctl", f"templates/{group}"),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
