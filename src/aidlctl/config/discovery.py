"""Project discovery: which directory a command operates on.

A project root is the nearest ancestor holding ``aidlctl.toml``. Without a
config file, the nearest ancestor whose store directory already holds an
index counts too, so commands run from anywhere inside a project that was
set up with ``aidlctl init`` and no config.

``AIDLCTL_CONFIG`` pins the config file and disables the walk-up.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from pathlib import Path

CONFIG_FILENAME = "aidlctl.toml"
CONFIG_ENV_VAR = "AIDLCTL_CONFIG"


def _ancestors(start: Path | None) -> Iterator[Path]:
    current = (start or Path.cwd()).resolve()
    yield current
    yield from current.parents


def _nearest(start: Path | None, hit: Callable[[Path], bool]) -> Path | None:
    return next((d for d in _ancestors(start) if hit(d)), None)


def find_config(start: Path | None = None) -> Path | None:
    """The ``aidlctl.toml`` in effect for *start* (default: cwd), if any."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    root = _nearest(start, lambda d: (d / CONFIG_FILENAME).is_file())
    return root / CONFIG_FILENAME if root else None


def find_store_root(store_dir: str, index_name: str, start: Path | None = None) -> Path | None:
    """Nearest ancestor of *start* whose ``<store_dir>/<index_name>`` exists.

    Absolute *store_dir* values name one store regardless of location and
    never match.
    """
    if Path(store_dir).is_absolute():
        return None
    return _nearest(start, lambda d: (d / store_dir / index_name).is_file())
