"""structlog setup: every log line says which store and record it concerns.

Output goes to stderr only; the MCP stdio transport owns stdout. Lines are
colored console text by default and JSON with ``--log-json``. stdlib
``logging`` calls from the store layers pass through the same processors,
so a lock retry logged by :mod:`aidlctl.infrastructure.filesystem` carries
the same ``store`` and ``record_id`` keys as a service event.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    store_dir: Path | None = None,
) -> None:
    """Route aidlctl and store-layer logging to stderr.

    Args:
        verbose: Emit aidlctl DEBUG lines (lock retries, projections,
            span timings). Otherwise only warnings and errors.
        log_json: One JSON object per line instead of console text.
        store_dir: Bound as ``store`` on every line when given.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("aidlctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    if store_dir is not None:
        structlog.contextvars.bind_contextvars(store=str(store_dir))


@contextmanager
def record_context(record_id: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with *record_id*."""
    with structlog.contextvars.bound_contextvars(record_id=record_id):
        yield
