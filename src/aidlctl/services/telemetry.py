"""Operation traces for ``--verbose``: per-step timing and lock contention.

Each ``@traced`` service call becomes a root span named after the method and
tagged with the record it touched. Steps inside it open child spans with
``trace_span``. Log lines emitted during the call are bound to the record
via :func:`~aidlctl.config.logging.record_context`. Every sidecar lock
acquired while a span is open is charged to that span, so a slow
``aidlctl status`` shows whether the time went to the document lock or
the index lock.

Tracing is off unless ``enable_telemetry`` ran; the disabled path is one
``ContextVar.get`` per call.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager, nullcontext
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from aidlctl.config.logging import record_context
from aidlctl.infrastructure.filesystem import LockWait, observe_locks
from aidlctl.services.result import ServiceResult

log = structlog.get_logger("aidlctl.telemetry")

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


@dataclass
class Span:
    """One timed step of an operation."""

    name: str
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    locks: list[LockWait] = field(default_factory=list)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    @property
    def lock_wait_ms(self) -> float:
        """Time this span and its children spent waiting for locks."""
        own = sum(w.waited_ms for w in self.locks)
        return own + sum(c.lock_wait_ms for c in self.children)

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.annotations:
            result["annotations"] = self.annotations
        if self.locks:
            result["locks"] = [
                {"file": w.name, "attempts": w.attempts, "waited_ms": round(w.waited_ms, 2)}
                for w in self.locks
            ]
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


def _charge_lock(wait: LockWait) -> None:
    span = _current_span.get()
    if span is not None:
        span.locks.append(wait)


@contextmanager
def _opened(span: Span) -> Generator[Span]:
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child step under the current span.

    Yields None when telemetry is disabled or no operation is being traced.
    """
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return

    child = Span(name=name)
    parent.children.append(child)
    with _opened(child):
        yield child


# ── @traced ──────────────────────────────────────────────────────────


def _subject(func: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    """The ``record_id`` argument of a service call, if it takes one."""
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except TypeError:
        return None
    return bound.arguments.get("record_id")


def _tag_root(span: Span, result: ServiceResult) -> None:
    data = result.data or {}
    if "id" in data:
        span.annotate("record_id", data["id"])
    if "sequence_number" in data:
        span.annotate("sequence_number", data["sequence_number"])
    span.annotate("lock_wait_ms", round(span.lock_wait_ms, 2))


def _log_span(span: Span, *, ok: bool) -> None:
    log.debug(
        "span.complete",
        span_name=span.name,
        record_id=span.annotations.get("record_id"),
        duration_ms=round(span.duration_ms, 2),
        lock_wait_ms=round(span.lock_wait_ms, 2),
        ok=ok,
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Trace a service method and attach the span tree to ``ServiceResult.meta``."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        subject = _subject(func, args, kwargs)
        scope = nullcontext() if subject is None else record_context(subject)
        if subject is not None:
            span.annotate("record_id", subject)
        try:
            with _opened(span), observe_locks(_charge_lock), scope:
                result = func(*args, **kwargs)
        except Exception:
            _log_span(span, ok=False)
            raise

        if not isinstance(result, ServiceResult):
            _log_span(span, ok=True)
            return result

        _tag_root(span, result)
        _log_span(span, ok=result.ok)
        merged_meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": merged_meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Turn tracing on for this context (``--verbose``)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)
