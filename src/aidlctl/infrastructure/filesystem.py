"""Locked file store — atomic writes and locked read-modify-write.

INVARIANT: Every writer goes through temp-file-then-``os.replace`` while
holding the path's lock, so unlocked readers see either the old or the new
content, never a torn one.

Locks are ``fcntl.flock`` locks on a ``<path>.lock`` sidecar. The sidecar
(not the target) is locked so the target can be replaced while the lock is
held. ``flock`` locks belong to the open file description, so two threads of
one process contend just like two processes do.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import random
import tempfile
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from aidlctl.domain.errors import LockConflictError, NotFoundError, StoreIOError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
TEMP_SUFFIX = ".tmp"


# ---------------------------------------------------------------------------
# Lock policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LockPolicy:
    """Bounded exponential backoff for lock acquisition.

    One immediate attempt is followed by up to ``retries`` delayed attempts;
    the n-th delay is ``min(max_timeout, min_timeout * factor**n)``, scaled
    by a random factor in ``[1, 2)`` (then capped again) when ``jitter`` is on.
    """

    retries: int = 5
    factor: float = 2.0
    min_timeout: float = 0.1
    max_timeout: float = 1.0
    jitter: bool = True

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        result: list[float] = []
        for attempt in range(self.retries):
            delay = self.min_timeout * self.factor**attempt
            if self.jitter:
                delay *= 1 + random.random()
            result.append(min(self.max_timeout, delay))
        return result


DEFAULT_LOCK_POLICY = LockPolicy()


@dataclass(frozen=True)
class LockWait:
    """One acquired lock: the guarded file, attempts made and time spent waiting."""

    name: str
    attempts: int
    waited_ms: float


_lock_observer: ContextVar[Callable[[LockWait], None] | None] = ContextVar(
    "_lock_observer", default=None
)


@contextmanager
def observe_locks(callback: Callable[[LockWait], None]) -> Iterator[None]:
    """Report every lock acquired in this context to *callback*."""
    token = _lock_observer.set(callback)
    try:
        yield
    finally:
        _lock_observer.reset(token)


def lock_path_for(path: Path) -> Path:
    """The sidecar lock file guarding *path*."""
    return path.with_name(path.name + LOCK_SUFFIX)


@contextmanager
def file_lock(path: Path, policy: LockPolicy = DEFAULT_LOCK_POLICY) -> Iterator[None]:
    """Hold the exclusive lock keyed by *path* for the duration of the context.

    Raises:
        LockConflictError: If the lock is still held after the retry budget.
        StoreIOError: If the lock file cannot be opened or locked.
    """
    lock_path = lock_path_for(path)
    ensure_dir(lock_path.parent)
    try:
        handle = lock_path.open("a+", encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to open lock file {lock_path}: {exc}"
        raise StoreIOError(msg) from exc

    with handle:
        _acquire(handle.fileno(), path, policy)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def _acquire(fd: int, path: Path, policy: LockPolicy) -> None:
    delays = policy.delays()
    started = time.perf_counter()
    for attempt in range(len(delays) + 1):
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            if attempt == len(delays):
                break
            logger.debug("Lock busy on %s, retrying in %.3fs", path.name, delays[attempt])
            time.sleep(delays[attempt])
            continue
        except OSError as exc:
            msg = f"Failed to lock {path}: {exc}"
            raise StoreIOError(msg) from exc
        observer = _lock_observer.get()
        if observer is not None:
            waited_ms = (time.perf_counter() - started) * 1000
            observer(LockWait(name=path.name, attempts=attempt + 1, waited_ms=waited_ms))
        return

    logger.warning("Lock retry budget exhausted for %s", path)
    msg = f"Failed to acquire lock on {path.name} after {len(delays) + 1} attempts"
    raise LockConflictError(msg)


# ---------------------------------------------------------------------------
# Plain file I/O
# ---------------------------------------------------------------------------


def ensure_dir(path: Path) -> None:
    """Create *path* and its parents if missing (idempotent)."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create directory {path}: {exc}"
        raise StoreIOError(msg) from exc


def read_text(path: Path) -> str:
    """Read a UTF-8 file without locking.

    Raises:
        NotFoundError: If *path* does not exist.
        StoreIOError: On any other filesystem failure.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        msg = f"File not found: {path}"
        raise NotFoundError(msg) from None
    except OSError as exc:
        msg = f"Failed to read file {path}: {exc}"
        raise StoreIOError(msg) from exc


def list_files(directory: Path, suffix: str) -> list[Path]:
    """Files directly inside *directory* ending in *suffix*, sorted by name.

    A missing directory yields an empty list.
    """
    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return []
    except OSError as exc:
        msg = f"Failed to list files in {directory}: {exc}"
        raise StoreIOError(msg) from exc
    return sorted(p for p in entries if p.is_file() and p.name.endswith(suffix))


def replace_atomic(path: Path, content: str) -> None:
    """Write *content* to a sibling temp file, fsync, then rename over *path*.

    The caller must hold the lock for *path*. On failure the temp file is
    removed and *path* is left untouched.
    """
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=TEMP_SUFFIX,
        )
    except OSError as exc:
        msg = f"Failed to write file {path}: {exc}"
        raise StoreIOError(msg) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_name, path)
    except BaseException as exc:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.debug("Temp file already gone: %s", tmp_name)
        if isinstance(exc, OSError):
            msg = f"Failed to write file {path}: {exc}"
            raise StoreIOError(msg) from exc
        raise


# ---------------------------------------------------------------------------
# Locked primitives
# ---------------------------------------------------------------------------


def atomic_write(path: Path, content: str, *, policy: LockPolicy = DEFAULT_LOCK_POLICY) -> None:
    """Replace *path* with *content* atomically under the path's lock."""
    ensure_dir(path.parent)
    with file_lock(path, policy):
        replace_atomic(path, content)


def _load_state(path: Path) -> dict[str, Any]:
    """Current JSON state of *path*; absent or unparseable content is ``{}``."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        msg = f"Failed to read file {path}: {exc}"
        raise StoreIOError(msg) from exc

    try:
        state = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Unparseable JSON in %s; starting from an empty state", path)
        return {}
    if not isinstance(state, dict):
        logger.warning("Non-object JSON in %s; starting from an empty state", path)
        return {}
    return state


def dump_json(state: dict[str, Any]) -> str:
    """Serialize *state* the way every JSON artifact is stored on disk."""
    return json.dumps(state, indent=2, ensure_ascii=False) + "\n"


def locked_update(
    path: Path,
    fn: Callable[[dict[str, Any]], dict[str, Any]],
    *,
    policy: LockPolicy = DEFAULT_LOCK_POLICY,
) -> dict[str, Any]:
    """Read-modify-write the JSON object at *path* under its lock.

    *fn* runs while the lock is held. Exceptions it raises propagate
    unchanged and nothing is written.

    Returns:
        The state written back to *path*.
    """
    ensure_dir(path.parent)
    with file_lock(path, policy):
        new_state = fn(_load_state(path))
        replace_atomic(path, dump_json(new_state))
    return new_state


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object without locking.

    Raises:
        NotFoundError: If *path* does not exist.
        StoreIOError: If the content is not a JSON object.
    """
    raw = read_text(path)
    try:
        state = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Failed to parse JSON in {path}: {exc}"
        raise StoreIOError(msg) from exc
    if not isinstance(state, dict):
        msg = f"Expected a JSON object in {path}"
        raise StoreIOError(msg)
    return state
