"""Tests for the locked file store — locks, atomic writes, locked updates."""

from __future__ import annotations

import fcntl
import json
import os
import threading
import time
from pathlib import Path
from typing import Any

import pytest

from aidlctl.domain.errors import LockConflictError, NotFoundError, StoreIOError
from aidlctl.infrastructure.filesystem import (
    LockPolicy,
    LockWait,
    atomic_write,
    dump_json,
    file_lock,
    list_files,
    lock_path_for,
    locked_update,
    observe_locks,
    read_json,
    read_text,
)

FAST = LockPolicy(retries=3, min_timeout=0.01, max_timeout=0.02, jitter=False)
NO_RETRY = LockPolicy(retries=0)


class TestLockPolicy:
    def test_delays_without_jitter(self) -> None:
        policy = LockPolicy(retries=5, factor=2, min_timeout=0.1, max_timeout=1.0, jitter=False)
        assert policy.delays() == pytest.approx([0.1, 0.2, 0.4, 0.8, 1.0])

    def test_jitter_bounded(self) -> None:
        policy = LockPolicy(retries=4, min_timeout=0.1, max_timeout=0.5)
        for base, delay in zip([0.1, 0.2, 0.4, 0.8], policy.delays(), strict=True):
            assert min(base, 0.5) <= delay <= 0.5

    def test_zero_retries(self) -> None:
        assert NO_RETRY.delays() == []


class TestFileLock:
    def test_sidecar(self, tmp_path: Path) -> None:
        target = tmp_path / "index.json"
        with file_lock(target, FAST):
            assert lock_path_for(target).exists()
        assert lock_path_for(target).name == "index.json.lock"

    def test_conflict_when_held(self, tmp_path: Path) -> None:
        target = tmp_path / "doc.md"
        with lock_path_for(target).open("a+") as holder:
            fcntl.flock(holder.fileno(), fcntl.LOCK_EX)
            with pytest.raises(LockConflictError), file_lock(target, NO_RETRY):
                pass

    def test_released_after_context(self, tmp_path: Path) -> None:
        target = tmp_path / "doc.md"
        with file_lock(target, NO_RETRY):
            pass
        with file_lock(target, NO_RETRY):
            pass

    def test_threads_exclude_each_other(self, tmp_path: Path) -> None:
        target = tmp_path / "counter.json"
        policy = LockPolicy(retries=50, min_timeout=0.001, max_timeout=0.01)
        inside: list[int] = []
        overlaps: list[int] = []

        def worker() -> None:
            with file_lock(target, policy):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(1)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert overlaps == []


class TestObserveLocks:
    def test_uncontended_lock_reported_once(self, tmp_path: Path) -> None:
        seen: list[LockWait] = []
        with observe_locks(seen.append), file_lock(tmp_path / "doc.md", FAST):
            pass
        assert [(w.name, w.attempts) for w in seen] == [("doc.md", 1)]

    def test_retries_counted_while_held(self, tmp_path: Path) -> None:
        target = tmp_path / "index.json"
        held = threading.Event()

        def holder() -> None:
            with lock_path_for(target).open("a+") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                held.set()
                time.sleep(0.05)
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait()
        seen: list[LockWait] = []
        policy = LockPolicy(retries=100, min_timeout=0.005, max_timeout=0.01, jitter=False)
        with observe_locks(seen.append), file_lock(target, policy):
            pass
        thread.join()
        assert seen[0].attempts > 1
        assert seen[0].waited_ms > 0

    def test_nothing_reported_outside_context(self, tmp_path: Path) -> None:
        seen: list[LockWait] = []
        with observe_locks(seen.append):
            pass
        atomic_write(tmp_path / "doc.md", "x", policy=FAST)
        assert seen == []


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "doc.md"
        atomic_write(target, "hello\n", policy=FAST)
        assert target.read_text(encoding="utf-8") == "hello\n"

    def test_failed_replace_leaves_target_and_no_temp(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / "doc.md"
        target.write_text("old", encoding="utf-8")

        def boom(*_args: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(StoreIOError, match="disk full"):
            atomic_write(target, "new", policy=FAST)
        assert target.read_text(encoding="utf-8") == "old"
        assert list(tmp_path.glob("*.tmp")) == []
        assert list(tmp_path.glob(".*.tmp")) == []


class TestLockedUpdate:
    def test_creates_from_empty(self, tmp_path: Path) -> None:
        target = tmp_path / "state.json"
        state = locked_update(target, lambda s: {**s, "n": 1}, policy=FAST)
        assert state == {"n": 1}
        assert json.loads(target.read_text(encoding="utf-8")) == {"n": 1}

    def test_corrupt_content_starts_empty(self, tmp_path: Path) -> None:
        target = tmp_path / "state.json"
        target.write_text("{not json", encoding="utf-8")
        seen: list[dict[str, Any]] = []

        def fn(state: dict[str, Any]) -> dict[str, Any]:
            seen.append(state)
            return {"ok": True}

        locked_update(target, fn, policy=FAST)
        assert seen == [{}]
        assert read_json(target) == {"ok": True}

    def test_exception_writes_nothing(self, tmp_path: Path) -> None:
        target = tmp_path / "state.json"
        target.write_text(dump_json({"n": 1}), encoding="utf-8")

        def fn(state: dict[str, Any]) -> dict[str, Any]:
            raise ValueError("rejected")

        with pytest.raises(ValueError, match="rejected"):
            locked_update(target, fn, policy=FAST)
        assert read_json(target) == {"n": 1}

    def test_concurrent_increments_are_serialized(self, tmp_path: Path) -> None:
        target = tmp_path / "counter.json"
        policy = LockPolicy(retries=100, min_timeout=0.001, max_timeout=0.01)

        def bump() -> None:
            locked_update(target, lambda s: {"n": s.get("n", 0) + 1}, policy=policy)

        threads = [threading.Thread(target=bump) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert read_json(target) == {"n": 10}


class TestReads:
    def test_read_text_missing(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            read_text(tmp_path / "nope.md")

    def test_read_json_corrupt(self, tmp_path: Path) -> None:
        target = tmp_path / "bad.json"
        target.write_text("[1, 2", encoding="utf-8")
        with pytest.raises(StoreIOError):
            read_json(target)

    def test_read_json_non_object(self, tmp_path: Path) -> None:
        target = tmp_path / "list.json"
        target.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StoreIOError, match="object"):
            read_json(target)

    def test_list_files(self, tmp_path: Path) -> None:
        (tmp_path / "b.md").write_text("", encoding="utf-8")
        (tmp_path / "a.md").write_text("", encoding="utf-8")
        (tmp_path / "a.md.lock").write_text("", encoding="utf-8")
        assert [p.name for p in list_files(tmp_path, ".md")] == ["a.md", "b.md"]
        assert list_files(tmp_path / "missing", ".md") == []
