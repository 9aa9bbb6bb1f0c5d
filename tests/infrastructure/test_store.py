"""Tests for RecordStore — layout, document I/O, projection."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from aidlctl.config.settings import AidlSettings
from aidlctl.domain.errors import InvalidError, NotFoundError, StoreIOError
from aidlctl.domain.lifecycle import RecordStatus
from aidlctl.domain.record import Record
from aidlctl.infrastructure.store import RecordStore, lock_policy_from


def _record(record_id: str = "cache_policy", seq: int = 1) -> Record:
    return Record(
        title="Cache policy",
        context="c",
        decision="d",
        rationale="r",
        id=record_id,
        sequence_number=seq,
        date=dt.date(2026, 1, 1),
    )


class TestLayout:
    def test_default_dir(self, tmp_path: Path) -> None:
        settings = AidlSettings(project_root=tmp_path)
        assert RecordStore(settings).root == tmp_path / ".vce" / "aidl"

    def test_base_dir_override(self, tmp_path: Path) -> None:
        settings = AidlSettings(project_root=tmp_path, base_dir=Path("decisions"))
        assert RecordStore(settings).root == tmp_path / "decisions"

    def test_initialize(self, settings: AidlSettings) -> None:
        store = RecordStore(settings)
        assert store.initialize() is True
        assert store.index.path.is_file()
        assert store.initialize() is False

    def test_lock_policy_from_settings(self, settings: AidlSettings) -> None:
        policy = lock_policy_from(settings)
        assert policy.retries == 20
        assert policy.min_timeout == 0.005

    def test_document_path_rejects_bad_id(self, store: RecordStore) -> None:
        with pytest.raises(InvalidError):
            store.document_path("../escape")

    def test_find_documents_ignores_sidecars(self, store: RecordStore) -> None:
        store.write_document(_record())
        names = [p.name for p in store.find_documents()]
        assert names == ["cache_policy.md"]
        assert store.record_id_of(store.find_documents()[0]) == "cache_policy"


class TestDocuments:
    def test_write_then_read(self, store: RecordStore) -> None:
        record = _record()
        store.write_document(record)
        assert store.read_document("cache_policy") == record

    def test_read_missing(self, store: RecordStore) -> None:
        with pytest.raises(NotFoundError):
            store.read_document("cache_policy")

    def test_read_garbage(self, store: RecordStore) -> None:
        store.document_path("cache_policy").write_text("no header", encoding="utf-8")
        with pytest.raises(StoreIOError):
            store.read_document("cache_policy")

    def test_project_document_applies_index(self, store: RecordStore) -> None:
        store.index.allocate("cache_policy", "Cache policy", dt.date(2026, 1, 1))
        store.write_document(_record())
        store.index.set_status("cache_policy", RecordStatus.ACCEPTED)

        projected = store.project_document("cache_policy")
        assert projected.status is RecordStatus.ACCEPTED
        assert store.read_document("cache_policy").status is RecordStatus.ACCEPTED
        assert store.project_document("cache_policy") == projected

    def test_project_unindexed(self, store: RecordStore) -> None:
        store.write_document(_record())
        with pytest.raises(NotFoundError):
            store.project_document("cache_policy")
