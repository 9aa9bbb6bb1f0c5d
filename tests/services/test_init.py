"""Tests for InitService."""

from __future__ import annotations

from aidlctl.config.settings import AidlSettings
from aidlctl.infrastructure.store import RecordStore
from aidlctl.services.init import InitService


def test_init_creates_layout(settings: AidlSettings) -> None:
    store = RecordStore(settings)
    result = InitService(store).init()
    assert result.ok
    assert result.data["created"] is True
    assert store.index.path.is_file()
    assert result.warnings == []


def test_init_idempotent(store: RecordStore) -> None:
    result = InitService(store).init()
    assert result.ok
    assert result.data["created"] is False
    assert "already initialized" in result.warnings[0]
