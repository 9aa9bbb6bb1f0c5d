"""Shared pytest fixtures and test helpers for aidlctl tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from aidlctl.config.settings import AidlSettings
from aidlctl.infrastructure.store import RecordStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AidlSettings:
    """Settings rooted at a temp project with fast, jitter-free locking."""
    monkeypatch.delenv("AIDLCTL_CONFIG", raising=False)
    return AidlSettings(
        project_root=tmp_path,
        store={"lock_retries": 20, "lock_min_timeout": 0.005, "lock_max_timeout": 0.05},
    )


@pytest.fixture
def store(settings: AidlSettings) -> RecordStore:
    """Initialized record store on a temp directory."""
    s = RecordStore(settings)
    s.initialize()
    return s


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project root so the CLI uses an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes. Tests that need the path can also request ``tmp_path`` directly
    (pytest deduplicates, so it is the same directory).
    """
    monkeypatch.delenv("AIDLCTL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def record_fields(title: str = "Cache policy", **overrides: Any) -> dict[str, Any]:
    """Minimal valid content for a record, with overrides."""
    fields: dict[str, Any] = {
        "context": "Reads dominate the workload.",
        "decision": "Use an LRU cache in front of the database.",
        "rationale": "Simple and predictable under skewed access.",
    }
    fields.update(overrides)
    return {"title": title, **fields}


def create_record(
    store: RecordStore, record_id: str, title: str = "Cache policy", **kwargs: Any
) -> dict[str, Any]:
    """Create a record via CreateService, asserting success."""
    from aidlctl.services.create import CreateService

    fields = record_fields(title, **kwargs)
    result = CreateService(store).create(record_id, fields.pop("title"), **fields)
    assert result.ok, result.error
    return result.data
