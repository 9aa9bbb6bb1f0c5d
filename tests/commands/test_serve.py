"""Tests for the serve command."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from aidlctl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestServeCommand:
    def test_without_mcp(self, cli_runner: CliRunner) -> None:
        with patch("aidlctl.mcp.server.mcp_available", False):
            result = cli_runner.invoke(cli, ["serve"])
        assert result.exit_code == 1
        assert "pip install aidlctl[mcp]" in result.output

    def test_runs_configured_transport(self, cli_runner: CliRunner) -> None:
        calls: dict[str, Any] = {}

        class FakeServer:
            def run(self, transport: str) -> None:
                calls["transport"] = transport

        def fake_create(settings: Any, **kwargs: Any) -> FakeServer:
            calls.update(kwargs)
            return FakeServer()

        with (
            patch("aidlctl.mcp.server.mcp_available", True),
            patch("aidlctl.mcp.server.create_server", fake_create),
        ):
            result = cli_runner.invoke(
                cli, ["serve", "--transport", "streamable-http", "--port", "9001"]
            )
        assert result.exit_code == 0, result.output
        assert calls == {"transport": "streamable-http", "host": "127.0.0.1", "port": 9001}

    def test_default_transport_from_settings(self, cli_runner: CliRunner) -> None:
        calls: dict[str, Any] = {}

        class FakeServer:
            def run(self, transport: str) -> None:
                calls["transport"] = transport

        with (
            patch("aidlctl.mcp.server.mcp_available", True),
            patch("aidlctl.mcp.server.create_server", lambda *a, **k: FakeServer()),
        ):
            result = cli_runner.invoke(cli, ["serve"])
        assert result.exit_code == 0, result.output
        assert calls["transport"] == "stdio"
