"""Tests for --examples flag on CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from aidlctl.cli import cli

# (CLI args, expected keywords in output)
EXAMPLES_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["init", "--examples"], ["aidlctl init"]),
    (["create", "--examples"], ["--from-json", "--risk"]),
    (["status", "--examples"], ["aidlctl status cache_policy ACCEPTED"]),
    (["supersede", "--examples"], ["aidlctl supersede"]),
    (["update", "--examples"], ["--assumption"]),
    (["query", "--examples"], ["aidlctl query get", "aidlctl query list"]),
    (["query", "get", "--examples"], ["aidlctl query get"]),
    (["query", "search", "--examples"], ["aidlctl query search"]),
    (["query", "detail", "--examples"], ["aidlctl query detail"]),
    (["query", "list", "--examples"], ["--page-size"]),
    (["check", "--examples"], ["--repair"]),
    (["serve", "--examples"], ["streamable-http"]),
]


@pytest.mark.parametrize(("args", "keywords"), EXAMPLES_COMMANDS)
def test_examples_flag(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert "Examples for" in result.output
    for keyword in keywords:
        assert keyword in result.output


def test_examples_skip_required_args(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["status", "--examples"])
    assert result.exit_code == 0
