"""Tests for the click CLI (europarl_mcp/cli/commands.py)."""

from __future__ import annotations

import json

import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from europarl_mcp.cli.commands import cli


@pytest.fixture
def config_file(tmp_path, raw_config_dict):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(raw_config_dict), encoding="utf-8")
    yield str(path)
    logger.remove()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.integration
def test_tools_lists_every_tool(runner):
    result = runner.invoke(cli, ["tools", "--json"], obj={})
    assert result.exit_code == 0
    names = [t["name"] for t in json.loads(result.output)]
    assert len(names) == 12
    assert "get_voting_records" in names


@pytest.mark.integration
def test_tools_table(runner):
    result = runner.invoke(cli, ["tools"], obj={})
    assert result.exit_code == 0
    assert "get_meps" in result.output


@pytest.mark.integration
def test_check_config(runner, config_file):
    result = runner.invoke(cli, ["--config", config_file, "check-config"], obj={})
    assert result.exit_code == 0
    assert "Config is valid!" in result.output
    assert "100 per minute" in result.output


@pytest.mark.integration
def test_check_config_missing_file(runner, tmp_path):
    result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "check-config"])
    assert result.exit_code == 1


@pytest.mark.integration
def test_limiter_status_consume(runner, config_file):
    result = runner.invoke(
        cli, ["--config", config_file, "limiter-status", "--consume", "5"], obj={}
    )
    assert result.exit_code == 0
    assert "Rejected" in result.output
    assert "95" in result.output


@pytest.mark.integration
def test_call_rejects_bad_json(runner, config_file):
    result = runner.invoke(
        cli, ["--config", config_file, "call", "get_meps", "--args", "{not json"], obj={}
    )
    assert result.exit_code == 2


@pytest.mark.integration
def test_call_rejects_non_object_args(runner, config_file):
    result = runner.invoke(
        cli, ["--config", config_file, "call", "get_meps", "--args", "[1, 2]"], obj={}
    )
    assert result.exit_code == 2


@pytest.mark.integration
def test_call_validation_error_exits_nonzero(runner, config_file):
    result = runner.invoke(
        cli,
        ["--config", config_file, "call", "get_meps", "--args", '{"limit": 500}'],
        obj={},
    )
    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["code"] == "VALIDATION_ERROR"
