"""Tests for the strata command line."""

from __future__ import annotations

import json

import pytest
import yaml
from typer.testing import CliRunner

from strata.cli.__main__ import app

runner = CliRunner()


@pytest.fixture
def files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    base = tmp_path / "base.yaml"
    base.write_text("server:\n  host: localhost\n  port: 80\n")
    override = tmp_path / "override.properties"
    override.write_text("server.port = 8080\n")
    return base, override


def test_get(files):
    base, override = files
    result = runner.invoke(app, ["get", "server.port", "-f", str(base), "-f", str(override)])
    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output == {"key": "server.port", "value": "8080", "source": str(override)}


def test_get_missing_key(files):
    base, _ = files
    result = runner.invoke(app, ["get", "server.missing", "-f", str(base)])
    assert result.exit_code == 1


def test_dump_yaml(files):
    base, override = files
    result = runner.invoke(app, ["dump", "-f", str(base), "-f", str(override), "--format", "yaml"])
    assert result.exit_code == 0
    assert yaml.safe_load(result.stdout) == {"server": {"host": "localhost", "port": "8080"}}


def test_dump_unknown_format(files):
    base, _ = files
    result = runner.invoke(app, ["dump", "-f", str(base), "--format", "nope"])
    assert result.exit_code == 1


def test_sources(files, tmp_path):
    base, _ = files
    (tmp_path / "strata.yaml").write_text(yaml.safe_dump({
        "environments": {
            "development": {"sources": [{"path": str(base), "prefix": "app", "watch": True}]}
        }
    }))
    result = runner.invoke(app, ["sources"])
    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output == [{
        "source": str(base),
        "prefix": "app",
        "scope": None,
        "watch": 5.0,
        "optional": False,
    }]


def test_env_option(files, tmp_path):
    base, _ = files
    (tmp_path / "strata.yaml").write_text(yaml.safe_dump({
        "environments": {"staging": {"sources": [{"path": str(base)}]}}
    }))
    result = runner.invoke(app, ["get", "server.host", "--env", "staging"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["value"] == "localhost"
