"""Tests for CRUDForge CLI commands."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from crudforge.auth import JWTService
from crudforge.cli.main import cli

REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def in_backend_dir(monkeypatch):
    """Run from the backend directory; metadata resolves to the repo root."""
    for name in ("METADATA_PATH", "MAX_HEADER_DEPTH", "STORE_ID", "SECRET_KEY"):
        monkeypatch.delenv(f"CRUDFORGE_{name}", raising=False)
    monkeypatch.chdir(REPO_ROOT / "backend")


class TestHelp:
    def test_group_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "CRUDForge" in result.output
        for command in ("auth", "metadata", "schema"):
            assert command in result.output


class TestMetadataValidate:
    def test_validate_succeeds(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["metadata", "validate"])
        assert result.exit_code == 0, result.output
        assert "All metadata is valid" in result.output

    def test_validate_shows_models(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["metadata", "validate"])
        assert "Project" in result.output
        assert "Office" in result.output
        assert "Worker" in result.output
        assert "paths)" in result.output

    def test_invalid_env_is_reported(self, runner, in_backend_dir, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_MAX_HEADER_DEPTH", "lots")
        result = runner.invoke(cli, ["metadata", "validate"])
        assert result.exit_code != 0
        assert "CRUDFORGE_MAX_HEADER_DEPTH must be an integer" in result.output


class TestSchemaCommands:
    def test_show_all(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "show"])
        assert result.exit_code == 0, result.output
        assert set(json.loads(result.output)) == {"Project", "Office", "Worker"}

    def test_show_model(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "show", "Project"])
        assert result.exit_code == 0, result.output
        fields = json.loads(result.output)
        assert fields[0]["key"] == "name"

    def test_show_unknown_model(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "show", "Ghost"])
        assert result.exit_code == 1
        assert "Ghost" in result.output

    def test_keys(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "keys", "Project", "--depth", "1"])
        assert result.exit_code == 0, result.output
        keys = result.output.split()
        assert "name" in keys
        assert "office" in keys
        assert "startDate" not in keys

    def test_keys_negative_depth(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "keys", "Project", "--depth", "-1"])
        assert result.exit_code == 2

    def test_headers(self, runner, in_backend_dir):
        result = runner.invoke(cli, ["schema", "headers", "Project", "--depth", "0"])
        assert result.exit_code == 0, result.output
        headers = {h["key"]: h for h in json.loads(result.output)}
        assert "subheaders" not in headers["office"]
        assert headers["name"]["primary"] is True

    def test_missing_metadata(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_METADATA_PATH", str(tmp_path / "nowhere"))
        result = runner.invoke(cli, ["schema", "show"])
        assert result.exit_code == 1
        assert "Metadata directory not found" in result.output


class TestAuthToken:
    def test_token_is_decodable(self, runner, in_backend_dir, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_SECRET_KEY", "cli-secret-key-for-tests-1234567")
        result = runner.invoke(cli, ["auth", "token", "--user", "ada", "--level", "250"])
        assert result.exit_code == 0, result.output

        claims = JWTService("cli-secret-key-for-tests-1234567").decode_token(result.output.strip())
        assert claims.user_id == "ada"
        assert claims.access_level == 250

    def test_user_is_required(self, runner):
        result = runner.invoke(cli, ["auth", "token"])
        assert result.exit_code == 2
