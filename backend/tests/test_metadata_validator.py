"""
Tests for crudforge.metadata.validator

Covers:
  - validate_yaml_file()            single-file validation (valid + invalid)
  - validate_metadata_dir()         directory walk (real metadata passes)
  - validate_metadata_dir(strict=True)
  - cross-file checks: duplicate models, unknown references
  - CLI: crudforge metadata validate [--path] [--strict]
"""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from crudforge.cli.main import cli
from crudforge.metadata.validator import (
    ValidationIssue,
    validate_metadata_dir,
    validate_yaml_file,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data, sort_keys=False))
    return path


def _write_raw(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _errors(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    return [i for i in issues if i.severity == "error"]


def _warnings(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    return [i for i in issues if i.severity == "warning"]


# Path to the real metadata directory
_REPO_ROOT = Path(__file__).resolve().parents[2]
_METADATA_DIR = _REPO_ROOT / "metadata"

OFFICE = {
    "model": "Office",
    "fields": {
        "name": {"type": "String", "required": True, "minWriteAccess": 200},
        "address": {"street": "String", "city": "String"},
        "parent": {"type": "ObjectId", "ref": "Office"},
    },
}


# ---------------------------------------------------------------------------
# validate_yaml_file
# ---------------------------------------------------------------------------


class TestValidateModelFile:
    def test_valid_minimal_model(self, tmp_path):
        f = _write_yaml(tmp_path / "Good.yaml", {"model": "Good", "fields": {"name": "String"}})
        assert validate_yaml_file(f) == []

    def test_valid_full_model(self, tmp_path):
        f = _write_yaml(tmp_path / "Office.yaml", OFFICE)
        assert validate_yaml_file(f) == []

    def test_all_declaration_shapes_accepted(self, tmp_path):
        f = _write_yaml(tmp_path / "Shapes.yaml", {
            "model": "Shapes",
            "store": "archive",
            "description": "Every declaration form",
            "fields": {
                "plain": "String",
                "tags": ["String"],
                "lines": [{"sku": "String", "qty": {"type": "Number", "minReadAccess": 5}}],
                "meta": {"type": {}},
                "shipping": {"schema": {"city": "String"}},
                "audit": {"created": {"by": "String"}},
                "files": {"type": [{"type": "ObjectId", "ref": "StoredFile"}]},
                "owner": {"type": "ObjectId", "ref": {"model": "Worker", "store": "hr"}},
                "status": {"type": "String", "default": "draft", "hidden": True, "primary": False},
            },
        })
        assert validate_yaml_file(f) == []

    def test_missing_model_key(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {"fields": {"name": "String"}})
        issues = validate_yaml_file(f)
        assert any("'model' is a required property" in i.message for i in issues)

    def test_missing_fields_key(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {"model": "Bad"})
        issues = validate_yaml_file(f)
        assert any("'fields' is a required property" in i.message for i in issues)

    def test_invalid_model_name(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {"model": "not a name", "fields": {"a": "String"}})
        issues = validate_yaml_file(f)
        assert len(issues) == 1
        assert issues[0].path == "model"

    def test_unknown_field_option(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {
            "model": "Bad",
            "fields": {"name": {"type": "String", "unique": True}},
        })
        issues = validate_yaml_file(f)
        assert issues
        assert all(i.path == "fields/name" for i in issues)

    def test_negative_access_level(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {
            "model": "Bad",
            "fields": {"salary": {"type": "Number", "minReadAccess": -1}},
        })
        assert _errors(validate_yaml_file(f))

    def test_array_with_two_elements(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {
            "model": "Bad",
            "fields": {"tags": ["String", "Number"]},
        })
        assert _errors(validate_yaml_file(f))

    def test_unknown_top_level_key(self, tmp_path):
        f = _write_yaml(tmp_path / "Bad.yaml", {
            "model": "Bad",
            "fields": {"a": "String"},
            "views": [],
        })
        issues = validate_yaml_file(f)
        assert any("views" in i.message for i in issues)

    def test_empty_yaml_file_returns_error(self, tmp_path):
        f = _write_raw(tmp_path / "Empty.yaml", "   \n")
        issues = validate_yaml_file(f)
        assert len(issues) == 1
        assert "empty" in issues[0].message

    def test_malformed_yaml_returns_error(self, tmp_path):
        f = _write_raw(tmp_path / "Broken.yaml", "model: [unclosed\n")
        issues = validate_yaml_file(f)
        assert len(issues) == 1
        assert "YAML parse error" in issues[0].message

    def test_issue_str(self, tmp_path):
        issue = ValidationIssue(file=tmp_path / "x.yaml", message="boom", path="fields/a", severity="warning")
        assert str(issue) == f"[WARNING] {tmp_path / 'x.yaml'} at fields/a: boom"


# ---------------------------------------------------------------------------
# validate_metadata_dir
# ---------------------------------------------------------------------------


class TestValidateMetadataDir:
    @pytest.mark.skipif(
        not _METADATA_DIR.is_dir(),
        reason="Real metadata directory not found",
    )
    def test_real_metadata_is_valid(self):
        """All committed metadata YAML files must pass schema validation."""
        issues = validate_metadata_dir(_METADATA_DIR)
        errors = _errors(issues)
        if errors:
            detail = "\n".join(str(i) for i in errors)
            pytest.fail(f"Real metadata has schema errors:\n{detail}")

    def test_nonexistent_dir_returns_issue(self, tmp_path):
        issues = validate_metadata_dir(tmp_path / "does-not-exist")
        assert len(issues) == 1
        assert "does not exist" in issues[0].message

    def test_empty_dir_returns_no_issues(self, tmp_path):
        assert validate_metadata_dir(tmp_path) == []

    def test_skips_unknown_subdirs(self, tmp_path):
        _write_raw(tmp_path / "misc" / "random.yaml", "key: value\n")
        assert validate_metadata_dir(tmp_path) == []

    def test_multiple_invalid_files_all_reported(self, tmp_path):
        for i in range(3):
            _write_yaml(tmp_path / "models" / f"bad{i}.yaml", {"model": f"Bad{i}"})
        issues = validate_metadata_dir(tmp_path)
        assert len(issues) == 3

    def test_unknown_reference_is_warning(self, tmp_path):
        _write_yaml(tmp_path / "models" / "project.yaml", {
            "model": "Project",
            "fields": {"office": {"type": "ObjectId", "ref": "Office"}},
        })
        issues = validate_metadata_dir(tmp_path)
        assert _errors(issues) == []
        [warning] = _warnings(issues)
        assert "unknown model 'Office' in store 'default'" in warning.message
        assert warning.path == "fields/office/ref"

    def test_known_and_file_references_pass(self, tmp_path):
        _write_yaml(tmp_path / "models" / "office.yaml", OFFICE)
        _write_yaml(tmp_path / "models" / "project.yaml", {
            "model": "Project",
            "fields": {
                "office": {"type": "ObjectId", "ref": "Office"},
                "files": [{"type": "ObjectId", "ref": "StoredFile"}],
            },
        })
        assert validate_metadata_dir(tmp_path) == []

    def test_cross_store_reference(self, tmp_path):
        _write_yaml(tmp_path / "models" / "office.yaml", {**OFFICE, "store": "hr"})
        _write_yaml(tmp_path / "models" / "project.yaml", {
            "model": "Project",
            "fields": {
                "local": {"type": "ObjectId", "ref": "Office"},
                "remote": {"type": "ObjectId", "ref": {"model": "Office", "store": "hr"}},
            },
        })
        issues = validate_metadata_dir(tmp_path)
        assert [i.path for i in issues] == ["fields/local/ref"]

    def test_strict_mode_escalates_warnings(self, tmp_path):
        _write_yaml(tmp_path / "models" / "project.yaml", {
            "model": "Project",
            "fields": {"office": {"type": "ObjectId", "ref": "Office"}},
        })
        issues = validate_metadata_dir(tmp_path, strict=True)
        assert len(_errors(issues)) == 1
        assert _warnings(issues) == []

    def test_duplicate_model_in_store(self, tmp_path):
        _write_yaml(tmp_path / "models" / "a.yaml", OFFICE)
        _write_yaml(tmp_path / "models" / "b.yaml", OFFICE)
        issues = validate_metadata_dir(tmp_path)
        assert len(issues) == 1
        assert "Duplicate model 'Office' in store 'default'" in issues[0].message

    def test_same_model_in_two_stores(self, tmp_path):
        _write_yaml(tmp_path / "models" / "a.yaml", OFFICE)
        _write_yaml(tmp_path / "models" / "b.yaml", {**OFFICE, "store": "hr"})
        assert validate_metadata_dir(tmp_path) == []


# ---------------------------------------------------------------------------
# CLI tests
# ---------------------------------------------------------------------------


class TestValidateCLI:
    def test_cli_validate_directory(self, tmp_path, monkeypatch):
        _write_yaml(tmp_path / "models" / "office.yaml", OFFICE)
        monkeypatch.setenv("CRUDFORGE_METADATA_PATH", str(tmp_path))

        result = CliRunner().invoke(cli, ["metadata", "validate"])

        assert result.exit_code == 0, f"Output:\n{result.output}"
        assert "Compiled 1 models:" in result.output
        assert "Office (10 paths)" in result.output
        assert "All metadata is valid." in result.output

    def test_cli_validate_single_valid_file(self, tmp_path):
        f = _write_yaml(tmp_path / "good.yaml", {"model": "Good", "fields": {"name": "String"}})
        result = CliRunner().invoke(cli, ["metadata", "validate", "--path", str(f)])
        assert result.exit_code == 0, f"Output:\n{result.output}"
        assert "Compiled" not in result.output

    def test_cli_validate_single_invalid_file(self, tmp_path):
        f = _write_yaml(tmp_path / "bad.yaml", {"model": "Bad"})
        result = CliRunner().invoke(cli, ["metadata", "validate", "--path", str(f)])
        assert result.exit_code != 0
        assert "ERROR" in result.output

    def test_cli_missing_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_METADATA_PATH", str(tmp_path / "nowhere"))
        result = CliRunner().invoke(cli, ["metadata", "validate"])
        assert result.exit_code == 1

    def test_cli_validate_strict_flag(self, tmp_path, monkeypatch):
        _write_yaml(tmp_path / "models" / "project.yaml", {
            "model": "Project",
            "fields": {"office": {"type": "ObjectId", "ref": "Office"}},
        })
        monkeypatch.setenv("CRUDFORGE_METADATA_PATH", str(tmp_path))

        lenient = CliRunner().invoke(cli, ["metadata", "validate"])
        strict = CliRunner().invoke(cli, ["metadata", "validate", "--strict"])

        assert lenient.exit_code == 0
        assert "1 warning(s) found." in lenient.output
        assert strict.exit_code == 1
