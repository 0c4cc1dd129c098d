"""
Tests for the contentkit CLI.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from contentkit.cli import app
from contentkit.logging import ROOT_LOGGER

runner = CliRunner()

EVENT_DOCUMENT = {
    "model": [
        {
            "bundle": "event",
            "label": "Event",
            "fields": [{"id": "location", "label": "Location", "type": "string"}],
        }
    ],
    "content": [{"id": "e1", "type": "node.event", "values": {"title": "Launch", "location": "Hall"}}],
}


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Run every command in an empty directory with logs under it."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CONTENTKIT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("CONTENTKIT_DB", raising=False)
    yield tmp_path
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def document(workspace):
    path = workspace / "event.json"
    path.write_text(json.dumps(EVENT_DOCUMENT), encoding="utf-8")
    return path


class TestImportCommand:
    """Tests for `contentkit import`."""

    def test_import(self, document, workspace):
        result = runner.invoke(app, ["import", str(document), "--db", str(workspace / "site.db")])

        assert result.exit_code == 0, result.output
        assert "Create node bundle 'event' (Event)" in result.output
        assert "Create node.event 'e1' -> node:1" in result.output
        assert "No warnings" in result.output
        assert (workspace / "site.db").exists()

    def test_preview_json(self, document, workspace):
        result = runner.invoke(
            app, ["import", str(document), "--preview", "--json", "--db", str(workspace / "site.db")]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["preview"] is True
        assert data["success"] is True
        assert all(line.startswith("[preview] ") for line in data["summary"])
        assert data["createdEntities"] == [{"id": "e1", "persistedRef": "preview:e1", "type": "node.event"}]

    def test_default_database_from_settings(self, document, workspace):
        result = runner.invoke(app, ["import", str(document)])

        assert result.exit_code == 0, result.output
        assert (workspace / ".contentkit" / "content.db").exists()

    def test_config_file(self, document, workspace):
        config = workspace / "custom.toml"
        config.write_text('[import]\ndatabase_path = "custom.db"\n', encoding="utf-8")

        result = runner.invoke(app, ["import", str(document), "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert (workspace / "custom.db").exists()

    def test_rejected_document_exits_1(self, workspace):
        path = workspace / "empty.json"
        path.write_text("{}", encoding="utf-8")

        result = runner.invoke(app, ["import", str(path), "--db", str(workspace / "site.db")])

        assert result.exit_code == 1
        assert "Import rejected" in result.output

    def test_missing_document_exits_1(self, workspace):
        result = runner.invoke(
            app, ["import", str(workspace / "absent.json"), "--json", "--db", str(workspace / "site.db")]
        )

        assert result.exit_code == 1
        assert json.loads(result.stdout)["success"] is False

    def test_warnings_listed(self, workspace):
        path = workspace / "warn.json"
        path.write_text(
            json.dumps({"model": [{"bundle": "x", "label": "X", "fields": [{"id": "f", "label": "F", "type": "nope"}]}]}),
            encoding="utf-8",
        )

        result = runner.invoke(app, ["import", str(path), "--db", str(workspace / "site.db")])

        assert result.exit_code == 0
        assert "1 warning(s)" in result.output
        assert "Grammar error" in result.output

    def test_jsonl_log_written(self, document, workspace):
        runner.invoke(app, ["import", str(document), "--db", str(workspace / "site.db")])

        lines = (workspace / "logs" / "contentkit.log").read_text(encoding="utf-8").splitlines()
        entries = [json.loads(line) for line in lines]
        assert any(entry["message"] == "Import applied" for entry in entries)


class TestOtherCommands:
    """Tests for `contentkit schema` and `contentkit version`."""

    def test_schema_after_import(self, document, workspace):
        db = str(workspace / "site.db")
        runner.invoke(app, ["import", str(document), "--db", db])

        result = runner.invoke(app, ["schema", "--db", db])

        assert result.exit_code == 0, result.output
        assert "node.event (Event)" in result.output
        assert "location" in result.output

    def test_schema_empty(self, workspace):
        result = runner.invoke(app, ["schema", "--db", str(workspace / "site.db")])

        assert result.exit_code == 0
        assert "No bundles defined" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert result.output.startswith("contentkit ")

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "Python" in result.output
