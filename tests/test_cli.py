"""
Tests for the CLI interface.
"""

import json

import pytest
from typer.testing import CliRunner

from tool_ledger.cli.main import EXIT_CODE_FAIL, EXIT_CODE_PASS, app
from tool_ledger.core.collector import MetricsCollector
from tool_ledger.storage.models import InvocationRecord, utc_now_iso

runner = CliRunner()


@pytest.fixture
def ledger_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary metrics directory and global style file."""
    metrics_dir = tmp_path / "metrics"
    monkeypatch.setenv("MCP_METRICS_DIR", str(metrics_dir))
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.delenv("MCP_METRICS_ENABLED", raising=False)
    monkeypatch.delenv("MCP_METRICS_MAX_SIZE_BYTES", raising=False)
    monkeypatch.setattr("tool_ledger.config.styles.GLOBAL_CONFIG_PATH", tmp_path / "global.json")
    return metrics_dir


class TestCLI:
    """Test CLI commands."""

    def test_no_command(self, ledger_env):
        result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output

    def test_status(self, ledger_env):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "enabled" in result.output
        assert "not created yet" in result.output

    def test_bad_config_file(self, ledger_env, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml"), "status"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading settings" in result.output

    def test_stats_without_ledger(self, ledger_env):
        result = runner.invoke(app, ["stats"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No invocation ledger found" in result.output

    def test_stats_table(self, ledger_env):
        collector = MetricsCollector("tool-ledger", metrics_dir=ledger_env)
        collector.initialize()
        for duration in (100, 200, 300):
            collector.record(InvocationRecord(
                tool="search",
                timestamp=utc_now_iso(),
                duration_ms=duration,
                reasoning="",
            ))

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Total invocations: 3" in result.output
        assert "search" in result.output
        assert "200" in result.output

    def test_report_issue_and_list(self, ledger_env):
        result = runner.invoke(app, [
            "report-issue",
            "--title", "Crash on startup",
            "--description", "The server exits immediately",
            "--severity", "high",
        ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "reported" in result.output
        data = json.loads((ledger_env / "tool-ledger.issues.json").read_text(encoding="utf-8"))
        assert data["issues"][0]["severity"] == "high"

        listed = runner.invoke(app, ["issues"])
        assert listed.exit_code == EXIT_CODE_PASS
        assert data["issues"][0]["id"] in listed.output

    def test_report_issue_invalid(self, ledger_env):
        result = runner.invoke(app, [
            "report-issue", "--title", "Bad", "--description", "Too short title here",
        ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "title" in result.output
        assert not (ledger_env / "tool-ledger.issues.json").exists()

    def test_issues_empty(self, ledger_env):
        result = runner.invoke(app, ["issues"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No issues reported" in result.output


class TestStylesCLI:
    """Test the styles sub-commands."""

    def test_save_set_resolve(self, ledger_env, tmp_path):
        root = str(tmp_path / "project")

        saved = runner.invoke(app, ["styles", "save", "minimal", "flat", "outline", "--project-root", root])
        linked = runner.invoke(app, ["styles", "set-folder", "/a", "minimal", "--project-root", root])
        resolved = runner.invoke(app, ["styles", "resolve", "/a/b", "--project-root", root])

        assert saved.exit_code == EXIT_CODE_PASS
        assert linked.exit_code == EXIT_CODE_PASS
        assert resolved.exit_code == EXIT_CODE_PASS
        assert "minimal" in resolved.output
        assert "flat, outline" in resolved.output
        assert "Matched: /a" in resolved.output

    def test_global_scope(self, ledger_env, tmp_path):
        result = runner.invoke(app, ["styles", "save", "bold", "thick", "--scope", "global"])

        assert result.exit_code == EXIT_CODE_PASS
        data = json.loads((tmp_path / "global.json").read_text(encoding="utf-8"))
        assert data["styles"] == {"bold": ["thick"]}

    def test_set_folder_unknown_style(self, ledger_env, tmp_path):
        result = runner.invoke(
            app, ["styles", "set-folder", "/a", "ghost", "--project-root", str(tmp_path)]
        )

        assert result.exit_code == EXIT_CODE_FAIL
        assert "does not exist" in result.output

    def test_invalid_scope(self, ledger_env, tmp_path):
        result = runner.invoke(
            app, ["styles", "save", "x", "y", "--scope", "team", "--project-root", str(tmp_path)]
        )

        assert result.exit_code == EXIT_CODE_FAIL

    def test_delete_and_remove_missing(self, ledger_env, tmp_path):
        root = str(tmp_path)

        deleted = runner.invoke(app, ["styles", "delete", "ghost", "--project-root", root])
        removed = runner.invoke(app, ["styles", "remove-folder", "/a", "--project-root", root])

        assert deleted.exit_code == EXIT_CODE_FAIL
        assert removed.exit_code == EXIT_CODE_FAIL

    def test_list(self, ledger_env, tmp_path):
        root = str(tmp_path)
        runner.invoke(app, ["styles", "save", "minimal", "flat", "--project-root", root])

        result = runner.invoke(app, ["styles", "list", "--project-root", root])

        assert result.exit_code == EXIT_CODE_PASS
        assert "minimal" in result.output
        assert "project" in result.output
