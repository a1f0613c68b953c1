"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from code_advisor import main
from code_advisor.main import cli


@pytest.fixture
def runner(database_url):
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "proj"
    root.mkdir()
    (root / "tasks.py").write_text("def run():\n    print('running')\n")
    return root


class TestScan:
    def test_scan_text_json(self, runner):
        result = runner.invoke(cli, ["scan", "--text", "print('hi')", "--language", "python", "--json-only"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]["suggestion_type"] == "improvement"

    def test_scan_file(self, runner, project):
        result = runner.invoke(cli, ["scan", str(project / "tasks.py")])
        assert result.exit_code == 0, result.output
        assert "2 improvement" in result.output

    def test_scan_clean_text(self, runner):
        result = runner.invoke(cli, ["scan", "--text", "x = 1", "-l", "python"])
        assert result.exit_code == 0
        assert "No suggestions" in result.output

    def test_scan_requires_input(self, runner):
        result = runner.invoke(cli, ["scan"])
        assert result.exit_code != 0


class TestAnalyzeAndReview:
    def test_analyze_then_review(self, runner, project):
        result = runner.invoke(cli, ["analyze", str(project), "--json-only"])
        assert result.exit_code == 0, result.output
        run = json.loads(result.stdout)
        assert run["status"] == "completed"
        assert run["suggestions_count"] == 2

        result = runner.invoke(cli, ["suggestions", "--status", "pending", "--json-only"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [r["file_path"] for r in rows] == ["tasks.py", "tasks.py"]

        first_id = str(rows[0]["id"])
        assert runner.invoke(cli, ["apply", first_id]).exit_code == 0

        again = runner.invoke(cli, ["dismiss", first_id])
        assert again.exit_code != 0
        assert "Cannot move" in again.output

        result = runner.invoke(cli, ["suggestions", "--status", "applied", "--json-only"])
        assert len(json.loads(result.stdout)) == 1

    def test_reanalyze_reuses_repository(self, runner, project):
        first = json.loads(runner.invoke(cli, ["analyze", str(project), "--json-only"]).stdout)
        second = json.loads(runner.invoke(cli, ["analyze", str(project), "--json-only"]).stdout)
        assert first["repository_id"] == second["repository_id"]
        assert second["analysis_id"] != first["analysis_id"]

    def test_apply_missing(self, runner):
        result = runner.invoke(cli, ["apply", "404"])
        assert result.exit_code != 0
        assert "not found" in result.output


class TestChat:
    def test_chat_with_fake_provider(self, runner, monkeypatch):
        class Provider:
            name = "claude"
            model = "claude-test"

            def send(self, system_prompt, history, user_message):
                return "Looks fine to me."

            def close(self):
                pass

        monkeypatch.setattr(main, "create_provider", lambda name: Provider())
        result = runner.invoke(cli, ["chat", "Is this ok?", "--provider", "claude"])
        assert result.exit_code == 0, result.output
        assert "Looks fine to me." in result.output

    def test_chat_sends_file_contents_and_closes(self, runner, monkeypatch, project):
        calls = []

        class Provider:
            name = "deepseek"
            model = "deepseek-test"
            closed = False

            def send(self, system_prompt, history, user_message):
                calls.append(system_prompt)
                return "All good."

            def close(self):
                Provider.closed = True

        monkeypatch.setattr(main, "create_provider", lambda name: Provider())
        analyzed = json.loads(runner.invoke(cli, ["analyze", str(project), "--json-only"]).stdout)
        task_file = str(project / "tasks.py")
        result = runner.invoke(cli, [
            "chat", "Review this", "--repo-id", str(analyzed["repository_id"]),
            "--file", task_file, "--file", "missing.py",
        ])
        assert result.exit_code == 0, result.output
        assert f"--- {task_file} ---\ndef run():" in calls[0]
        assert "--- missing.py ---" not in calls[0]
        assert Provider.closed

    def test_chat_without_key(self, runner, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        result = runner.invoke(cli, ["chat", "hello"])
        assert result.exit_code != 0
        assert "not configured" in result.output


class TestInfo:
    def test_rules_unknown_language(self, runner):
        result = runner.invoke(cli, ["rules", "--language", "cobol"])
        assert result.exit_code != 0

    def test_rules(self, runner):
        result = runner.invoke(cli, ["rules", "-l", "json"])
        assert result.exit_code == 0
        assert "json" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "code-advisor v" in result.output
