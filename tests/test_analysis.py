"""Tests for repository analysis runs."""

import pytest

from code_advisor.analysis import (
    analyze_file,
    analyze_files,
    analyze_repository_profile,
    collect_files,
)


@pytest.fixture
def sample_repo(tmp_path):
    """Create a small mixed-language repository."""
    root = tmp_path / "shop"
    root.mkdir()
    (root / "README.md").write_text("# Shop\n")
    (root / "app.py").write_text(
        "def handler(data):\n    return eval(data)\n\nprint('done')\n"
    )
    (root / "package.json").write_text(
        '{"name": "shop", "dependencies": {"left-pad": "1.0.0"}}'
    )
    static = root / "static"
    static.mkdir()
    (static / "app.js").write_text("var total = 0;\n")

    vendored = root / "node_modules" / "lib"
    vendored.mkdir(parents=True)
    (vendored / "index.js").write_text("eval(code);\n")
    return root


class TestCollectFiles:
    def test_known_languages_only(self, sample_repo):
        assert collect_files(sample_repo) == ["app.py", "package.json", "static/app.js"]

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(ValueError, match="Not a directory"):
            collect_files(tmp_path / "missing")


class TestAnalyzeFiles:
    def test_completed_run(self, store, sample_repo):
        repo = store.add_repository(name="shop", root_path=str(sample_repo))
        run = analyze_files(store, repo, collect_files(sample_repo))

        assert run.status == "completed"
        assert run.completed_at is not None
        assert run.suggestions_count == 5
        assert run.issues_found == 2
        assert len(run.results["security_issues"]) == 2
        assert len(run.results["code_quality"]) == 3
        assert run.results["performance_issues"] == []
        assert len(run.results["suggestions"]) == 5

        stored = store.list_suggestions(repository_id=repo.id)
        assert len(stored) == 5
        assert {s.file_path for s in stored} == {"app.py", "package.json", "static/app.js"}
        assert all(s.status == "pending" for s in stored)

    def test_missing_file_fails_run(self, store, sample_repo):
        repo = store.add_repository(name="shop", root_path=str(sample_repo))
        run = analyze_files(store, repo, ["app.py", "gone.py"])
        assert run.status == "failed"
        assert "gone.py" in run.results["error"]
        assert run.completed_at is not None

    def test_frappe_repository_gets_framework_rules(self, store, tmp_path):
        (tmp_path / "api.py").write_text(
            'def get_price(item):\n    """Price lookup."""\n    return frappe.get_doc("Item", item).price\n'
        )
        repo = store.add_repository(name="erp", framework="erpnext", root_path=str(tmp_path))
        run = analyze_files(store, repo, ["api.py"])
        assert run.status == "completed"
        assert len(run.results["performance_issues"]) == 1
        assert run.issues_found == 0
        assert run.suggestions_count == 1

    def test_no_files_uses_framework_profile(self, store, tmp_path):
        repo = store.add_repository(name="erp", framework="erpnext", root_path=str(tmp_path))
        run = analyze_files(store, repo)
        assert run.status == "completed"
        assert run.issues_found == 1
        assert run.suggestions_count == 0
        assert "ERPNext" in run.results["code_quality"][0]["message"]
        assert store.list_suggestions(repository_id=repo.id) == []

    def test_match_all(self, store, tmp_path):
        (tmp_path / "cli.py").write_text("print(1)\nprint(2)\n")
        repo = store.add_repository(name="cli", root_path=str(tmp_path))
        run = analyze_files(store, repo, ["cli.py"], match_all=True)
        assert run.suggestions_count == 2


class TestHelpers:
    def test_analyze_file(self, repository):
        report = analyze_file("a.py", "eval(x)\n", repository)
        assert report.language == "python"
        assert len(report.security_issues) == 1
        assert report.suggestions[0].repository_id == repository.id

    @pytest.mark.parametrize("framework, count", [
        ("erpnext", 1),
        ("custom", 1),
        ("frappe", 0),
        (None, 0),
    ])
    def test_profile(self, store, framework, count):
        repo = store.add_repository(name="r", framework=framework)
        assert len(analyze_repository_profile(repo)) == count
