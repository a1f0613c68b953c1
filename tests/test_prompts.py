"""Tests for prompt building."""

from code_advisor.models import CodeAnalysisRun, Repository
from code_advisor.prompts import SYSTEM_PROMPT, build_system_prompt, repository_context_prompt


class TestRepositoryContextPrompt:
    def test_repository_and_files(self):
        repo = Repository(name="shop", framework="erpnext", description="Retail app")
        run = CodeAnalysisRun(repository_id=1, status="completed", issues_found=2, suggestions_count=5)
        prompt = repository_context_prompt(repo, ["api.py"], run)

        assert "You are working on repository: shop (erpnext)" in prompt
        assert "Description: Retail app" in prompt
        assert "Currently open files: api.py" in prompt
        assert "Latest analysis: 2 issues, 5 suggestions" in prompt
        assert "---" not in prompt

    def test_file_contents_rendered_under_headers(self):
        prompt = repository_context_prompt(
            None,
            ["api.py", "hooks.py"],
            file_contents={"api.py": "x = 1\n", "hooks.py": "app_name = 'shop'"},
        )
        lines = prompt.splitlines()
        assert lines[lines.index("--- api.py ---") + 1] == "x = 1"
        assert lines[lines.index("--- hooks.py ---") + 1] == "app_name = 'shop'"
        assert lines.index("--- api.py ---") < lines.index("--- hooks.py ---")

    def test_empty_context(self):
        assert repository_context_prompt(None) == ""


class TestBuildSystemPrompt:
    def test_without_context(self):
        assert build_system_prompt() == SYSTEM_PROMPT

    def test_with_context(self):
        prompt = build_system_prompt("Currently open files: a.py")
        assert prompt.startswith(SYSTEM_PROMPT)
        assert prompt.endswith("CONTEXT:\nCurrently open files: a.py")
