"""Prompt templates for the chat relay.

The system prompt is the base persona plus whatever repository context
the caller supplied.
"""

from __future__ import annotations

from .models import CodeAnalysisRun, Repository

SYSTEM_PROMPT = """You are an assistant specialized in software development and project management.
Give precise, actionable answers. When you recommend a change to code,
say which file it applies to and show the corrected snippet.
Flag security issues, bugs, optimizations and improvements explicitly."""


def repository_context_prompt(
    repository: Repository | None,
    current_files: list[str] | None = None,
    latest_run: CodeAnalysisRun | None = None,
    file_contents: dict[str, str] | None = None,
) -> str:
    """Describe the repository the user is working in.

    file_contents maps file names to their text; each file is appended
    under a "--- name ---" header so the model can quote from it.
    """
    lines = []
    if repository is not None:
        framework = repository.framework or "unspecified"
        lines.append(f"You are working on repository: {repository.name} ({framework})")
        if repository.description:
            lines.append(f"Description: {repository.description}")
    if current_files:
        lines.append(f"Currently open files: {', '.join(current_files)}")
    if latest_run is not None:
        lines.append(
            f"Latest analysis: {latest_run.issues_found} issues, "
            f"{latest_run.suggestions_count} suggestions"
        )
    if file_contents:
        lines.append("")
        lines.append("Files in context:")
        for name, content in file_contents.items():
            lines.append(f"--- {name} ---")
            lines.append(content.rstrip("\n"))
    return "\n".join(lines)


def build_system_prompt(context: str = "") -> str:
    if not context:
        return SYSTEM_PROMPT
    return f"{SYSTEM_PROMPT}\n\nCONTEXT:\n{context}"
