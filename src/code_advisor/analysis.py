"""Analysis runs - scan a repository's files and record suggestions.

A run is created in the running state, fed through the extractor file by
file, and closed exactly once as completed or failed.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .extractor import Suggestion, extract_suggestions
from .models import CodeAnalysisRun, Repository
from .rules import framework_hint, language_for_path
from .store import SuggestionStore

logger = logging.getLogger(__name__)

IGNORE_DIRS = {
    ".git", "node_modules", "__pycache__", ".venv", "venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "build", "dist", ".next", ".nuxt", ".output",
    "vendor", "coverage", "htmlcov", ".idea", ".vscode",
}

MAX_FILE_BYTES = 1_000_000

# Suggestion type -> results bucket
RESULT_BUCKETS = {
    "security": "security_issues",
    "optimization": "performance_issues",
    "improvement": "code_quality",
    "bug_fix": "code_quality",
}

# General review items when a repository is analyzed without files
FRAMEWORK_PROFILES: dict[str, list[dict[str, str]]] = {
    "erpnext": [
        {
            "type": "best_practice",
            "message": "Follow the ERPNext coding standards for doctypes, hooks and patches.",
            "priority": "medium",
        },
    ],
    "custom": [
        {
            "type": "documentation",
            "message": "Document the custom functions and their whitelisted endpoints.",
            "priority": "low",
        },
    ],
}


@dataclass
class FileReport:
    """Suggestions found in one file."""

    path: str
    language: str | None
    suggestions: list[Suggestion] = field(default_factory=list)

    @property
    def security_issues(self) -> list[Suggestion]:
        return [s for s in self.suggestions if s.suggestion_type == "security"]


def collect_files(root: str | Path) -> list[str]:
    """Walk root and return relative paths of files the extractor understands."""
    root = Path(root).resolve()
    if not root.is_dir():
        raise ValueError(f"Not a directory: {root}")

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRS)
        for fname in sorted(filenames):
            if language_for_path(fname) is None:
                continue
            rel = os.path.relpath(os.path.join(dirpath, fname), root)
            found.append(Path(rel).as_posix())
    return found


def analyze_file(
    path: str,
    content: str,
    repository: Repository,
    match_all: bool = False,
) -> FileReport:
    """Run the extractor over one file's content."""
    suggestions = extract_suggestions(
        content,
        file_path=path,
        framework_hint=framework_hint(repository.framework),
        repository_id=repository.id,
        match_all=match_all,
    )
    return FileReport(path=path, language=language_for_path(path), suggestions=suggestions)


def analyze_repository_profile(repository: Repository) -> list[dict[str, str]]:
    """General review items for a repository, keyed by its framework."""
    return [dict(item) for item in FRAMEWORK_PROFILES.get((repository.framework or "").lower(), [])]


def analyze_files(
    store: SuggestionStore,
    repository: Repository,
    files: list[str] | None = None,
    analysis_type: str = "full_scan",
    match_all: bool = False,
) -> CodeAnalysisRun:
    """Scan files (relative to the repository root) and close the run.

    Returns the run in its final state. A scan error marks the run failed
    instead of raising.
    """
    run = store.start_run(repository.id, analysis_type)
    files = files or []
    try:
        results: dict[str, list[dict[str, Any]]] = {
            "security_issues": [],
            "performance_issues": [],
            "code_quality": [],
            "suggestions": [],
        }
        issues_found = 0
        suggestions_count = 0

        if files:
            root = Path(repository.root_path or ".")
            for rel in files:
                content = _read_file(root / rel)
                report = analyze_file(rel, content, repository, match_all=match_all)
                logger.debug("%s: %d suggestions", rel, len(report.suggestions))
                if not report.suggestions:
                    continue
                store.add_suggestions(report.suggestions, repository.id, rel)
                for s in report.suggestions:
                    entry = s.to_dict()
                    results[RESULT_BUCKETS[s.suggestion_type]].append(entry)
                    results["suggestions"].append(entry)
                issues_found += len(report.security_issues)
                suggestions_count += len(report.suggestions)
        else:
            results["code_quality"] = analyze_repository_profile(repository)
            issues_found = len(results["code_quality"])
    except Exception as e:
        logger.exception("Analysis run %s failed", run.id)
        return store.fail_run(run, str(e))

    run = store.complete_run(run, results, issues_found, suggestions_count)
    logger.info(
        "Analysis run %s completed: %d issues, %d suggestions",
        run.id, issues_found, suggestions_count,
    )
    return run


def _read_file(path: Path) -> str:
    if path.stat().st_size > MAX_FILE_BYTES:
        raise ValueError(f"File too large to analyze: {path}")
    return path.read_text(encoding="utf-8", errors="replace")
