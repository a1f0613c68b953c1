"""Pattern-based suggestion extractor. No model, no I/O.

Scans a text blob (an assistant reply or a file's contents) against the
rule table for its language and turns each match into a suggestion.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .rules import Rule, canonical_language, language_for_path, rules_for


class InvalidInputError(TypeError):
    """Extractor was given something other than text."""


@dataclass(frozen=True)
class Suggestion:
    """A structured recommendation produced by one rule match."""

    suggestion_type: str
    title: str
    description: str
    priority: str
    rule_id: str
    file_path: str | None = None
    repository_id: int | None = None
    line: int | None = None
    code_snippet: str = ""
    suggested_fix: str = ""
    status: str = "pending"
    created_by_ai: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def extract_suggestions(
    text: str,
    language: str | None = None,
    framework_hint: str | None = None,
    file_path: str | None = None,
    repository_id: int | None = None,
    match_all: bool = False,
) -> list[Suggestion]:
    """Run every applicable rule over text and return the matches.

    Output order follows rule order. Each rule contributes its first match
    only, unless match_all is set, in which case every occurrence is
    reported in position order.
    """
    if not isinstance(text, str):
        raise InvalidInputError(
            f"text must be a string, got {type(text).__name__}"
        )
    if not text:
        return []

    # The path only stands in for a missing hint, never for an unknown one
    if language is not None:
        lang = canonical_language(language)
    else:
        lang = language_for_path(file_path)
    suggestions: list[Suggestion] = []

    for rule in rules_for(lang):
        if not rule.applies_to(framework_hint, file_path):
            continue
        matches = rule.regex.finditer(text)
        for match in matches:
            suggestions.append(
                _build_suggestion(rule, text, match.start(), file_path, repository_id)
            )
            if not match_all:
                break

    return suggestions


def _build_suggestion(
    rule: Rule,
    text: str,
    offset: int,
    file_path: str | None,
    repository_id: int | None,
) -> Suggestion:
    line_no, snippet = _line_at(text, offset)
    return Suggestion(
        suggestion_type=rule.category,
        title=rule.title,
        description=rule.message,
        priority=rule.priority,
        rule_id=rule.rule_id,
        file_path=file_path,
        repository_id=repository_id,
        line=line_no,
        code_snippet=snippet,
        suggested_fix=rule.fix,
    )


def _line_at(text: str, offset: int) -> tuple[int, str]:
    """Return the 1-based line number and stripped line text for an offset."""
    # js-loose-equality consumes the character before ==, which can be a newline
    if offset < len(text) and text[offset] == "\n":
        offset += 1
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    if end == -1:
        end = len(text)
    return text.count("\n", 0, offset) + 1, text[start:end].strip()[:200]


def summarize(suggestions: list[Suggestion]) -> dict[str, int]:
    """Count suggestions per type."""
    counts: dict[str, int] = {}
    for s in suggestions:
        counts[s.suggestion_type] = counts.get(s.suggestion_type, 0) + 1
    return counts
