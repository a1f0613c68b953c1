"""Rule tables for the suggestion extractor.

Each rule is a static record: a regex, the classification it produces,
and a canned fix. Tables are compiled at import so a broken pattern
fails on load rather than on the first scan.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

SUGGESTION_TYPES = ("improvement", "bug_fix", "optimization", "security")
PRIORITIES = ("low", "medium", "high", "critical")

# Priority ordering for sorting and summaries
PRIORITY_RANK = {p: i for i, p in enumerate(PRIORITIES)}


class RuleConfigError(Exception):
    """A rule table entry is malformed."""


@dataclass(frozen=True)
class Rule:
    """A single pattern-to-classification mapping."""

    rule_id: str
    pattern: str
    title: str
    message: str
    category: str
    priority: str
    fix: str = ""
    flags: int = 0
    framework: str | None = None  # only applies with a matching framework hint
    filename: str | None = None  # only applies to files with this basename
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.category not in SUGGESTION_TYPES:
            raise RuleConfigError(
                f"Rule {self.rule_id}: unknown category {self.category!r}"
            )
        if self.priority not in PRIORITIES:
            raise RuleConfigError(
                f"Rule {self.rule_id}: unknown priority {self.priority!r}"
            )
        try:
            compiled = re.compile(self.pattern, self.flags)
        except re.error as e:
            raise RuleConfigError(f"Rule {self.rule_id}: invalid pattern: {e}") from e
        object.__setattr__(self, "regex", compiled)

    def applies_to(self, framework_hint: str | None, file_path: str | None) -> bool:
        """Check the rule's framework and filename constraints."""
        if self.framework and (framework_hint or "").strip().lower() != self.framework:
            return False
        if self.filename:
            if not file_path or os.path.basename(file_path).lower() != self.filename:
                return False
        return True


# --- Python ---

PYTHON_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="py-eval",
        pattern=r"eval\s*\(",
        title="Unsafe use of eval()",
        message="eval() executes arbitrary expressions and is unsafe on untrusted input.",
        category="security",
        priority="high",
        fix="import ast\nvalue = ast.literal_eval(expression)",
    ),
    Rule(
        rule_id="py-exec",
        pattern=r"exec\s*\(",
        title="Dangerous use of exec()",
        message="exec() runs arbitrary code; replace it with explicit dispatch.",
        category="security",
        priority="high",
        fix="handlers = {\"name\": handler}\nhandlers[name]()",
    ),
    Rule(
        rule_id="py-sql-input",
        pattern=r"sql.*=.*input",
        title="Possible SQL injection",
        message="SQL text appears to be built from user input; use parameterized queries.",
        category="security",
        priority="critical",
        fix='cursor.execute("SELECT * FROM t WHERE id = %s", (value,))',
        flags=re.IGNORECASE,
    ),
    Rule(
        rule_id="py-frappe-sql-fstring",
        pattern=r"frappe\.db\.sql\s*\(\s*f[\"']",
        title="Formatted SQL passed to frappe.db.sql",
        message="Interpolating values into frappe.db.sql allows SQL injection; pass values separately.",
        category="security",
        priority="critical",
        fix='frappe.db.sql("SELECT name FROM tabItem WHERE item_group = %s", (group,))',
        framework="frappe",
    ),
    Rule(
        rule_id="py-missing-docstring",
        # A def line that is not followed by a string literal
        pattern=r"^[ \t]*def\s+\w+\s*\([^)]*\)\s*(?:->\s*[^:\n]+)?:[ \t]*$(?!\n[ \t]*[rRuUbB]?(?:\"|'))",
        title="Function without docstring",
        message="Function has no docstring; add one describing its purpose and return value.",
        category="improvement",
        priority="low",
        fix='def function_name() -> ReturnType:\n    """Describe what the function does."""',
        flags=re.MULTILINE,
    ),
    Rule(
        rule_id="py-print",
        pattern=r"\bprint\s*\(",
        title="Use logging instead of print",
        message="print() output is not configurable; use the logging module instead.",
        category="improvement",
        priority="medium",
        fix="import logging\nlogger = logging.getLogger(__name__)\nlogger.info(message)",
    ),
    Rule(
        rule_id="py-frappe-get-doc",
        pattern=r"frappe\.get_doc\s*\(",
        title="Heavy document load for a simple lookup",
        message="frappe.get_doc loads the whole document; use frappe.db.get_value for simple field reads.",
        category="optimization",
        priority="medium",
        fix='frappe.db.get_value("DocType", name, "field")',
        framework="frappe",
    ),
)

# --- JavaScript / TypeScript ---

JAVASCRIPT_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="js-eval",
        pattern=r"eval\s*\(",
        title="Unsafe use of eval()",
        message="eval() executes arbitrary code; parse data explicitly instead.",
        category="security",
        priority="high",
        fix="const data = JSON.parse(userInput);",
    ),
    Rule(
        rule_id="js-new-function",
        pattern=r"new\s+Function\s*\(",
        title="Dynamic code via new Function()",
        message="new Function() compiles strings into code, just like eval().",
        category="security",
        priority="high",
        fix="const handlers = { name: handler };",
    ),
    Rule(
        rule_id="js-inner-html",
        pattern=r"\.innerHTML\s*=(?!=)",
        title="Assignment to innerHTML",
        message="Assigning to innerHTML can introduce cross-site scripting; use textContent.",
        category="security",
        priority="high",
        fix="element.textContent = value;",
    ),
    Rule(
        rule_id="js-document-write",
        pattern=r"document\.write\s*\(",
        title="Use of document.write()",
        message="document.write() blocks parsing and can inject untrusted markup.",
        category="security",
        priority="medium",
        fix="container.append(node);",
    ),
    Rule(
        rule_id="js-var",
        pattern=r"\bvar\s+\w+",
        title="Prefer const or let over var",
        message="var is function-scoped and hoisted; use const or let.",
        category="improvement",
        priority="low",
        fix="const value = compute();",
    ),
    Rule(
        rule_id="js-loose-equality",
        pattern=r"[^=!<>]==(?!=)",
        title="Loose equality comparison",
        message="== performs type coercion; use === for predictable comparisons.",
        category="bug_fix",
        priority="medium",
        fix="if (a === b) { ... }",
    ),
    Rule(
        rule_id="js-console-log",
        pattern=r"console\.log\s*\(",
        title="Leftover console.log()",
        message="Remove debug output or route it through a logger.",
        category="improvement",
        priority="low",
        fix="",
    ),
    Rule(
        rule_id="js-frappe-get-doc",
        pattern=r"frappe\.get_doc\s*\(",
        title="Heavy document load for a simple lookup",
        message="Use frappe.db.get_value instead of frappe.get_doc for simple queries.",
        category="optimization",
        priority="medium",
        fix='frappe.db.get_value("DocType", name, "field")',
        framework="frappe",
    ),
    Rule(
        rule_id="js-frappe-call-async-false",
        pattern=r"async\s*:\s*false",
        title="Synchronous frappe.call",
        message="Synchronous server calls freeze the desk UI; use callbacks or promises.",
        category="optimization",
        priority="medium",
        fix='frappe.call({ method: "...", args: {} }).then((r) => { ... });',
        framework="frappe",
    ),
)

# --- JSON config ---

JSON_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="json-hardcoded-secret",
        pattern=r"\"(?:password|passwd|secret|api_?key|token|access_?key)\"\s*:\s*\"[^\"]+\"",
        title="Hard-coded credential in config",
        message="Secrets committed in config files leak through version control; load them from the environment.",
        category="security",
        priority="critical",
        fix='"api_key": "${API_KEY}"',
        flags=re.IGNORECASE,
    ),
    Rule(
        rule_id="json-npm-audit",
        pattern=r"\"(?:dependencies|devDependencies)\"\s*:",
        title="Audit npm dependencies",
        message="Run npm audit to check the declared packages for known vulnerabilities.",
        category="security",
        priority="high",
        fix="npm audit fix",
        filename="package.json",
    ),
)

RULESETS: dict[str, tuple[Rule, ...]] = {
    "python": PYTHON_RULES,
    "javascript": JAVASCRIPT_RULES,
    "typescript": JAVASCRIPT_RULES,
    "json": JSON_RULES,
}

LANGUAGE_ALIASES = {
    "py": "python", "python3": "python", "python": "python",
    "js": "javascript", "jsx": "javascript", "mjs": "javascript",
    "cjs": "javascript", "javascript": "javascript", "node": "javascript",
    "ts": "typescript", "tsx": "typescript", "typescript": "typescript",
    "json": "json",
}

EXTENSION_LANGUAGES = {
    ".py": "python",
    ".js": "javascript", ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".json": "json",
}


def canonical_language(hint: str | None) -> str | None:
    """Normalize a language hint. Returns None if unknown."""
    if not hint:
        return None
    return LANGUAGE_ALIASES.get(hint.strip().lower().lstrip("."))


def language_for_path(path: str | None) -> str | None:
    """Derive a language from a file extension."""
    if not path:
        return None
    ext = os.path.splitext(path)[1].lower()
    return EXTENSION_LANGUAGES.get(ext)


def rules_for(language: str | None) -> tuple[Rule, ...]:
    """Rule table for a language hint, empty if unknown."""
    lang = canonical_language(language)
    if lang is None:
        return ()
    return RULESETS.get(lang, ())


# ERPNext and custom apps are both built on Frappe
FRAPPE_FRAMEWORKS = ("frappe", "erpnext", "custom")


def framework_hint(framework: str | None) -> str | None:
    """Map a repository's framework to the hint the rule tables use."""
    framework = (framework or "").strip().lower()
    if framework in FRAPPE_FRAMEWORKS:
        return "frappe"
    return framework or None
