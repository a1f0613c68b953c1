"""Tests for the rule tables."""

import pytest

from code_advisor.rules import (
    PRIORITIES,
    RULESETS,
    SUGGESTION_TYPES,
    Rule,
    RuleConfigError,
    canonical_language,
    framework_hint,
    language_for_path,
    rules_for,
)


class TestRuleValidation:
    def test_invalid_pattern(self):
        with pytest.raises(RuleConfigError, match="invalid pattern"):
            Rule("bad", r"eval(", "t", "m", "security", "high")

    def test_unknown_category(self):
        with pytest.raises(RuleConfigError, match="category"):
            Rule("bad", r"x", "t", "m", "style", "high")

    def test_unknown_priority(self):
        with pytest.raises(RuleConfigError, match="priority"):
            Rule("bad", r"x", "t", "m", "security", "urgent")

    def test_pattern_compiled_on_construction(self):
        rule = Rule("ok", r"todo", "t", "m", "improvement", "low")
        assert rule.regex.search("a todo here")

    def test_framework_constraint(self):
        rule = Rule("fw", r"x", "t", "m", "optimization", "low", framework="frappe")
        assert not rule.applies_to(None, None)
        assert rule.applies_to(" FRAPPE ", None)

    def test_filename_constraint(self):
        rule = Rule("fn", r"x", "t", "m", "security", "low", filename="package.json")
        assert not rule.applies_to(None, None)
        assert not rule.applies_to(None, "tsconfig.json")
        assert rule.applies_to(None, "web/package.json")


class TestRuleTables:
    def test_tables_are_well_formed(self):
        for table in RULESETS.values():
            for rule in table:
                assert rule.category in SUGGESTION_TYPES
                assert rule.priority in PRIORITIES
                assert rule.regex is not None

    def test_rule_ids_unique(self):
        ids = [r.rule_id for table in {id(t): t for t in RULESETS.values()}.values() for r in table]
        assert len(ids) == len(set(ids))

    def test_typescript_shares_javascript(self):
        assert rules_for("typescript") is rules_for("javascript")

    def test_unknown_language_has_no_rules(self):
        assert rules_for("cobol") == ()
        assert rules_for(None) == ()


class TestLanguages:
    @pytest.mark.parametrize("hint, expected", [
        ("python", "python"),
        ("PY", "python"),
        ("python3", "python"),
        (".js", "javascript"),
        ("jsx", "javascript"),
        ("tsx", "typescript"),
        ("json", "json"),
        ("ruby", None),
        ("", None),
        (None, None),
    ])
    def test_canonical_language(self, hint, expected):
        assert canonical_language(hint) == expected

    @pytest.mark.parametrize("path, expected", [
        ("app/models.py", "python"),
        ("web/index.TS", "typescript"),
        ("web/main.mjs", "javascript"),
        ("package.json", "json"),
        ("README.md", None),
        ("Makefile", None),
        (None, None),
    ])
    def test_language_for_path(self, path, expected):
        assert language_for_path(path) == expected

    @pytest.mark.parametrize("framework, expected", [
        ("frappe", "frappe"),
        ("ERPNext", "frappe"),
        ("custom", "frappe"),
        ("django", "django"),
        ("", None),
        (None, None),
    ])
    def test_framework_hint(self, framework, expected):
        assert framework_hint(framework) == expected
