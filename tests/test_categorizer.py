"""Tests for the feedback categorizer taxonomy."""

import pytest

from aurafrog.learning.categorizer import DEFAULT_CATEGORY, RULE_DESCRIPTIONS, categorize, describe
from aurafrog.learning.schemas import Category

pytestmark = pytest.mark.learning


class TestTaxonomy:

    @pytest.mark.parametrize("text,expected", [
        ("don't add so many comments", ("code_style", "no_excessive_comments")),
        ("please add documentation to the helpers", ("code_style", "add_comments")),
        ("what about the jsdoc", ("code_style", "comments")),
        ("no emojis please", ("code_style", "no_emojis")),
        ("too verbose", ("code_style", "be_concise")),
        ("that's overkill", ("code_style", "keep_it_simple")),
        ("use strict types", ("code_style", "strict_types")),
        ("avoid any in signatures", ("code_style", "no_any_type")),
        ("add typing to this", ("code_style", "type_safety")),
        ("use arrow functions", ("code_style", "prefer_arrow_functions")),
        ("no, that's wrong, please use const instead", ("code_style", "prefer_const")),
        ("don't use var", ("code_style", "variable_declaration")),
        ("use async and await", ("code_style", "async_await")),
        ("organize the test fixtures", ("testing", "test_structure")),
        ("write more tests", ("testing", "test_quality")),
        ("sort imports alphabetically", ("code_style", "organize_imports")),
        ("use named exports", ("code_style", "imports")),
        ("follow the snake_case convention", ("code_style", "naming_convention")),
        ("pick better names", ("code_style", "naming")),
        ("this is too complex", ("code_quality", "simplicity")),
        ("catch that exception", ("error_handling", "error_handling")),
        ("never log the password", ("security", "security_practice")),
        ("run prettier on it", ("formatting", "code_formatting")),
        ("prefer custom hooks", ("react", "hooks_usage")),
        ("split that into smaller components", ("react", "component_design")),
        ("hmm, try something else", ("error_handling", "error_handling")),
        ("I don't like it", ("general", "preference")),
    ])
    def test_first_matching_branch(self, text, expected):
        assert categorize(text) == Category(*expected)

    def test_comments_branch_precedes_verbosity(self):
        assert categorize("too many verbose comments").rule == "no_excessive_comments"

    def test_empty_defaults(self):
        assert categorize("") == DEFAULT_CATEGORY
        assert categorize(None) == DEFAULT_CATEGORY


class TestDescribe:

    def test_known_rule(self):
        assert describe(Category("code_style", "prefer_const")) == "Prefer const over let/var"

    def test_unknown_rule_fallback(self):
        text = describe(Category("bash", "git_status"))
        assert "git status" in text

    def test_every_default_rule_described(self):
        for key in ("general:preference", "react:component_design", "security:security_practice"):
            assert key in RULE_DESCRIPTIONS
