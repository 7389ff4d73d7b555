"""
Feedback Categorizer

Maps feedback text onto a fixed (category, rule) taxonomy. Branches are
evaluated top to bottom over the lowercased text; the first branch whose
trigger matches decides, and its sub-rules (first match) pick the rule.
A branch with no matching sub-rule falls back to its default rule.

The taxonomy is static: new categories are added as new branches.
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from aurafrog.learning.schemas import Category

DEFAULT_CATEGORY = Category("general", "preference")

_REMOVE_INTENT = (
    r"\b(remove|delete|drop|strip|no|don't|dont|do not|stop|without|too many|"
    r"excessive|fewer|less|unnecessary|get rid|avoid|never)\b"
)
_ADD_INTENT = r"\b(add|more|include|write|document|explain)\b"


@dataclass(frozen=True)
class Branch:
    category: str
    trigger: Pattern
    default_rule: str
    sub_rules: Tuple[Tuple[Pattern, str], ...] = ()

    def rule_for(self, text: str) -> str:
        for pattern, rule in self.sub_rules:
            if pattern.search(text):
                return rule
        return self.default_rule


def _branch(category: str, trigger: str, default_rule: str,
            *sub_rules: Tuple[str, str]) -> Branch:
    return Branch(
        category=category,
        trigger=re.compile(trigger),
        default_rule=default_rule,
        sub_rules=tuple((re.compile(p), rule) for p, rule in sub_rules),
    )


TAXONOMY: Sequence[Branch] = (
    _branch("code_style", r"comment|jsdoc|docstring|annotation|documentation",
            "comments",
            (_REMOVE_INTENT, "no_excessive_comments"),
            (_ADD_INTENT, "add_comments")),
    _branch("code_style", r"emoji",
            "emojis",
            (_REMOVE_INTENT, "no_emojis")),
    _branch("code_style",
            r"verbose|verbosity|wordy|too long|concise|shorter|brief|too much|"
            r"overkill|over-?engineer",
            "be_concise",
            (r"overkill|over-?engineer|too much|keep it simple", "keep_it_simple")),
    _branch("code_style", r"\btypes?\b|typescript|typing|type hints?|\bany\b",
            "type_safety",
            (r"\bstrict\b", "strict_types"),
            (r"\bany\b", "no_any_type")),
    _branch("code_style", r"arrow function|=>|\bconst\b|\blet\b|\bvar\b|\basync\b|\bawait\b",
            "async_await",
            (r"arrow function|=>", "prefer_arrow_functions"),
            (r"\bconst\b", "prefer_const"),
            (r"\blet\b|\bvar\b", "variable_declaration")),
    _branch("testing", r"\btests?\b|testing|\bspecs?\b|coverage|jest|vitest|pytest|\bmocks?\b",
            "test_quality",
            (r"describe|structure|organi[sz]e|arrange|setup|fixture|naming", "test_structure")),
    _branch("code_style", r"\bimports?\b|\bexports?\b|\bmodules?\b|require\(",
            "imports",
            (r"order|sort|organi[sz]e|group|alphabeti", "organize_imports")),
    _branch("code_style",
            r"naming|\bnames?\b|rename|camel ?case|snake[ _]?case|pascal ?case|kebab",
            "naming",
            (r"camel|snake|pascal|kebab|convention|case", "naming_convention")),
    _branch("code_quality", r"complex|simple|simplify|readab|refactor|clean|nested|nesting",
            "simplicity"),
    _branch("error_handling", r"error|exception|catch|throw|\btry\b|raise",
            "error_handling"),
    _branch("security",
            r"security|secure|\bauth|password|token|secret|credential|sanitiz|"
            r"inject|\bxss\b|csrf",
            "security_practice"),
    _branch("formatting",
            r"format|indent|prettier|semicolon|quotes|spacing|whitespace|"
            r"line length|trailing comma|lint",
            "code_formatting"),
    _branch("react", r"\bhooks?\b|usestate|useeffect|\bprops?\b|\bcomponents?\b",
            "component_design",
            (r"\bhooks?\b|usestate|useeffect|usememo|usecallback", "hooks_usage")),
)


def categorize(text: Optional[str], taxonomy: Sequence[Branch] = TAXONOMY) -> Category:
    """Place feedback text in the taxonomy. Defaults to general:preference."""
    lowered = (text or "").lower()
    if not lowered:
        return DEFAULT_CATEGORY
    for branch in taxonomy:
        if branch.trigger.search(lowered):
            return Category(branch.category, branch.rule_for(lowered))
    return DEFAULT_CATEGORY


def describe(category: Category) -> str:
    """Human sentence for a learned pattern."""
    return RULE_DESCRIPTIONS.get(
        category.key,
        f"User preference: {category.rule.replace('_', ' ')} ({category.category.replace('_', ' ')})",
    )


RULE_DESCRIPTIONS = {
    "code_style:no_excessive_comments": "Keep comments minimal; avoid excessive comments and docstrings",
    "code_style:add_comments": "Add explanatory comments and documentation",
    "code_style:comments": "Follow the user's commenting preferences",
    "code_style:no_emojis": "Do not use emojis in code or output",
    "code_style:emojis": "Follow the user's emoji preferences",
    "code_style:be_concise": "Be concise; avoid verbose output",
    "code_style:keep_it_simple": "Keep it simple; avoid over-engineering",
    "code_style:strict_types": "Use strict typing",
    "code_style:no_any_type": "Avoid the 'any' type",
    "code_style:type_safety": "Prefer type-safe code",
    "code_style:prefer_arrow_functions": "Prefer arrow functions",
    "code_style:prefer_const": "Prefer const over let/var",
    "code_style:variable_declaration": "Follow the user's variable declaration style",
    "code_style:async_await": "Prefer async/await",
    "testing:test_structure": "Follow the user's test structure",
    "testing:test_quality": "Write meaningful, high-quality tests",
    "code_style:organize_imports": "Keep imports organized",
    "code_style:imports": "Follow the user's import conventions",
    "code_style:naming_convention": "Follow the project's naming convention",
    "code_style:naming": "Use clear, descriptive names",
    "code_quality:simplicity": "Prefer simple, readable code",
    "error_handling:error_handling": "Handle errors explicitly",
    "security:security_practice": "Follow secure coding practices",
    "formatting:code_formatting": "Follow the project's formatting rules",
    "react:hooks_usage": "Follow the user's React hooks conventions",
    "react:component_design": "Follow the user's component design preferences",
    "general:preference": "General user preference",
}
