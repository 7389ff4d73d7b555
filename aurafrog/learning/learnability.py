"""
Learnability Filter

Decides whether a piece of feedback reads like a reusable preference
("always use const") or a one-off instruction tied to a file, identifier
or position ("change Button.tsx line 42 to red"). Only learnable feedback
is allowed to accumulate pattern frequency.
"""

import re
from typing import List, Optional, Pattern, Tuple

from aurafrog.learning.schemas import Learnability, LearnabilityReason

MIN_LEARNABLE_LENGTH = 15
MAX_LEARNABLE_LENGTH = 200
TASK_SPECIFIC_LIMIT = 2

GENERAL_INDICATORS: List[Pattern] = [
    re.compile(p, re.IGNORECASE) for p in (
        r"\b(always|never)\b",
        r"\bprefer(s|red|ence)?\b",
        r"\b(style|styles|convention|conventions|best practices?)\b",
        r"\bby default\b",
        r"\bavoid(ing)?\b",
        r"\b(in general|generally|from now on|going forward|every time|whenever)\b",
        r"\b(single|double) quotes\b",
        r"\b(tabs|spaces) (instead|over|rather)\b",
        r"\b(arrow functions?|semicolons?|trailing commas?)\b",
    )
]

# Some indicators are case-sensitive (identifier shapes), so each row
# carries its own flags.
TASK_SPECIFIC_INDICATORS: List[Tuple[str, Pattern]] = [
    ("file_path", re.compile(r"(?:^|[\s'\"`(])(?:\.{1,2}/|~/|/)?[\w@.-]+/[\w@./-]+")),
    ("file_extension", re.compile(
        r"\b[\w-]+\.(?:tsx?|jsx?|mjs|cjs|py|rb|go|rs|java|kt|swift|php|css|scss|"
        r"less|html|json|ya?ml|toml|md|vue|svelte|sql|sh|dart)\b",
        re.IGNORECASE,
    )),
    ("color_literal", re.compile(
        r"#[0-9a-fA-F]{3,8}\b|\b(?:rgba?|hsla?)\(|"
        r"\b(?:red|blue|green|yellow|purple|orange|black|white|gr[ae]y|pink)\s+"
        r"(?:colou?r|background|text|border)\b",
        re.IGNORECASE,
    )),
    ("multi_digit_number", re.compile(r"\b\d{2,}\b")),
    ("camel_case", re.compile(r"\b[a-z]+[A-Z][a-zA-Z0-9]*\b")),
    ("snake_case", re.compile(r"\b[a-z][a-z0-9]*_[a-z0-9_]+\b")),
    ("pascal_case", re.compile(r"\b[A-Z][a-z0-9]+[A-Z][a-zA-Z0-9]*\b")),
    ("ui_element", re.compile(
        r"\b(?:the|this|that)\s+(?:button|modal|navbar|header|footer|sidebar|"
        r"dropdown|tooltip|input|form|page|screen|card|menu|dialog|banner)\b",
        re.IGNORECASE,
    )),
    ("function_call", re.compile(r"\b\w+\([^)]*\)")),
    ("line_reference", re.compile(
        r"\b(?:line|lines|row|column|col)\s*#?\d+|:\d+(?::\d+)?\b",
        re.IGNORECASE,
    )),
    ("rename_instruction", re.compile(r"\brename\s+\S+\s+to\s+\S+", re.IGNORECASE)),
]


def task_specific_indicators(text: str) -> List[str]:
    """Names of the task-specific indicators present in text."""
    return [name for name, pattern in TASK_SPECIFIC_INDICATORS if pattern.search(text)]


def has_general_indicator(text: str) -> bool:
    return any(pattern.search(text) for pattern in GENERAL_INDICATORS)


def is_learnable(text: Optional[str]) -> Learnability:
    """Judge whether feedback is general enough to learn from."""
    stripped = (text or "").strip()

    if len(stripped) < MIN_LEARNABLE_LENGTH:
        return Learnability(False, LearnabilityReason.TOO_SHORT)
    if len(stripped) > MAX_LEARNABLE_LENGTH:
        return Learnability(False, LearnabilityReason.TOO_LONG)

    general = has_general_indicator(stripped)
    task = tuple(task_specific_indicators(stripped))

    if len(task) >= TASK_SPECIFIC_LIMIT:
        return Learnability(False, LearnabilityReason.TASK_SPECIFIC, task)
    if general:
        return Learnability(True, LearnabilityReason.GENERAL_INDICATOR, task)
    if len(task) == 1:
        return Learnability(False, LearnabilityReason.LIKELY_TASK_SPECIFIC, task)
    return Learnability(True, LearnabilityReason.NO_SPECIFIC_INDICATORS)
