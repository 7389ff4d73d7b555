"""
Feedback Classifier

Layered heuristic over a user message:
1. Correction patterns (explicit negations, bans, preferences) -> 0.9
2. Approval patterns -> 0.8
3. Correction keyword co-occurrence -> 0.7 (2+ keywords) / 0.5 (1 keyword)

Tables are ordered data evaluated first-match-wins; extend by adding rows.
"""

import re
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from aurafrog.learning.schemas import FeedbackSignal, SignalKind

MIN_INPUT_LENGTH = 3

CORRECTION_CONFIDENCE = 0.9
APPROVAL_CONFIDENCE = 0.8
MULTI_KEYWORD_CONFIDENCE = 0.7
SINGLE_KEYWORD_CONFIDENCE = 0.5


def _compile(patterns: Iterable[str]) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


CORRECTION_PATTERNS: List[Pattern] = _compile([
    # Direct negations
    r"^no[,.\s!]",
    r"^nope",
    r"^wrong",
    r"^incorrect",
    r"^that's not (right|correct|what)",
    r"^that was wrong",

    # Correction phrases
    r"^actually[,\s]",
    r"should (be|have|use|not)",
    r"shouldn't (be|have|use|do)",
    r"instead of",
    r"not like that",
    r"don't (do|add|use|put|include|create|make|write)",
    r"do not (do|add|use|put|include|create|make|write)",
    r"never (add|use|do|include|create|make|write)",
    r"stop (adding|using|doing|including|creating|making|writing)",

    # Modification requests
    r"^(change|fix|update|modify|correct|adjust|remove|delete|undo) (that|this|it)",
    r"^(change|fix|update|modify|correct) the",
    r"^that should",
    r"^it should",
    r"^please (don't|do not|stop|change|fix|remove)",

    # Preference statements
    r"^i (prefer|want|need|like)",
    r"^always (use|add|include)",
    r"^(too|very) (verbose|long|short|complex|simple)",

    # Critique
    r"^(why did you|why are you)",
    r"^that's (too|unnecessary|overkill|wrong)",
    r"^(remove|delete|get rid of) (the|all|those|these) (comments?|jsdoc|docstrings?|annotations?)",
])

APPROVAL_PATTERNS: List[Pattern] = _compile([
    r"^(good|great|perfect|excellent|nice|awesome|well done)",
    r"^that's (good|great|perfect|right|correct|what i wanted)",
    r"^(yes|yep|yeah)[,.\s!]",
    r"^exactly",
    r"^looks good",
    r"^thank(s| you)",
])

CORRECTION_KEYWORDS: Tuple[str, ...] = (
    "wrong", "incorrect", "mistake", "error", "fix", "change", "update",
    "don't", "dont", "shouldn't", "shouldnt", "never", "stop",
    "remove", "delete", "undo", "revert", "actually", "instead",
    "too much", "too many", "unnecessary", "overkill", "verbose",
    "not like", "not what", "prefer", "want you to", "need you to",
)

# (pattern table, verdict, confidence), evaluated in order
SIGNAL_TABLES: Sequence[Tuple[Sequence[Pattern], SignalKind, float]] = (
    (CORRECTION_PATTERNS, SignalKind.CORRECTION, CORRECTION_CONFIDENCE),
    (APPROVAL_PATTERNS, SignalKind.APPROVAL, APPROVAL_CONFIDENCE),
)


def first_match(patterns: Sequence[Pattern], text: str) -> Optional[Pattern]:
    """Return the first pattern that matches text, or None."""
    for pattern in patterns:
        if pattern.search(text):
            return pattern
    return None


def match_keywords(text: str, keywords: Sequence[str] = CORRECTION_KEYWORDS) -> List[str]:
    """Distinct keywords contained in text (case-insensitive substring test)."""
    lowered = text.lower()
    seen: List[str] = []
    for keyword in keywords:
        if keyword in lowered and keyword not in seen:
            seen.append(keyword)
    return seen


def classify(text: Optional[str]) -> FeedbackSignal:
    """Classify a user message as a correction, an approval, or neither.

    Pure function: the same input always yields the same signal.
    """
    if not text or len(text) < MIN_INPUT_LENGTH:
        return FeedbackSignal.none()

    stripped = text.strip()

    for patterns, kind, confidence in SIGNAL_TABLES:
        matched = first_match(patterns, stripped)
        if matched is not None:
            return FeedbackSignal(kind, confidence, (matched.pattern,))

    keywords = match_keywords(stripped)
    if len(keywords) >= 2:
        return FeedbackSignal(SignalKind.CORRECTION, MULTI_KEYWORD_CONFIDENCE, tuple(keywords))
    if len(keywords) == 1:
        return FeedbackSignal(SignalKind.CORRECTION, SINGLE_KEYWORD_CONFIDENCE, tuple(keywords))

    return FeedbackSignal.none()
