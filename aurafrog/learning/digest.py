"""
Markdown digest of learned feedback.

The digest is regenerated after every local feedback/pattern write and is
meant to be read back into the assistant's context in later sessions:
a summary block, one subsection per category (occurrence count, learned
patterns with description, examples and frequency), then the most recent
corrections.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from aurafrog.learning.schemas import FeedbackKind, FeedbackRecord, LearnedPattern, utc_now

MAX_RECENT_CORRECTIONS = 10
MAX_EXAMPLES_PER_PATTERN = 3
DEFAULT_EXCERPT_LENGTH = 150
ELLIPSIS = "..."

_CORRECTIVE_KINDS = {FeedbackKind.CORRECTION, FeedbackKind.REJECTION, FeedbackKind.MODIFICATION}


def excerpt(text: str, limit: int = DEFAULT_EXCERPT_LENGTH) -> str:
    """Single-line excerpt capped at limit characters, ellipsis when cut."""
    flat = " ".join((text or "").split())
    if len(flat) <= limit:
        return flat
    return flat[:limit].rstrip() + ELLIPSIS


def _category_order(records: Iterable[FeedbackRecord],
                    patterns: Iterable[LearnedPattern]) -> "OrderedDict[str, int]":
    counts: Dict[str, int] = {}
    for record in records:
        counts[record.category] = counts.get(record.category, 0) + 1
    for pattern in patterns:
        counts.setdefault(pattern.category, 0)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return OrderedDict(ordered)


def render_digest(
    records: List[FeedbackRecord],
    patterns: List[LearnedPattern],
    excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
    generated_at: Optional[str] = None,
) -> str:
    """Render the learned-patterns Markdown document."""
    corrections = [r for r in records if r.kind in _CORRECTIVE_KINDS]
    approvals = [r for r in records if r.kind is FeedbackKind.APPROVAL]

    lines: List[str] = [
        "# Learned Patterns",
        "",
        "> Generated by Aura Frog learning from your feedback. Regenerated on every capture.",
        "",
        f"Last updated: {generated_at or utc_now()}",
        "",
        "## Summary",
        "",
        f"- Total Feedback: {len(records)}",
        f"- Corrections: {len(corrections)}",
        f"- Approvals: {len(approvals)}",
        f"- Learned Patterns: {len(patterns)}",
        "",
    ]

    categories = _category_order(records, patterns)
    if categories:
        lines += ["## Patterns by Category", ""]

    for category, occurrences in categories.items():
        lines += [f"### {category}", "", f"Occurrences: {occurrences}", ""]
        in_category = sorted(
            (p for p in patterns if p.category == category),
            key=lambda p: (-p.frequency, p.rule),
        )
        if not in_category:
            lines += ["_No learned patterns yet._", ""]
            continue
        for pattern in in_category:
            lines.append(
                f"- **{pattern.description}** (`{pattern.rule}`), frequency: {pattern.frequency}"
            )
            for sample in pattern.evidence_samples[-MAX_EXAMPLES_PER_PATTERN:]:
                lines.append(f"  - Example: \"{excerpt(sample, excerpt_length)}\"")
        lines.append("")

    recent = corrections[-MAX_RECENT_CORRECTIONS:]
    if recent:
        lines += ["## Recent Corrections", ""]
        for record in reversed(recent):
            lines.append(
                f"- [{record.category}:{record.rule}] {excerpt(record.reason_text, excerpt_length)}"
            )
        lines.append("")

    return "\n".join(lines)
