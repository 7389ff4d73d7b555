"""
Auto-learn pipeline: one user message in, at most one notice out.

    classify -> learnability filter -> categorize -> count pattern
             -> dedup check -> persist record -> promote pattern -> notice

The (category, rule) counter is bumped before the duplicate check, so
repeated phrasing still counts toward promotion while only the first
occurrence in the window is stored as a FeedbackRecord. Promotion is
one-shot: the pattern is created and announced only when a correction
lands the counter exactly on the threshold. Later corrections bump the
stored pattern's frequency and never create one, so a counter carried past
the threshold by approvals promotes nothing until it expires.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional

from aurafrog.config.models import AuraFrogConfig, RunContext
from aurafrog.learning.categorizer import categorize, describe
from aurafrog.learning.classifier import classify
from aurafrog.learning.dedup import FeedbackCache, fingerprint
from aurafrog.learning.digest import excerpt
from aurafrog.learning.learnability import is_learnable
from aurafrog.learning.schemas import (
    Category,
    FeedbackKind,
    FeedbackRecord,
    FeedbackSignal,
    LearnedPattern,
    Learnability,
    SignalKind,
    rating_for,
)
from aurafrog.learning.store import LearningStore, get_store
from aurafrog.project.cache import cached_project_name

logger = logging.getLogger(__name__)

NOTICE_PREFIX = "\U0001f9e0 Learning:"


class Outcome(str, Enum):
    DISABLED = "disabled"
    SKIPPED = "skipped"
    NO_SIGNAL = "no_signal"
    NOT_LEARNABLE = "not_learnable"
    DUPLICATE = "duplicate"
    CAPTURED = "captured"
    PROMOTED = "promoted"
    ERROR = "error"


@dataclass
class PipelineResult:
    """What happened to one message."""

    outcome: Outcome
    signal: Optional[FeedbackSignal] = None
    learnability: Optional[Learnability] = None
    category: Optional[Category] = None
    fingerprint: Optional[str] = None
    pattern_count: int = 0
    record: Optional[Dict[str, Any]] = None
    pattern: Optional[Dict[str, Any]] = None
    notice: Optional[str] = None
    errors: list = field(default_factory=list)


def _kind_for(signal: FeedbackSignal) -> FeedbackKind:
    return FeedbackKind.APPROVAL if signal.kind is SignalKind.APPROVAL else FeedbackKind.CORRECTION


class FeedbackPipeline:
    """Runs the auto-learn flow against one config and store."""

    def __init__(self, config: AuraFrogConfig, store: Optional[LearningStore] = None):
        self.config = config
        self.store = store or get_store(config)

    def _context(self, context: Optional[RunContext]) -> RunContext:
        ctx = context or self.config.context
        if not ctx.project_name:
            ctx = ctx.model_copy(update={"project_name": cached_project_name(self.config.project_dir)})
        return ctx

    def _load_cache(self) -> FeedbackCache:
        learning = self.config.learning
        return FeedbackCache.load(
            self.config.dedup_cache_path,
            window=timedelta(hours=learning.dedup_window_hours),
            max_entries=learning.dedup_max_entries,
        )

    def process(self, text: Optional[str], context: Optional[RunContext] = None) -> PipelineResult:
        learning = self.config.learning
        if not learning.feedback_active:
            return PipelineResult(Outcome.DISABLED)

        message = (text or "").strip()
        if not message or message.startswith("/"):
            return PipelineResult(Outcome.SKIPPED)

        signal = classify(message)
        if not signal.is_signal or signal.confidence < learning.min_capture_confidence:
            return PipelineResult(Outcome.NO_SIGNAL, signal=signal)

        learnability = is_learnable(message)
        if not learnability.learnable:
            logger.debug("Not learnable (%s): %s", learnability.reason.value, message[:80])
            return PipelineResult(Outcome.NOT_LEARNABLE, signal=signal, learnability=learnability)

        category = categorize(message)
        fp = fingerprint(message)
        result = PipelineResult(
            Outcome.CAPTURED, signal=signal, learnability=learnability,
            category=category, fingerprint=fp,
        )

        cache = self._load_cache()
        count = cache.increment(category)
        result.pattern_count = count
        duplicate = cache.is_duplicate(fp)
        ctx = self._context(context)
        kind = _kind_for(signal)

        if duplicate:
            result.outcome = Outcome.DUPLICATE
        else:
            cache.remember(fp, kind.value, category)
            record = FeedbackRecord(
                kind=kind,
                reason_text=message[:learning.max_reason_length],
                rating=rating_for(kind),
                category=category.category,
                rule=category.rule,
                fingerprint=fp,
                session_id=ctx.session_id,
                workflow_id=ctx.workflow_id,
                project_name=ctx.project_name,
                metadata={
                    "source": "auto_detect",
                    "confidence": signal.confidence,
                    "evidence": list(signal.evidence),
                    "learnability": learnability.reason.value,
                    "input_length": len(message),
                    "agent": ctx.agent or "unknown",
                },
            )
            stored = self.store.append_feedback(record)
            if stored.ok:
                result.record = stored.record
            else:
                result.errors.append(stored.error)

        threshold = learning.promotion_threshold
        if signal.kind is SignalKind.CORRECTION and count >= threshold:
            pattern = LearnedPattern(
                category=category.category,
                rule=category.rule,
                description=describe(category),
                evidence_samples=[excerpt(message, learning.excerpt_length)],
                frequency=count,
            )
            if count == threshold:
                stored = self.store.upsert_pattern(pattern)
            else:
                stored = self.store.bump_pattern(pattern)
            if stored.ok:
                result.pattern = stored.record
            else:
                result.errors.append(stored.error)
            if count == threshold:
                result.outcome = Outcome.PROMOTED
                result.notice = (
                    f"{NOTICE_PREFIX} Pattern detected! \"{pattern.description}\" "
                    f"({category.key}, seen {count}x)"
                )

        if (
            result.notice is None
            and not duplicate
            and signal.kind is SignalKind.CORRECTION
            and signal.confidence >= learning.notice_confidence
        ):
            result.notice = (
                f"{NOTICE_PREFIX} Captured correction "
                f"({round(signal.confidence * 100)}% confidence)"
            )

        cache.save()
        return result


def capture_feedback(text: Optional[str], config: AuraFrogConfig,
                     store: Optional[LearningStore] = None) -> PipelineResult:
    """Entry point used by hooks: never raises."""
    try:
        return FeedbackPipeline(config, store=store).process(text)
    except Exception as exc:  # noqa: BLE001 - learning must never break the host
        logger.warning("Feedback capture failed: %s", exc)
        return PipelineResult(Outcome.ERROR, errors=[str(exc)])
