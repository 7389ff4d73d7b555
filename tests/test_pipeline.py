"""
Tests for the auto-learn pipeline.

Validates end to end against a local store in a temp project:
- Corrections are captured with a notice at >= 0.7 confidence
- Approvals are stored with rating 5 and never promoted
- Task-specific feedback is dropped before anything is persisted
- Duplicate text is stored once but still counts toward promotion
- Promotion happens exactly once at the threshold, later hits bump frequency
- Internal failures never escape capture_feedback
"""

import json
from unittest.mock import MagicMock

import pytest

from aurafrog.learning.dedup import FeedbackCache
from aurafrog.learning.pipeline import FeedbackPipeline, Outcome, capture_feedback
from aurafrog.learning.schemas import Category, FeedbackKind, SignalKind, StoreResult
from aurafrog.learning.store import LocalFileStore

pytestmark = pytest.mark.learning

CONST_CORRECTIONS = [
    "Always use const instead of let",
    "I prefer const for every variable",
    "Please don't use let, prefer const",
    "You should use const over let everywhere",
]


def _feedback(config):
    if not config.feedback_path.exists():
        return []
    return json.loads(config.feedback_path.read_text())


def _patterns(config):
    if not config.patterns_path.exists():
        return []
    return json.loads(config.patterns_path.read_text())


@pytest.fixture
def pipeline(config):
    return FeedbackPipeline(config)


class TestCorrectionCapture:

    def test_explicit_correction(self, pipeline, config):
        result = pipeline.process("no, that's wrong, please use const instead")

        assert result.outcome is Outcome.CAPTURED
        assert result.signal.kind is SignalKind.CORRECTION
        assert result.signal.confidence == 0.9
        assert result.category == Category("code_style", "prefer_const")
        assert result.notice == "\U0001f9e0 Learning: Captured correction (90% confidence)"

        records = _feedback(config)
        assert len(records) == 1
        assert records[0]["kind"] == "correction"
        assert records[0]["rating"] == 3
        assert records[0]["metadata"]["source"] == "auto_detect"
        assert records[0]["metadata"]["confidence"] == 0.9
        assert "Total Feedback: 1" in config.digest_path.read_text()

    def test_low_confidence_correction_is_silent(self, pipeline, config):
        result = pipeline.process("can we revert the last migration")
        assert result.outcome is Outcome.CAPTURED
        assert result.signal.confidence == 0.5
        assert result.notice is None
        assert len(_feedback(config)) == 1

    def test_task_specific_not_persisted(self, pipeline, config):
        result = pipeline.process("change src/components/Button.tsx line 42 to use red color")
        assert result.outcome is Outcome.NOT_LEARNABLE
        assert result.notice is None
        assert _feedback(config) == []
        assert not config.dedup_cache_path.exists()

    def test_context_attached(self, make_config):
        config = make_config(AF_SESSION_ID="s-1", AF_CURRENT_AGENT="reviewer", PROJECT_NAME="demo")
        FeedbackPipeline(config).process("Always use const instead of let")
        record = _feedback(config)[0]
        assert record["session_id"] == "s-1"
        assert record["project_name"] == "demo"
        assert record["metadata"]["agent"] == "reviewer"

    def test_project_name_from_detection(self, pipeline, config):
        (config.project_dir / "package.json").write_text(json.dumps({"name": "@acme/web-app"}))
        pipeline.process("Always use const instead of let")
        assert _feedback(config)[0]["project_name"] == "web-app"


class TestApprovals:

    def test_approval_rating(self, pipeline, config):
        result = pipeline.process("Great, that looks much better now")
        assert result.outcome is Outcome.CAPTURED
        assert result.signal.kind is SignalKind.APPROVAL
        assert result.notice is None
        record = _feedback(config)[0]
        assert record["kind"] == FeedbackKind.APPROVAL.value
        assert record["rating"] == 5

    def test_short_approval_not_learnable(self, pipeline):
        result = pipeline.process("good job")
        assert result.signal.kind is SignalKind.APPROVAL
        assert result.outcome is Outcome.NOT_LEARNABLE

    def test_approvals_never_promote(self, pipeline, config):
        for text in ("Great, that looks much better now",
                     "Perfect, that is exactly the right approach",
                     "Thanks, this reads much better now"):
            result = pipeline.process(text)
            assert result.outcome is Outcome.CAPTURED
        assert result.pattern_count == 3
        assert _patterns(config) == []


class TestSkips:

    @pytest.mark.parametrize("text", [None, "", "   ", "/commit no, that's wrong"])
    def test_skipped(self, pipeline, config, text):
        assert pipeline.process(text).outcome is Outcome.SKIPPED
        assert _feedback(config) == []

    def test_no_signal(self, pipeline):
        assert pipeline.process("what does this module do?").outcome is Outcome.NO_SIGNAL

    def test_feedback_collection_disabled(self, make_config):
        config = make_config(AF_FEEDBACK_COLLECTION="false")
        result = FeedbackPipeline(config).process("Always use const instead of let")
        assert result.outcome is Outcome.DISABLED
        assert not config.feedback_path.exists()

    def test_learning_disabled(self, make_config):
        config = make_config(AF_LEARNING_ENABLED="false")
        assert FeedbackPipeline(config).process("Always use const").outcome is Outcome.DISABLED


class TestDeduplication:

    def test_same_text_stored_once_counted_twice(self, pipeline, config):
        first = pipeline.process("Always use const instead of let")
        second = pipeline.process("  always use CONST instead of let ")

        assert first.outcome is Outcome.CAPTURED
        assert second.outcome is Outcome.DUPLICATE
        assert second.notice is None
        assert len(_feedback(config)) == 1

        cache = FeedbackCache.load(config.dedup_cache_path)
        assert cache.count(Category("code_style", "prefer_const")) == 2


class TestPromotion:

    def test_promoted_once_at_threshold(self, pipeline, config):
        results = [pipeline.process(text) for text in CONST_CORRECTIONS[:3]]

        assert [r.outcome for r in results] == [Outcome.CAPTURED, Outcome.CAPTURED, Outcome.PROMOTED]
        assert "Pattern detected!" in results[2].notice
        assert "code_style:prefer_const" in results[2].notice
        patterns = _patterns(config)
        assert len(patterns) == 1
        assert patterns[0]["frequency"] == 3
        assert patterns[0]["description"] == "Prefer const over let/var"

    def test_fourth_occurrence_bumps_frequency(self, pipeline, config):
        results = [pipeline.process(text) for text in CONST_CORRECTIONS]

        assert results[3].outcome is Outcome.CAPTURED
        assert "Pattern detected!" not in (results[3].notice or "")
        patterns = _patterns(config)
        assert len(patterns) == 1
        assert patterns[0]["frequency"] == 4
        assert len(patterns[0]["evidence_samples"]) == 2

    def test_duplicates_count_toward_promotion(self, pipeline, config):
        results = [pipeline.process("Always use const instead of let") for _ in range(3)]
        assert results[2].outcome is Outcome.PROMOTED
        assert len(_feedback(config)) == 1
        assert _patterns(config)[0]["frequency"] == 3

    def test_approvals_past_threshold_create_nothing(self, pipeline, config):
        for text in ("Great, always prefer const here",
                     "Perfect, const everywhere is the way to go",
                     "Thanks, I like that you used const"):
            assert pipeline.process(text).outcome is Outcome.CAPTURED

        result = pipeline.process("Always use const instead of let")

        assert result.pattern_count == 4
        assert result.outcome is Outcome.CAPTURED
        assert result.pattern is None
        assert "Captured correction (90% confidence)" in result.notice
        assert _patterns(config) == []

    def test_approvals_can_lead_into_promotion(self, pipeline, config):
        pipeline.process("Great, always prefer const here")
        pipeline.process("Perfect, const everywhere is the way to go")

        result = pipeline.process("Always use const instead of let")

        assert result.outcome is Outcome.PROMOTED
        assert _patterns(config)[0]["frequency"] == 3

    def test_custom_threshold(self, make_config):
        config = make_config()
        config.learning.promotion_threshold = 2
        pipeline = FeedbackPipeline(config)
        pipeline.process(CONST_CORRECTIONS[0])
        assert pipeline.process(CONST_CORRECTIONS[1]).outcome is Outcome.PROMOTED


class TestFailures:

    def test_null_cache_fields_still_capture(self, pipeline, config):
        config.dedup_cache_path.parent.mkdir(parents=True, exist_ok=True)
        config.dedup_cache_path.write_text(json.dumps({"entries": None, "patterns": None}))

        result = pipeline.process("Always use const instead of let")

        assert result.outcome is Outcome.CAPTURED
        assert result.pattern_count == 1
        assert len(_feedback(config)) == 1

    def test_store_failure_reported(self, config):
        store = MagicMock(spec=LocalFileStore)
        store.append_feedback.return_value = StoreResult.failure("disk full")
        result = FeedbackPipeline(config, store=store).process("Always use const instead of let")
        assert result.errors == ["disk full"]
        assert result.record is None

    def test_capture_feedback_never_raises(self, config):
        store = MagicMock(spec=LocalFileStore)
        store.append_feedback.side_effect = RuntimeError("boom")
        result = capture_feedback("Always use const instead of let", config, store=store)
        assert result.outcome is Outcome.ERROR
        assert result.errors == ["boom"]
