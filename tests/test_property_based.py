"""
Property-based tests for the learning core using Hypothesis.

1. Classifier: pure, confidences from a fixed set, pattern matches dominate
2. Learnability: length bounds hold for arbitrary text
3. Categorizer: always returns a taxonomy entry
4. Fingerprint: invariant under case and whitespace changes
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from aurafrog.learning.categorizer import RULE_DESCRIPTIONS, categorize
from aurafrog.learning.classifier import classify
from aurafrog.learning.dedup import fingerprint
from aurafrog.learning.learnability import is_learnable
from aurafrog.learning.schemas import LearnabilityReason, SignalKind

settings.register_profile("aurafrog", deadline=None, print_blob=True)
settings.load_profile("aurafrog")

pytestmark = pytest.mark.learning

VALID_CONFIDENCES = {0, 0.5, 0.7, 0.8, 0.9}


class TestClassifierProperties:

    @given(st.text(max_size=300))
    def test_pure(self, text):
        assert classify(text) == classify(text)

    @given(st.text(max_size=300))
    def test_confidence_from_fixed_set(self, text):
        signal = classify(text)
        assert signal.confidence in VALID_CONFIDENCES
        if signal.kind is SignalKind.NONE:
            assert signal.confidence == 0

    @given(st.text(max_size=100))
    def test_correction_pattern_dominates_keywords(self, tail):
        signal = classify("no, " + tail + " wrong fix change undo revert")
        assert signal.kind is SignalKind.CORRECTION
        assert signal.confidence == 0.9

    @given(st.lists(st.sampled_from(["mistake", "revert", "undo", "unnecessary", "overkill"]),
                    min_size=1, max_size=5))
    def test_keyword_only_never_above_point_seven(self, words):
        signal = classify("so about that: " + " ".join(words))
        assert signal.kind is SignalKind.CORRECTION
        assert signal.confidence <= 0.7


class TestLearnabilityProperties:

    @given(st.text(alphabet=st.characters(blacklist_categories=("Zs", "Cc")), max_size=14))
    def test_short_never_learnable(self, text):
        result = is_learnable(text)
        assert not result.learnable
        assert result.reason is LearnabilityReason.TOO_SHORT

    @given(st.text(alphabet="abcdefghij", min_size=201, max_size=400))
    def test_long_never_learnable(self, text):
        assert is_learnable(text).reason is LearnabilityReason.TOO_LONG

    @given(st.text(max_size=300))
    def test_never_crashes(self, text):
        result = is_learnable(text)
        assert isinstance(result.learnable, bool)


class TestCategorizerProperties:

    @given(st.text(max_size=300))
    def test_always_in_taxonomy(self, text):
        assert categorize(text).key in RULE_DESCRIPTIONS


class TestFingerprintProperties:

    @given(st.text(alphabet="abcdefghijklmnop ", min_size=1, max_size=150))
    def test_case_and_whitespace_insensitive(self, text):
        assert fingerprint(text) == fingerprint("  " + text.upper().replace(" ", "\t ") + "\n")
