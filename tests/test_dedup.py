"""
Tests for the deduplication cache and pattern counter.

Validates that:
- Normalization lowercases, collapses whitespace and caps length
- Fingerprints are stable across formatting differences
- Entries older than the window are pruned on load
- The entry list is capped
- Counters survive save/load and expire after idling past the window
- Corrupt or mis-typed cache files load as empty state
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from aurafrog.learning.dedup import FeedbackCache, fingerprint, normalize
from aurafrog.learning.schemas import Category

pytestmark = pytest.mark.learning

CONST = Category("code_style", "prefer_const")


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache" / "auto-learn-cache.json"


class TestNormalize:

    def test_lowercase_and_whitespace(self):
        assert normalize("  Use   CONST\n\tplease ") == "use const please"

    def test_capped(self):
        assert len(normalize("x" * 500)) == 200

    def test_fingerprint_ignores_formatting(self):
        assert fingerprint("Use const") == fingerprint("  use   CONST ")

    def test_fingerprint_differs_for_different_text(self):
        assert fingerprint("use const") != fingerprint("use let")

    def test_fingerprint_shape(self):
        fp = fingerprint("anything")
        assert len(fp) == 16
        int(fp, 16)


class TestWindow:

    def test_duplicate_within_window(self, cache_path):
        cache = FeedbackCache(cache_path)
        fp = fingerprint("use const")
        cache.remember(fp, "correction", CONST)
        assert cache.is_duplicate(fp)
        assert not cache.is_duplicate(fingerprint("use let"))

    def test_old_entries_pruned_on_load(self, cache_path):
        cache = FeedbackCache(cache_path)
        old = (datetime.now(timezone.utc) - timedelta(hours=25)).isoformat()
        cache.remember("old", "correction", CONST, created_at=old)
        cache.remember("new", "correction", CONST)
        assert cache.save()

        loaded = FeedbackCache.load(cache_path)
        assert not loaded.is_duplicate("old")
        assert loaded.is_duplicate("new")

    def test_entries_capped(self, cache_path):
        cache = FeedbackCache(cache_path, max_entries=5)
        for i in range(8):
            cache.remember(f"fp{i}", "correction", CONST)
        assert [e.fingerprint for e in cache.entries] == ["fp3", "fp4", "fp5", "fp6", "fp7"]


class TestCounters:

    def test_increment_returns_new_count(self, cache_path):
        cache = FeedbackCache(cache_path)
        assert cache.increment(CONST) == 1
        assert cache.increment(CONST) == 2
        assert cache.count(Category("general", "preference")) == 0

    def test_counters_persist(self, cache_path):
        cache = FeedbackCache(cache_path)
        cache.increment(CONST)
        cache.increment(CONST)
        cache.save()

        data = json.loads(cache_path.read_text())
        assert data["patterns"] == {"code_style:prefer_const": 2}
        assert set(data["pattern_seen"]) == {"code_style:prefer_const"}
        assert FeedbackCache.load(cache_path).count(CONST) == 2

    def test_idle_counters_expire_with_window(self, cache_path):
        cache = FeedbackCache(cache_path)
        stale = (datetime.now(timezone.utc) - timedelta(hours=25)).isoformat()
        cache.increment(CONST, now=stale)
        cache.increment(CONST, now=stale)
        cache.increment(Category("testing", "test_quality"))
        cache.save()

        loaded = FeedbackCache.load(cache_path)
        assert loaded.count(CONST) == 0
        assert loaded.count(Category("testing", "test_quality")) == 1
        assert loaded.increment(CONST) == 1

    def test_recent_bump_keeps_counter_alive(self, cache_path):
        cache = FeedbackCache(cache_path)
        cache.increment(CONST, now=(datetime.now(timezone.utc) - timedelta(hours=25)).isoformat())
        cache.increment(CONST)
        cache.save()
        assert FeedbackCache.load(cache_path).count(CONST) == 2

    def test_counters_without_timestamps_get_a_fresh_window(self, cache_path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text(json.dumps({"entries": [], "patterns": {"code_style:prefer_const": 2}}))
        now = datetime.now(timezone.utc)

        assert FeedbackCache.load(cache_path, now=now).count(CONST) == 2
        later = FeedbackCache.load(cache_path, now=now + timedelta(hours=25))
        assert later.count(CONST) == 2


class TestCorruptState:

    def test_invalid_json(self, cache_path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text("{not json")
        cache = FeedbackCache.load(cache_path)
        assert cache.entries == []
        assert cache.patterns == {}

    def test_wrong_type(self, cache_path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text("[1, 2, 3]")
        assert FeedbackCache.load(cache_path).patterns == {}

    @pytest.mark.parametrize("state", [
        {"entries": None, "patterns": None},
        {"entries": {"fingerprint": "abc"}, "patterns": []},
        {"entries": [None, 3, {"fingerprint": None}, {"fingerprint": 7}], "patterns": {"a:b": "3"}},
    ])
    def test_mistyped_fields(self, cache_path, state):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text(json.dumps(state))
        cache = FeedbackCache.load(cache_path)
        assert cache.entries == []
        assert cache.patterns == {}
        assert cache.increment(CONST) == 1

    def test_save_failure_reported(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        cache = FeedbackCache(blocker / "cache.json")
        assert cache.save() is False
