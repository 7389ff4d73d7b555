"""
Deduplication cache and pattern counter.

State file: <project>/.claude/cache/auto-learn-cache.json

    {
      "entries":      [DedupEntry, ...],        # rolling 24h window, last 100
      "patterns":     {"category:rule": count}, # promotion counters
      "pattern_seen": {"category:rule": iso}    # last increment per counter
    }

Loaded fresh on every invocation, pruned, mutated and written back. A
counter expires with the window once it has not been bumped for longer
than the window, so promotion needs the occurrences to be close together.
Concurrent hook processes may race on this file; the last writer wins.
"""

import hashlib
import logging
import re
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from aurafrog.learning.jsonfile import read_json, write_json_atomic
from aurafrog.learning.schemas import Category, DedupEntry, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

NORMALIZED_MAX_LENGTH = 200
DEFAULT_WINDOW = timedelta(hours=24)
DEFAULT_MAX_ENTRIES = 100

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Lowercase, collapse whitespace, cap at 200 characters."""
    return _WHITESPACE.sub(" ", (text or "").lower()).strip()[:NORMALIZED_MAX_LENGTH]


def fingerprint(text: str) -> str:
    """Stable hash of the normalized text."""
    return hashlib.sha256(normalize(text).encode("utf-8", errors="replace")).hexdigest()[:16]


class FeedbackCache:
    """Rolling window of seen fingerprints plus (category, rule) counters."""

    def __init__(
        self,
        path: Path,
        window: timedelta = DEFAULT_WINDOW,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.path = Path(path)
        self.window = window
        self.max_entries = max_entries
        self.entries: List[DedupEntry] = []
        self.patterns: Dict[str, int] = {}
        self.pattern_seen: Dict[str, str] = {}

    @classmethod
    def load(
        cls,
        path: Path,
        window: timedelta = DEFAULT_WINDOW,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        now: Optional[datetime] = None,
    ) -> "FeedbackCache":
        """Load from disk and drop entries and counters older than the window."""
        cache = cls(path, window=window, max_entries=max_entries)
        state = read_json(cache.path, {})

        entries = state.get("entries")
        for raw in entries if isinstance(entries, list) else []:
            if not isinstance(raw, dict) or not isinstance(raw.get("fingerprint"), str):
                continue
            cache.entries.append(DedupEntry(
                fingerprint=raw["fingerprint"],
                kind=str(raw.get("kind") or ""),
                category=str(raw.get("category") or ""),
                rule=str(raw.get("rule") or ""),
                created_at=str(raw.get("created_at") or ""),
            ))

        patterns = state.get("patterns")
        if isinstance(patterns, dict):
            cache.patterns = {
                str(k): int(v) for k, v in patterns.items()
                if isinstance(v, (int, float)) and not isinstance(v, bool)
            }

        seen = state.get("pattern_seen")
        if isinstance(seen, dict):
            cache.pattern_seen = {
                str(k): v for k, v in seen.items()
                if isinstance(v, str) and str(k) in cache.patterns
            }
        # counters written before timestamps were kept start their window now
        stamp = (now or datetime.now(timezone.utc)).isoformat()
        for key in cache.patterns:
            cache.pattern_seen.setdefault(key, stamp)

        cache.prune(now=now)
        return cache

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop entries and idle counters older than the window.

        Returns how many entries were removed.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.window
        kept = []
        for entry in self.entries:
            created = parse_timestamp(entry.created_at)
            if created is not None and created >= cutoff:
                kept.append(entry)
        removed = len(self.entries) - len(kept)
        self.entries = kept

        for key in list(self.patterns):
            seen = parse_timestamp(self.pattern_seen.get(key))
            if seen is None or seen < cutoff:
                del self.patterns[key]
                self.pattern_seen.pop(key, None)
        return removed

    def is_duplicate(self, fp: str) -> bool:
        return any(entry.fingerprint == fp for entry in self.entries)

    def increment(self, category: Category, now: Optional[str] = None) -> int:
        """Bump the counter for (category, rule); returns the new count."""
        count = self.patterns.get(category.key, 0) + 1
        self.patterns[category.key] = count
        self.pattern_seen[category.key] = now or utc_now()
        return count

    def count(self, category: Category) -> int:
        return self.patterns.get(category.key, 0)

    def remember(self, fp: str, kind: str, category: Category,
                 created_at: Optional[str] = None) -> DedupEntry:
        """Add a non-duplicate observation, keeping the last max_entries."""
        entry = DedupEntry(
            fingerprint=fp,
            kind=kind,
            category=category.category,
            rule=category.rule,
            created_at=created_at or utc_now(),
        )
        self.entries.append(entry)
        self.entries = self.entries[-self.max_entries:]
        return entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [asdict(e) for e in self.entries],
            "patterns": dict(self.patterns),
            "pattern_seen": dict(self.pattern_seen),
        }

    def save(self) -> bool:
        """Persist state. Returns False (and logs) on I/O failure."""
        try:
            write_json_atomic(self.path, self.to_dict())
        except OSError as exc:
            logger.warning("Could not save feedback cache %s: %s", self.path, exc)
            return False
        return True
