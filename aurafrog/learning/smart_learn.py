"""
Smart learn: preferences inferred from successful tool use.

After a Write/Edit or Bash call that did not fail, the written code is
scanned for style signals (arrow functions, const, type hints, ...) and
the shell command is reduced to its base command. Counts accumulate in
.claude/cache/smart-learn-cache.json; once a signal is seen often enough
it is upserted as a LearnedPattern and its counter starts over.
"""

import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from aurafrog.config.models import AuraFrogConfig
from aurafrog.learning.jsonfile import read_json, write_json_atomic
from aurafrog.learning.schemas import LearnedPattern
from aurafrog.learning.store import LearningStore, get_store

logger = logging.getLogger(__name__)

CODE_PATTERN_THRESHOLD = 3
BASH_PATTERN_THRESHOLD = CODE_PATTERN_THRESHOLD * 2
MAX_ACTIONS = 200
MAX_COMMAND_LENGTH = 200
MAX_PATTERN_LENGTH = 100

ERROR_MARKERS = ("Error:", "error:", "FAILED", "failed")
IGNORED_COMMAND_PREFIXES = ("cd ", "ls", "echo", "cat")

JS_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx"}
TS_EXTENSIONS = {".ts", ".tsx"}

_ARROW = re.compile(r"=>\s*{")
_FUNCTION = re.compile(r"function\s+\w+")
_CONST = re.compile(r"\bconst\s+")
_LET = re.compile(r"\blet\s+")
_ASYNC = re.compile(r"\basync\b")
_TS_TYPE = re.compile(r":\s*(string|number|boolean|Array|object|any)")
_TRY = re.compile(r"\btry\s*{")
_PY_RETURN_HINT = re.compile(r"->\s*\w+")
_PY_ASYNC_DEF = re.compile(r"\basync\s+def\b")
_QUOTED = re.compile(r"[\"'][^\"']*[\"']")
_DIGITS = re.compile(r"\d+")
_SPACES = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[|;&]")


def detect_code_patterns(content: str, file_path: str) -> List[Dict[str, Any]]:
    """Style signals in written code, keyed by file extension."""
    patterns: List[Dict[str, Any]] = []
    ext = Path(file_path).suffix.lower()

    def add(kind: str, name: str, weight: int) -> None:
        patterns.append({"type": kind, "pattern": name, "weight": weight})

    if ext in JS_EXTENSIONS:
        arrows = len(_ARROW.findall(content))
        if arrows > len(_FUNCTION.findall(content)):
            add("style", "arrow_functions", arrows)

        consts = len(_CONST.findall(content))
        if consts > len(_LET.findall(content)) * 2:
            add("style", "prefer_const", consts)

        asyncs = len(_ASYNC.findall(content))
        if asyncs:
            add("style", "async_await", asyncs)

        if ext in TS_EXTENSIONS:
            annotations = len(_TS_TYPE.findall(content))
            if annotations > 5:
                add("typing", "explicit_types", annotations)

        if "useState" in content or "useEffect" in content:
            add("framework", "react_hooks", 1)

        tries = len(_TRY.findall(content))
        if tries:
            add("quality", "error_handling", tries)

    elif ext == ".py":
        hints = len(_PY_RETURN_HINT.findall(content))
        if hints > 2:
            add("typing", "python_type_hints", hints)

        async_defs = len(_PY_ASYNC_DEF.findall(content))
        if async_defs:
            add("style", "python_async", async_defs)

    return patterns


def extract_bash_pattern(command: Optional[str]) -> Optional[Dict[str, Any]]:
    """Normalize a shell command and pull out its base command."""
    if not command or not command.strip():
        return None
    normalized = _SPACES.sub(" ", _DIGITS.sub("N", _QUOTED.sub('""', command.strip())))
    head = _SEPARATORS.split(normalized)[0].strip()
    return {
        "base": head.split(" ")[0] if head else "",
        "pattern": normalized[:MAX_PATTERN_LENGTH],
        "has_pipe": "|" in command,
        "has_chain": "&&" in command or ";" in command,
    }


def is_failure(result_text: str) -> bool:
    return any(marker in result_text for marker in ERROR_MARKERS)


def is_tracked_command(command: str) -> bool:
    return bool(command) and not command.startswith(IGNORED_COMMAND_PREFIXES)


class SmartLearnCache:
    """Success counters persisted between hook invocations."""

    def __init__(self, path: Path, data: Optional[Dict[str, Any]] = None):
        self.path = Path(path)
        data = data or {}
        self.file_patterns: Dict[str, Dict[str, Any]] = data.get("filePatterns") or {}
        self.bash_patterns: Dict[str, Dict[str, Any]] = data.get("bashPatterns") or {}
        self.actions: List[Dict[str, Any]] = list(data.get("successfulActions") or [])

    @classmethod
    def load(cls, path: Path) -> "SmartLearnCache":
        return cls(path, read_json(path, {}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePatterns": self.file_patterns,
            "bashPatterns": self.bash_patterns,
            "successfulActions": self.actions[-MAX_ACTIONS:],
        }

    def save(self) -> bool:
        self.actions = self.actions[-MAX_ACTIONS:]
        try:
            write_json_atomic(self.path, self.to_dict())
        except OSError as exc:
            logger.debug("Could not save smart-learn cache: %s", exc)
            return False
        return True

    def add_code_success(self, file_path: str, patterns: List[Dict[str, Any]]) -> None:
        ext = Path(file_path).suffix.lower() or "other"
        entry = self.file_patterns.setdefault(ext, {"successCount": 0, "patterns": {}})
        entry["successCount"] = int(entry.get("successCount", 0)) + 1
        counters = entry.setdefault("patterns", {})
        for p in patterns:
            key = f"{p['type']}:{p['pattern']}"
            counter = counters.setdefault(key, {"count": 0, "weight": 0})
            counter["count"] += 1
            counter["weight"] += p.get("weight") or 1

    def add_bash_success(self, base: str) -> None:
        entry = self.bash_patterns.setdefault(base, {"count": 0})
        entry["count"] = int(entry.get("count", 0)) + 1
        entry["lastSuccess"] = int(time.time() * 1000)


class SmartLearner:
    """Records successful actions and promotes frequent ones to patterns."""

    def __init__(self, config: AuraFrogConfig, store: Optional[LearningStore] = None):
        self.config = config
        self._store = store

    @property
    def store(self) -> LearningStore:
        if self._store is None:
            self._store = get_store(self.config)
        return self._store

    @property
    def active(self) -> bool:
        return self.config.learning.enabled and self.config.learning.metrics_active

    def observe(self, tool_name: str, tool_input: Dict[str, Any], result_text: str = "") -> List[str]:
        """Handle one PostToolUse payload and return any notices."""
        if not self.active or is_failure(result_text or ""):
            return []

        cache = SmartLearnCache.load(self.config.smart_learn_cache_path)
        now = int(time.time() * 1000)

        if tool_name in ("Write", "Edit"):
            file_path = tool_input.get("file_path") or ""
            content = tool_input.get("content") or tool_input.get("new_string") or ""
            if not file_path or not content:
                return []
            patterns = detect_code_patterns(content, file_path)
            cache.actions.append({
                "type": tool_name.lower(),
                "file": file_path,
                "patterns": patterns,
                "timestamp": now,
            })
            cache.add_code_success(file_path, patterns)

        elif tool_name == "Bash":
            command = (tool_input.get("command") or "").strip()
            if not is_tracked_command(command):
                return []
            cmd_pattern = extract_bash_pattern(command)
            if cmd_pattern is None or not cmd_pattern["base"]:
                return []
            cache.actions.append({
                "type": "bash",
                "command": command[:MAX_COMMAND_LENGTH],
                "cmdPattern": cmd_pattern,
                "timestamp": now,
            })
            cache.add_bash_success(cmd_pattern["base"])

        else:
            return []

        notices = self.promote(cache)
        cache.save()
        return notices

    def promote(self, cache: SmartLearnCache) -> List[str]:
        """Upsert every counter at its threshold, then reset it."""
        notices = []
        for ext, entry in cache.file_patterns.items():
            for key, counter in (entry.get("patterns") or {}).items():
                if counter.get("count", 0) < CODE_PATTERN_THRESHOLD:
                    continue
                kind, _, name = key.partition(":")
                result = self.store.upsert_pattern(LearnedPattern(
                    category=kind,
                    rule=name,
                    description=f"Prefer {name.replace('_', ' ')} in {ext} files",
                    evidence_samples=[f"Auto-detected from {counter['count']} successful operations"],
                    pattern_type="code_style",
                ))
                if not result.ok:
                    continue
                counter["count"] = 0
                notices.append(f"\U0001f9e0 Smart Learn: Pattern detected! \"{name}\" in {ext} files")

        for cmd, entry in cache.bash_patterns.items():
            if entry.get("count", 0) < BASH_PATTERN_THRESHOLD:
                continue
            result = self.store.upsert_pattern(LearnedPattern(
                category="bash",
                rule=cmd,
                description=f"Commonly used command: {cmd}",
                evidence_samples=[f"Used successfully {entry['count']} times"],
                pattern_type="workflow",
            ))
            if not result.ok:
                continue
            entry["count"] = 0
            notices.append(f"\U0001f9e0 Smart Learn: Bash pattern! \"{cmd}\" is frequently used")
        return notices
