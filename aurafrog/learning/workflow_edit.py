"""
Workflow Edit Learning

Detects when the user has edited workflow documents (plans, phase
deliverables, specs) by hand, and learns formatting/verbosity preferences
from the difference against the last committed version.

Monitored:
- .claude/cache/workflow-state.json
- .claude/logs/workflows/*.md, docs/workflow/*.md, workflow/*.md
- workflow*.md, phase-N*.md, deliverable*.md, plan.md, spec.md,
  requirements.md anywhere

Hash state: .claude/cache/workflow-file-hashes.json
"""

import hashlib
import logging
import re
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from aurafrog.config.models import AuraFrogConfig
from aurafrog.learning.dedup import fingerprint
from aurafrog.learning.jsonfile import read_json, write_json_atomic
from aurafrog.learning.schemas import FeedbackKind, FeedbackRecord, LearnedPattern, rating_for
from aurafrog.learning.store import LearningStore, get_store

logger = logging.getLogger(__name__)

WORKFLOW_PATHS = [
    ".claude/cache/workflow-state.json",
    ".claude/logs/workflows",
    "docs/workflow",
    "workflow",
]

WORKFLOW_FILE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"workflow.*\.md$",
        r"phase-?\d+.*\.md$",
        r"deliverable.*\.md$",
        r"plan\.md$",
        r"spec\.md$",
        r"requirements\.md$",
    )
]

FILLER_PHRASES = [
    re.compile(p, re.IGNORECASE) for p in (
        r"please note",
        r"it's important to",
        r"make sure to",
        r"don't forget to",
    )
]

# Seconds between our last hash and a change before it counts as a user edit
USER_EDIT_GRACE_SECONDS = 10
LONG_LINE = 100
EVIDENCE_LENGTH = 100


@dataclass
class FileChanges:
    additions: List[str] = field(default_factory=list)
    removals: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.additions and not self.removals


@dataclass
class EditPattern:
    pattern_type: str
    category: str
    rule: str
    description: str
    evidence: str


@dataclass
class EditFinding:
    path: Path
    changes: FileChanges
    patterns: List[EditPattern]


def is_workflow_file(path: Path, project_dir: Path) -> bool:
    path = Path(path)
    try:
        relative = path.resolve().relative_to(Path(project_dir).resolve()).as_posix()
    except ValueError:
        relative = path.as_posix()
    if any(relative.startswith(prefix) for prefix in WORKFLOW_PATHS):
        return True
    return any(p.search(path.name) for p in WORKFLOW_FILE_PATTERNS)


def hash_file(path: Path) -> Optional[str]:
    try:
        return hashlib.md5(Path(path).read_bytes()).hexdigest()
    except OSError:
        return None


def extract_changes(old_content: str, new_content: str) -> FileChanges:
    """Set-based line diff over trimmed, non-empty lines."""
    old_lines = [line.strip() for line in old_content.split("\n")]
    new_lines = [line.strip() for line in new_content.split("\n")]
    old_set, new_set = set(old_lines), set(new_lines)
    return FileChanges(
        additions=[line for line in new_lines if line and line not in old_set],
        removals=[line for line in old_lines if line and line not in new_set],
    )


def analyze_changes(changes: FileChanges) -> List[EditPattern]:
    """Infer documentation preferences from what the user added/removed."""
    found: Dict[str, EditPattern] = {}

    def add(pattern: EditPattern) -> None:
        found.setdefault(pattern.rule, pattern)

    for line in changes.additions:
        if line.startswith("```"):
            add(EditPattern("format", "documentation", "code_examples",
                            "User prefers code examples in documentation", "Added code block"))
        elif line.startswith("#"):
            add(EditPattern("structure", "documentation", "structured_headers",
                            "User prefers more structured headers", line[:EVIDENCE_LENGTH]))
        elif line.startswith("-") or line.startswith("*"):
            add(EditPattern("format", "documentation", "bullet_points",
                            "User prefers bullet point format", line[:EVIDENCE_LENGTH]))

    for line in changes.removals:
        if len(line) > LONG_LINE:
            add(EditPattern("preference", "verbosity", "concise_content",
                            "User prefers concise content (removed verbose text)",
                            line[:50] + "..."))
        if any(p.search(line) for p in FILLER_PHRASES):
            add(EditPattern("preference", "tone", "direct_language",
                            "User prefers direct language (removed filler phrases)",
                            line[:50]))

    if len(changes.removals) > len(changes.additions) * 2:
        add(EditPattern("preference", "brevity", "reduced_content",
                        "User significantly reduced content - prefers brevity",
                        f"Removed {len(changes.removals)} lines, added {len(changes.additions)}"))

    return list(found.values())


def git_show_head(path: Path, project_dir: Path) -> Optional[str]:
    """Committed content of path at HEAD, or None when unavailable."""
    try:
        relative = Path(path).resolve().relative_to(Path(project_dir).resolve()).as_posix()
    except ValueError:
        return None
    try:
        proc = subprocess.run(
            ["git", "show", f"HEAD:{relative}"],
            cwd=str(project_dir),
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout


class WorkflowEditLearner:
    """Scans workflow documents for user edits and records what they imply."""

    def __init__(
        self,
        config: AuraFrogConfig,
        store: Optional[LearningStore] = None,
        previous_content: Optional[Callable[[Path, Path], Optional[str]]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.project_dir = Path(config.project_dir)
        self._store = store
        self.previous_content = previous_content or git_show_head
        self.clock = clock

    @property
    def store(self) -> LearningStore:
        if self._store is None:
            self._store = get_store(self.config)
        return self._store

    def load_hashes(self) -> Dict[str, Dict]:
        return read_json(self.config.workflow_hashes_path, {})

    def save_hashes(self, hashes: Dict[str, Dict]) -> None:
        try:
            write_json_atomic(self.config.workflow_hashes_path, hashes)
        except OSError as exc:
            logger.debug("Could not save workflow hashes: %s", exc)

    def candidate_files(self) -> List[Path]:
        files: List[Path] = []
        for base in WORKFLOW_PATHS:
            full = self.project_dir / base
            if full.is_dir():
                files.extend(sorted(p for p in full.iterdir() if p.suffix == ".md" and p.is_file()))
            elif full.is_file():
                files.append(full)
        return files

    def check_file(self, path: Path, hashes: Dict[str, Dict]) -> Optional[EditFinding]:
        """Compare a file against its recorded hash; record learnings on user edits."""
        key = str(path)
        current = hash_file(path)
        if current is None:
            return None

        saved = hashes.get(key)
        now = self.clock()
        finding = None

        if saved and saved.get("hash") != current:
            elapsed = now - float(saved.get("timestamp", 0))
            if elapsed > USER_EDIT_GRACE_SECONDS:
                finding = self._learn_from_edit(path)

        if not saved or saved.get("hash") != current:
            hashes[key] = {"hash": current, "timestamp": now}
        return finding

    def _learn_from_edit(self, path: Path) -> Optional[EditFinding]:
        old_content = self.previous_content(path, self.project_dir)
        if not old_content:
            return None
        try:
            new_content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        if old_content == new_content:
            return None

        changes = extract_changes(old_content, new_content)
        if changes.empty:
            return None

        patterns = analyze_changes(changes)
        self._record(path, changes, patterns)
        return EditFinding(path=Path(path), changes=changes, patterns=patterns)

    def _record(self, path: Path, changes: FileChanges, patterns: List[EditPattern]) -> None:
        context = self.config.context
        reason = f"User directly edited workflow file: {Path(path).name}"
        if self.config.learning.feedback_active:
            self.store.append_feedback(FeedbackRecord(
                kind=FeedbackKind.MODIFICATION,
                reason_text=reason,
                rating=rating_for(FeedbackKind.MODIFICATION),
                category="workflow_edit",
                rule="user_preference",
                fingerprint=fingerprint(f"{reason}:{hash_file(path)}"),
                session_id=context.session_id,
                workflow_id=context.workflow_id,
                project_name=context.project_name,
                metadata={
                    "source": "workflow_edit_detection",
                    "file": str(path),
                    "additions_count": len(changes.additions),
                    "removals_count": len(changes.removals),
                    "patterns_detected": len(patterns),
                },
            ))
        for pattern in patterns:
            self.store.upsert_pattern(LearnedPattern(
                category=pattern.category,
                rule=pattern.rule,
                description=pattern.description,
                evidence_samples=[pattern.evidence],
                pattern_type=pattern.pattern_type,
            ))

    def scan(self) -> List[EditFinding]:
        """Check every monitored workflow file once."""
        if not self.config.learning.enabled:
            return []
        hashes = self.load_hashes()
        findings = []
        for path in self.candidate_files():
            finding = self.check_file(path, hashes)
            if finding is not None:
                findings.append(finding)
        self.save_hashes(hashes)
        return findings


def format_findings(findings: List[EditFinding]) -> Optional[str]:
    notices = [
        f"\U0001f9e0 Workflow Edit: Detected {len(f.patterns)} pattern(s) from user edits to {f.path.name}"
        for f in findings if f.patterns
    ]
    return "\n".join(notices) if notices else None
