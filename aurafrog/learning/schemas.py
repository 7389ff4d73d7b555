"""
Aura Frog Learning Data Schemas

Dataclasses for classifier verdicts, persisted feedback, dedup entries,
learned patterns, workflow events and workflow/agent telemetry.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SignalKind(str, Enum):
    """Classifier verdict for a single message."""
    CORRECTION = "correction"
    APPROVAL = "approval"
    NONE = "none"


class FeedbackKind(str, Enum):
    """Kinds of persisted feedback records."""
    CORRECTION = "correction"
    APPROVAL = "approval"
    REJECTION = "rejection"
    MODIFICATION = "modification"


class LearnabilityReason(str, Enum):
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    TASK_SPECIFIC = "task_specific"
    GENERAL_INDICATOR = "general_indicator"
    LIKELY_TASK_SPECIFIC = "likely_task_specific"
    NO_SPECIFIC_INDICATORS = "no_specific_indicators"


class WorkflowEventType(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    MODIFIED = "MODIFIED"
    CANCELLED = "CANCELLED"
    PHASE_START = "PHASE_START"
    WORKFLOW_COMPLETE = "WORKFLOW_COMPLETE"


def coerce_int(value: Any, default: int) -> int:
    """int(value), or default when value is missing or not a number."""
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (or epoch seconds/millis). Returns None if invalid."""
    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class FeedbackSignal:
    """Output of classification. kind NONE <=> confidence 0."""

    kind: SignalKind
    confidence: float
    evidence: tuple = ()

    @classmethod
    def none(cls) -> "FeedbackSignal":
        return cls(SignalKind.NONE, 0.0, ())

    @property
    def is_signal(self) -> bool:
        return self.kind is not SignalKind.NONE


@dataclass(frozen=True)
class Learnability:
    learnable: bool
    reason: LearnabilityReason
    task_indicators: tuple = ()


@dataclass(frozen=True)
class Category:
    category: str
    rule: str

    @property
    def key(self) -> str:
        return f"{self.category}:{self.rule}"


@dataclass
class FeedbackRecord:
    """A persisted observation. Never mutated after it is written."""

    kind: FeedbackKind
    reason_text: str
    rating: int
    category: str
    rule: str
    fingerprint: str
    session_id: Optional[str] = None
    workflow_id: Optional[str] = None
    project_name: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedbackRecord":
        return cls(
            kind=FeedbackKind(data.get("kind", FeedbackKind.CORRECTION.value)),
            reason_text=data.get("reason_text", ""),
            rating=coerce_int(data.get("rating"), 3),
            category=data.get("category", "general"),
            rule=data.get("rule", "preference"),
            fingerprint=data.get("fingerprint", ""),
            session_id=data.get("session_id"),
            workflow_id=data.get("workflow_id"),
            project_name=data.get("project_name"),
            id=data.get("id"),
            created_at=data.get("created_at"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class DedupEntry:
    """Lightweight record in the rolling duplicate window."""

    fingerprint: str
    kind: str
    category: str
    rule: str
    created_at: str


@dataclass
class LearnedPattern:
    """An aggregated, user-facing rule keyed by (category, rule)."""

    category: str
    rule: str
    description: str
    evidence_samples: List[str] = field(default_factory=list)
    frequency: int = 1
    pattern_type: str = "correction"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearnedPattern":
        return cls(
            category=data.get("category", "general"),
            rule=data.get("rule", "preference"),
            description=data.get("description", ""),
            evidence_samples=list(data.get("evidence_samples") or []),
            frequency=coerce_int(data.get("frequency"), 1),
            pattern_type=data.get("pattern_type", "correction"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class WorkflowEvent:
    """Approve/reject/modify/cancel action on a workflow phase."""

    workflow_id: str
    phase: int
    event_type: WorkflowEventType
    attempt_count: int = 1
    reason: Optional[str] = None
    session_id: Optional[str] = None
    project_name: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data


@dataclass
class WorkflowMetrics:
    """Outcome of one whole workflow run."""

    workflow_id: str
    project_name: Optional[str] = None
    project_type: Optional[str] = None
    framework: Optional[str] = None
    workflow_type: str = "full"
    total_phases: int = 9
    completed_phases: int = 0
    success: Optional[bool] = None
    failure_reason: Optional[str] = None
    auto_stop_phase: Optional[int] = None
    auto_stop_reason: Optional[str] = None
    total_tokens: int = 0
    tokens_by_phase: Dict[str, int] = field(default_factory=dict)
    duration_seconds: Optional[float] = None
    duration_by_phase: Dict[str, float] = field(default_factory=dict)
    test_pass_rate: Optional[float] = None
    code_coverage: Optional[float] = None
    retries: int = 0
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AgentPerformance:
    """How one agent did on one routed task."""

    agent_name: str
    task_type: Optional[str] = None
    task_description: Optional[str] = None
    success: Optional[bool] = None
    confidence_score: Optional[float] = None
    detection_method: Optional[str] = None
    user_override: bool = False
    override_to_agent: Optional[str] = None
    duration_ms: Optional[int] = None
    tokens_used: Optional[int] = None
    error_message: Optional[str] = None
    session_id: Optional[str] = None
    workflow_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StoreResult:
    """Outcome of a storage operation. Stores return this instead of raising."""

    ok: bool
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, record: Optional[Dict[str, Any]] = None) -> "StoreResult":
        return cls(ok=True, record=record)

    @classmethod
    def failure(cls, error: str) -> "StoreResult":
        return cls(ok=False, error=error)


def rating_for(kind: FeedbackKind) -> int:
    """Approval -> 5, every other feedback kind -> 3."""
    return 5 if kind is FeedbackKind.APPROVAL else 3
