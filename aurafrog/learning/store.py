"""
Aura Frog Learning Store

Dual-mode persistence for feedback records, learned patterns, workflow
events and workflow/agent telemetry, behind a single LearningStore
interface:

- LocalFileStore: JSON arrays under .claude/learning/ plus a regenerated
  Markdown digest (learned-patterns.md); agent success rates and
  improvement suggestions are computed from those files
- RemoteStore:    REST backend rows and views; exclusive for everything
  except workflow events, which are also kept in the local audit trail

get_store() picks the implementation once from the configuration, so
callers never branch on storage mode. Store methods return StoreResult and
never raise: storage and network failures are logged and reported.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from aurafrog.config.models import AuraFrogConfig, StorageMode
from aurafrog.learning.digest import render_digest
from aurafrog.learning.jsonfile import read_json, write_json_atomic, write_text_atomic
from aurafrog.learning.remote import (
    AGENT_PERFORMANCE_TABLE,
    AGENT_SUCCESS_VIEW,
    FEEDBACK_SUMMARY_VIEW,
    FEEDBACK_TABLE,
    PATTERN_UPSERT_RPC,
    PATTERNS_TABLE,
    SUGGESTIONS_VIEW,
    WORKFLOW_EVENTS_TABLE,
    WORKFLOW_METRICS_TABLE,
    RemoteClient,
    RemoteError,
)
from aurafrog.learning.schemas import (
    AgentPerformance,
    FeedbackKind,
    FeedbackRecord,
    LearnedPattern,
    StoreResult,
    WorkflowEvent,
    WorkflowMetrics,
    coerce_int,
    utc_now,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def merge_evidence(existing: List[str], new: List[str], limit: int) -> List[str]:
    """Append new evidence and keep only the most recent `limit` samples."""
    merged = list(existing) + [e for e in new if e]
    return merged[-limit:]


# Agents below this success rate, over at least this many tasks, get a suggestion
LOW_SUCCESS_RATE = 0.5
MIN_AGENT_TASKS = 3


def summarize_agents(records: List[Dict[str, Any]],
                     task_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """Aggregate agent performance rows per (agent, task type).

    Rows carry agent_name, task_type, total_tasks, successful_tasks,
    success_rate (0-1, over tasks with a known outcome), avg_confidence
    and override_count. Best success rate first, then most tasks.
    """
    groups: Dict[tuple, Dict[str, Any]] = {}
    for row in records:
        agent = row.get("agent_name")
        if not isinstance(agent, str) or not agent:
            continue
        if task_type and row.get("task_type") != task_type:
            continue
        key = (agent, row.get("task_type"))
        group = groups.setdefault(key, {
            "agent_name": agent,
            "task_type": row.get("task_type"),
            "total_tasks": 0,
            "successful_tasks": 0,
            "_judged": 0,
            "_confidence": [],
            "override_count": 0,
        })
        group["total_tasks"] += 1
        if isinstance(row.get("success"), bool):
            group["_judged"] += 1
            group["successful_tasks"] += int(row["success"])
        if isinstance(row.get("confidence_score"), (int, float)):
            group["_confidence"].append(float(row["confidence_score"]))
        if row.get("user_override") is True:
            group["override_count"] += 1

    rates = []
    for group in groups.values():
        judged = group.pop("_judged")
        confidence = group.pop("_confidence")
        group["success_rate"] = round(group["successful_tasks"] / judged, 3) if judged else None
        group["avg_confidence"] = round(sum(confidence) / len(confidence), 3) if confidence else None
        rates.append(group)
    rates.sort(key=lambda r: (r["success_rate"] is not None, r["success_rate"] or 0, r["total_tasks"]),
               reverse=True)
    return rates


def suggest_improvements(patterns: List[LearnedPattern], rates: List[Dict[str, Any]],
                         limit: int = 10, threshold: int = 3) -> List[Dict[str, Any]]:
    """Suggestions from recurring patterns and struggling agents."""
    suggestions = []
    for pattern in patterns:
        if pattern.frequency < threshold:
            continue
        suggestions.append({
            "suggestion_type": "pattern",
            "category": pattern.category,
            "rule": pattern.rule,
            "description": pattern.description,
            "frequency": pattern.frequency,
            "confidence": round(min(1.0, pattern.frequency / 10), 2),
        })
    for rate in rates:
        success_rate = rate.get("success_rate")
        if success_rate is None or rate["total_tasks"] < MIN_AGENT_TASKS:
            continue
        if success_rate >= LOW_SUCCESS_RATE:
            continue
        suggestions.append({
            "suggestion_type": "agent",
            "agent_name": rate["agent_name"],
            "task_type": rate.get("task_type"),
            "description": (
                f"Review routing for {rate['agent_name']}: "
                f"{round(success_rate * 100)}% success over {rate['total_tasks']} tasks"
            ),
            "confidence": round(1.0 - success_rate, 2),
        })
    suggestions.sort(key=lambda s: s["confidence"], reverse=True)
    return suggestions[:max(0, limit)]


class LearningStore(ABC):
    """Persistence contract shared by local and remote modes."""

    mode: StorageMode

    def __init__(self, config: AuraFrogConfig):
        self.config = config

    @abstractmethod
    def append_feedback(self, record: FeedbackRecord) -> StoreResult:
        """Persist one feedback record."""

    @abstractmethod
    def upsert_pattern(self, pattern: LearnedPattern) -> StoreResult:
        """Create a learned pattern or bump the frequency of an existing one."""

    @abstractmethod
    def bump_pattern(self, pattern: LearnedPattern) -> StoreResult:
        """Bump an existing pattern; never creates one.

        A missing pattern is a successful no-op with no record.
        """

    @abstractmethod
    def append_workflow_event(self, event: WorkflowEvent) -> StoreResult:
        """Persist one workflow event."""

    @abstractmethod
    def record_workflow_metrics(self, metrics: WorkflowMetrics) -> StoreResult:
        """Persist the outcome of one workflow run."""

    @abstractmethod
    def record_agent_performance(self, performance: AgentPerformance) -> StoreResult:
        """Persist how an agent did on one task."""

    @abstractmethod
    def agent_success_rates(self, task_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Per-agent success rates, best first."""

    @abstractmethod
    def improvement_suggestions(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Suggestions ordered by confidence, highest first."""

    @abstractmethod
    def list_feedback(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        """Most recent feedback records, oldest first."""

    @abstractmethod
    def list_patterns(self) -> List[LearnedPattern]:
        """All learned patterns."""

    @abstractmethod
    def counts(self) -> Dict[str, Any]:
        """Record counts for status reporting."""


# =========================================================================
# Local mode
# =========================================================================


class LocalFileStore(LearningStore):
    """JSON-file store under the project's .claude/learning directory."""

    mode = StorageMode.LOCAL

    def _load_list(self, path) -> List[Dict[str, Any]]:
        return [item for item in read_json(path, []) if isinstance(item, dict)]

    def _load_feedback(self) -> List[FeedbackRecord]:
        records = []
        for raw in self._load_list(self.config.feedback_path):
            try:
                records.append(FeedbackRecord.from_dict(raw))
            except (ValueError, TypeError):
                continue
        return records

    def _load_patterns(self) -> List[LearnedPattern]:
        patterns = []
        for raw in self._load_list(self.config.patterns_path):
            try:
                patterns.append(LearnedPattern.from_dict(raw))
            except (ValueError, TypeError):
                continue
        return patterns

    def append_feedback(self, record: FeedbackRecord) -> StoreResult:
        learning = self.config.learning
        record.id = record.id or _new_id()
        record.created_at = record.created_at or utc_now()
        record.reason_text = (record.reason_text or "")[:learning.max_reason_length]

        try:
            records = self._load_list(self.config.feedback_path)
            records.append(record.to_dict())
            records = records[-learning.max_feedback_records:]
            write_json_atomic(self.config.feedback_path, records)
        except OSError as exc:
            logger.warning("Could not write feedback store: %s", exc)
            return StoreResult.failure(str(exc))

        self.regenerate_digest()
        return StoreResult.success(record.to_dict())

    def upsert_pattern(self, pattern: LearnedPattern) -> StoreResult:
        return self._write_pattern(pattern, create=True)

    def bump_pattern(self, pattern: LearnedPattern) -> StoreResult:
        return self._write_pattern(pattern, create=False)

    def _write_pattern(self, pattern: LearnedPattern, create: bool) -> StoreResult:
        limit = self.config.learning.max_evidence_samples
        now = utc_now()

        try:
            stored = self._load_list(self.config.patterns_path)
            match = self._find_pattern(stored, pattern)
            if match is not None:
                match["frequency"] = max(1, coerce_int(match.get("frequency"), 1)) + 1
                evidence = match.get("evidence_samples")
                match["evidence_samples"] = merge_evidence(
                    evidence if isinstance(evidence, list) else [],
                    pattern.evidence_samples, limit,
                )
                match["updated_at"] = now
                result = match
            elif create:
                pattern.frequency = max(1, pattern.frequency)
                pattern.evidence_samples = merge_evidence([], pattern.evidence_samples, limit)
                pattern.created_at = pattern.created_at or now
                pattern.updated_at = now
                result = pattern.to_dict()
                stored.append(result)
            else:
                return StoreResult.success(None)
            write_json_atomic(self.config.patterns_path, stored)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not write pattern store: %s", exc)
            return StoreResult.failure(str(exc))

        self.regenerate_digest()
        return StoreResult.success(dict(result))

    @staticmethod
    def _find_pattern(stored: List[Dict[str, Any]],
                      pattern: LearnedPattern) -> Optional[Dict[str, Any]]:
        for item in stored:
            if item.get("category") == pattern.category and item.get("rule") == pattern.rule:
                return item
        if pattern.description:
            for item in stored:
                if item.get("description") == pattern.description:
                    return item
        return None

    def append_workflow_event(self, event: WorkflowEvent) -> StoreResult:
        event.id = event.id or _new_id()
        event.created_at = event.created_at or utc_now()
        try:
            events = self._load_list(self.config.workflow_events_path)
            events.append(event.to_dict())
            events = events[-self.config.learning.max_workflow_events:]
            write_json_atomic(self.config.workflow_events_path, events)
        except OSError as exc:
            logger.warning("Could not write workflow events: %s", exc)
            return StoreResult.failure(str(exc))
        return StoreResult.success(event.to_dict())

    def _append_capped(self, path, row: Dict[str, Any], cap: int, what: str) -> StoreResult:
        try:
            rows = self._load_list(path)
            rows.append(row)
            write_json_atomic(path, rows[-cap:])
        except OSError as exc:
            logger.warning("Could not write %s: %s", what, exc)
            return StoreResult.failure(str(exc))
        return StoreResult.success(row)

    def record_workflow_metrics(self, metrics: WorkflowMetrics) -> StoreResult:
        metrics.id = metrics.id or _new_id()
        metrics.completed_at = metrics.completed_at or utc_now()
        return self._append_capped(self.config.workflow_metrics_path, metrics.to_dict(),
                                   self.config.learning.max_metrics_records, "workflow metrics")

    def record_agent_performance(self, performance: AgentPerformance) -> StoreResult:
        performance.id = performance.id or _new_id()
        performance.created_at = performance.created_at or utc_now()
        return self._append_capped(self.config.agent_performance_path, performance.to_dict(),
                                   self.config.learning.max_agent_records, "agent performance")

    def agent_success_rates(self, task_type: Optional[str] = None) -> List[Dict[str, Any]]:
        return summarize_agents(self._load_list(self.config.agent_performance_path), task_type)

    def improvement_suggestions(self, limit: int = 10) -> List[Dict[str, Any]]:
        return suggest_improvements(
            self._load_patterns(),
            self.agent_success_rates(),
            limit=limit,
            threshold=self.config.learning.promotion_threshold,
        )

    def list_feedback(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        records = self._load_feedback()
        return records[-limit:] if limit else records

    def list_patterns(self) -> List[LearnedPattern]:
        return self._load_patterns()

    def list_workflow_events(self) -> List[Dict[str, Any]]:
        return self._load_list(self.config.workflow_events_path)

    def counts(self) -> Dict[str, Any]:
        return {
            "feedback": len(self._load_list(self.config.feedback_path)),
            "patterns": len(self._load_list(self.config.patterns_path)),
            "workflow_events": len(self._load_list(self.config.workflow_events_path)),
        }

    def regenerate_digest(self) -> bool:
        """Rewrite learned-patterns.md from the current files."""
        try:
            text = render_digest(
                self._load_feedback(),
                self._load_patterns(),
                excerpt_length=self.config.learning.excerpt_length,
            )
            write_text_atomic(self.config.digest_path, text)
        except OSError as exc:
            logger.warning("Could not write learning digest: %s", exc)
            return False
        return True


# =========================================================================
# Remote mode
# =========================================================================


def feedback_row(record: FeedbackRecord) -> Dict[str, Any]:
    """Backend row shape for af_feedback."""
    metadata = dict(record.metadata)
    metadata.update({
        "category": record.category,
        "rule": record.rule,
        "fingerprint": record.fingerprint,
    })
    return {
        "session_id": record.session_id,
        "workflow_id": record.workflow_id,
        "project_name": record.project_name,
        "phase": metadata.pop("phase", None),
        "feedback_type": record.kind.value,
        "reason": record.reason_text,
        "rating": record.rating,
        "metadata": metadata,
    }


def feedback_from_row(row: Dict[str, Any]) -> Optional[FeedbackRecord]:
    metadata = row.get("metadata") or {}
    try:
        kind = FeedbackKind(row.get("feedback_type", "correction"))
    except ValueError:
        return None
    return FeedbackRecord(
        kind=kind,
        reason_text=row.get("reason") or "",
        rating=coerce_int(row.get("rating"), 3),
        category=metadata.get("category", "general"),
        rule=metadata.get("rule", "preference"),
        fingerprint=metadata.get("fingerprint", ""),
        session_id=row.get("session_id"),
        workflow_id=row.get("workflow_id"),
        project_name=row.get("project_name"),
        id=str(row["id"]) if row.get("id") is not None else None,
        created_at=row.get("created_at"),
        metadata=metadata,
    )


def pattern_params(pattern: LearnedPattern) -> Dict[str, Any]:
    """Arguments for the update_pattern_frequency RPC."""
    return {
        "p_pattern_type": pattern.pattern_type,
        "p_category": pattern.category,
        "p_description": pattern.description,
        "p_evidence": pattern.evidence_samples,
    }


def workflow_event_row(event: WorkflowEvent) -> Dict[str, Any]:
    return {
        "workflow_id": event.workflow_id,
        "phase": event.phase,
        "event_type": event.event_type.value,
        "attempt_count": event.attempt_count,
        "reason": event.reason,
        "session_id": event.session_id,
        "project_name": event.project_name,
        "metadata": event.metadata,
    }


def metrics_row(metrics: WorkflowMetrics) -> Dict[str, Any]:
    """Backend row shape for af_workflow_metrics."""
    row = metrics.to_dict()
    row.pop("id", None)
    return row


def agent_performance_row(performance: AgentPerformance) -> Dict[str, Any]:
    """Backend row shape for af_agent_performance."""
    row = performance.to_dict()
    row.pop("id", None)
    row.pop("created_at", None)
    return row


class RemoteStore(LearningStore):
    """REST-backed store. Workflow events are also written locally."""

    mode = StorageMode.REMOTE

    def __init__(self, config: AuraFrogConfig, client: Optional[RemoteClient] = None,
                 local: Optional[LocalFileStore] = None):
        super().__init__(config)
        self.client = client or RemoteClient(config.remote)
        self.local = local or LocalFileStore(config)

    def _call(self, action: str, fn, *args) -> StoreResult:
        try:
            response = fn(*args)
        except RemoteError as exc:
            logger.warning("Failed to %s: %s", action, exc)
            return StoreResult.failure(str(exc))
        if isinstance(response, list):
            response = response[0] if response else {}
        return StoreResult.success(response if isinstance(response, dict) else {})

    def append_feedback(self, record: FeedbackRecord) -> StoreResult:
        record.reason_text = (record.reason_text or "")[:self.config.learning.max_reason_length]
        return self._call("record feedback", self.client.insert, FEEDBACK_TABLE,
                          feedback_row(record))

    def upsert_pattern(self, pattern: LearnedPattern) -> StoreResult:
        pattern.evidence_samples = pattern.evidence_samples[-self.config.learning.max_evidence_samples:]
        return self._call("record pattern", self.client.rpc, PATTERN_UPSERT_RPC,
                          pattern_params(pattern))

    def bump_pattern(self, pattern: LearnedPattern) -> StoreResult:
        params = {
            "select": "id",
            "category": f"eq.{pattern.category}",
            "description": f"eq.{pattern.description}",
            "limit": "1",
        }
        try:
            rows = self.client.select(PATTERNS_TABLE, params)
        except RemoteError as exc:
            logger.warning("Failed to look up pattern: %s", exc)
            return StoreResult.failure(str(exc))
        if not isinstance(rows, list) or not rows:
            return StoreResult.success(None)
        return self.upsert_pattern(pattern)

    def append_workflow_event(self, event: WorkflowEvent) -> StoreResult:
        local_result = self.local.append_workflow_event(event)
        remote_result = self._call("record workflow event", self.client.insert,
                                   WORKFLOW_EVENTS_TABLE, workflow_event_row(event))
        if remote_result.ok:
            return remote_result
        return StoreResult(ok=False, record=local_result.record, error=remote_result.error)

    def record_workflow_metrics(self, metrics: WorkflowMetrics) -> StoreResult:
        metrics.completed_at = metrics.completed_at or utc_now()
        return self._call("record workflow metrics", self.client.insert,
                          WORKFLOW_METRICS_TABLE, metrics_row(metrics))

    def record_agent_performance(self, performance: AgentPerformance) -> StoreResult:
        return self._call("record agent performance", self.client.insert,
                          AGENT_PERFORMANCE_TABLE, agent_performance_row(performance))

    def _select_rows(self, action: str, view: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            rows = self.client.select(view, params)
        except RemoteError as exc:
            logger.warning("Failed to %s: %s", action, exc)
            return []
        return [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []

    def agent_success_rates(self, task_type: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"select": "*"}
        if task_type:
            params["task_type"] = f"eq.{task_type}"
        return self._select_rows("get agent success rates", AGENT_SUCCESS_VIEW, params)

    def improvement_suggestions(self, limit: int = 10) -> List[Dict[str, Any]]:
        params = {"select": "*", "limit": str(limit), "order": "confidence.desc"}
        return self._select_rows("get improvement suggestions", SUGGESTIONS_VIEW, params)

    def list_feedback(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        params = {"select": "*", "order": "created_at.desc"}
        if limit:
            params["limit"] = str(limit)
        try:
            rows = self.client.select(FEEDBACK_TABLE, params)
        except RemoteError as exc:
            logger.warning("Failed to load feedback: %s", exc)
            return []
        records = [feedback_from_row(r) for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []
        return list(reversed([r for r in records if r is not None]))

    def list_patterns(self) -> List[LearnedPattern]:
        try:
            rows = self.client.select(PATTERNS_TABLE, {"select": "*", "order": "frequency.desc"})
        except RemoteError as exc:
            logger.warning("Failed to load patterns: %s", exc)
            return []
        if not isinstance(rows, list):
            return []
        return [
            LearnedPattern(
                category=r.get("category", "general"),
                rule=r.get("rule") or r.get("pattern_type", ""),
                description=r.get("description", ""),
                evidence_samples=list(r.get("evidence") or []),
                frequency=max(1, coerce_int(r.get("frequency"), 1)),
                pattern_type=r.get("pattern_type", "correction"),
                created_at=r.get("created_at"),
                updated_at=r.get("updated_at"),
            )
            for r in rows if isinstance(r, dict)
        ]

    def counts(self) -> Dict[str, Any]:
        try:
            summary = self.client.select(FEEDBACK_SUMMARY_VIEW)
            patterns = self.client.select(PATTERNS_TABLE, {"select": "count", "active": "eq.true"})
        except RemoteError as exc:
            logger.warning("Failed to fetch learning stats: %s", exc)
            return {"error": "Could not fetch stats"}
        feedback = sum(
            int(row.get("total_count") or 0) for row in summary if isinstance(row, dict)
        ) if isinstance(summary, list) else 0
        active = patterns[0].get("count", 0) if isinstance(patterns, list) and patterns else 0
        return {
            "feedback": feedback,
            "patterns": active,
            "workflow_events": len(self.local.list_workflow_events()),
        }


# =========================================================================
# Factory and status
# =========================================================================


def get_store(config: AuraFrogConfig) -> LearningStore:
    """Select the store once: remote when URL and key are both set."""
    if config.storage_mode is StorageMode.REMOTE:
        return RemoteStore(config)
    return LocalFileStore(config)


def learning_status(config: AuraFrogConfig,
                    store: Optional[LearningStore] = None) -> Dict[str, Any]:
    """Feature flags, storage mode and record counts."""
    learning = config.learning
    status: Dict[str, Any] = {
        "enabled": learning.enabled,
        "feedback_enabled": learning.feedback_active,
        "metrics_enabled": learning.metrics_active,
        "mode": config.storage_mode.value,
        "backend_configured": config.remote.configured,
        "learning_dir": str(config.learning_dir),
    }
    if learning.enabled:
        store = store or get_store(config)
        status["stats"] = store.counts()
    return status
