"""
Workflow event recording.

Phase transitions of the 9-phase workflow (approve, reject, modify,
cancel, start, complete) are kept as WorkflowEvents. Every event lands in
the local audit trail; remote mode additionally writes the backend row.
Rejections and modifications also produce a FeedbackRecord so they feed
the same digest as prompt corrections.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from aurafrog.config.models import AuraFrogConfig
from aurafrog.learning.dedup import fingerprint
from aurafrog.learning.schemas import (
    FeedbackKind,
    FeedbackRecord,
    StoreResult,
    WorkflowEvent,
    WorkflowEventType,
    rating_for,
)
from aurafrog.learning.store import LearningStore, get_store

logger = logging.getLogger(__name__)

TOTAL_PHASES = 9
ACTIVE_WORKFLOW_FILES = (".claude/active-workflow.txt", "active-workflow.txt")

_FEEDBACK_KINDS = {
    WorkflowEventType.REJECTED: FeedbackKind.REJECTION,
    WorkflowEventType.MODIFIED: FeedbackKind.MODIFICATION,
}


class WorkflowEventError(ValueError):
    """Invalid event type, phase or missing workflow id."""


def parse_event_type(value: Union[str, WorkflowEventType]) -> WorkflowEventType:
    if isinstance(value, WorkflowEventType):
        return value
    try:
        return WorkflowEventType(str(value).strip().upper())
    except ValueError:
        valid = ", ".join(t.value for t in WorkflowEventType)
        raise WorkflowEventError(f'Invalid event type "{value}". Valid types: {valid}') from None


def active_workflow_id(project_dir: Path) -> Optional[str]:
    """Workflow id from active-workflow.txt, if one is active."""
    for name in ACTIVE_WORKFLOW_FILES:
        path = Path(project_dir) / name
        try:
            value = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            continue
        if value:
            return value
    return None


def build_event(
    config: AuraFrogConfig,
    event_type: Union[str, WorkflowEventType],
    phase: int,
    workflow_id: Optional[str] = None,
    reason: Optional[str] = None,
    attempt_count: int = 1,
) -> WorkflowEvent:
    """Validate inputs and build the event. Raises WorkflowEventError."""
    etype = parse_event_type(event_type)
    if not 1 <= int(phase) <= TOTAL_PHASES:
        raise WorkflowEventError(f"Phase must be between 1 and {TOTAL_PHASES}, got {phase}")
    wid = workflow_id or config.context.workflow_id or active_workflow_id(config.project_dir)
    if not wid:
        raise WorkflowEventError("No workflow ID provided and no active workflow found")
    return WorkflowEvent(
        workflow_id=wid,
        phase=int(phase),
        event_type=etype,
        attempt_count=max(1, int(attempt_count)),
        reason=reason,
        session_id=config.context.session_id,
        project_name=config.context.project_name,
        metadata={"source": "phase-transition"},
    )


def feedback_for_event(event: WorkflowEvent, max_length: int = 500) -> Optional[FeedbackRecord]:
    """Synthesize a FeedbackRecord for rejections and modifications."""
    kind = _FEEDBACK_KINDS.get(event.event_type)
    if kind is None:
        return None
    reason = event.reason or f"Phase {event.phase} {event.event_type.value.lower()}"
    return FeedbackRecord(
        kind=kind,
        reason_text=reason[:max_length],
        rating=rating_for(kind),
        category="workflow",
        rule=f"phase_{event.phase}_{event.event_type.value.lower()}",
        fingerprint=fingerprint(f"{event.workflow_id}:{event.phase}:{reason}"),
        session_id=event.session_id,
        workflow_id=event.workflow_id,
        project_name=event.project_name,
        metadata={
            "source": "workflow_event",
            "phase": event.phase,
            "attempt_count": event.attempt_count,
        },
    )


def record_workflow_event(
    config: AuraFrogConfig,
    event: WorkflowEvent,
    store: Optional[LearningStore] = None,
) -> StoreResult:
    """Persist the event and, for rejections/modifications, its feedback."""
    store = store or get_store(config)
    result = store.append_workflow_event(event)

    feedback = feedback_for_event(event, config.learning.max_reason_length)
    if feedback is not None and config.learning.feedback_active:
        stored = store.append_feedback(feedback)
        if not stored.ok:
            logger.warning("Workflow feedback not stored: %s", stored.error)

    return result
