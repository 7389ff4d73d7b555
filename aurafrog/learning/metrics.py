"""
Workflow and agent telemetry.

Writes are gated by metrics collection (learning enabled and
AF_METRICS_COLLECTION not "false"); queries only need learning enabled.
Disabled calls return None and touch nothing.
"""

import logging
from typing import Any, Dict, List, Optional

from aurafrog.config.models import AuraFrogConfig
from aurafrog.learning.schemas import AgentPerformance, StoreResult, WorkflowMetrics
from aurafrog.learning.store import LearningStore, get_store
from aurafrog.project.cache import ProjectCache

logger = logging.getLogger(__name__)


def _fill_project(config: AuraFrogConfig, metrics: WorkflowMetrics) -> None:
    if metrics.project_name and metrics.project_type and metrics.framework:
        return
    detection = ProjectCache(config.project_dir).detect()
    metrics.project_name = (
        metrics.project_name or config.context.project_name or detection.get("project_name")
    )
    metrics.project_type = metrics.project_type or detection.get("project_type")
    metrics.framework = metrics.framework or detection.get("framework")


def record_workflow_metrics(
    config: AuraFrogConfig,
    metrics: WorkflowMetrics,
    store: Optional[LearningStore] = None,
) -> Optional[StoreResult]:
    if not config.learning.metrics_active:
        return None
    try:
        _fill_project(config, metrics)
    except (OSError, ValueError) as exc:
        logger.debug("Project detection unavailable: %s", exc)
    result = (store or get_store(config)).record_workflow_metrics(metrics)
    if not result.ok:
        logger.warning("Workflow metrics not stored: %s", result.error)
    return result


def record_agent_performance(
    config: AuraFrogConfig,
    performance: AgentPerformance,
    store: Optional[LearningStore] = None,
) -> Optional[StoreResult]:
    if not config.learning.metrics_active:
        return None
    context = config.context
    performance.session_id = performance.session_id or context.session_id
    performance.workflow_id = performance.workflow_id or context.workflow_id
    result = (store or get_store(config)).record_agent_performance(performance)
    if not result.ok:
        logger.warning("Agent performance not stored: %s", result.error)
    return result


def agent_success_rates(
    config: AuraFrogConfig,
    task_type: Optional[str] = None,
    store: Optional[LearningStore] = None,
) -> Optional[List[Dict[str, Any]]]:
    """Per-agent success rates, optionally for one task type."""
    if not config.learning.enabled:
        return None
    return (store or get_store(config)).agent_success_rates(task_type)


def improvement_suggestions(
    config: AuraFrogConfig,
    limit: int = 10,
    store: Optional[LearningStore] = None,
) -> Optional[List[Dict[str, Any]]]:
    if not config.learning.enabled:
        return None
    return (store or get_store(config)).improvement_suggestions(limit)
