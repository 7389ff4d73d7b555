"""
aurafrog command line.

Inspection and maintenance commands for the learning system:
    status          flags, storage mode and record counts
    patterns        learned patterns by frequency
    feedback        recent feedback records
    classify        show how a message would be classified
    record-event    record a workflow phase transition
    record-metrics  record the outcome of a workflow run
    record-agent    record how an agent did on a task
    agents          agent success rates
    suggestions     improvement suggestions
"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from aurafrog import __version__
from aurafrog.cli_helpers import console, format_flag, print_error, print_success, project_option
from aurafrog.config import load_config
from aurafrog.learning.categorizer import categorize, describe
from aurafrog.learning.classifier import classify
from aurafrog.learning.digest import excerpt
from aurafrog.learning.learnability import is_learnable
from aurafrog.learning.metrics import (
    agent_success_rates,
    improvement_suggestions,
    record_agent_performance,
    record_workflow_metrics,
)
from aurafrog.learning.schemas import AgentPerformance, WorkflowMetrics
from aurafrog.learning.store import get_store, learning_status
from aurafrog.learning.workflow import WorkflowEventError, build_event, record_workflow_event
from aurafrog.logging.diagnostics import configure_logging


def _config(project_dir: Optional[str]):
    config = load_config(Path(project_dir) if project_dir else None)
    configure_logging(config, log_to_file=False)
    return config


@click.group()
@click.version_option(__version__, prog_name="aurafrog")
def main():
    """Aura Frog learning system.

    Inspect captured feedback and learned patterns, and record workflow
    events from scripts.
    """
    pass


@main.command("status")
@project_option
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON")
def status(project_dir: Optional[str], as_json: bool):
    """Show feature flags, storage mode and record counts."""
    info = learning_status(_config(project_dir))

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    console.print("[bold]Aura Frog Learning Status[/bold]")
    console.print(f"  Learning:  {format_flag(info['enabled'])}")
    console.print(f"  Feedback:  {format_flag(info['feedback_enabled'])}")
    console.print(f"  Metrics:   {format_flag(info['metrics_enabled'])}")
    console.print(f"  Mode:      {info['mode']}")
    console.print(f"  Directory: {info['learning_dir']}")

    stats = info.get("stats")
    if not stats:
        return
    if "error" in stats:
        print_error(stats["error"], "Check SUPABASE_URL and SUPABASE_SECRET_KEY")
        return

    table = Table(title="Records")
    table.add_column("Kind", style="bold")
    table.add_column("Count", justify="right")
    for key in ("feedback", "patterns", "workflow_events"):
        table.add_row(key, str(stats.get(key, 0)))
    console.print(table)


@main.command("patterns")
@project_option
@click.option("--category", default=None, help="Only show one category")
def patterns(project_dir: Optional[str], category: Optional[str]):
    """Show learned patterns, most frequent first."""
    config = _config(project_dir)
    found = get_store(config).list_patterns()
    if category:
        found = [p for p in found if p.category == category]

    if not found:
        console.print("[white]No learned patterns yet.[/white]")
        return

    table = Table(title="Learned Patterns")
    table.add_column("Category", style="cyan")
    table.add_column("Rule")
    table.add_column("Description")
    table.add_column("Frequency", justify="right")
    for p in sorted(found, key=lambda p: p.frequency, reverse=True):
        table.add_row(p.category, p.rule, escape(p.description), str(p.frequency))
    console.print(table)


@main.command("feedback")
@project_option
@click.option("--limit", default=20, type=click.IntRange(min=1), help="Number of records")
def feedback(project_dir: Optional[str], limit: int):
    """Show the most recent feedback records."""
    config = _config(project_dir)
    records = get_store(config).list_feedback(limit=limit)

    if not records:
        console.print("[white]No feedback recorded yet.[/white]")
        return

    table = Table(title=f"Recent Feedback ({len(records)})")
    table.add_column("When", style="white")
    table.add_column("Type", style="bold")
    table.add_column("Category")
    table.add_column("Message")
    for r in reversed(records):
        table.add_row(
            (r.created_at or "")[:19],
            r.kind.value,
            f"{r.category}:{r.rule}",
            escape(excerpt(r.reason_text, 80)),
        )
    console.print(table)


@main.command("classify")
@click.argument("text")
def classify_command(text: str):
    """Show how TEXT would be classified, filtered and categorized."""
    signal = classify(text)
    learnability = is_learnable(text)
    category = categorize(text)

    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Signal", signal.kind.value)
    table.add_row("Confidence", f"{signal.confidence:.2f}")
    table.add_row("Evidence", escape(", ".join(signal.evidence)) or "-")
    table.add_row("Learnable", f"{learnability.learnable} ({learnability.reason.value})")
    if learnability.task_indicators:
        table.add_row("Task indicators", ", ".join(learnability.task_indicators))
    table.add_row("Category", category.key)
    table.add_row("Description", describe(category))
    console.print(table)


@main.command("record-event")
@click.argument("event")
@click.argument("phase", type=int)
@click.option("--workflow-id", default=None, help="Workflow ID (defaults to the active workflow)")
@click.option("--reason", default=None, help="Reason for rejection or modification")
@click.option("--attempt", default=1, type=click.IntRange(min=1), help="Attempt count")
@project_option
def record_event(event: str, phase: int, workflow_id: Optional[str], reason: Optional[str],
                 attempt: int, project_dir: Optional[str]):
    """Record a workflow EVENT for PHASE (e.g. APPROVED 3)."""
    config = _config(project_dir)
    try:
        wf_event = build_event(config, event, phase, workflow_id=workflow_id,
                               reason=reason, attempt_count=attempt)
    except WorkflowEventError as e:
        print_error(str(e))
        raise SystemExit(1)

    result = record_workflow_event(config, wf_event)
    if result.ok:
        print_success(f"Recorded {wf_event.event_type.value} for phase {phase} "
                      f"({wf_event.workflow_id})")
    else:
        print_error(f"Failed to record event: {result.error}")
        raise SystemExit(1)


def _report_telemetry(result, what: str) -> None:
    if result is None:
        console.print("[white]Metrics collection is disabled; nothing recorded.[/white]")
        return
    if not result.ok:
        print_error(f"Failed to record {what}: {result.error}")
        raise SystemExit(1)
    print_success(f"Recorded {what}")


@main.command("record-metrics")
@click.argument("workflow_id")
@click.option("--completed", "completed_phases", default=0, type=click.IntRange(min=0),
              help="Phases completed")
@click.option("--total", "total_phases", default=9, type=click.IntRange(min=1), help="Total phases")
@click.option("--success/--failure", default=None, help="Whether the workflow succeeded")
@click.option("--failure-reason", default=None)
@click.option("--tokens", default=0, type=click.IntRange(min=0), help="Total tokens used")
@click.option("--duration", default=None, type=float, help="Duration in seconds")
@click.option("--retries", default=0, type=click.IntRange(min=0))
@project_option
def record_metrics(workflow_id: str, completed_phases: int, total_phases: int,
                   success: Optional[bool], failure_reason: Optional[str], tokens: int,
                   duration: Optional[float], retries: int, project_dir: Optional[str]):
    """Record the outcome of workflow WORKFLOW_ID."""
    config = _config(project_dir)
    metrics = WorkflowMetrics(
        workflow_id=workflow_id,
        total_phases=total_phases,
        completed_phases=completed_phases,
        success=success,
        failure_reason=failure_reason,
        total_tokens=tokens,
        duration_seconds=duration,
        retries=retries,
    )
    _report_telemetry(record_workflow_metrics(config, metrics), f"metrics for {workflow_id}")


@main.command("record-agent")
@click.argument("agent")
@click.option("--task-type", default=None, help="Kind of task the agent handled")
@click.option("--success/--failure", default=None, help="Whether the task succeeded")
@click.option("--confidence", default=None, type=click.FloatRange(0.0, 1.0),
              help="Routing confidence")
@click.option("--override-to", default=None, help="Agent the user switched to")
@click.option("--duration-ms", default=None, type=click.IntRange(min=0))
@click.option("--workflow-id", default=None)
@project_option
def record_agent(agent: str, task_type: Optional[str], success: Optional[bool],
                 confidence: Optional[float], override_to: Optional[str],
                 duration_ms: Optional[int], workflow_id: Optional[str],
                 project_dir: Optional[str]):
    """Record how AGENT did on one task."""
    config = _config(project_dir)
    performance = AgentPerformance(
        agent_name=agent,
        task_type=task_type,
        success=success,
        confidence_score=confidence,
        user_override=override_to is not None,
        override_to_agent=override_to,
        duration_ms=duration_ms,
        workflow_id=workflow_id,
    )
    _report_telemetry(record_agent_performance(config, performance), f"performance for {agent}")


@main.command("agents")
@project_option
@click.option("--task-type", default=None, help="Only show one task type")
def agents(project_dir: Optional[str], task_type: Optional[str]):
    """Show agent success rates."""
    rates = agent_success_rates(_config(project_dir), task_type=task_type)
    if rates is None:
        console.print("[white]Learning is disabled.[/white]")
        return
    if not rates:
        console.print("[white]No agent performance recorded yet.[/white]")
        return

    table = Table(title="Agent Success Rates")
    table.add_column("Agent", style="cyan")
    table.add_column("Task type")
    table.add_column("Success", justify="right")
    table.add_column("Tasks", justify="right")
    for row in rates:
        rate = row.get("success_rate")
        table.add_row(
            escape(str(row.get("agent_name", "?"))),
            escape(str(row.get("task_type") or "-")),
            f"{round(rate * 100)}%" if isinstance(rate, (int, float)) else "N/A",
            str(row.get("total_tasks") or 0),
        )
    console.print(table)


@main.command("suggestions")
@project_option
@click.option("--limit", default=10, type=click.IntRange(min=1), help="Number of suggestions")
def suggestions(project_dir: Optional[str], limit: int):
    """Show improvement suggestions, most confident first."""
    found = improvement_suggestions(_config(project_dir), limit=limit)
    if not found:
        console.print("[white]No improvement suggestions yet.[/white]")
        return

    table = Table(title="Improvement Suggestions")
    table.add_column("Confidence", justify="right")
    table.add_column("Suggestion")
    for row in found:
        confidence = row.get("confidence")
        table.add_row(
            f"{confidence:.2f}" if isinstance(confidence, (int, float)) else "-",
            escape(str(row.get("description") or row.get("recommendation") or "")),
        )
    console.print(table)


if __name__ == "__main__":
    main()
