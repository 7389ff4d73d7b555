#!/usr/bin/env python3
"""
Aura Frog Workflow-Edit-Learn Hook for Claude Code

Fires on PreToolUse for Read. Before a workflow document is read back,
checks whether the user edited any workflow files by hand and learns
documentation preferences from the changes.

Claude Code PreToolUse Protocol:
- Input (stdin): JSON with tool_name, tool_input
- Output (stdout): JSON; "{}" lets the tool call proceed unchanged
- Learnings are surfaced through additionalContext, never a denial
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from aurafrog.hooks.common import config_for, parse_payload
from aurafrog.learning.workflow_edit import WorkflowEditLearner, format_findings, is_workflow_file

logger = logging.getLogger(__name__)


def process_hook(input_data: Dict[str, Any]) -> Dict[str, Any]:
    if input_data.get("tool_name") != "Read":
        return {}
    tool_input = input_data.get("tool_input") or {}
    file_path = tool_input.get("file_path") if isinstance(tool_input, dict) else None

    config = config_for(input_data)
    if not config.learning.enabled:
        return {}
    if file_path and not is_workflow_file(Path(file_path), config.project_dir):
        return {}

    notice = format_findings(WorkflowEditLearner(config).scan())
    if not notice:
        return {}
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "additionalContext": notice,
        },
    }


def main():
    """Read hook input from stdin and output the hook response."""
    result: Dict[str, Any] = {}
    try:
        result = process_hook(parse_payload(sys.stdin.read()))
    except Exception as e:  # noqa: BLE001 - fail open
        logger.warning("workflow-edit hook error: %s", e)
    print(json.dumps(result))
    sys.exit(0)


if __name__ == "__main__":
    main()
