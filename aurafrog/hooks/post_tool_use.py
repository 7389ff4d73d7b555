#!/usr/bin/env python3
"""
Aura Frog Smart-Learn Hook for Claude Code

Fires on PostToolUse for Write, Edit and Bash. Successful calls feed the
smart-learn counters; frequent code styles and shell commands become
learned patterns.

Claude Code PostToolUse Protocol:
- Input (stdin): JSON with tool_name, tool_input, tool_response
- Output (stdout): plain-text notices
- Exit code is always 0
"""

import logging
import sys
from typing import Any, Dict, List

from aurafrog.hooks.common import config_for, parse_payload, response_text
from aurafrog.learning.smart_learn import SmartLearner

logger = logging.getLogger(__name__)

TRACKED_TOOLS = {"Write", "Edit", "Bash"}


def process_hook(input_data: Dict[str, Any]) -> List[str]:
    tool_name = input_data.get("tool_name", "")
    if tool_name not in TRACKED_TOOLS:
        return []
    tool_input = input_data.get("tool_input")
    if not isinstance(tool_input, dict):
        return []

    config = config_for(input_data)
    learner = SmartLearner(config)
    if not learner.active:
        return []
    return learner.observe(tool_name, tool_input, response_text(input_data.get("tool_response")))


def main():
    """Read hook input from stdin and print any smart-learn notices."""
    try:
        input_data = parse_payload(sys.stdin.read())
        for notice in process_hook(input_data):
            print(notice)
    except Exception as e:  # noqa: BLE001 - fail open
        logger.warning("smart-learn hook error: %s", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
