#!/usr/bin/env python3
"""
Aura Frog Auto-Learn Hook for Claude Code

Fires on UserPromptSubmit. Watches each user message for corrections and
approvals, stores them as feedback and promotes recurring corrections to
learned patterns.

Claude Code UserPromptSubmit Protocol:
- Input (stdin): JSON with prompt, session_id, cwd
- Output (stdout): plain-text notice, added to the conversation context
- Exit code is always 0; learning never blocks a prompt
"""

import logging
import os
import sys
from typing import Any, Dict, Optional

from aurafrog.hooks.common import config_for, parse_payload
from aurafrog.learning.pipeline import capture_feedback

logger = logging.getLogger(__name__)


def extract_prompt(input_data: Dict[str, Any]) -> str:
    prompt = input_data.get("prompt") or input_data.get("user_prompt") or ""
    if not prompt:
        prompt = os.environ.get("CLAUDE_USER_INPUT", "")
    return prompt if isinstance(prompt, str) else ""


def process_hook(input_data: Dict[str, Any]) -> Optional[str]:
    """Run the learning pipeline on one prompt and return the notice, if any."""
    config = config_for(input_data)
    if not config.learning.feedback_active:
        return None
    result = capture_feedback(extract_prompt(input_data), config)
    logger.debug("auto-learn outcome: %s", result.outcome.value)
    return result.notice


def main():
    """Read hook input from stdin and print any learning notice."""
    try:
        input_data = parse_payload(sys.stdin.read())
        notice = process_hook(input_data)
        if notice:
            print(notice)
    except Exception as e:  # noqa: BLE001 - fail open
        logger.warning("auto-learn hook error: %s", e)
    sys.exit(0)


if __name__ == "__main__":
    main()
