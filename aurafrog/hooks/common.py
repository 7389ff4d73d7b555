"""Shared plumbing for the hook entry points."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from aurafrog.config import AuraFrogConfig, load_config
from aurafrog.logging.diagnostics import configure_logging


def parse_payload(raw: str) -> Dict[str, Any]:
    """Decode the host's stdin payload. Empty input -> {}."""
    if not raw.strip():
        return {}
    data = json.loads(raw)
    return data if isinstance(data, dict) else {}


def config_for(payload: Dict[str, Any], env: Optional[Mapping[str, str]] = None) -> AuraFrogConfig:
    """Load configuration, using the payload's cwd when no project dir is set."""
    env = os.environ if env is None else env
    project_dir = None
    if not env.get("AF_PROJECT_DIR") and not env.get("CLAUDE_PROJECT_DIR") and payload.get("cwd"):
        project_dir = Path(payload["cwd"])
    config = load_config(project_dir, env)
    if payload.get("session_id") and not config.context.session_id:
        config.context.session_id = str(payload["session_id"])
    configure_logging(config)
    return config


def response_text(tool_response: Any) -> str:
    """Flatten a tool response into text for error-marker checks."""
    if tool_response is None:
        return ""
    if isinstance(tool_response, str):
        return tool_response
    if isinstance(tool_response, dict):
        for key in ("error", "stderr", "output", "stdout", "content"):
            value = tool_response.get(key)
            if isinstance(value, str) and value:
                return value
    return json.dumps(tool_response, default=str)
