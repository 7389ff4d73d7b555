"""
Load Aura Frog configuration from YAML and the environment.

Config hierarchy (later layers win):
    model defaults
    <project>/.claude/aura-frog.yaml     Project-level settings
    environment variables                Host/session overrides

This is the only place that reads os.environ; everything downstream
receives the resulting AuraFrogConfig explicitly.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from aurafrog.config.models import AuraFrogConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "aura-frog.yaml"
CONFIG_SUBDIR = ".claude"

# (env var, section, key) for string-valued overrides
_STRING_ENV = [
    ("SUPABASE_URL", "remote", "url"),
    ("SUPABASE_PUBLISHABLE_KEY", "remote", "key"),
    ("SUPABASE_SECRET_KEY", "remote", "key"),  # secret key wins over publishable
    ("AF_SESSION_ID", "context", "session_id"),
    ("AF_WORKFLOW_ID", "context", "workflow_id"),
    ("AF_PROJECT_NAME", "context", "project_name"),
    ("PROJECT_NAME", "context", "project_name"),
    ("AF_CURRENT_AGENT", "context", "agent"),
]

# Flags that are on unless explicitly set to "false"
_FLAG_ENV = [
    ("AF_LEARNING_ENABLED", "learning", "enabled"),
    ("AF_FEEDBACK_COLLECTION", "learning", "feedback_enabled"),
    ("AF_METRICS_COLLECTION", "learning", "metrics_enabled"),
]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read the project YAML file. Missing or malformed file -> {}."""
    if not path.is_file():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("%s must contain a mapping, ignoring it", path)
        return {}
    return data


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    for var, section, key in _STRING_ENV:
        value = env.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value

    for var, section, key in _FLAG_ENV:
        value = env.get(var)
        if value is not None and value != "":
            overrides.setdefault(section, {})[key] = value.strip().lower() != "false"

    if env.get("AF_DEBUG", "").strip().lower() == "true":
        overrides["debug"] = True

    return overrides


def resolve_project_dir(
    project_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Path:
    """Pick the project root: explicit argument, then env, then cwd."""
    if project_dir is not None:
        return Path(project_dir)
    env = os.environ if env is None else env
    for var in ("AF_PROJECT_DIR", "CLAUDE_PROJECT_DIR"):
        if env.get(var):
            return Path(env[var])
    return Path.cwd()


def load_config(
    project_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AuraFrogConfig:
    """Build the configuration for one hook or CLI invocation.

    Args:
        project_dir: Project root. Defaults to AF_PROJECT_DIR,
                     CLAUDE_PROJECT_DIR, then the current directory.
        env: Environment mapping (defaults to os.environ).
    """
    env = os.environ if env is None else env
    root = resolve_project_dir(project_dir, env)

    file_layer = _read_yaml(root / CONFIG_SUBDIR / CONFIG_FILENAME)
    file_layer.pop("project_dir", None)
    env_layer = _env_overrides(env)

    try:
        return AuraFrogConfig(
            project_dir=root, **_deep_merge(file_layer, env_layer)
        )
    except ValidationError as exc:
        logger.warning(
            "Invalid aura-frog configuration, falling back to defaults: %s",
            exc.errors()[0].get("msg", exc) if exc.errors() else exc,
        )

    try:
        return AuraFrogConfig(project_dir=root, **env_layer)
    except ValidationError:
        return AuraFrogConfig(project_dir=root)
