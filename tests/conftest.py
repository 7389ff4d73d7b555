"""Pytest configuration and fixtures for Aura Frog tests."""

from pathlib import Path

import pytest

from aurafrog.config import load_config
from aurafrog.logging.diagnostics import reset_logging

# Environment variables the config loader reads
AURA_FROG_ENV_VARS = (
    "AF_LEARNING_ENABLED",
    "AF_FEEDBACK_COLLECTION",
    "AF_METRICS_COLLECTION",
    "AF_SESSION_ID",
    "AF_WORKFLOW_ID",
    "AF_PROJECT_NAME",
    "AF_CURRENT_AGENT",
    "AF_PROJECT_DIR",
    "AF_DEBUG",
    "PROJECT_NAME",
    "CLAUDE_PROJECT_DIR",
    "CLAUDE_USER_INPUT",
    "SUPABASE_URL",
    "SUPABASE_SECRET_KEY",
    "SUPABASE_PUBLISHABLE_KEY",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Strip host settings so tests never touch a real backend or project."""
    for var in AURA_FROG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield
    reset_logging()


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """An empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def make_config(project_dir):
    """Build a config for the temp project from an explicit environment."""
    def _make(**env):
        return load_config(project_dir, env={k: str(v) for k, v in env.items()})
    return _make


@pytest.fixture
def config(make_config):
    """Local-mode config with every learning feature on."""
    return make_config()
