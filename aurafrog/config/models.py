"""
Pydantic models for Aura Frog learning configuration.

These models define the schema for .claude/aura-frog.yaml and the
environment overrides applied on top of it. They provide:
- Type-safe configuration with automatic validation
- One explicit config object handed to every learning component
- Derived helpers (storage mode, resolved paths) so callers never
  inspect the environment themselves
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# ============================================================================
# Enums
# ============================================================================


class StorageMode(str, Enum):
    """Where feedback, patterns and workflow events are persisted."""
    LOCAL = "local"
    REMOTE = "remote"


# ============================================================================
# Configuration Section Models
# ============================================================================


class RemoteBackendConfig(BaseModel):
    """Configuration for the remote REST backend (Supabase-style)."""
    url: Optional[str] = None
    key: Optional[str] = None
    write_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=5.0, gt=0)

    model_config = {"extra": "allow"}

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)


class StoragePaths(BaseModel):
    """File locations, relative to the project directory unless absolute."""
    learning_dir: str = ".claude/learning"
    cache_dir: str = ".claude/cache"
    logs_dir: str = ".claude/logs"
    feedback_file: str = "feedback.json"
    patterns_file: str = "patterns.json"
    workflow_events_file: str = "workflow-events.json"
    workflow_metrics_file: str = "workflow-metrics.json"
    agent_performance_file: str = "agent-performance.json"
    digest_file: str = "learned-patterns.md"
    dedup_cache_file: str = "auto-learn-cache.json"
    smart_learn_cache_file: str = "smart-learn-cache.json"
    workflow_hashes_file: str = "workflow-file-hashes.json"

    model_config = {"extra": "allow"}


class LearningConfig(BaseModel):
    """Feature flags and tunables for the learning pipeline."""
    enabled: bool = True
    feedback_enabled: bool = True
    metrics_enabled: bool = True

    promotion_threshold: int = Field(default=3, gt=0)
    dedup_window_hours: float = Field(default=24.0, gt=0)
    dedup_max_entries: int = Field(default=100, gt=0)
    max_feedback_records: int = Field(default=500, gt=0)
    max_workflow_events: int = Field(default=1000, gt=0)
    max_metrics_records: int = Field(default=500, gt=0)
    max_agent_records: int = Field(default=1000, gt=0)
    max_evidence_samples: int = Field(default=10, gt=0)
    max_reason_length: int = Field(default=500, gt=0)
    excerpt_length: int = Field(default=150, gt=0)
    min_capture_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    notice_confidence: float = Field(default=0.7, ge=0.0, le=1.0)

    model_config = {"extra": "allow"}

    @model_validator(mode="after")
    def check_confidence_order(self) -> "LearningConfig":
        if self.min_capture_confidence > self.notice_confidence:
            raise ValueError(
                f"min_capture_confidence ({self.min_capture_confidence}) "
                f"must not exceed notice_confidence ({self.notice_confidence})"
            )
        return self

    @property
    def feedback_active(self) -> bool:
        return self.enabled and self.feedback_enabled

    @property
    def metrics_active(self) -> bool:
        return self.enabled and self.metrics_enabled


class RunContext(BaseModel):
    """Optional context strings attached to every record."""
    session_id: Optional[str] = None
    workflow_id: Optional[str] = None
    project_name: Optional[str] = None
    agent: Optional[str] = None


# ============================================================================
# Root Model
# ============================================================================


class AuraFrogConfig(BaseModel):
    """Root configuration passed explicitly to every learning component."""
    project_dir: Path = Field(default_factory=Path.cwd)
    debug: bool = False
    learning: LearningConfig = Field(default_factory=LearningConfig)
    remote: RemoteBackendConfig = Field(default_factory=RemoteBackendConfig)
    paths: StoragePaths = Field(default_factory=StoragePaths)
    context: RunContext = Field(default_factory=RunContext)

    model_config = {"extra": "allow"}

    @property
    def storage_mode(self) -> StorageMode:
        return StorageMode.REMOTE if self.remote.configured else StorageMode.LOCAL

    def _resolve(self, value: str) -> Path:
        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return Path(self.project_dir) / path

    @property
    def learning_dir(self) -> Path:
        return self._resolve(self.paths.learning_dir)

    @property
    def cache_dir(self) -> Path:
        return self._resolve(self.paths.cache_dir)

    @property
    def logs_dir(self) -> Path:
        return self._resolve(self.paths.logs_dir)

    @property
    def feedback_path(self) -> Path:
        return self.learning_dir / self.paths.feedback_file

    @property
    def patterns_path(self) -> Path:
        return self.learning_dir / self.paths.patterns_file

    @property
    def workflow_events_path(self) -> Path:
        return self.learning_dir / self.paths.workflow_events_file

    @property
    def workflow_metrics_path(self) -> Path:
        return self.learning_dir / self.paths.workflow_metrics_file

    @property
    def agent_performance_path(self) -> Path:
        return self.learning_dir / self.paths.agent_performance_file

    @property
    def digest_path(self) -> Path:
        return self.learning_dir / self.paths.digest_file

    @property
    def dedup_cache_path(self) -> Path:
        return self.cache_dir / self.paths.dedup_cache_file

    @property
    def smart_learn_cache_path(self) -> Path:
        return self.cache_dir / self.paths.smart_learn_cache_file

    @property
    def workflow_hashes_path(self) -> Path:
        return self.cache_dir / self.paths.workflow_hashes_file
