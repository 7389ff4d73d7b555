"""Aura Frog configuration module."""

from aurafrog.config.loader import load_config
from aurafrog.config.models import (
    AuraFrogConfig,
    LearningConfig,
    RemoteBackendConfig,
    RunContext,
    StorageMode,
    StoragePaths,
)

__all__ = [
    "AuraFrogConfig", "LearningConfig", "RemoteBackendConfig", "RunContext",
    "StorageMode", "StoragePaths", "load_config",
]
