"""Application configuration helpers."""

from __future__ import annotations

from .adapters import AdapterConfig, GitHubConfig, get_adapter_config, get_github_config
from .engine import EngineConfig, get_engine_config
from .env import require_env_vars
from .errors import ConfigurationError, InvalidConfigValueError, MissingConfigurationError
from .http_resilience import CacheConfig, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AdapterConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EngineConfig",
    "GitHubConfig",
    "InvalidConfigValueError",
    "MissingConfigurationError",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_adapter_config",
    "get_database_config",
    "get_engine_config",
    "get_github_config",
    "get_storage_config",
    "require_env_vars",
]
