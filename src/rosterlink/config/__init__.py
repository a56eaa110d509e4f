"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_int, optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationValueError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .roster import (
    RosterOrderingConfig,
    RosterSourceConfig,
    get_roster_ordering_config,
    get_roster_source_config,
)
from .storage import StorageConfig, get_database_uri, get_http_cache_path, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "RosterOrderingConfig",
    "RosterSourceConfig",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_database_uri",
    "get_http_cache_path",
    "get_reconciliation_config",
    "get_roster_ordering_config",
    "get_roster_source_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
