"""
repo-sentinel config package public API.

File: src/repo_sentinel/config/__init__.py
Last updated: 2026-10-19

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``.sentinel.toml``/``.sentinel.yaml`` + ``SENTINEL_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from repo_sentinel.config.loader import (
    ConfigLoadError,
    collect_env_overrides,
    dump_effective_config,
    load_config,
    load_config_file,
    resolve_config_path,
)
from repo_sentinel.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    SentinelConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "SentinelConfig",
    "assert_valid_config",
    "collect_env_overrides",
    "default_config",
    "dump_effective_config",
    "load_config",
    "load_config_file",
    "resolve_config_path",
    "validate_config",
    "merge_config",
]
