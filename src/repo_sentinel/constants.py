"""Stable constants shared across the engine, checks, and CLI."""

from __future__ import annotations

from typing import Final

CONFIG_SCHEMA_VERSION: Final[int] = 1

# Config file names looked up in the repository root, in order.
DEFAULT_CONFIG_FILES: Final[tuple[str, ...]] = (".sentinel.toml", ".sentinel.yaml")
ENV_PREFIX: Final[str] = "SENTINEL_"

# Ecosystem tags. ``common`` is universal and always selected.
ECOSYSTEM_GO: Final[str] = "go"
ECOSYSTEM_PYTHON: Final[str] = "python"
ECOSYSTEM_NODE: Final[str] = "node"
ECOSYSTEM_JAVA: Final[str] = "java"
ECOSYSTEM_COMMON: Final[str] = "common"
LANGUAGE_ECOSYSTEMS: Final[tuple[str, ...]] = (
    ECOSYSTEM_GO,
    ECOSYSTEM_PYTHON,
    ECOSYSTEM_NODE,
    ECOSYSTEM_JAVA,
)
ALL_ECOSYSTEMS: Final[tuple[str, ...]] = (*LANGUAGE_ECOSYSTEMS, ECOSYSTEM_COMMON)

DEFAULT_CHECK_TIMEOUT_SECONDS: Final[float] = 300.0
DEFAULT_COVERAGE_THRESHOLD: Final[float] = 80.0
DEFAULT_REQUIRED_FILES: Final[tuple[str, ...]] = ("README.md", "LICENSE")
DEFAULT_MESSAGE_LIMIT: Final[int] = 200

__all__ = [
    "ALL_ECOSYSTEMS",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CHECK_TIMEOUT_SECONDS",
    "DEFAULT_CONFIG_FILES",
    "DEFAULT_COVERAGE_THRESHOLD",
    "DEFAULT_MESSAGE_LIMIT",
    "DEFAULT_REQUIRED_FILES",
    "ECOSYSTEM_COMMON",
    "ECOSYSTEM_GO",
    "ECOSYSTEM_JAVA",
    "ECOSYSTEM_NODE",
    "ECOSYSTEM_PYTHON",
    "ENV_PREFIX",
    "LANGUAGE_ECOSYSTEMS",
]
