"""
repo-sentinel — built-in check battery.

File: src/repo_sentinel/checks/__init__.py
Last updated: 2026-10-19

Purpose
- Compose the per-ecosystem registration groups into one registry.

Functional requirements
- Group order is fixed so equal-``order`` ties resolve the same way on every run.
- External checks register last; an id collision with a built-in is a
  ``RegistryError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from repo_sentinel.checks import common, devops, external, go, java, node, python
from repo_sentinel.engine.registry import CheckRegistry, RegistrationGroup

DEFAULT_GROUPS: Final[tuple[RegistrationGroup, ...]] = (
    go.register,
    python.register,
    node.register,
    java.register,
    common.register,
    devops.register,
    external.register,
)


def build_registry(config: Mapping[str, Any] | None = None) -> CheckRegistry:
    """Build the full catalog of built-in and configured external checks."""

    return CheckRegistry.build(DEFAULT_GROUPS, config)


__all__ = ["DEFAULT_GROUPS", "build_registry"]
