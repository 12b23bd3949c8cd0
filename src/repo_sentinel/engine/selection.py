"""
repo-sentinel — check selection filters

File: src/repo_sentinel/engine/selection.py
Last updated: 2026-10-19

Purpose
- Decide which selected registrations are disabled for a run.
- Provide application profiles (what kind of project) and maturity targets
  (how far along it is) as named sets of disabled check patterns.

Pattern forms
- ``*`` every check; ``*:*`` every namespaced check.
- ``*:suffix`` e.g. ``*:deps``; ``prefix:*`` e.g. ``go:*``.
- Anything else is an exact id or a legacy alias from ``CHECK_ALIASES``.

User definitions
- ``[profiles.<name>]`` / ``[targets.<name>]`` config tables, and YAML files in
  ``~/.config/sentinel/{profiles,targets}/``; they override built-ins by name.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

import structlog
import yaml

from repo_sentinel.engine.verdicts import Registration

PolicyKind = Literal["profile", "target"]
PolicySource = Literal["builtin", "config", "user"]

USER_CONFIG_DIR: Final[Path] = Path("~/.config/sentinel")

CHECK_ALIASES: Final[Mapping[str, str]] = {
    "go_mod": "go:module",
    "build": "go:build",
    "tests": "go:tests",
    "gofmt": "go:format",
    "govet": "go:vet",
    "coverage": "go:coverage",
    "deps": "go:deps",
    "files": "common:files",
    "dockerfile": "common:dockerfile",
    "ci": "common:ci",
    "secrets": "common:secrets",
    "license": "common:license",
    "changelog": "common:changelog",
    "contributing": "common:contributing",
    "editorconfig": "common:editorconfig",
    "precommit": "common:precommit",
}

_logger = structlog.get_logger(__name__)


class SelectionError(ValueError):
    """Raised for unknown profile/target names or malformed definitions."""


@dataclass(frozen=True, slots=True)
class SelectionPolicy:
    """Named set of disabled check patterns."""

    name: str
    kind: PolicyKind
    description: str
    disabled: tuple[str, ...]
    source: PolicySource = "builtin"

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "disabled": list(self.disabled),
            "source": self.source,
        }


BUILTIN_PROFILES: Final[Mapping[str, SelectionPolicy]] = {
    "cli": SelectionPolicy(
        name="cli",
        kind="profile",
        description="Command-line tool - skip deployment checks",
        disabled=("common:dockerfile", "devops:helm"),
    ),
    "api": SelectionPolicy(
        name="api",
        kind="profile",
        description="Web service/API - all operational checks enabled",
        disabled=(),
    ),
    "library": SelectionPolicy(
        name="library",
        kind="profile",
        description="Reusable package/library - focus on code quality",
        disabled=("common:dockerfile", "devops:*"),
    ),
    "desktop": SelectionPolicy(
        name="desktop",
        kind="profile",
        description="Desktop application - focus on user-facing quality",
        disabled=("common:dockerfile", "devops:helm"),
    ),
}

BUILTIN_TARGETS: Final[Mapping[str, SelectionPolicy]] = {
    "poc": SelectionPolicy(
        name="poc",
        kind="target",
        description="Proof of Concept - minimal checks for early development",
        disabled=(
            "common:license",
            "common:changelog",
            "common:contributing",
            "common:precommit",
            "common:editorconfig",
            "common:secrets",
            "*:coverage",
            "*:deps",
            "python:type",
        ),
    ),
    "production": SelectionPolicy(
        name="production",
        kind="target",
        description="Production application - all checks enabled",
        disabled=(),
    ),
}


def matches_pattern(check_id: str, pattern: str) -> bool:
    """Return whether ``check_id`` matches one wildcard ``pattern``."""

    pattern = pattern.strip()
    if not pattern:
        return False
    if "*" not in pattern:
        return check_id == pattern
    if pattern == "*":
        return True
    if pattern == "*:*":
        return ":" in check_id
    if pattern.startswith("*:"):
        return check_id.endswith(":" + pattern[2:])
    if pattern.endswith(":*"):
        return check_id.startswith(pattern[:-2] + ":")
    return False


def is_disabled(check_id: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if matches_pattern(check_id, pattern):
            return True
        stripped = pattern.strip()
        if CHECK_ALIASES.get(stripped) == check_id:
            return True
        if CHECK_ALIASES.get(check_id) == stripped:
            return True
    return False


def filter_registrations(
    registrations: Sequence[Registration],
    disabled: Iterable[str],
) -> tuple[Registration, ...]:
    """Drop disabled registrations, preserving order."""

    patterns = tuple(disabled)
    if not patterns:
        return tuple(registrations)
    kept = tuple(item for item in registrations if not is_disabled(item.check_id, patterns))
    skipped = len(registrations) - len(kept)
    if skipped:
        _logger.debug("checks_disabled", skipped=skipped, patterns=list(patterns))
    return kept


def available_policies(
    kind: PolicyKind,
    config: Mapping[str, Any] | None = None,
    *,
    user_dir: Path | None = None,
) -> dict[str, SelectionPolicy]:
    """Return built-in, user-file, and config policies; later sources win by name."""

    builtins = BUILTIN_PROFILES if kind == "profile" else BUILTIN_TARGETS
    policies: dict[str, SelectionPolicy] = dict(builtins)
    policies.update(load_user_policies(kind, user_dir=user_dir))

    section = (config or {}).get("profiles" if kind == "profile" else "targets", {})
    if isinstance(section, Mapping):
        for name in sorted(section):
            policies[name] = _policy_from_mapping(name, kind, section[name], source="config")
    return policies


def resolve_policy(
    kind: PolicyKind,
    name: str,
    config: Mapping[str, Any] | None = None,
    *,
    user_dir: Path | None = None,
) -> SelectionPolicy:
    policies = available_policies(kind, config, user_dir=user_dir)
    selected = policies.get(name.strip())
    if selected is None:
        known = ", ".join(sorted(policies))
        raise SelectionError(f"unknown {kind} {name!r}; available: {known}")
    return selected


def resolve_disabled(
    config: Mapping[str, Any],
    *,
    profile: str | None = None,
    target: str | None = None,
    user_dir: Path | None = None,
) -> tuple[str, ...]:
    """Union of ``checks.disabled`` and the selected profile/target patterns."""

    checks = config.get("checks", {})
    patterns: list[str] = list(checks.get("disabled", ()))
    run = config.get("run", {})
    profile_name = profile or run.get("profile") or None
    target_name = target or run.get("target") or None
    if profile_name:
        patterns.extend(resolve_policy("profile", profile_name, config, user_dir=user_dir).disabled)
    if target_name:
        patterns.extend(resolve_policy("target", target_name, config, user_dir=user_dir).disabled)
    return tuple(dict.fromkeys(item.strip() for item in patterns if item.strip()))


def load_user_policies(
    kind: PolicyKind,
    *,
    user_dir: Path | None = None,
) -> dict[str, SelectionPolicy]:
    """Load ``*.yaml`` policy files from the user config directory."""

    base = (user_dir or USER_CONFIG_DIR).expanduser() / f"{kind}s"
    if not base.is_dir():
        return {}

    policies: dict[str, SelectionPolicy] = {}
    for path in sorted([*base.glob("*.yaml"), *base.glob("*.yml")]):
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as exc:
            raise SelectionError(f"unable to read {kind} file {path}: {exc}") from exc
        if payload is None:
            continue
        if not isinstance(payload, Mapping):
            raise SelectionError(f"{kind} file {path} must contain a mapping")
        name = str(payload.get("name") or path.stem)
        policies[name] = _policy_from_mapping(name, kind, payload, source="user")
    return policies


def _policy_from_mapping(
    name: str,
    kind: PolicyKind,
    payload: object,
    *,
    source: PolicySource,
) -> SelectionPolicy:
    if not isinstance(payload, Mapping):
        raise SelectionError(f"{kind} {name!r} must be a mapping")
    disabled_raw = payload.get("disabled", [])
    if isinstance(disabled_raw, str) or not isinstance(disabled_raw, Sequence):
        raise SelectionError(f"{kind} {name!r}: 'disabled' must be a list of check patterns")
    disabled = tuple(str(item).strip() for item in disabled_raw if str(item).strip())
    description = str(payload.get("description") or f"user-defined {kind}")
    return SelectionPolicy(
        name=name,
        kind=kind,
        description=description,
        disabled=disabled,
        source=source,
    )


__all__ = [
    "BUILTIN_PROFILES",
    "BUILTIN_TARGETS",
    "CHECK_ALIASES",
    "SelectionError",
    "SelectionPolicy",
    "USER_CONFIG_DIR",
    "available_policies",
    "filter_registrations",
    "is_disabled",
    "load_user_policies",
    "matches_pattern",
    "resolve_disabled",
    "resolve_policy",
]
