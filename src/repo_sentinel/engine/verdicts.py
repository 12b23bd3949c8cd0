"""
repo-sentinel — verdict and check contract model

File: src/repo_sentinel/engine/verdicts.py
Last updated: 2026-10-19

Purpose
- Define the immutable outcome of one check (``Verdict``) and the static data a
  check is registered with (``CheckMetadata``).
- Define the ``Check`` capability protocol the pipeline depends on.

Normative behavior
- Severity is totally ordered: PASS < INFO < WARN < FAIL.
- Criticality is metadata, not an outcome; the veto rule is the conjunction of
  ``metadata.critical`` and ``severity is FAIL``.
- A non-PASS verdict must carry a non-empty message; PASS defaults to ``"ok"``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, NoReturn, Protocol, runtime_checkable

from repo_sentinel.constants import DEFAULT_MESSAGE_LIMIT, ECOSYSTEM_COMMON
from repo_sentinel.utils.concurrency import CancellationToken
from repo_sentinel.utils.tools import ToolLocator, which

if TYPE_CHECKING:
    from repo_sentinel.engine.execution import CommandExecutor

DEFAULT_PASS_MESSAGE: Final[str] = "ok"
_MAX_ID_LENGTH: Final[int] = 128


class Severity(IntEnum):
    """Verdict severity ordered by increasing urgency."""

    PASS = 0
    INFO = 1
    WARN = 2
    FAIL = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, value: object) -> Severity:
        if isinstance(value, Severity):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if any(item.value == value for item in cls):
                return cls(value)
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "WARNING":
                normalized = "WARN"
            if normalized in cls.__members__:
                return cls[normalized]
        allowed = ", ".join(item.label for item in cls)
        raise ValueError(f"invalid severity {value!r}; expected one of: {allowed}")


@dataclass(frozen=True, slots=True)
class Verdict:
    """Immutable outcome of exactly one check invocation."""

    check_id: str
    name: str
    severity: Severity
    message: str = ""
    ecosystem: str = ECOSYSTEM_COMMON

    def __post_init__(self) -> None:
        object.__setattr__(self, "check_id", _as_identifier(self.check_id, "Verdict.check_id"))
        object.__setattr__(self, "name", _as_text(self.name, "Verdict.name") or self.check_id)
        object.__setattr__(self, "severity", Severity.from_label(self.severity))
        message = _as_text(self.message, "Verdict.message")
        if not message:
            if self.severity is not Severity.PASS:
                _fail("Verdict.message", f"required for {self.severity.label} verdicts")
            message = DEFAULT_PASS_MESSAGE
        object.__setattr__(self, "message", message)

    @property
    def passed(self) -> bool:
        return self.severity <= Severity.INFO

    def with_severity(self, severity: Severity) -> Verdict:
        return Verdict(
            check_id=self.check_id,
            name=self.name,
            severity=severity,
            message=self.message,
            ecosystem=self.ecosystem,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "check_id": self.check_id,
            "name": self.name,
            "severity": self.severity.label,
            "message": self.message,
            "ecosystem": self.ecosystem,
        }


@dataclass(frozen=True, slots=True)
class CheckMetadata:
    """Static descriptive data attached to a check at registration time."""

    check_id: str
    name: str
    ecosystems: frozenset[str]
    order: int
    critical: bool = False
    description: str = ""
    suggestion: str | None = None
    optional: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "check_id", _as_identifier(self.check_id, "CheckMetadata.check_id")
        )
        object.__setattr__(self, "name", _as_text(self.name, "CheckMetadata.name"))
        if not self.name:
            _fail("CheckMetadata.name", "must not be empty")
        tags = _as_tags(self.ecosystems, "CheckMetadata.ecosystems")
        object.__setattr__(self, "ecosystems", tags)
        if isinstance(self.order, bool) or not isinstance(self.order, int):
            _fail("CheckMetadata.order", f"expected integer, got {type(self.order).__name__}")
        if not isinstance(self.critical, bool):
            _fail("CheckMetadata.critical", "expected boolean")
        if not isinstance(self.optional, bool):
            _fail("CheckMetadata.optional", "expected boolean")
        if self.critical and self.optional:
            _fail("CheckMetadata.optional", "critical checks cannot be optional")

    @property
    def universal(self) -> bool:
        return ECOSYSTEM_COMMON in self.ecosystems

    def to_dict(self) -> dict[str, object]:
        return {
            "check_id": self.check_id,
            "name": self.name,
            "description": self.description,
            "ecosystems": sorted(self.ecosystems),
            "order": self.order,
            "critical": self.critical,
            "optional": self.optional,
            "suggestion": self.suggestion,
        }


@dataclass(slots=True)
class CheckContext:
    """Per-invocation context handed to ``Check.run``."""

    path: Path
    executor: CommandExecutor
    config: Mapping[str, Any] = field(default_factory=dict)
    ecosystems: frozenset[str] = frozenset()
    locator: ToolLocator = which
    cancel_token: CancellationToken | None = None

    def setting(self, *keys: str, default: Any = None) -> Any:
        """Return a nested config value, or ``default`` when any level is missing."""
        cursor: Any = self.config
        for key in keys:
            if not isinstance(cursor, Mapping) or key not in cursor:
                return default
            cursor = cursor[key]
        return cursor

    def source_path(self, ecosystem: str) -> Path:
        source_dir = self.setting("languages", ecosystem, "source_dir", default="")
        if isinstance(source_dir, str) and source_dir.strip():
            return self.path / source_dir.strip()
        return self.path

    def has_tool(self, name: str) -> bool:
        return self.locator(name) is not None


@runtime_checkable
class Check(Protocol):
    """Capability implemented by every built-in and external check."""

    check_id: str
    name: str

    def run(self, context: CheckContext) -> Verdict | Awaitable[Verdict]: ...


@dataclass(frozen=True, slots=True)
class Registration:
    """One check paired with its metadata."""

    check: Check
    metadata: CheckMetadata

    @property
    def check_id(self) -> str:
        return self.metadata.check_id


@dataclass(frozen=True, slots=True)
class VerdictBuilder:
    """Verdict factory bound to one check identity."""

    check_id: str
    name: str
    ecosystem: str = ECOSYSTEM_COMMON

    def passed(self, message: str = DEFAULT_PASS_MESSAGE) -> Verdict:
        return self._build(Severity.PASS, message)

    def info(self, message: str) -> Verdict:
        return self._build(Severity.INFO, message)

    def warn(self, message: str) -> Verdict:
        return self._build(Severity.WARN, message)

    def fail(self, message: str) -> Verdict:
        return self._build(Severity.FAIL, message)

    def tool_not_installed(self, tool: str, hint: str | None = None) -> Verdict:
        """Graceful-degradation verdict: a missing tool is never a failure."""
        suffix = f" ({hint})" if hint else ""
        return self._build(Severity.INFO, f"{tool} not installed{suffix}")

    def from_severity(self, severity: Severity, message: str) -> Verdict:
        return self._build(severity, message)

    def _build(self, severity: Severity, message: str) -> Verdict:
        return Verdict(
            check_id=self.check_id,
            name=self.name,
            severity=severity,
            message=message,
            ecosystem=self.ecosystem,
        )


def truncate_message(text: str, limit: int = DEFAULT_MESSAGE_LIMIT) -> str:
    """Collapse ``text`` to one trimmed string of at most ``limit`` chars plus an ellipsis."""
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit] + "..."


def _as_identifier(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    parsed = value.strip()
    if not parsed:
        _fail(path, "must not be empty")
    if len(parsed) > _MAX_ID_LENGTH:
        _fail(path, f"must be <= {_MAX_ID_LENGTH} characters")
    return parsed


def _as_text(value: object, path: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    return value.strip()


def _as_tags(value: object, path: str) -> frozenset[str]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        _fail(path, f"expected a collection of tags, got {type(value).__name__}")
    tags: set[str] = set()
    for index, item in enumerate(value):
        tags.add(_as_identifier(item, f"{path}[{index}]").lower())
    if not tags:
        _fail(path, "must contain at least one ecosystem tag")
    return frozenset(tags)


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


__all__ = [
    "DEFAULT_PASS_MESSAGE",
    "Check",
    "CheckContext",
    "CheckMetadata",
    "Registration",
    "Severity",
    "Verdict",
    "VerdictBuilder",
    "truncate_message",
]
