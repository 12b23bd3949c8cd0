"""
repo-sentinel — configuration schema and validation.

File: src/repo_sentinel/config/schema.py
Last updated: 2026-10-19

Purpose
- Define the typed shape and deterministic defaults of ``.sentinel.toml``.
- Validate raw mappings into a normalized config with structured issues.

What should be included in this file
- Section TypedDicts and ``DEFAULT_CONFIG``.
- Strict validation: unknown keys and wrong types are rejected with
  dotted paths (``checks.timeouts.go:build``).
- Deterministic deep merge used by the loader for layering sources.

Functional requirements
- ``fail_on`` accepts ``warn``/``fail``; timeouts must be positive.
- Profile/target tables carry only ``description`` and ``disabled``.
- ``[[external]]`` entries need ``id`` and ``command``; ids are unique.

Non-functional requirements
- No filesystem or environment access; pure functions over mappings.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, NotRequired, TypedDict

from repo_sentinel.constants import (
    ALL_ECOSYSTEMS,
    CONFIG_SCHEMA_VERSION,
    DEFAULT_CHECK_TIMEOUT_SECONDS,
    DEFAULT_COVERAGE_THRESHOLD,
    DEFAULT_REQUIRED_FILES,
    ECOSYSTEM_COMMON,
)

FAIL_ON_VALUES: Final[tuple[str, ...]] = ("warn", "fail")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")

PYTHON_TOOL_CHOICES: Final[Mapping[str, tuple[str, ...]]] = {
    "test_runner": ("auto", "pytest", "unittest"),
    "formatter": ("auto", "ruff", "black"),
    "linter": ("auto", "ruff", "flake8"),
    "type_checker": ("auto", "mypy", "pyright"),
}
NODE_PACKAGE_MANAGERS: Final[tuple[str, ...]] = ("auto", "npm", "yarn", "pnpm")
JAVA_BUILD_TOOLS: Final[tuple[str, ...]] = ("auto", "maven", "gradle")

_POLICY_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
_CHECK_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_.-]*(:[a-z0-9][a-z0-9_.-]*)?$")
_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_SENSITIVE_KEY_TOKENS: Final[frozenset[str]] = frozenset(
    {"apikey", "password", "passwd", "secret", "token", "credential", "credentials"}
)


class MetaConfig(TypedDict):
    schema_version: int


class LanguageConfig(TypedDict):
    explicit: list[str]
    auto_detect: bool


class ChecksConfig(TypedDict):
    disabled: list[str]
    fail_on: str
    default_timeout_seconds: float
    timeouts: dict[str, float]


class FilesConfig(TypedDict):
    required: list[str]


class CoverageConfig(TypedDict):
    threshold: float


class GoSettings(TypedDict):
    source_dir: str


class PythonSettings(TypedDict):
    source_dir: str
    test_runner: str
    formatter: str
    linter: str
    type_checker: str


class NodeSettings(TypedDict):
    source_dir: str
    package_manager: str


class JavaSettings(TypedDict):
    source_dir: str
    build_tool: str


class LanguagesConfig(TypedDict):
    go: GoSettings
    python: PythonSettings
    node: NodeSettings
    java: JavaSettings


class ObservabilityConfig(TypedDict):
    log_level: str
    log_format: str


class RunConfig(TypedDict):
    profile: str
    target: str


class PolicyTable(TypedDict, total=False):
    description: str
    disabled: list[str]


class ExternalEntry(TypedDict):
    id: str
    command: str
    name: NotRequired[str]
    args: NotRequired[list[str]]
    ecosystems: NotRequired[list[str]]
    order: NotRequired[int]
    critical: NotRequired[bool]
    description: NotRequired[str]
    suggestion: NotRequired[str]


class SentinelConfig(TypedDict):
    meta: MetaConfig
    language: LanguageConfig
    checks: ChecksConfig
    files: FilesConfig
    coverage: CoverageConfig
    languages: LanguagesConfig
    observability: ObservabilityConfig
    run: RunConfig
    profiles: NotRequired[dict[str, PolicyTable]]
    targets: NotRequired[dict[str, PolicyTable]]
    external: NotRequired[list[ExternalEntry]]


DEFAULT_CONFIG: Final[SentinelConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "language": {"explicit": [], "auto_detect": True},
    "checks": {
        "disabled": [],
        "fail_on": "fail",
        "default_timeout_seconds": DEFAULT_CHECK_TIMEOUT_SECONDS,
        "timeouts": {},
    },
    "files": {"required": list(DEFAULT_REQUIRED_FILES)},
    "coverage": {"threshold": DEFAULT_COVERAGE_THRESHOLD},
    "languages": {
        "go": {"source_dir": ""},
        "python": {
            "source_dir": "",
            "test_runner": "auto",
            "formatter": "auto",
            "linter": "auto",
            "type_checker": "auto",
        },
        "node": {"source_dir": "", "package_manager": "auto"},
        "java": {"source_dir": "", "build_tool": "auto"},
    },
    "observability": {"log_level": "WARNING", "log_format": "text"},
    "run": {"profile": "", "target": ""},
    "profiles": {},
    "targets": {},
    "external": [],
}

_REQUIRED_SECTIONS: Final[frozenset[str]] = frozenset(
    {"meta", "language", "checks", "files", "coverage", "languages", "observability", "run"}
)


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> SentinelConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "update .sentinel.toml to the current schema"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade repo-sentinel"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``; lists are replaced."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a fully layered config and return structured issues."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    allowed = {*_REQUIRED_SECTIONS, "profiles", "targets", "external"}
    _reject_unknown_keys(payload, allowed, "", issues)
    _require_keys(payload, set(_REQUIRED_SECTIONS), "", issues)

    out: dict[str, Any] = {}
    validators: tuple[tuple[str, Callable[[dict[str, object], str], dict[str, Any]]], ...] = (
        ("meta", lambda section, path: _validate_meta(section, path, issues)),
        ("language", lambda section, path: _validate_language(section, path, issues)),
        ("checks", lambda section, path: _validate_checks(section, path, issues)),
        ("files", lambda section, path: _validate_files(section, path, issues)),
        ("coverage", lambda section, path: _validate_coverage(section, path, issues)),
        ("languages", lambda section, path: _validate_languages(section, path, issues)),
        ("observability", lambda section, path: _validate_observability(section, path, issues)),
        ("run", lambda section, path: _validate_run(section, path, issues)),
        ("profiles", lambda section, path: _validate_policies(section, path, issues)),
        ("targets", lambda section, path: _validate_policies(section, path, issues)),
    )
    for key, validator in validators:
        _section(payload, key=key, issues=issues, validator=validator, out=out)

    if "external" in payload:
        out["external"] = _validate_external(payload["external"], "external", issues)
    return out


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        return
    section_obj = _as_object(raw, key, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, key)


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        field = _join(path, "schema_version")
        parsed = _as_int(payload["schema_version"], field, issues, minimum=1)
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != CONFIG_SCHEMA_VERSION:
                issues.add(field, migration_guidance(parsed))
    return out


def _validate_language(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"explicit", "auto_detect"}
    _reject_unknown_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "explicit" in payload:
        field = _join(path, "explicit")
        tags = _as_str_list(payload["explicit"], field, issues)
        if tags is not None:
            lowered = [tag.lower() for tag in tags]
            for index, tag in enumerate(lowered):
                if tag not in ALL_ECOSYSTEMS:
                    expected = ", ".join(ALL_ECOSYSTEMS)
                    issues.add(
                        f"{field}[{index}]", f"unknown ecosystem {tag!r}; expected: {expected}"
                    )
            out["explicit"] = lowered
    if "auto_detect" in payload:
        parsed = _as_bool(payload["auto_detect"], _join(path, "auto_detect"), issues)
        if parsed is not None:
            out["auto_detect"] = parsed
    return out


def _validate_checks(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"disabled", "fail_on", "default_timeout_seconds", "timeouts"}
    _reject_unknown_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "disabled" in payload:
        parsed_disabled = _as_str_list(payload["disabled"], _join(path, "disabled"), issues)
        if parsed_disabled is not None:
            out["disabled"] = parsed_disabled

    if "fail_on" in payload:
        parsed_fail_on = _as_enum(
            payload["fail_on"],
            _join(path, "fail_on"),
            issues,
            allowed_values=FAIL_ON_VALUES,
            lower=True,
        )
        if parsed_fail_on is not None:
            out["fail_on"] = parsed_fail_on

    if "default_timeout_seconds" in payload:
        parsed_default = _as_float(
            payload["default_timeout_seconds"],
            _join(path, "default_timeout_seconds"),
            issues,
            positive=True,
        )
        if parsed_default is not None:
            out["default_timeout_seconds"] = parsed_default

    if "timeouts" in payload:
        timeouts_path = _join(path, "timeouts")
        table = _as_object(payload["timeouts"], timeouts_path, issues)
        if table is not None:
            parsed_timeouts: dict[str, float] = {}
            for check_id in sorted(table):
                seconds = _as_float(
                    table[check_id], _join(timeouts_path, check_id), issues, positive=True
                )
                if seconds is not None:
                    parsed_timeouts[check_id] = seconds
            out["timeouts"] = parsed_timeouts
    return out


def _validate_files(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"required"}, path, issues)
    out: dict[str, Any] = {}
    if "required" in payload:
        parsed = _as_str_list(payload["required"], _join(path, "required"), issues)
        if parsed is not None:
            out["required"] = parsed
    return out


def _validate_coverage(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"threshold"}, path, issues)
    out: dict[str, Any] = {}
    if "threshold" in payload:
        field = _join(path, "threshold")
        parsed = _as_float(payload["threshold"], field, issues, minimum=0.0)
        if parsed is not None:
            if parsed > 100.0:
                issues.add(field, "must be <= 100")
            else:
                out["threshold"] = parsed
    return out


def _validate_languages(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"go", "python", "node", "java"}, path, issues)

    out: dict[str, Any] = {}
    choices: dict[str, Mapping[str, tuple[str, ...]]] = {
        "go": {},
        "python": PYTHON_TOOL_CHOICES,
        "node": {"package_manager": NODE_PACKAGE_MANAGERS},
        "java": {"build_tool": JAVA_BUILD_TOOLS},
    }
    for ecosystem, enum_fields in choices.items():
        raw = payload.get(ecosystem)
        if raw is None:
            continue
        section_path = _join(path, ecosystem)
        section = _as_object(raw, section_path, issues)
        if section is None:
            continue
        _reject_unknown_keys(section, {"source_dir", *enum_fields}, section_path, issues)

        settings: dict[str, Any] = {}
        if "source_dir" in section:
            parsed_dir = _as_relative_dir(
                section["source_dir"], _join(section_path, "source_dir"), issues
            )
            if parsed_dir is not None:
                settings["source_dir"] = parsed_dir
        for key in sorted(enum_fields):
            if key not in section:
                continue
            parsed_choice = _as_enum(
                section[key],
                _join(section_path, key),
                issues,
                allowed_values=enum_fields[key],
                lower=True,
            )
            if parsed_choice is not None:
                settings[key] = parsed_choice
        out[ecosystem] = settings
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"log_level", "log_format"}, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        raw_level = payload["log_level"]
        if isinstance(raw_level, str):
            raw_level = raw_level.strip().upper()
        parsed_level = _as_enum(
            raw_level, _join(path, "log_level"), issues, allowed_values=LOG_LEVELS
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level
    if "log_format" in payload:
        parsed_format = _as_enum(
            payload["log_format"],
            _join(path, "log_format"),
            issues,
            allowed_values=LOG_FORMATS,
            lower=True,
        )
        if parsed_format is not None:
            out["log_format"] = parsed_format
    return out


def _validate_run(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"profile", "target"}, path, issues)

    out: dict[str, Any] = {}
    for key in ("profile", "target"):
        if key not in payload:
            continue
        value = payload[key]
        field = _join(path, key)
        if not isinstance(value, str):
            issues.add(field, f"expected string, got {type(value).__name__}")
            continue
        out[key] = value.strip()
    return out


def _validate_policies(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in sorted(payload):
        policy_path = _join(path, name)
        if not _POLICY_NAME_PATTERN.fullmatch(name):
            issues.add(policy_path, "name must match [a-z][a-z0-9_-]*")
            continue
        table = _as_object(payload[name], policy_path, issues)
        if table is None:
            continue
        _reject_unknown_keys(table, {"description", "disabled"}, policy_path, issues)

        policy: dict[str, Any] = {"disabled": []}
        if "description" in table:
            description = _as_str(table["description"], _join(policy_path, "description"), issues)
            if description is not None:
                policy["description"] = description
        if "disabled" in table:
            disabled = _as_str_list(table["disabled"], _join(policy_path, "disabled"), issues)
            if disabled is not None:
                policy["disabled"] = disabled
        out[name] = policy
    return out


def _validate_external(
    payload: object, path: str, issues: _IssueCollector
) -> list[dict[str, Any]]:
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
        issues.add(path, f"expected list of tables, got {type(payload).__name__}")
        return []

    allowed = {
        "id",
        "name",
        "command",
        "args",
        "ecosystems",
        "order",
        "critical",
        "description",
        "suggestion",
    }
    entries: list[dict[str, Any]] = []
    seen: set[str] = set()
    for index, raw in enumerate(payload):
        entry_path = f"{path}[{index}]"
        entry = _as_object(raw, entry_path, issues)
        if entry is None:
            continue
        _reject_unknown_keys(entry, allowed, entry_path, issues)
        _require_keys(entry, {"id", "command"}, entry_path, issues)

        out: dict[str, Any] = {}
        if "id" in entry:
            check_id = _as_str(entry["id"], _join(entry_path, "id"), issues)
            if check_id is not None:
                if not _CHECK_ID_PATTERN.fullmatch(check_id):
                    issues.add(
                        _join(entry_path, "id"),
                        "must be lower-case, optionally namespaced (example: custom:docs)",
                    )
                elif check_id in seen:
                    issues.add(_join(entry_path, "id"), f"duplicate external check id {check_id!r}")
                else:
                    seen.add(check_id)
                    out["id"] = check_id
        for key in ("name", "command", "description", "suggestion"):
            if key in entry:
                text = _as_str(entry[key], _join(entry_path, key), issues)
                if text is not None:
                    out[key] = text
        if "args" in entry:
            args = _as_str_list(entry["args"], _join(entry_path, "args"), issues, allow_empty=True)
            if args is not None:
                out["args"] = args
        if "ecosystems" in entry:
            field = _join(entry_path, "ecosystems")
            tags = _as_str_list(entry["ecosystems"], field, issues)
            if tags is not None:
                lowered = [tag.lower() for tag in tags]
                unknown = sorted(set(lowered) - set(ALL_ECOSYSTEMS))
                if unknown:
                    issues.add(field, f"unknown ecosystems: {', '.join(unknown)}")
                else:
                    out["ecosystems"] = lowered or [ECOSYSTEM_COMMON]
        if "order" in entry:
            order = _as_int(entry["order"], _join(entry_path, "order"), issues, minimum=0)
            if order is not None:
                out["order"] = order
        if "critical" in entry:
            critical = _as_bool(entry["critical"], _join(entry_path, "critical"), issues)
            if critical is not None:
                out["critical"] = critical
        entries.append(out)
    return entries


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_str_list(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allow_empty: bool = False,
) -> list[str] | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        issues.add(path, f"expected list of strings, got {type(value).__name__}")
        return None
    out: list[str] = []
    for index, item in enumerate(value):
        item_path = f"{path}[{index}]"
        if allow_empty and isinstance(item, str):
            out.append(item)
            continue
        parsed = _as_str(item, item_path, issues)
        if parsed is not None:
            out.append(parsed)
    return out


def _as_relative_dir(value: object, path: str, issues: _IssueCollector) -> str | None:
    """Empty means the repository root; absolute paths and ``..`` escapes are rejected."""

    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    normalized = parsed.replace("\\", "/")
    if normalized.startswith("/") or ".." in normalized.split("/"):
        issues.add(path, "must be a path inside the repository")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
    positive: bool = False,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if positive and parsed <= 0:
        issues.add(path, "must be > 0")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum:g}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
    lower: bool = False,
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if lower:
        parsed = parsed.lower()
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if _looks_sensitive_key(key):
            issues.add(key_path, "secrets do not belong in .sentinel.toml")
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _looks_sensitive_key(key: str) -> bool:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    normalized = _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")
    if "api_key" in normalized or "private_key" in normalized:
        return True
    return any(token in _SENSITIVE_KEY_TOKENS for token in normalized.split("_") if token)


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: _deep_copy_value(value[key]) for key in sorted(value)}


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, (list, tuple)):
        return [_deep_copy_value(item) for item in value]
    return copy.deepcopy(value)


__all__ = [
    "DEFAULT_CONFIG",
    "FAIL_ON_VALUES",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "JAVA_BUILD_TOOLS",
    "NODE_PACKAGE_MANAGERS",
    "PYTHON_TOOL_CHOICES",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "SentinelConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
