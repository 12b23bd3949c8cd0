"""
repo-sentinel — runtime config loader.

File: src/repo_sentinel/config/loader.py
Last updated: 2026-10-19

Purpose
- Load the effective config from defaults, the repository config file,
  ``SENTINEL_`` environment variables, and CLI overrides.

What should be included in this file
- Precedence logic: CLI > env (SENTINEL_) > file > defaults.
- ``.sentinel.toml`` via ``tomllib``; ``.sentinel.yaml`` via PyYAML.
- Deterministic environment variable mapping and coercion.
- Deterministic JSON dump of the effective config.

Functional requirements
- An explicitly requested file that is missing is an error; an absent
  default file is not.
- Every layer is re-validated so errors carry the offending dotted path.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

import structlog
import yaml

from repo_sentinel.config.schema import assert_valid_config, default_config, merge_config
from repo_sentinel.constants import DEFAULT_CONFIG_FILES, ENV_PREFIX

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

# Sections whose keys are user-chosen names; they have no env bindings.
_UNBOUND_SECTIONS: Final[frozenset[str]] = frozenset({"profiles", "targets", "external"})

ValueKind = Literal["str", "int", "float", "bool", "list"]

_logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _Binding:
    path: tuple[str, ...]
    value_type: ValueKind


# Short aliases checked after the generated bindings.
_ALIASES: Final[Mapping[str, _Binding]] = {
    f"{ENV_PREFIX}PROFILE": _Binding(("run", "profile"), "str"),
    f"{ENV_PREFIX}TARGET": _Binding(("run", "target"), "str"),
    f"{ENV_PREFIX}FAIL_ON": _Binding(("checks", "fail_on"), "str"),
    f"{ENV_PREFIX}LOG_LEVEL": _Binding(("observability", "log_level"), "str"),
    f"{ENV_PREFIX}LOG_FORMAT": _Binding(("observability", "log_format"), "str"),
}


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or overrides cannot be coerced."""


def load_config(
    repo_path: str | Path = ".",
    *,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    cli_overrides: Mapping[str, object] | None = None,
) -> dict[str, Any]:
    """Load effective config with precedence CLI > env > file > defaults."""

    env_map = dict(os.environ if environ is None else environ)
    resolved = resolve_config_path(repo_path, config_path)
    file_payload = load_config_file(resolved) if resolved is not None else {}

    merged = assert_valid_config(merge_config(default_config(), file_payload))
    merged = merge_config(merged, collect_env_overrides(env_map))
    merged = merge_config(merged, _materialize_cli_overrides(cli_overrides or {}))
    effective = assert_valid_config(merged)

    _logger.debug(
        "config_loaded",
        source=str(resolved) if resolved is not None else None,
        env_overrides=sorted(key for key in env_map if key.startswith(ENV_PREFIX)),
    )
    return effective


def resolve_config_path(
    repo_path: str | Path = ".",
    config_path: str | Path | None = None,
) -> Path | None:
    """Return the config file to read, or ``None`` when only defaults apply."""

    if config_path is not None:
        explicit = Path(config_path).expanduser().resolve()
        if not explicit.is_file():
            raise ConfigLoadError(f"config file not found: {explicit}")
        return explicit

    root = Path(repo_path).expanduser().resolve()
    for name in DEFAULT_CONFIG_FILES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Parse one TOML or YAML config file into a raw mapping."""

    file_path = Path(path)
    if file_path.suffix.lower() in (".yaml", ".yml"):
        parsed = _load_yaml(file_path)
    else:
        parsed = _load_toml(file_path)
    if not isinstance(parsed, dict):
        raise ConfigLoadError(f"config root must be an object: {file_path}")
    return parsed


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    bindings = _build_bindings(default_config())
    for env_name, binding in _ALIASES.items():
        bindings.setdefault(env_name, binding)

    overrides: dict[str, Any] = {}
    for env_name in sorted(bindings):
        raw = environ.get(env_name)
        if raw is None:
            continue
        binding = bindings[env_name]
        _set_nested(overrides, binding.path, _coerce_env(raw, binding, env_name))
    return overrides


def _load_toml(path: Path) -> Any:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _load_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc
    return {} if payload is None else payload


def _build_bindings(config: Mapping[str, object]) -> dict[str, _Binding]:
    bindings: dict[str, _Binding] = {}
    for path, value in _iter_leaf_paths(config):
        if path[0] in _UNBOUND_SECTIONS:
            continue
        kind = _kind_for_value(value)
        if kind is None:
            continue
        bindings[_env_name_for_path(path)] = _Binding(path=path, value_type=kind)
    return bindings


def _iter_leaf_paths(
    payload: Mapping[str, object],
    prefix: tuple[str, ...] = (),
) -> list[tuple[tuple[str, ...], object]]:
    pairs: list[tuple[tuple[str, ...], object]] = []
    for key in sorted(payload):
        value = payload[key]
        path = (*prefix, key)
        if isinstance(value, Mapping):
            pairs.extend(_iter_leaf_paths(value, path))
        else:
            pairs.append((path, value))
    return pairs


def _kind_for_value(value: object) -> ValueKind | None:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, list):
        return "list"
    return None


def _coerce_env(raw: str, binding: _Binding, env_name: str) -> object:
    value = raw.strip()
    dotted = ".".join(binding.path)
    if binding.value_type == "str":
        return value
    if binding.value_type == "list":
        return [item.strip() for item in value.split(",") if item.strip()]
    if binding.value_type == "int":
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {dotted} must be an integer") from exc
    if binding.value_type == "float":
        try:
            return float(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {dotted} must be a number") from exc

    lowered = value.lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ConfigLoadError(
        f"{env_name} -> {dotted} must be a boolean (true/false/1/0/yes/no/on/off)"
    )


def _materialize_cli_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    """Expand dotted keys (``checks.fail_on``); ``None`` values mean "not given"."""

    payload: dict[str, Any] = {}
    for key in sorted(cli_overrides):
        value = cli_overrides[key]
        if value is None:
            continue
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        _set_nested(payload, path, value)
    return payload


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        next_node = cursor.get(part)
        if not isinstance(next_node, dict):
            next_node = {}
            cursor[part] = next_node
        cursor = next_node
    cursor[path[-1]] = value


def _env_name_for_path(path: tuple[str, ...]) -> str:
    return ENV_PREFIX + "_".join(part.upper() for part in path)


__all__ = [
    "ConfigLoadError",
    "collect_env_overrides",
    "dump_effective_config",
    "load_config",
    "load_config_file",
    "resolve_config_path",
]
