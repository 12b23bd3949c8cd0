"""Ecosystem detection from indicator files in a repository root."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Final

import structlog

from repo_sentinel.constants import (
    ECOSYSTEM_COMMON,
    ECOSYSTEM_GO,
    ECOSYSTEM_JAVA,
    ECOSYSTEM_NODE,
    ECOSYSTEM_PYTHON,
    LANGUAGE_ECOSYSTEMS,
)

INDICATOR_FILES: Final[Mapping[str, tuple[str, ...]]] = {
    ECOSYSTEM_GO: ("go.mod", "go.sum"),
    ECOSYSTEM_PYTHON: (
        "pyproject.toml",
        "setup.py",
        "setup.cfg",
        "requirements.txt",
        "Pipfile",
        "poetry.lock",
    ),
    ECOSYSTEM_NODE: ("package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml"),
    ECOSYSTEM_JAVA: (
        "pom.xml",
        "build.gradle",
        "build.gradle.kts",
        "settings.gradle",
        "settings.gradle.kts",
        "mvnw",
        "gradlew",
    ),
}

_logger = structlog.get_logger(__name__)


class UnknownEcosystemError(ValueError):
    """Raised when an explicit ecosystem override names an unsupported tag."""


def detect(path: str | Path, source_dirs: Mapping[str, str] | None = None) -> frozenset[str]:
    """Return detected ecosystem tags for ``path``; ``common`` is always present."""

    root = Path(path)
    dirs = source_dirs or {}
    found: set[str] = {ECOSYSTEM_COMMON}
    for ecosystem in LANGUAGE_ECOSYSTEMS:
        candidates = [root]
        source_dir = dirs.get(ecosystem, "").strip()
        if source_dir:
            candidates.append(root / source_dir)
        if any(_has_indicator(base, INDICATOR_FILES[ecosystem]) for base in candidates):
            found.add(ecosystem)
    _logger.debug("ecosystems_detected", path=str(root), ecosystems=ordered_tags(found))
    return frozenset(found)


def detect_with_override(
    path: str | Path,
    explicit: Iterable[str] = (),
    *,
    auto_detect: bool = True,
    source_dirs: Mapping[str, str] | None = None,
) -> frozenset[str]:
    """Use ``explicit`` tags when given, else detect (or only ``common`` when disabled)."""

    requested = normalize_tags(explicit)
    if requested:
        return frozenset({*requested, ECOSYSTEM_COMMON})
    if not auto_detect:
        return frozenset({ECOSYSTEM_COMMON})
    return detect(path, source_dirs)


def detect_from_config(path: str | Path, config: Mapping[str, Any]) -> frozenset[str]:
    language = config.get("language", {})
    languages = config.get("languages", {})
    source_dirs = {
        ecosystem: str(settings.get("source_dir", ""))
        for ecosystem, settings in languages.items()
        if isinstance(settings, Mapping)
    }
    return detect_with_override(
        path,
        language.get("explicit", ()),
        auto_detect=bool(language.get("auto_detect", True)),
        source_dirs=source_dirs,
    )


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Lower-case, validate, and de-duplicate ecosystem tags in canonical order."""

    cleaned: set[str] = set()
    for raw in tags:
        for part in str(raw).split(","):
            tag = part.strip().lower()
            if not tag:
                continue
            if tag not in LANGUAGE_ECOSYSTEMS and tag != ECOSYSTEM_COMMON:
                supported = ", ".join(LANGUAGE_ECOSYSTEMS)
                raise UnknownEcosystemError(f"unknown ecosystem {tag!r}; supported: {supported}")
            cleaned.add(tag)
    cleaned.discard(ECOSYSTEM_COMMON)
    return ordered_tags(cleaned)


def ordered_tags(tags: Iterable[str]) -> tuple[str, ...]:
    present = set(tags)
    ordered = [tag for tag in (*LANGUAGE_ECOSYSTEMS, ECOSYSTEM_COMMON) if tag in present]
    ordered.extend(sorted(present - set(ordered)))
    return tuple(ordered)


def _has_indicator(base: Path, names: tuple[str, ...]) -> bool:
    return any((base / name).is_file() for name in names)


__all__ = [
    "INDICATOR_FILES",
    "UnknownEcosystemError",
    "detect",
    "detect_from_config",
    "detect_with_override",
    "normalize_tags",
    "ordered_tags",
]
