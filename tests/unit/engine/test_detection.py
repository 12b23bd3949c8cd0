from __future__ import annotations

from pathlib import Path

import pytest

from repo_sentinel.engine.detection import (
    UnknownEcosystemError,
    detect,
    detect_from_config,
    detect_with_override,
    normalize_tags,
    ordered_tags,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


def test_empty_directory_is_common_only(tmp_path: Path) -> None:
    assert detect(tmp_path) == frozenset({"common"})


@pytest.mark.parametrize(
    ("indicator", "ecosystem"),
    [
        ("go.mod", "go"),
        ("pyproject.toml", "python"),
        ("requirements.txt", "python"),
        ("Pipfile", "python"),
        ("package.json", "node"),
        ("pnpm-lock.yaml", "node"),
        ("pom.xml", "java"),
        ("build.gradle.kts", "java"),
        ("gradlew", "java"),
    ],
)
def test_single_indicator(tmp_path: Path, indicator: str, ecosystem: str) -> None:
    _touch(tmp_path / indicator)

    assert detect(tmp_path) == frozenset({ecosystem, "common"})


def test_polyglot_repository(tmp_path: Path) -> None:
    _touch(tmp_path / "go.mod")
    _touch(tmp_path / "setup.py")
    _touch(tmp_path / "package.json")
    _touch(tmp_path / "pom.xml")

    assert detect(tmp_path) == frozenset({"go", "python", "node", "java", "common"})


def test_indicator_directory_is_not_a_file(tmp_path: Path) -> None:
    (tmp_path / "go.mod").mkdir()

    assert detect(tmp_path) == frozenset({"common"})


def test_source_dir_is_searched(tmp_path: Path) -> None:
    _touch(tmp_path / "web" / "package.json")

    assert "node" not in detect(tmp_path)
    assert "node" in detect(tmp_path, {"node": "web"})


def test_explicit_tags_override_detection(tmp_path: Path) -> None:
    _touch(tmp_path / "go.mod")

    assert detect_with_override(tmp_path, ["Python"]) == frozenset({"python", "common"})
    assert detect_with_override(tmp_path, [], auto_detect=False) == frozenset({"common"})


def test_detect_from_config_reads_language_section(tmp_path: Path) -> None:
    _touch(tmp_path / "svc" / "go.mod")
    config = {
        "language": {"explicit": [], "auto_detect": True},
        "languages": {"go": {"source_dir": "svc"}, "python": {"source_dir": ""}},
    }

    assert detect_from_config(tmp_path, config) == frozenset({"go", "common"})


def test_normalize_tags_splits_and_orders() -> None:
    assert normalize_tags(["java, node, GO", "common", ""]) == ("go", "node", "java")


def test_normalize_tags_rejects_unknown() -> None:
    with pytest.raises(UnknownEcosystemError, match="unknown ecosystem 'rust'"):
        normalize_tags(["rust"])


def test_ordered_tags_is_canonical() -> None:
    assert ordered_tags({"common", "node", "python"}) == ("python", "node", "common")
