from __future__ import annotations

import pytest

from repo_sentinel.checks import build_registry
from repo_sentinel.engine.registry import RegistryError
from repo_sentinel.engine.selection import CHECK_ALIASES


def test_builtin_catalog_is_complete_and_unique() -> None:
    registry = build_registry({})

    ids = registry.registered_ids()
    assert len(ids) == len(set(ids)) == 39
    assert ids[0] == "go:module"
    for alias_target in CHECK_ALIASES.values():
        assert alias_target in registry


def test_critical_checks_are_the_language_gates() -> None:
    registry = build_registry({})

    critical = {item.check_id for item in registry if item.metadata.critical}

    assert critical == {
        "go:module",
        "go:build",
        "go:tests",
        "python:project",
        "python:tests",
        "node:project",
        "node:build",
        "node:tests",
        "java:project",
        "java:build",
        "java:tests",
    }


def test_language_checks_run_before_common_checks() -> None:
    selected = build_registry({}).select_for({"go"})

    ids = [item.check_id for item in selected]
    assert ids.index("go:deps") < ids.index("common:files")
    assert all(not check_id.startswith(("python:", "node:", "java:")) for check_id in ids)


def test_external_checks_join_the_catalog() -> None:
    registry = build_registry({"external": [{"id": "custom:lint", "command": "lint", "order": 1}]})

    assert registry.registered_ids()[0] == "custom:lint"


def test_external_id_collision_is_rejected() -> None:
    with pytest.raises(RegistryError, match="duplicate check id 'go:build'"):
        build_registry({"external": [{"id": "go:build", "command": "make"}]})
