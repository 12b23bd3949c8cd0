from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st
from structlog.testing import capture_logs

from repo_sentinel.engine.selection import (
    BUILTIN_PROFILES,
    BUILTIN_TARGETS,
    SelectionError,
    available_policies,
    filter_registrations,
    is_disabled,
    load_user_policies,
    matches_pattern,
    resolve_disabled,
    resolve_policy,
)
from repo_sentinel.engine.verdicts import Registration


@pytest.mark.parametrize(
    ("check_id", "pattern", "expected"),
    [
        ("go:build", "go:build", True),
        ("go:build", "go:tests", False),
        ("go:build", "*", True),
        ("go:build", "*:*", True),
        ("legacy", "*:*", False),
        ("go:coverage", "*:coverage", True),
        ("python:coverage", "*:coverage", True),
        ("go:coverage_report", "*:coverage", False),
        ("devops:helm", "devops:*", True),
        ("devopsx:helm", "devops:*", False),
        ("go:build", "  ", False),
        ("go:build", "go*", False),
    ],
)
def test_matches_pattern(check_id: str, pattern: str, expected: bool) -> None:
    assert matches_pattern(check_id, pattern) is expected


def test_is_disabled_resolves_legacy_aliases() -> None:
    assert is_disabled("go:format", ["gofmt"]) is True
    assert is_disabled("common:secrets", ["secrets"]) is True
    assert is_disabled("go:format", ["go:vet"]) is False


def test_filter_registrations_preserves_order(
    make_registration: Callable[..., Registration],
) -> None:
    registrations = [
        make_registration("go:build", order=1),
        make_registration("go:coverage", order=2),
        make_registration("common:files", order=3),
        make_registration("python:coverage", order=4),
    ]

    with capture_logs() as logs:
        kept = filter_registrations(registrations, ["*:coverage"])

    assert [item.check_id for item in kept] == ["go:build", "common:files"]
    assert logs[0]["event"] == "checks_disabled"
    assert logs[0]["skipped"] == 2


def test_filter_registrations_without_patterns_is_identity(
    make_registration: Callable[..., Registration],
) -> None:
    registrations = [make_registration("a"), make_registration("b")]

    assert filter_registrations(registrations, []) == tuple(registrations)


def test_builtin_policies_are_known() -> None:
    assert set(BUILTIN_PROFILES) == {"cli", "api", "library", "desktop"}
    assert set(BUILTIN_TARGETS) == {"poc", "production"}
    assert "devops:*" in BUILTIN_PROFILES["library"].disabled
    assert BUILTIN_TARGETS["production"].disabled == ()


def test_resolve_policy_unknown_name_lists_available(tmp_path: Path) -> None:
    with pytest.raises(SelectionError, match="unknown profile 'mobile'; available: api, cli"):
        resolve_policy("profile", "mobile", {}, user_dir=tmp_path)


def test_config_policy_overrides_builtin(tmp_path: Path) -> None:
    config = {"profiles": {"cli": {"description": "mine", "disabled": ["common:ci"]}}}

    policy = resolve_policy("profile", "cli", config, user_dir=tmp_path)

    assert policy.source == "config"
    assert policy.disabled == ("common:ci",)
    assert policy.description == "mine"


def test_user_policy_files_are_loaded(tmp_path: Path) -> None:
    targets = tmp_path / "targets"
    targets.mkdir()
    (targets / "beta.yaml").write_text(
        "description: Beta release\ndisabled:\n  - common:changelog\n  - '*:deps'\n",
        encoding="utf-8",
    )
    (targets / "empty.yml").write_text("", encoding="utf-8")

    policies = load_user_policies("target", user_dir=tmp_path)

    assert list(policies) == ["beta"]
    assert policies["beta"].disabled == ("common:changelog", "*:deps")
    assert policies["beta"].source == "user"
    assert "beta" in available_policies("target", {}, user_dir=tmp_path)


def test_user_policy_file_must_be_mapping(tmp_path: Path) -> None:
    profiles = tmp_path / "profiles"
    profiles.mkdir()
    (profiles / "bad.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(SelectionError, match="must contain a mapping"):
        load_user_policies("profile", user_dir=tmp_path)


def test_policy_disabled_must_be_list(tmp_path: Path) -> None:
    config = {"targets": {"weird": {"disabled": "go:*"}}}

    with pytest.raises(SelectionError, match="must be a list"):
        available_policies("target", config, user_dir=tmp_path)


def test_resolve_disabled_unions_config_profile_and_target(tmp_path: Path) -> None:
    config = {
        "checks": {"disabled": ["common:ci", " "]},
        "run": {"profile": "library", "target": ""},
    }

    disabled = resolve_disabled(config, target="poc", user_dir=tmp_path)

    assert disabled[0] == "common:ci"
    assert "devops:*" in disabled
    assert "*:coverage" in disabled
    assert len(disabled) == len(set(disabled))


def test_missing_user_dir_yields_no_policies(tmp_path: Path) -> None:
    assert load_user_policies("profile", user_dir=tmp_path / "absent") == {}


@given(
    namespace=st.sampled_from(["go", "python", "node", "common", "devops"]),
    suffix=st.sampled_from(["build", "tests", "lint", "deps", "coverage"]),
)
def test_wildcards_agree_with_id_structure(namespace: str, suffix: str) -> None:
    check_id = f"{namespace}:{suffix}"

    assert matches_pattern(check_id, "*")
    assert matches_pattern(check_id, f"{namespace}:*")
    assert matches_pattern(check_id, f"*:{suffix}")
    assert not matches_pattern(check_id, f"{namespace}x:*")
