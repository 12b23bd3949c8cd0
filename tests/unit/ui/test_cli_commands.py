"""
repo-sentinel — CLI command routing tests

File: tests/unit/ui/test_cli_commands.py
Last updated: 2026-10-19

Purpose
- Exercise every ``sentinel`` subcommand end to end against throwaway repositories.

What this test file should cover
- JSON output contracts for check, run, list, explain, profiles, targets, config, and doctor.
- Exit-code mapping for threshold, config errors, and incomplete runs.

Functional requirements
- Offline; the repositories contain only files, so no external tool is invoked.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from repo_sentinel.engine.report import (
    CheckOutcome,
    FaultKind,
    PipelineFault,
    Report,
    VetoRecord,
)
from repo_sentinel.engine.verdicts import CheckMetadata, Severity, Verdict
from repo_sentinel.main import ExitCode
from repo_sentinel.ui.cli import build_parser, exit_code_for, run_cli

_MIT = "MIT License\n\nPermission is hereby granted, free of charge, to any person...\n"

# Everything except the file-only checks for README/LICENSE.
_QUIET_CONFIG = """
[checks]
disabled = [
  "common:dockerfile",
  "common:ci",
  "common:secrets",
  "common:changelog",
  "common:contributing",
  "common:editorconfig",
  "common:precommit",
  "devops:*",
]
"""


def _healthy_repo(root: Path) -> Path:
    (root / "README.md").write_text("# demo\n", encoding="utf-8")
    (root / "LICENSE").write_text(_MIT, encoding="utf-8")
    (root / ".sentinel.toml").write_text(_QUIET_CONFIG, encoding="utf-8")
    return root


def _json_out(capsys: pytest.CaptureFixture[str]) -> dict[str, object]:
    return json.loads(capsys.readouterr().out)


def _outcome(check_id: str, severity: Severity | None, position: int) -> CheckOutcome:
    metadata = CheckMetadata(check_id=check_id, name=check_id, ecosystems=["common"], order=1)
    if severity is None:
        fault = PipelineFault(check_id=check_id, kind=FaultKind.TIMEOUT, detail="slow")
        return CheckOutcome(metadata=metadata, position=position, duration_ms=1, fault=fault)
    verdict = Verdict(check_id=check_id, name=check_id, severity=severity, message="m")
    return CheckOutcome(metadata=metadata, position=position, duration_ms=1, verdict=verdict)


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_check_json_on_healthy_repo(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _healthy_repo(tmp_path)

    exit_code = run_cli(["check", str(repo), "--json"])

    payload = _json_out(capsys)
    assert exit_code == 0
    assert payload["command"] == "check"
    assert payload["exit_code"] == 0
    assert payload["fail_on"] == "fail"
    report = payload["report"]
    assert isinstance(report, dict)
    assert report["status"] == "pass"
    assert [item["id"] for item in report["results"]] == ["common:files", "common:license"]
    assert report["summary"]["passed"] == 2
    assert report["maturity"]["level"] == "production-ready"


def test_check_fail_on_warn_turns_warnings_into_exit_one(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = _healthy_repo(tmp_path)
    (repo / "LICENSE").unlink()

    default_code = run_cli(["check", str(repo), "--json"])
    default_payload = _json_out(capsys)
    strict_code = run_cli(["check", str(repo), "--json", "--fail-on", "warn"])
    strict_payload = _json_out(capsys)

    assert default_code == 0
    assert default_payload["report"]["status"] == "warn"
    assert strict_code == 1
    assert strict_payload["fail_on"] == "warn"


def test_check_human_output_has_progress_and_summary(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = _healthy_repo(tmp_path)

    exit_code = run_cli(["check", str(repo), "--no-color"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "[1/2]" in out
    assert "[2/2]" in out
    assert "STATUS: ✓ ALL CHECKS PASSED" in out
    assert "Score: 2/2 checks passed (100%)" in out
    assert "Maturity: Production-Ready" in out


def test_check_rejects_missing_directory(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["check", str(tmp_path / "missing")])

    assert exit_code == 2
    assert "not a directory" in capsys.readouterr().err


def test_check_reports_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / ".sentinel.toml").write_text('[checks]\nfail_on = "never"\n', encoding="utf-8")

    exit_code = run_cli(["check", str(tmp_path)])

    assert exit_code == 2
    assert "checks.fail_on" in capsys.readouterr().err


def test_run_single_check_by_alias(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repo = _healthy_repo(tmp_path)

    exit_code = run_cli(["run", "license", str(repo), "--json"])

    payload = _json_out(capsys)
    assert exit_code == 0
    assert payload["command"] == "run"
    results = payload["report"]["results"]
    assert len(results) == 1
    assert results[0]["id"] == "common:license"
    assert results[0]["message"] == "LICENSE: MIT"


def test_run_unknown_check_is_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["run", "go:nope", str(tmp_path)])

    assert exit_code == 2
    assert "unknown check 'go:nope'" in capsys.readouterr().err


def test_list_json_has_full_catalog(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run_cli(["list", "--json", "--path", str(tmp_path)])

    checks = _json_out(capsys)["checks"]
    assert exit_code == 0
    assert isinstance(checks, list)
    assert len(checks) == 39
    assert checks[0]["check_id"] == "go:module"
    orders = [item["order"] for item in checks]
    assert orders == sorted(orders)


def test_list_filters_by_ecosystem(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["list", "--json", "--path", str(tmp_path), "--ecosystem", "go"])

    ids = [item["check_id"] for item in _json_out(capsys)["checks"]]
    assert "go:build" in ids
    assert "common:files" in ids
    assert not any(check_id.startswith(("python:", "node:", "java:")) for check_id in ids)


def test_list_includes_external_checks(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / ".sentinel.toml").write_text(
        '[[external]]\nid = "custom:docs"\ncommand = "mkdocs"\n', encoding="utf-8"
    )

    run_cli(["list", "--json", "--path", str(tmp_path)])

    checks = {item["check_id"]: item for item in _json_out(capsys)["checks"]}
    assert len(checks) == 40
    assert checks["custom:docs"]["order"] == 1000
    assert checks["custom:docs"]["ecosystems"] == ["common"]


def test_list_human_output_counts_checks(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["list", "--path", str(tmp_path)])

    assert exit_code == 0
    assert "39 check(s)" in capsys.readouterr().out


def test_explain_resolves_aliases(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run_cli(["explain", "gofmt", "--json", "--path", str(tmp_path)])

    check = _json_out(capsys)["check"]
    assert exit_code == 0
    assert check["check_id"] == "go:format"
    assert check["critical"] is False


def test_explain_human_output_marks_critical(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(["explain", "go:build", "--path", str(tmp_path)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Critical: yes (a failure stops the run)" in out


def test_explain_unknown_check(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["explain", "nope", "--path", str(tmp_path)]) == 2
    assert "run 'sentinel list'" in capsys.readouterr().err


def test_profiles_merge_builtin_and_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".sentinel.toml").write_text(
        '[profiles.internal]\ndescription = "Internal"\ndisabled = ["common:license"]\n',
        encoding="utf-8",
    )

    exit_code = run_cli(["profiles", "--json", "--path", str(tmp_path)])

    payload = _json_out(capsys)
    assert exit_code == 0
    by_name = {item["name"]: item for item in payload["profiles"]}
    assert sorted(by_name) == ["api", "cli", "desktop", "internal", "library"]
    assert by_name["internal"]["source"] == "config"
    assert by_name["cli"]["source"] == "builtin"


def test_targets_lists_builtin_targets(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["targets", "--json", "--path", str(tmp_path)])

    payload = _json_out(capsys)
    assert payload["command"] == "targets"
    assert [item["name"] for item in payload["targets"]] == ["poc", "production"]


def test_target_disables_checks_for_run(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = _healthy_repo(tmp_path)

    run_cli(["check", str(repo), "--json", "--target", "poc"])

    results = _json_out(capsys)["report"]["results"]
    assert [item["id"] for item in results] == ["common:files"]


def test_config_json_applies_cli_overrides(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = run_cli(
        ["config", str(tmp_path), "--json", "--profile", "cli", "--lang", "Go, node"]
    )

    config = _json_out(capsys)
    assert exit_code == 0
    assert config["run"]["profile"] == "cli"
    assert config["language"]["explicit"] == ["go", "node"]


def test_config_env_overrides_are_visible(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SENTINEL_COVERAGE_THRESHOLD", "55")

    run_cli(["config", str(tmp_path), "--json"])

    assert _json_out(capsys)["coverage"]["threshold"] == 55.0


def test_doctor_reports_config_and_tools(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "go.mod").write_text("module example.com/demo\n", encoding="utf-8")

    exit_code = run_cli(["doctor", str(tmp_path), "--json"])

    payload = _json_out(capsys)
    assert exit_code == 0
    checks = {item["name"]: item for item in payload["checks"]}
    assert checks["config"]["status"] == "ok"
    assert checks["ecosystems"]["detail"] == "go, common"
    assert all("found" in tool for tool in payload["tools"])


def test_doctor_surfaces_config_errors_without_failing(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".sentinel.toml").write_text("[checks\n", encoding="utf-8")

    exit_code = run_cli(["doctor", str(tmp_path), "--json"])

    checks = {item["name"]: item for item in _json_out(capsys)["checks"]}
    assert exit_code == 0
    assert checks["config"]["status"] == "fail"
    assert "ecosystems" not in checks


@pytest.mark.parametrize(
    ("severities", "fail_on", "expected"),
    [
        ([Severity.PASS, Severity.INFO], Severity.FAIL, ExitCode.SUCCESS),
        ([Severity.WARN], Severity.FAIL, ExitCode.SUCCESS),
        ([Severity.WARN], Severity.WARN, ExitCode.CHECKS_FAILED),
        ([Severity.PASS, None], Severity.FAIL, ExitCode.INCOMPLETE),
        ([Severity.WARN, None], Severity.WARN, ExitCode.CHECKS_FAILED),
    ],
)
def test_exit_code_for_completed_runs(
    tmp_path: Path,
    severities: list[Severity | None],
    fail_on: Severity,
    expected: ExitCode,
) -> None:
    report = Report(path=tmp_path)
    for position, severity in enumerate(severities, start=1):
        report.record(_outcome(f"c{position}", severity, position))
    report.finalize()

    assert exit_code_for(report, fail_on) is expected


def test_exit_code_for_veto_and_cancel(tmp_path: Path) -> None:
    vetoed = Report(path=tmp_path, selected=("go:build", "go:vet"))
    vetoed.record(_outcome("go:build", Severity.FAIL, 1))
    vetoed.finalize(
        vetoed_by=VetoRecord(check_id="go:build", name="Go Build", position=1, message="x")
    )
    cancelled = Report(path=tmp_path, selected=("a", "b"))
    cancelled.record(_outcome("a", Severity.FAIL, 1))
    cancelled.finalize(cancelled=True, cancel_reason="interrupted by SIGINT")

    assert exit_code_for(vetoed, Severity.FAIL) is ExitCode.CHECKS_FAILED
    assert exit_code_for(cancelled, Severity.WARN) is ExitCode.INCOMPLETE
