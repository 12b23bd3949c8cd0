"""
repo-sentinel — process entrypoint exit-code tests

File: tests/unit/test_main_exit_codes.py
Last updated: 2026-10-19

Purpose
- Pin the exit-code contract of ``cli_entrypoint``: 0 success, 1 checks failed,
  2 config error, 3 incomplete, 4 internal error.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repo_sentinel import main as main_module
from repo_sentinel.config import ConfigLoadError
from repo_sentinel.engine.selection import SelectionError
from repo_sentinel.main import ExitCode, cli_entrypoint
from repo_sentinel.ui import cli as cli_module


def test_exit_code_values_are_stable() -> None:
    assert [int(code) for code in ExitCode] == [0, 1, 2, 3, 4]


def test_successful_command_returns_zero(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli_entrypoint(["targets", "--json", "--path", str(tmp_path)]) == 0
    assert '"command":"targets"' in capsys.readouterr().out


def test_version_flag_exits_cleanly(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["--version"]) == 0
    assert capsys.readouterr().out.startswith("sentinel ")


def test_usage_errors_map_to_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["frobnicate"]) == 2
    assert "invalid choice" in capsys.readouterr().err


def test_unknown_profile_maps_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = cli_entrypoint(["check", str(tmp_path), "--profile", "nope"])

    assert exit_code == 2
    assert "error: unknown profile 'nope'" in capsys.readouterr().err


def test_unexpected_exception_is_internal_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def explode(argv: object) -> int:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(cli_module, "run_cli", explode)

    assert cli_entrypoint(["list"]) == 4
    err = capsys.readouterr().err
    assert "Traceback" in err
    assert "RuntimeError: kaboom" in err


def test_keyboard_interrupt_is_incomplete(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def interrupt(argv: object) -> int:
        raise KeyboardInterrupt

    monkeypatch.setattr(cli_module, "run_cli", interrupt)

    assert cli_entrypoint(["check"]) == 3
    assert capsys.readouterr().err == "interrupted\n"


def _chained(outer: BaseException, cause: BaseException) -> BaseException:
    try:
        try:
            raise cause
        except BaseException as inner:
            raise outer from inner
    except BaseException as exc:
        return exc


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (KeyboardInterrupt(), ExitCode.INCOMPLETE),
        (SelectionError("unknown profile"), ExitCode.CONFIG_ERROR),
        (FileNotFoundError("missing"), ExitCode.CONFIG_ERROR),
        (RuntimeError("bug"), ExitCode.INTERNAL_ERROR),
        (_chained(RuntimeError("wrapped"), ConfigLoadError("bad")), ExitCode.CONFIG_ERROR),
    ],
)
def test_route_exception_walks_the_cause_chain(exc: BaseException, expected: ExitCode) -> None:
    assert main_module._route_exception(exc) is expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 0), (0, 0), (1, 1), (3, 3), (7, 4), ("fatal", 4)],
)
def test_normalize_exit_code(raw: object, expected: int) -> None:
    assert main_module._normalize_exit_code(raw) == expected
