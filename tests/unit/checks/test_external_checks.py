from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from repo_sentinel.checks.external import (
    DEFAULT_EXTERNAL_ORDER,
    ExternalCheck,
    build_external_check,
    parse_external_output,
    register,
    validate_command,
)
from repo_sentinel.engine.registry import RegistryError
from repo_sentinel.engine.verdicts import CheckContext, Severity

MakeContext = Callable[..., CheckContext]


def _check(**overrides: object) -> ExternalCheck:
    entry: dict[str, object] = {"id": "custom:audit", "command": "audit-tool", "args": ["--ci"]}
    entry.update(overrides)
    return build_external_check(entry)


@pytest.mark.parametrize(
    "command",
    ["", "   ", "audit; rm -rf /", "a|b", "$(whoami)", "bin/tool", "..\\tool", "a\nb"],
)
def test_validate_command_rejects_unsafe_values(command: str) -> None:
    with pytest.raises(RegistryError, match="custom:x"):
        validate_command("custom:x", command)


def test_validate_command_accepts_names_and_absolute_paths() -> None:
    assert validate_command("x", " make ") == "make"
    assert validate_command("x", "/usr/local/bin/audit") == "/usr/local/bin/audit"


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        ('{"status": "warn", "message": " 2 issues "}', (Severity.WARN, "2 issues")),
        ('{"status": "OK"}', (Severity.PASS, "")),
        ('{"status": "error", "message": 5}', (Severity.FAIL, "")),
        ('{"status": "weird", "message": "x"}', (Severity.PASS, "x")),
        ('{"message": "no status"}', None),
        ("[1, 2]", None),
        ("plain text", None),
    ],
)
def test_parse_external_output(output: str, expected: tuple[Severity, str] | None) -> None:
    assert parse_external_output(output) == expected


def test_build_external_check_defaults() -> None:
    check = _check()
    metadata = check.metadata()

    assert metadata.name == "custom:audit"
    assert metadata.order == DEFAULT_EXTERNAL_ORDER
    assert metadata.ecosystems == frozenset({"common"})
    assert metadata.description == "Runs external command 'audit-tool'."
    assert check.args == ("--ci",)


def test_build_external_check_fields() -> None:
    check = _check(
        name="License Audit",
        ecosystems=["node", "python"],
        order=5,
        critical=True,
        suggestion="Run audit-tool locally",
    )
    metadata = check.metadata()

    assert metadata.critical is True
    assert metadata.ecosystems == frozenset({"node", "python"})
    assert metadata.suggestion == "Run audit-tool locally"
    assert check.ecosystem == "node"


@pytest.mark.parametrize(
    ("reply", "severity", "message"),
    [
        ((0, "all good\n"), Severity.PASS, "all good"),
        ((0, ""), Severity.PASS, "ok"),
        ((1, "", "2 warnings"), Severity.WARN, "2 warnings"),
        ((2, ""), Severity.FAIL, "Check failed"),
        ((7, "boom"), Severity.FAIL, "boom"),
        ((1, '{"status": "info", "message": "skipped on CI"}'), Severity.INFO, "skipped on CI"),
        ((0, '{"status": "fail"}'), Severity.FAIL, "audit-tool reported fail"),
    ],
)
async def test_external_check_result_protocol(
    tmp_path: Path,
    make_context: MakeContext,
    make_executor: type,
    reply: tuple[int, str],
    severity: Severity,
    message: str,
) -> None:
    executor = make_executor({("audit-tool", "--ci"): reply})

    verdict = await _check().run(make_context(tmp_path, executor=executor, tools=["audit-tool"]))

    assert verdict.severity is severity
    assert verdict.message == message


async def test_external_command_not_found_is_info(
    tmp_path: Path, make_context: MakeContext
) -> None:
    verdict = await _check().run(make_context(tmp_path))

    assert verdict.severity is Severity.INFO
    assert verdict.message == "Command not found: audit-tool"


def test_register_reads_external_entries() -> None:
    config = {
        "external": [
            {"id": "custom:one", "command": "one"},
            {"id": "custom:two", "command": "two", "order": 1},
        ]
    }

    assert [item.check_id for item in register(config)] == ["custom:one", "custom:two"]
    assert register({}) == []
