"""
repo-sentinel — user-defined external checks

File: src/repo_sentinel/checks/external.py
Last updated: 2026-10-19

Purpose
- Turn ``[[external]]`` config entries into checks that run an arbitrary
  command in the repository root.

Result protocol
- JSON stdout ``{"status": "pass|info|warn|fail", "message": "..."}`` wins.
- Otherwise the exit code decides: 0 PASS, 1 WARN, 2 or higher FAIL.
- A command that is not on PATH yields INFO.

Normative behavior
- Commands are executed without a shell; shell metacharacters and relative
  paths containing a separator are rejected when the registry is built.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck
from repo_sentinel.constants import ECOSYSTEM_COMMON
from repo_sentinel.engine.registry import RegistryError
from repo_sentinel.engine.verdicts import (
    CheckContext,
    CheckMetadata,
    Registration,
    Severity,
    Verdict,
    truncate_message,
)

DEFAULT_EXTERNAL_ORDER: Final[int] = 1000
_FORBIDDEN_COMMAND_CHARS: Final[tuple[str, ...]] = (
    ";",
    "&",
    "|",
    "$",
    "`",
    "(",
    ")",
    "{",
    "}",
    "<",
    ">",
    "\n",
    "\r",
)
_JSON_STATUSES: Final[Mapping[str, Severity]] = {
    "pass": Severity.PASS,
    "ok": Severity.PASS,
    "info": Severity.INFO,
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "fail": Severity.FAIL,
    "error": Severity.FAIL,
}


class ExternalCheck(CommandCheck):
    """Check backed by a user-supplied command."""

    def __init__(
        self,
        *,
        check_id: str,
        name: str,
        command: str,
        args: Sequence[str] = (),
        ecosystems: Sequence[str] = (ECOSYSTEM_COMMON,),
        order: int = DEFAULT_EXTERNAL_ORDER,
        critical: bool = False,
        description: str = "",
        suggestion: str | None = None,
    ) -> None:
        self.check_id = check_id
        self.name = name
        self.tool = validate_command(check_id, command)
        self.args = tuple(str(item) for item in args)
        self.ecosystems = tuple(ecosystems) or (ECOSYSTEM_COMMON,)
        self.ecosystem = self.ecosystems[0]
        self.order = order
        self.critical = critical
        self.description = description or f"Runs external command '{command}'."
        self.suggestion = suggestion

    def metadata(self) -> CheckMetadata:
        return CheckMetadata(
            check_id=self.check_id,
            name=self.name,
            ecosystems=frozenset(self.ecosystems),
            order=self.order,
            critical=self.critical,
            description=self.description,
            suggestion=self.suggestion,
        )

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.verdicts.info(f"Command not found: {self.tool}")
        result = await self.run_tool(context, self.tool, *self.args)
        if not result.started:
            return self.verdicts.info(f"Command could not be started: {result.error}")

        output = result.stdout.strip() or result.stderr.strip()
        reported = parse_external_output(output)
        if reported is not None:
            severity, message = reported
            return self.verdicts.from_severity(
                severity, truncate_message(message) or f"{self.tool} reported {severity.label}"
            )

        message = truncate_message(output)
        if result.exit_code == 0:
            return self.verdicts.passed(message or "ok")
        if result.exit_code == 1:
            return self.verdicts.warn(message or "Check failed")
        return self.verdicts.fail(message or "Check failed")


def validate_command(check_id: str, command: str) -> str:
    cleaned = command.strip()
    if not cleaned:
        raise RegistryError(f"external check {check_id!r}: empty command")
    if any(char in cleaned for char in _FORBIDDEN_COMMAND_CHARS):
        raise RegistryError(f"external check {check_id!r}: invalid characters in command")
    if ("/" in cleaned or "\\" in cleaned) and not Path(cleaned).is_absolute():
        raise RegistryError(f"external check {check_id!r}: relative paths not allowed")
    return cleaned


def parse_external_output(output: str) -> tuple[Severity, str] | None:
    """Decode the optional JSON status protocol; None when output is not a status object."""

    try:
        payload = json.loads(output)
    except ValueError:
        return None
    if not isinstance(payload, Mapping):
        return None
    status = payload.get("status")
    if not isinstance(status, str):
        return None
    severity = _JSON_STATUSES.get(status.strip().lower(), Severity.PASS)
    message = payload.get("message")
    return severity, message.strip() if isinstance(message, str) else ""


def build_external_check(entry: Mapping[str, Any]) -> ExternalCheck:
    check_id = str(entry["id"]).strip()
    return ExternalCheck(
        check_id=check_id,
        name=str(entry.get("name") or check_id),
        command=str(entry["command"]),
        args=tuple(entry.get("args", ())),
        ecosystems=tuple(entry.get("ecosystems", (ECOSYSTEM_COMMON,))),
        order=int(entry.get("order", DEFAULT_EXTERNAL_ORDER)),
        critical=bool(entry.get("critical", False)),
        description=str(entry.get("description") or ""),
        suggestion=entry.get("suggestion"),
    )


def register(config: Mapping[str, Any]) -> list[Registration]:
    entries = config.get("external", ())
    return [build_external_check(entry).registration() for entry in entries]


__all__ = [
    "DEFAULT_EXTERNAL_ORDER",
    "ExternalCheck",
    "build_external_check",
    "parse_external_output",
    "register",
    "validate_command",
]
