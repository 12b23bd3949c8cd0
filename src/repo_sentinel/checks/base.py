"""
repo-sentinel — shared check base classes

File: src/repo_sentinel/checks/base.py
Last updated: 2026-10-19

Purpose
- Give built-in checks one declaration style: identity and metadata as class
  attributes, behavior in ``run``.
- Provide the command-running helper used by tool-backed checks and the small
  filesystem helpers used by file-presence checks.

Normative behavior
- A tool that is not on PATH, or that cannot be started, yields an INFO
  verdict; a missing tool is never a failure.
- File helpers never follow paths outside the repository root.
"""

from __future__ import annotations

import json
import os
from collections.abc import Awaitable, Iterable, Iterator
from pathlib import Path
from typing import Any, Final

from repo_sentinel.constants import ECOSYSTEM_COMMON
from repo_sentinel.engine.execution import CommandResult, CommandSpec
from repo_sentinel.engine.verdicts import (
    CheckContext,
    CheckMetadata,
    Registration,
    Verdict,
    VerdictBuilder,
)
from repo_sentinel.utils.tools import install_hint

SKIP_DIRS: Final[frozenset[str]] = frozenset(
    {
        "node_modules",
        "vendor",
        ".git",
        "__pycache__",
        ".venv",
        "venv",
        "dist",
        "build",
        ".idea",
        ".vscode",
    }
)


class BaseCheck:
    """Built-in check declared through class attributes."""

    check_id: str = ""
    name: str = ""
    ecosystem: str = ECOSYSTEM_COMMON
    order: int = 1000
    critical: bool = False
    optional: bool = False
    description: str = ""
    suggestion: str | None = None

    @property
    def verdicts(self) -> VerdictBuilder:
        return VerdictBuilder(check_id=self.check_id, name=self.name, ecosystem=self.ecosystem)

    def metadata(self) -> CheckMetadata:
        return CheckMetadata(
            check_id=self.check_id,
            name=self.name,
            ecosystems=frozenset({self.ecosystem}),
            order=self.order,
            critical=self.critical,
            description=self.description,
            suggestion=self.suggestion,
            optional=self.optional,
        )

    def registration(self) -> Registration:
        return Registration(check=self, metadata=self.metadata())

    def run(self, context: CheckContext) -> Verdict | Awaitable[Verdict]:
        raise NotImplementedError


class CommandCheck(BaseCheck):
    """Check backed by one external tool invoked through the context executor."""

    tool: str = ""

    def tool_missing(self, context: CheckContext, tool: str | None = None) -> bool:
        return not context.has_tool(tool or self.tool)

    def not_installed(self, tool: str | None = None) -> Verdict:
        name = tool or self.tool
        return self.verdicts.tool_not_installed(name, install_hint(name))

    async def run_tool(
        self,
        context: CheckContext,
        *argv: str,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        spec = CommandSpec(
            argv=argv,
            cwd=str(cwd if cwd is not None else context.path),
            env=env or {},
        )
        return await context.executor.run(spec)

    def not_started(self, result: CommandResult) -> Verdict | None:
        """INFO verdict for a command that never started, else None."""
        if result.started:
            return None
        return self.not_installed(result.argv[0])


def first_existing(root: Path, names: Iterable[str]) -> str | None:
    for name in names:
        if (root / name).exists():
            return name
    return None


def read_text(root: Path, name: str) -> str | None:
    target = root / name
    if not target.is_file():
        return None
    try:
        return target.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def read_json(root: Path, name: str) -> Any:
    """Parsed JSON document, or None when missing; raises ``ValueError`` when invalid."""
    text = read_text(root, name)
    if text is None:
        return None
    return json.loads(text)


def walk_files(
    root: Path,
    *,
    suffixes: Iterable[str] = (),
    max_depth: int | None = None,
    skip_hidden: bool = True,
    keep_hidden: Iterable[str] = (),
) -> Iterator[Path]:
    """Yield files under ``root`` in sorted order, pruning vendored and hidden dirs."""

    wanted = tuple(suffix.lower() for suffix in suffixes)
    allowed_hidden = frozenset(keep_hidden)
    root_depth = len(root.parts)
    for current, dirnames, filenames in os.walk(root):
        current_path = Path(current)
        depth = len(current_path.parts) - root_depth
        pruned = []
        for dirname in sorted(dirnames):
            if dirname in SKIP_DIRS:
                continue
            if skip_hidden and dirname.startswith(".") and dirname not in allowed_hidden:
                continue
            if max_depth is not None and depth + 1 > max_depth:
                continue
            pruned.append(dirname)
        dirnames[:] = pruned
        for filename in sorted(filenames):
            if wanted and not filename.lower().endswith(wanted):
                continue
            yield current_path / filename


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


__all__ = [
    "SKIP_DIRS",
    "BaseCheck",
    "CommandCheck",
    "first_existing",
    "pluralize",
    "read_json",
    "read_text",
    "walk_files",
]
