"""
repo-sentinel — Python checks

File: src/repo_sentinel/checks/python.py
Last updated: 2026-10-19

Purpose
- Project metadata and test gates (critical) plus format, lint, type,
  coverage and vulnerability checks (non-critical) for Python projects.

Tool selection
- ``languages.python.<formatter|linter|type_checker|test_runner>`` pins a tool;
  ``auto`` inspects project config files, then falls back to whichever
  supported tool is installed.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck, first_existing, pluralize, read_text
from repo_sentinel.constants import DEFAULT_COVERAGE_THRESHOLD, ECOSYSTEM_PYTHON
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

AUTO: Final[str] = "auto"

_TOTAL_COVERAGE_RE: Final[re.Pattern[str]] = re.compile(
    r"TOTAL\s+\d+\s+\d+(?:\s+\d+\s+\d+)?\s+(\d+)%"
)
_COVERAGE_LINE_RE: Final[re.Pattern[str]] = re.compile(r"[Cc]overage:\s*(\d+(?:\.\d+)?)%")
_MYPY_SUMMARY_RE: Final[re.Pattern[str]] = re.compile(r"Found (\d+) errors? in")
_NO_TESTS_MARKERS: Final[tuple[str, ...]] = ("no tests ran", "collected 0 items", "Ran 0 tests")


def _setting(context: CheckContext, key: str) -> str:
    value = context.setting("languages", "python", key, default=AUTO)
    return str(value).strip().lower() or AUTO


def _pyproject(root: Path) -> str:
    return read_text(root, "pyproject.toml") or ""


class PythonProjectCheck(CommandCheck):
    check_id = "python:project"
    name = "Python Project"
    ecosystem = ECOSYSTEM_PYTHON
    order = 100
    critical = True
    description = "Verifies the project declares its packaging metadata."
    suggestion = "Add a pyproject.toml describing the project"

    def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_PYTHON)
        if (root / "pyproject.toml").is_file():
            return self.verdicts.passed("Found pyproject.toml")
        if (root / "setup.py").is_file():
            return self.verdicts.warn("Found setup.py (consider migrating to pyproject.toml)")
        if (root / "requirements.txt").is_file():
            return self.verdicts.warn(
                "Found requirements.txt only (consider adding pyproject.toml)"
            )
        return self.verdicts.fail("No pyproject.toml, setup.py, or requirements.txt found")


class PythonTestsCheck(CommandCheck):
    check_id = "python:tests"
    name = "Python Tests"
    ecosystem = ECOSYSTEM_PYTHON
    order = 120
    critical = True
    tool = "pytest"
    description = "Runs the test suite with pytest or unittest."
    suggestion = "Fix failing tests before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_PYTHON)
        runner = _setting(context, "test_runner")
        if runner == AUTO:
            runner = "pytest"

        if runner == "unittest":
            tool = "python3"
            collect: Sequence[str] = ("python3", "-m", "unittest", "discover", "-p", "test*.py")
            execute: Sequence[str] = ("python3", "-m", "unittest", "discover", "-v")
        else:
            tool = "pytest"
            collect = ("pytest", "--collect-only", "-q")
            execute = ("pytest", "-q", "--tb=short")

        if self.tool_missing(context, tool):
            return self.not_installed(tool)

        if runner != "unittest":
            collected = await self.run_tool(context, *collect, cwd=root)
            skipped = self.not_started(collected)
            if skipped is not None:
                return skipped
            if _no_tests(collected.output):
                return self.verdicts.passed("No tests found")

        result = await self.run_tool(context, *execute, cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if _no_tests(result.output):
            return self.verdicts.passed("No tests found")
        if not result.is_success():
            return self.verdicts.fail("Tests failed: " + truncate_message(result.output))
        return self.verdicts.passed("All tests passed")


class PythonFormatCheck(CommandCheck):
    check_id = "python:format"
    name = "Python Format"
    ecosystem = ECOSYSTEM_PYTHON
    order = 200
    description = "Checks formatting with ruff format or black."
    suggestion = "Run 'ruff format .' or 'black .' to format code"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_PYTHON)
        formatter = self._select(context, root)
        if formatter is None:
            return self.verdicts.info("No formatter installed (install ruff or black)")
        if self.tool_missing(context, formatter):
            return self.not_installed(formatter)

        if formatter == "ruff":
            argv: tuple[str, ...] = ("ruff", "format", "--check", ".")
            label = "ruff format"
        else:
            argv = ("black", "--check", ".")
            label = "black"
        result = await self.run_tool(context, *argv, cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("All Python files are properly formatted")

        count = sum(
            1 for line in result.output.splitlines() if "would reformat" in line.lower()
        )
        if count:
            return self.verdicts.warn(f"{label}: {pluralize(count, 'file')} need formatting")
        return self.verdicts.warn(f"{label} found issues: " + truncate_message(result.output, 150))

    @staticmethod
    def _select(context: CheckContext, root: Path) -> str | None:
        configured = _setting(context, "formatter")
        if configured != AUTO:
            return configured
        if first_existing(root, ("ruff.toml", ".ruff.toml")):
            return "ruff"
        pyproject = _pyproject(root)
        if "[tool.black]" in pyproject:
            return "black"
        if "[tool.ruff" in pyproject:
            return "ruff"
        for candidate in ("ruff", "black"):
            if context.has_tool(candidate):
                return candidate
        return None


class PythonLintCheck(CommandCheck):
    check_id = "python:lint"
    name = "Python Lint"
    ecosystem = ECOSYSTEM_PYTHON
    order = 210
    description = "Runs ruff check or flake8."
    suggestion = "Fix linting issues reported by the linter"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_PYTHON)
        linter = self._select(context, root)
        if linter is None:
            return self.verdicts.info("No linter installed (install ruff or flake8)")
        if self.tool_missing(context, linter):
            return self.not_installed(linter)

        argv = ("ruff", "check", ".") if linter == "ruff" else (linter, ".")
        result = await self.run_tool(context, *argv, cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("No linting issues found")

        output = result.stdout.strip() or result.stderr.strip()
        issues = [
            line
            for line in output.splitlines()
            if line.strip() and not line.startswith(("Found", "[*]", "No fixes"))
        ]
        return self.verdicts.warn(f"{linter} found {pluralize(len(issues), 'issue')}")

    @staticmethod
    def _select(context: CheckContext, root: Path) -> str | None:
        configured = _setting(context, "linter")
        if configured != AUTO:
            return configured
        if first_existing(root, ("ruff.toml", ".ruff.toml")):
            return "ruff"
        if first_existing(root, (".flake8",)):
            return "flake8"
        pyproject = _pyproject(root)
        if "[tool.ruff" in pyproject:
            return "ruff"
        if "[tool.flake8]" in pyproject:
            return "flake8"
        for candidate in ("ruff", "flake8"):
            if context.has_tool(candidate):
                return candidate
        return None


class PythonTypeCheck(CommandCheck):
    check_id = "python:type"
    name = "Python Type Check"
    ecosystem = ECOSYSTEM_PYTHON
    order = 215
    description = "Runs mypy or pyright on typed projects."
    suggestion = "Fix type errors reported by the type checker"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_PYTHON)
        configured = _setting(context, "type_checker")
        if configured == AUTO and not is_typed_project(root):
            return self.verdicts.info(
                "Not a typed Python project (no py.typed marker or mypy config)"
            )
        checker = configured
        if checker == AUTO:
            checker = "pyright" if (root / "pyrightconfig.json").is_file() else "mypy"
        if self.tool_missing(context, checker):
            return self.not_installed(checker)

        argv = ("mypy", ".") if checker == "mypy" else (checker,)
        result = await self.run_tool(context, *argv, cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("No type errors found")

        count = count_type_errors(result.output)
        if count:
            return self.verdicts.warn(
                f"{pluralize(count, 'type error')} found. Run: {' '.join(argv)}"
            )
        return self.verdicts.warn(f"Type errors found. Run: {' '.join(argv)}")


class PythonCoverageCheck(CommandCheck):
    check_id = "python:coverage"
    name = "Python Coverage"
    ecosystem = ECOSYSTEM_PYTHON
    order = 220
    tool = "pytest"
    description = "Measures coverage with pytest-cov and compares it to the threshold."
    suggestion = "Add tests to improve coverage"

    def __init__(self, threshold: float = DEFAULT_COVERAGE_THRESHOLD) -> None:
        self.threshold = threshold

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context,
            "pytest",
            "--cov=.",
            "--cov-report=term",
            "-q",
            cwd=context.source_path(ECOSYSTEM_PYTHON),
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if "unrecognized arguments: --cov" in result.stderr:
            return self.verdicts.tool_not_installed("pytest-cov", "pip install pytest-cov")
        if _no_tests(result.output):
            return self.verdicts.warn("No tests found - coverage is 0%")

        coverage = parse_python_coverage(result.stdout)
        if coverage is None:
            return self.verdicts.warn("Could not measure coverage")
        if coverage < self.threshold:
            return self.verdicts.warn(
                f"Coverage {coverage:.1f}% is below threshold {self.threshold:.1f}%"
            )
        return self.verdicts.passed(f"Coverage: {coverage:.1f}%")


class PythonDepsCheck(CommandCheck):
    check_id = "python:deps"
    name = "Python Vulnerabilities"
    ecosystem = ECOSYSTEM_PYTHON
    order = 230
    tool = "pip-audit"
    description = "Scans installed dependencies for known vulnerabilities with pip-audit."
    suggestion = "Update vulnerable dependencies"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "pip-audit", cwd=context.source_path(ECOSYSTEM_PYTHON)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("No known vulnerabilities found")

        count = sum(
            1
            for line in result.stdout.splitlines()
            if "PYSEC-" in line or "CVE-" in line or "GHSA-" in line
        )
        if count:
            return self.verdicts.warn(
                f"{pluralize(count, 'vulnerability', 'vulnerabilities')} found. "
                "Run 'pip-audit' for details."
            )
        return self.verdicts.warn("pip-audit error: " + truncate_message(result.output, 150))


def is_typed_project(root: Path) -> bool:
    if first_existing(root, ("mypy.ini", ".mypy.ini", "py.typed", "pyrightconfig.json")):
        return True
    if "[mypy" in (read_text(root, "setup.cfg") or ""):
        return True
    pyproject = _pyproject(root)
    return "[tool.mypy]" in pyproject or "[tool.pyright]" in pyproject


def count_type_errors(output: str) -> int:
    summary = _MYPY_SUMMARY_RE.search(output)
    if summary is not None:
        return int(summary.group(1))
    return sum(1 for line in output.splitlines() if ": error:" in line or " - error:" in line)


def parse_python_coverage(output: str) -> float | None:
    """TOTAL percentage from a coverage table, else the first ``Coverage: N%`` line."""

    total = _TOTAL_COVERAGE_RE.search(output)
    if total is not None:
        return float(total.group(1))
    line = _COVERAGE_LINE_RE.search(output)
    if line is not None:
        return float(line.group(1))
    return None


def _no_tests(output: str) -> bool:
    return any(marker in output for marker in _NO_TESTS_MARKERS)


def register(config: Mapping[str, Any]) -> list[Registration]:
    threshold = float(config.get("coverage", {}).get("threshold", DEFAULT_COVERAGE_THRESHOLD))
    checks = [
        PythonProjectCheck(),
        PythonTestsCheck(),
        PythonFormatCheck(),
        PythonLintCheck(),
        PythonTypeCheck(),
        PythonCoverageCheck(threshold=threshold),
        PythonDepsCheck(),
    ]
    return [check.registration() for check in checks]


__all__ = [
    "PythonCoverageCheck",
    "PythonDepsCheck",
    "PythonFormatCheck",
    "PythonLintCheck",
    "PythonProjectCheck",
    "PythonTestsCheck",
    "PythonTypeCheck",
    "count_type_errors",
    "is_typed_project",
    "parse_python_coverage",
    "register",
]
