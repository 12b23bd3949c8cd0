"""
repo-sentinel — Go checks

File: src/repo_sentinel/checks/go.py
Last updated: 2026-10-19

Purpose
- Module, build and test gates (critical) plus format, vet, coverage and
  vulnerability checks (non-critical) for Go modules.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck, pluralize, read_text
from repo_sentinel.constants import DEFAULT_COVERAGE_THRESHOLD, ECOSYSTEM_GO
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

_MODULE_RE: Final[re.Pattern[str]] = re.compile(r"^\s*module\s+(?P<path>\S+)", re.MULTILINE)
_GO_VERSION_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*go\s+(?P<version>\d+(?:\.\d+){0,2})\s*$", re.MULTILINE
)
_COVERAGE_RE: Final[re.Pattern[str]] = re.compile(r"coverage:\s*([\d.]+)%")


class GoModuleCheck(CommandCheck):
    check_id = "go:module"
    name = "Go Module"
    ecosystem = ECOSYSTEM_GO
    order = 100
    critical = True
    description = "Verifies that go.mod exists and declares a module path."
    suggestion = "Ensure go.mod file exists and is valid"

    def run(self, context: CheckContext) -> Verdict:
        content = read_text(context.source_path(ECOSYSTEM_GO), "go.mod")
        if content is None:
            return self.verdicts.fail("go.mod not found. Run 'go mod init' to create one.")
        module = _MODULE_RE.search(content)
        if module is None:
            return self.verdicts.fail("go.mod is invalid: missing module directive")
        version = _GO_VERSION_RE.search(content)
        if version is None:
            return self.verdicts.warn("go.mod does not specify a Go version.")
        return self.verdicts.passed(
            f"Module: {module.group('path')} (Go {version.group('version')})"
        )


class GoBuildCheck(CommandCheck):
    check_id = "go:build"
    name = "Go Build"
    ecosystem = ECOSYSTEM_GO
    order = 110
    critical = True
    tool = "go"
    description = "Compiles the project using 'go build ./...'."
    suggestion = "Fix build errors before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "go", "build", "./...", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            return self.verdicts.fail("Build failed: " + truncate_message(result.output))
        return self.verdicts.passed("Build successful")


class GoTestsCheck(CommandCheck):
    check_id = "go:tests"
    name = "Go Tests"
    ecosystem = ECOSYSTEM_GO
    order = 120
    critical = True
    tool = "go"
    description = "Runs the test suite using 'go test ./...'."
    suggestion = "Fix failing tests before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "go", "test", "./...", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            if "no test files" in result.output and "FAIL" not in result.stdout:
                return self.verdicts.passed("No test files found")
            return self.verdicts.fail("Tests failed: " + truncate_message(result.output))
        if "no test files" in result.stdout and "ok " not in result.stdout:
            return self.verdicts.passed("No test files found")
        return self.verdicts.passed("All tests passed")


class GoFormatCheck(CommandCheck):
    check_id = "go:format"
    name = "Go Format"
    ecosystem = ECOSYSTEM_GO
    order = 200
    tool = "gofmt"
    description = "Checks that code is formatted according to gofmt."
    suggestion = "Run 'gofmt -w .' to format code"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "gofmt", "-l", ".", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success() and result.stderr.strip():
            return self.verdicts.warn("gofmt error: " + truncate_message(result.stderr))
        files = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if files:
            return self.verdicts.warn(
                "Unformatted files: "
                + truncate_message(", ".join(files))
                + ". Run 'gofmt -w .' to fix."
            )
        return self.verdicts.passed("All Go files are properly formatted")


class GoVetCheck(CommandCheck):
    check_id = "go:vet"
    name = "Go Vet"
    ecosystem = ECOSYSTEM_GO
    order = 210
    tool = "go"
    description = "Runs 'go vet ./...' to find suspicious constructs."
    suggestion = "Fix issues reported by 'go vet'"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "go", "vet", "./...", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            return self.verdicts.warn("go vet found issues: " + truncate_message(result.output))
        return self.verdicts.passed("No issues found")


class GoCoverageCheck(CommandCheck):
    check_id = "go:coverage"
    name = "Go Coverage"
    ecosystem = ECOSYSTEM_GO
    order = 220
    tool = "go"
    description = "Measures statement coverage with 'go test -cover ./...'."
    suggestion = "Add tests to improve coverage"

    def __init__(self, threshold: float = DEFAULT_COVERAGE_THRESHOLD) -> None:
        self.threshold = threshold

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "go", "test", "-cover", "./...", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if "no test files" in result.stdout and "coverage:" not in result.stdout:
            return self.verdicts.warn("No test files found - coverage is 0%")
        if not result.is_success():
            return self.verdicts.warn("Could not measure coverage: tests failed")

        coverage = parse_go_coverage(result.stdout)
        if coverage < self.threshold:
            return self.verdicts.warn(
                f"Coverage {coverage:.1f}% is below threshold {self.threshold:.1f}%"
            )
        return self.verdicts.passed(f"Coverage: {coverage:.1f}%")


class GoDepsCheck(CommandCheck):
    check_id = "go:deps"
    name = "Go Vulnerabilities"
    ecosystem = ECOSYSTEM_GO
    order = 230
    tool = "govulncheck"
    description = "Scans dependencies for known vulnerabilities with govulncheck."
    suggestion = "Update vulnerable dependencies"

    async def run(self, context: CheckContext) -> Verdict:
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(
            context, "govulncheck", "./...", cwd=context.source_path(ECOSYSTEM_GO)
        )
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            count = result.stdout.count("Vulnerability #") or result.stdout.count("GO-")
            if count:
                return self.verdicts.warn(
                    f"{pluralize(count, 'vulnerability', 'vulnerabilities')} found. "
                    "Run 'govulncheck ./...' for details."
                )
            if result.stderr.strip():
                return self.verdicts.warn("govulncheck error: " + truncate_message(result.stderr))
        return self.verdicts.passed("No known vulnerabilities found")


def parse_go_coverage(output: str) -> float:
    """Mean of every ``coverage: N%`` figure in ``go test -cover`` output."""

    values = [float(match) for match in _COVERAGE_RE.findall(output)]
    if not values:
        return 0.0
    return sum(values) / len(values)


def register(config: Mapping[str, Any]) -> list[Registration]:
    threshold = float(config.get("coverage", {}).get("threshold", DEFAULT_COVERAGE_THRESHOLD))
    checks = [
        GoModuleCheck(),
        GoBuildCheck(),
        GoTestsCheck(),
        GoFormatCheck(),
        GoVetCheck(),
        GoCoverageCheck(threshold=threshold),
        GoDepsCheck(),
    ]
    return [check.registration() for check in checks]


__all__ = [
    "GoBuildCheck",
    "GoCoverageCheck",
    "GoDepsCheck",
    "GoFormatCheck",
    "GoModuleCheck",
    "GoTestsCheck",
    "GoVetCheck",
    "parse_go_coverage",
    "register",
]
