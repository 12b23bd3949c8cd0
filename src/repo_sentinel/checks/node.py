"""
repo-sentinel — Node.js checks

File: src/repo_sentinel/checks/node.py
Last updated: 2026-10-19

Purpose
- package.json, build and test gates (critical) plus format, lint and audit
  checks (non-critical) for Node.js projects.

Package manager
- ``languages.node.package_manager`` when set, else inferred from the lockfile
  (pnpm-lock.yaml, yarn.lock), else npm.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck, first_existing, pluralize, read_json
from repo_sentinel.constants import ECOSYSTEM_NODE
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

PACKAGE_MANAGERS: Final[tuple[str, ...]] = ("npm", "yarn", "pnpm")
PRETTIER_CONFIGS: Final[tuple[str, ...]] = (
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.yaml",
    ".prettierrc.yml",
    ".prettierrc.js",
    ".prettierrc.cjs",
    ".prettierrc.mjs",
    "prettier.config.js",
    "prettier.config.cjs",
    "prettier.config.mjs",
)
ESLINT_CONFIGS: Final[tuple[str, ...]] = (
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
    "eslint.config.ts",
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yaml",
    ".eslintrc.yml",
)
_DEFAULT_TEST_SCRIPT_MARKER: Final[str] = "no test specified"


class PackageJsonError(ValueError):
    """package.json is missing, unreadable, or not a JSON object."""


def load_package_json(root: Path) -> dict[str, Any]:
    try:
        payload = read_json(root, "package.json")
    except ValueError as exc:
        raise PackageJsonError(f"package.json is invalid JSON: {exc}") from exc
    if payload is None:
        raise PackageJsonError("package.json not found")
    if not isinstance(payload, dict):
        raise PackageJsonError("package.json must contain a JSON object")
    return payload


def detect_package_manager(root: Path, configured: object = None) -> str:
    if isinstance(configured, str) and configured.strip().lower() in PACKAGE_MANAGERS:
        return configured.strip().lower()
    if (root / "pnpm-lock.yaml").is_file():
        return "pnpm"
    if (root / "yarn.lock").is_file():
        return "yarn"
    return "npm"


def _scripts(package: Mapping[str, Any]) -> Mapping[str, Any]:
    scripts = package.get("scripts")
    return scripts if isinstance(scripts, Mapping) else {}


def _dev_dependencies(package: Mapping[str, Any]) -> Mapping[str, Any]:
    deps = package.get("devDependencies")
    return deps if isinstance(deps, Mapping) else {}


class NodeCheck(CommandCheck):
    ecosystem = ECOSYSTEM_NODE

    def package_manager(self, context: CheckContext) -> str:
        return detect_package_manager(
            context.source_path(ECOSYSTEM_NODE),
            context.setting("languages", "node", "package_manager", default=None),
        )


class NodeProjectCheck(NodeCheck):
    check_id = "node:project"
    name = "Node Project"
    order = 100
    critical = True
    description = "Verifies package.json is valid JSON and names the package."
    suggestion = "Ensure package.json exists with name and version fields"

    def run(self, context: CheckContext) -> Verdict:
        try:
            package = load_package_json(context.source_path(ECOSYSTEM_NODE))
        except PackageJsonError as exc:
            return self.verdicts.fail(str(exc))
        name = package.get("name")
        if not isinstance(name, str) or not name.strip():
            return self.verdicts.fail("package.json is missing required 'name' field")
        version = package.get("version")
        if not isinstance(version, str) or not version.strip():
            return self.verdicts.warn(f"Package {name} is missing 'version' field")
        return self.verdicts.passed(f"Package: {name} v{version}")


class NodeBuildCheck(NodeCheck):
    check_id = "node:build"
    name = "Node Build"
    order = 110
    critical = True
    description = "Runs the package 'build' script when one is defined."
    suggestion = "Fix build errors before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_NODE)
        try:
            package = load_package_json(root)
        except PackageJsonError as exc:
            return self.verdicts.fail(str(exc))
        if not str(_scripts(package).get("build") or "").strip():
            return self.verdicts.passed("No build script defined")

        manager = self.package_manager(context)
        if self.tool_missing(context, manager):
            return self.not_installed(manager)
        result = await self.run_tool(context, manager, "run", "build", cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            return self.verdicts.fail(
                f"Build failed ({manager}): " + truncate_message(result.output)
            )
        return self.verdicts.passed(f"Build successful ({manager})")


class NodeTestsCheck(NodeCheck):
    check_id = "node:tests"
    name = "Node Tests"
    order = 120
    critical = True
    description = "Runs the package 'test' script."
    suggestion = "Fix failing tests before continuing"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_NODE)
        try:
            package = load_package_json(root)
        except PackageJsonError as exc:
            return self.verdicts.fail(str(exc))
        script = str(_scripts(package).get("test") or "").strip()
        if not script:
            return self.verdicts.passed("No test script defined in package.json")
        if _DEFAULT_TEST_SCRIPT_MARKER in script:
            return self.verdicts.passed("No tests configured (default npm init script)")

        manager = self.package_manager(context)
        if self.tool_missing(context, manager):
            return self.not_installed(manager)
        result = await self.run_tool(context, manager, "test", cwd=root, env={"CI": "true"})
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if not result.is_success():
            return self.verdicts.fail("Tests failed: " + truncate_message(result.output))
        return self.verdicts.passed("All tests passed")


class NodeFormatCheck(NodeCheck):
    check_id = "node:format"
    name = "Node Format"
    order = 200
    tool = "npx"
    description = "Checks formatting with prettier when it is configured."
    suggestion = "Run 'npx prettier --write .' to format code"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_NODE)
        if not _has_config(root, PRETTIER_CONFIGS, "prettier"):
            return self.verdicts.info("No formatter configured (prettier)")
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(context, "npx", "prettier", "--check", ".", cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("All files properly formatted (prettier)")
        count = sum(1 for line in result.output.splitlines() if line.startswith("[warn]"))
        # prettier prints a trailing "[warn] Code style issues found..." summary line.
        count = max(count - 1, 0)
        if count:
            return self.verdicts.warn(
                f"{pluralize(count, 'file')} need formatting. Run: npx prettier --write ."
            )
        return self.verdicts.warn("Files need formatting. Run: npx prettier --write .")


class NodeLintCheck(NodeCheck):
    check_id = "node:lint"
    name = "Node Lint"
    order = 210
    tool = "npx"
    description = "Runs eslint when it is configured."
    suggestion = "Fix linting issues reported by eslint"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_NODE)
        if not _has_config(root, ESLINT_CONFIGS, "eslint"):
            return self.verdicts.info("No linter configured (eslint)")
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(context, "npx", "eslint", ".", cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("No linting issues found")
        return self.verdicts.warn("eslint found issues: " + truncate_message(result.output, 150))


class NodeDepsCheck(NodeCheck):
    check_id = "node:deps"
    name = "Node Vulnerabilities"
    order = 230
    description = "Runs the package manager's security audit."
    suggestion = "Update vulnerable dependencies"

    async def run(self, context: CheckContext) -> Verdict:
        root = context.source_path(ECOSYSTEM_NODE)
        manager = self.package_manager(context)
        if self.tool_missing(context, manager):
            return self.not_installed(manager)
        result = await self.run_tool(context, manager, "audit", "--json", cwd=root)
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        count = count_audit_findings(result.stdout or result.stderr)
        if count:
            return self.verdicts.warn(
                f"{pluralize(count, 'vulnerability', 'vulnerabilities')} found. "
                f"Run: {manager} audit for details"
            )
        return self.verdicts.passed(f"No known vulnerabilities found ({manager} audit)")


def count_audit_findings(output: str) -> int:
    """Vulnerability total from npm/pnpm JSON or yarn's JSON-lines audit output."""

    text = output.strip()
    if not text:
        return 0
    try:
        payload = json.loads(text)
    except ValueError:
        return _count_yarn_advisories(text)
    if not isinstance(payload, Mapping):
        return 0
    metadata = payload.get("metadata")
    if isinstance(metadata, Mapping):
        vulnerabilities = metadata.get("vulnerabilities")
        if isinstance(vulnerabilities, Mapping):
            total = vulnerabilities.get("total")
            if isinstance(total, int) and total > 0:
                return total
            counted = sum(
                value
                for key, value in vulnerabilities.items()
                if key != "total" and isinstance(value, int)
            )
            if counted:
                return counted
    advisories = payload.get("vulnerabilities") or payload.get("advisories")
    if isinstance(advisories, Mapping):
        return len(advisories)
    return 0


def _count_yarn_advisories(text: str) -> int:
    count = 0
    for line in text.splitlines():
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        if isinstance(entry, Mapping) and entry.get("type") == "auditAdvisory":
            count += 1
    return count


def _has_config(root: Path, names: tuple[str, ...], dependency: str) -> bool:
    if first_existing(root, names):
        return True
    try:
        package = load_package_json(root)
    except PackageJsonError:
        return False
    return dependency in _dev_dependencies(package) or dependency in package


def register(config: Mapping[str, Any]) -> list[Registration]:
    checks = [
        NodeProjectCheck(),
        NodeBuildCheck(),
        NodeTestsCheck(),
        NodeFormatCheck(),
        NodeLintCheck(),
        NodeDepsCheck(),
    ]
    return [check.registration() for check in checks]


__all__ = [
    "NodeBuildCheck",
    "NodeDepsCheck",
    "NodeFormatCheck",
    "NodeLintCheck",
    "NodeProjectCheck",
    "NodeTestsCheck",
    "PackageJsonError",
    "count_audit_findings",
    "detect_package_manager",
    "load_package_json",
    "register",
]
