"""
repo-sentinel — universal repository hygiene checks

File: src/repo_sentinel/checks/common.py
Last updated: 2026-10-19

Purpose
- Language-independent checks that apply to every repository: required files,
  container readiness, CI, secret hygiene, license, changelog, contribution
  guidelines, editor config and pre-commit hooks.

Normative behavior
- None of these checks is critical; missing artifacts produce WARN or INFO.
- ``common:editorconfig`` and ``common:precommit`` are optional, so their WARN
  is reported as INFO.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import (
    BaseCheck,
    CommandCheck,
    first_existing,
    read_json,
    read_text,
    walk_files,
)
from repo_sentinel.constants import DEFAULT_REQUIRED_FILES
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

_MAX_SECRET_FINDINGS: Final[int] = 10
_MAX_SCAN_BYTES: Final[int] = 1_000_000


class RequiredFilesCheck(BaseCheck):
    check_id = "common:files"
    name = "Required Files"
    order = 900
    description = "Verifies that the configured required files exist."
    suggestion = "Add the missing files (README.md, LICENSE)"

    def __init__(self, required: Sequence[str] = DEFAULT_REQUIRED_FILES) -> None:
        self.required = tuple(required)

    def run(self, context: CheckContext) -> Verdict:
        missing = [name for name in self.required if not (context.path / name).exists()]
        if missing:
            return self.verdicts.warn("Missing files: " + ", ".join(missing))
        return self.verdicts.passed("All required files present")


class DockerfileCheck(BaseCheck):
    check_id = "common:dockerfile"
    name = "Container Ready"
    order = 910
    description = "Looks for a Dockerfile or Containerfile."
    suggestion = "Add a Dockerfile to containerize the application"

    def run(self, context: CheckContext) -> Verdict:
        found = first_existing(
            context.path, ("Dockerfile", "dockerfile", "Containerfile", "containerfile")
        )
        if found is None:
            return self.verdicts.info("No Dockerfile or Containerfile found")
        if (context.path / ".dockerignore").is_file():
            return self.verdicts.passed(f"{found} found with .dockerignore")
        return self.verdicts.passed(f"{found} found (consider adding .dockerignore)")


def _has_github_actions(root: Path) -> bool:
    workflows = root / ".github" / "workflows"
    if not workflows.is_dir():
        return False
    return any(
        entry.is_file() and entry.suffix in (".yml", ".yaml") for entry in workflows.iterdir()
    )


def _exists(*names: str) -> Callable[[Path], bool]:
    return lambda root: first_existing(root, names) is not None


CI_PROVIDERS: Final[tuple[tuple[str, Callable[[Path], bool]], ...]] = (
    ("GitHub Actions", _has_github_actions),
    ("GitLab CI", _exists(".gitlab-ci.yml")),
    ("Jenkins", _exists("Jenkinsfile")),
    ("CircleCI", _exists(".circleci/config.yml")),
    ("Travis CI", _exists(".travis.yml")),
    ("Azure Pipelines", _exists("azure-pipelines.yml")),
    ("Bitbucket Pipelines", _exists("bitbucket-pipelines.yml")),
    ("Drone CI", _exists(".drone.yml")),
    ("Taskfile", _exists("Taskfile.yml", "Taskfile.yaml")),
)


class CICheck(BaseCheck):
    check_id = "common:ci"
    name = "CI Pipeline"
    order = 920
    description = "Detects a CI/CD pipeline configuration."
    suggestion = "Add a CI pipeline (e.g. GitHub Actions)"

    def run(self, context: CheckContext) -> Verdict:
        found = [name for name, present in CI_PROVIDERS if present(context.path)]
        if not found:
            return self.verdicts.warn("No CI/CD configuration found")
        return self.verdicts.passed(", ".join(found) + " configured")


SCANNER_CONFIGS: Final[tuple[tuple[str, str], ...]] = (
    ("Gitleaks", ".gitleaks.toml"),
    ("Gitleaks", ".gitleaks.yaml"),
    ("Gitleaks", "gitleaks.toml"),
    ("TruffleHog", ".trufflehog.yml"),
    ("TruffleHog", "trufflehog.yml"),
    ("Secretlint", ".secretlintrc"),
    ("Secretlint", ".secretlintrc.json"),
    ("git-secrets", ".git-secrets"),
    ("detect-secrets", ".secrets.baseline"),
)
_PRECOMMIT_SECRET_HOOKS: Final[tuple[str, ...]] = (
    "gitleaks",
    "trufflehog",
    "detect-secrets",
    "git-secrets",
    "secretlint",
)
SECRET_PATTERNS: Final[tuple[tuple[str, re.Pattern[str]], ...]] = (
    ("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("Private Key", re.compile(r"-----BEGIN\s+(?:RSA|DSA|EC|OPENSSH|PGP)\s+PRIVATE\s+KEY-----")),
    ("GitHub Token", re.compile(r"gh[pousr]_[A-Za-z0-9_]{36,}")),
    ("Generic API Key", re.compile(r"(?i)api[_-]?key\s*[=:]\s*['\"][a-zA-Z0-9]{20,}['\"]")),
    ("Generic Secret", re.compile(r"(?i)secret[_-]?key\s*[=:]\s*['\"][a-zA-Z0-9]{20,}['\"]")),
    ("Generic Password", re.compile(r"(?i)password\s*[=:]\s*['\"][^'\"]{8,}['\"]")),
    ("Database URL", re.compile(r"(?i)(?:mysql|postgres|mongodb|redis)://[^:\s]+:[^@\s]+@")),
    ("Slack Token", re.compile(r"xox[baprs]-[0-9]{10,13}-[0-9]{10,13}[a-zA-Z0-9-]*")),
    ("Stripe Key", re.compile(r"sk_live_[0-9a-zA-Z]{24,}")),
)
# Only unambiguous key material is reported from test files.
_TEST_FILE_PATTERNS: Final[frozenset[str]] = frozenset({"AWS Access Key", "Private Key"})
_SCANNED_SUFFIXES: Final[tuple[str, ...]] = (
    ".go",
    ".py",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".java",
    ".rb",
    ".php",
    ".cs",
    ".yaml",
    ".yml",
    ".json",
    ".xml",
    ".config",
    ".env",
    ".sh",
    ".bash",
    ".toml",
    ".ini",
)
_ENV_TEMPLATES: Final[frozenset[str]] = frozenset(
    {".env.example", ".env.sample", ".env.template", "example.env"}
)


class SecretsCheck(CommandCheck):
    check_id = "common:secrets"
    name = "Secrets Detection"
    order = 940
    tool = "gitleaks"
    description = "Looks for secret scanning and for committed credentials."
    suggestion = "Add gitleaks (or similar) and remove committed secrets"

    async def run(self, context: CheckContext) -> Verdict:
        scanners = _configured_scanners(context.path)
        if scanners:
            return self.verdicts.passed("Secret scanning configured: " + ", ".join(scanners))

        if not self.tool_missing(context):
            result = await self.run_tool(
                context, "gitleaks", "detect", "--no-git", "--no-banner", "--source", "."
            )
            if result.started and result.exit_code == 0:
                return self.verdicts.passed("gitleaks: no leaks found")
            if result.started and result.exit_code == 1:
                return self.verdicts.warn(
                    "gitleaks found potential leaks: " + truncate_message(result.output, 150)
                )

        findings = await asyncio.to_thread(scan_for_secrets, context.path)
        if len(findings) == 1:
            return self.verdicts.warn(f"Potential secret found: {findings[0]}")
        if findings:
            shown = ", ".join(findings[:3])
            return self.verdicts.warn(f"{len(findings)} potential secrets found (e.g., {shown})")
        return self.verdicts.info(
            "No secret scanning configured; built-in scan found nothing (consider gitleaks)"
        )


def _configured_scanners(root: Path) -> list[str]:
    found = [name for name, filename in SCANNER_CONFIGS if (root / filename).exists()]
    precommit = read_text(root, ".pre-commit-config.yaml") or ""
    if any(hook in precommit.lower() for hook in _PRECOMMIT_SECRET_HOOKS):
        found.append("pre-commit hook")
    return list(dict.fromkeys(found))


def scan_for_secrets(root: Path, *, limit: int = _MAX_SECRET_FINDINGS) -> list[str]:
    """Regex scan of source/config files; returns ``"<kind> in <file>:<line>"`` entries."""

    findings: list[str] = []
    for path in walk_files(root, keep_hidden=(".github", ".circleci")):
        filename = path.name
        lowered = filename.lower()
        if lowered in _ENV_TEMPLATES:
            continue
        is_env = filename.startswith(".env") and "example" not in lowered
        if not lowered.endswith(_SCANNED_SUFFIXES) and not is_env:
            continue
        try:
            if path.stat().st_size > _MAX_SCAN_BYTES:
                continue
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue

        is_test = (
            "_test." in filename
            or ".test." in filename
            or ".spec." in filename
            or filename.startswith("test_")
        )
        relative = path.relative_to(root).as_posix()
        for number, line in enumerate(text.splitlines(), start=1):
            for kind, pattern in SECRET_PATTERNS:
                if is_test and kind not in _TEST_FILE_PATTERNS:
                    continue
                if pattern.search(line):
                    findings.append(f"{kind} in {relative}:{number}")
                    break
            if len(findings) >= limit:
                return findings
    return findings


LICENSE_FILES: Final[tuple[str, ...]] = (
    "LICENSE",
    "LICENSE.md",
    "LICENSE.txt",
    "LICENCE",
    "LICENCE.md",
    "COPYING",
    "COPYING.md",
)
_SPDX_RE: Final[re.Pattern[str]] = re.compile(r"SPDX-License-Identifier:\s*([\w.+-]+)")


def identify_license(text: str) -> str | None:
    """Best-effort SPDX family for a license file body."""

    spdx = _SPDX_RE.search(text)
    if spdx is not None:
        return spdx.group(1)
    upper = text.upper()
    if "GNU AFFERO GENERAL PUBLIC LICENSE" in upper:
        return "AGPL-3.0"
    if "GNU LESSER GENERAL PUBLIC LICENSE" in upper:
        return "LGPL-3.0" if "VERSION 3" in upper else "LGPL-2.1"
    if "GNU GENERAL PUBLIC LICENSE" in upper:
        return "GPL-3.0" if "VERSION 3" in upper else "GPL-2.0"
    if "APACHE LICENSE" in upper and "VERSION 2.0" in upper:
        return "Apache-2.0"
    if "MOZILLA PUBLIC LICENSE" in upper:
        return "MPL-2.0"
    if "MIT LICENSE" in upper or "PERMISSION IS HEREBY GRANTED, FREE OF CHARGE" in upper:
        return "MIT"
    if "ISC LICENSE" in upper or "PERMISSION TO USE, COPY, MODIFY, AND/OR DISTRIBUTE" in upper:
        return "ISC"
    if "REDISTRIBUTION AND USE IN SOURCE AND BINARY FORMS" in upper:
        return "BSD-3-Clause" if "NEITHER THE NAME" in upper else "BSD-2-Clause"
    if "UNENCUMBERED SOFTWARE RELEASED INTO THE PUBLIC DOMAIN" in upper:
        return "Unlicense"
    return None


class LicenseCheck(BaseCheck):
    check_id = "common:license"
    name = "License"
    order = 950
    description = "Verifies a license file exists and identifies its family."
    suggestion = "Add a LICENSE file (see choosealicense.com)"

    def run(self, context: CheckContext) -> Verdict:
        found = first_existing(context.path, LICENSE_FILES)
        if found is None:
            return self.verdicts.warn("No LICENSE file found")
        family = identify_license(read_text(context.path, found) or "")
        if family is None:
            return self.verdicts.info(f"{found} found (license family not recognised)")
        return self.verdicts.passed(f"{found}: {family}")


CHANGELOG_FILES: Final[tuple[str, ...]] = (
    "CHANGELOG.md",
    "CHANGELOG.txt",
    "CHANGELOG",
    "CHANGES.md",
    "CHANGES.txt",
    "CHANGES",
    "HISTORY.md",
    "HISTORY.txt",
    "HISTORY",
    "NEWS.md",
    "NEWS.txt",
    "NEWS",
    "RELEASES.md",
    "RELEASE_NOTES.md",
)
RELEASE_TOOLS: Final[tuple[tuple[str, str], ...]] = (
    ("GoReleaser", ".goreleaser.yml"),
    ("GoReleaser", ".goreleaser.yaml"),
    ("semantic-release", ".releaserc"),
    ("semantic-release", ".releaserc.json"),
    ("semantic-release", "release.config.js"),
    ("release-please", "release-please-config.json"),
    ("release-please", ".release-please-manifest.json"),
    ("changesets", ".changeset/config.json"),
)
_KEEP_A_CHANGELOG_MARKERS: Final[tuple[str, ...]] = (
    "## [Unreleased]",
    "## [unreleased]",
    "### Added",
    "### Changed",
    "### Deprecated",
    "### Removed",
    "### Fixed",
    "### Security",
    "keepachangelog.com",
)
_CONVENTIONAL_MARKERS: Final[tuple[str, ...]] = (
    "## [",
    "### Features",
    "### Bug Fixes",
    "### BREAKING CHANGES",
    "feat:",
    "fix:",
)


def changelog_format(content: str) -> str:
    if not content.strip():
        return "empty"
    if sum(marker in content for marker in _KEEP_A_CHANGELOG_MARKERS) >= 2:
        return "Keep a Changelog format"
    if sum(marker in content for marker in _CONVENTIONAL_MARKERS) >= 2:
        return "Conventional Changelog format"
    if "# " in content:
        return "markdown format"
    return "plain text"


class ChangelogCheck(BaseCheck):
    check_id = "common:changelog"
    name = "Changelog"
    order = 965
    description = "Looks for a changelog or release tooling."
    suggestion = "Add a CHANGELOG.md (see keepachangelog.com)"

    def run(self, context: CheckContext) -> Verdict:
        tools = list(
            dict.fromkeys(
                name for name, filename in RELEASE_TOOLS if (context.path / filename).exists()
            )
        )
        found = first_existing(context.path, CHANGELOG_FILES)
        if found is not None:
            detail = changelog_format(read_text(context.path, found) or "")
            message = f"{found} found ({detail})"
            if tools:
                message += ", " + ", ".join(tools) + " configured"
            return self.verdicts.passed(message)
        if tools:
            return self.verdicts.passed("Release tooling configured: " + ", ".join(tools))
        return self.verdicts.warn("No changelog found (consider adding CHANGELOG.md)")


class ContributingCheck(BaseCheck):
    check_id = "common:contributing"
    name = "Contributing Guidelines"
    order = 970
    description = "Looks for contribution guidelines, templates and code owners."
    suggestion = "Add a CONTRIBUTING.md describing how to contribute"

    _GROUPS: Final[tuple[tuple[str | None, tuple[str, ...]], ...]] = (
        (
            None,
            (
                "CONTRIBUTING.md",
                "CONTRIBUTING.txt",
                "CONTRIBUTING",
                ".github/CONTRIBUTING.md",
                "docs/CONTRIBUTING.md",
            ),
        ),
        (
            "PR template",
            (
                ".github/PULL_REQUEST_TEMPLATE.md",
                ".github/pull_request_template.md",
                ".github/PULL_REQUEST_TEMPLATE",
                "docs/pull_request_template.md",
            ),
        ),
        (
            "issue templates",
            (".github/ISSUE_TEMPLATE.md", ".github/issue_template.md", ".github/ISSUE_TEMPLATE"),
        ),
        ("CODEOWNERS", ("CODEOWNERS", ".github/CODEOWNERS", "docs/CODEOWNERS")),
    )

    def run(self, context: CheckContext) -> Verdict:
        found: list[str] = []
        for label, names in self._GROUPS:
            match = first_existing(context.path, names)
            if match is not None:
                found.append(label or match)
        if not found:
            return self.verdicts.warn(
                "No contribution guidelines found (consider adding CONTRIBUTING.md)"
            )
        return self.verdicts.passed("Found: " + ", ".join(found))


class EditorconfigCheck(BaseCheck):
    check_id = "common:editorconfig"
    name = "Editor Config"
    order = 1060
    optional = True
    description = "Looks for shared editor settings."
    suggestion = "Add an .editorconfig for consistent formatting"

    def run(self, context: CheckContext) -> Verdict:
        root = context.path
        found: list[str] = []
        content = read_text(root, ".editorconfig")
        if content is not None:
            found.append(".editorconfig")
        if (root / ".vscode" / "settings.json").is_file():
            found.append("VS Code settings")
        if first_existing(root, (".devcontainer/devcontainer.json", ".devcontainer.json")):
            found.append("Dev Container")
        if content:
            lowered = content.lower()
            settings = [
                label
                for key, label in (
                    ("indent_style", "indent"),
                    ("end_of_line", "line endings"),
                    ("charset", "charset"),
                    ("trim_trailing_whitespace", "whitespace"),
                )
                if key in lowered
            ]
            if settings:
                found.append("configures: " + ", ".join(settings))
        if not found:
            return self.verdicts.warn("No editor config found (consider adding .editorconfig)")
        return self.verdicts.passed("Editor config: " + ", ".join(found))


_HOOK_NAMES: Final[tuple[str, ...]] = ("pre-commit", "pre-push", "commit-msg", "prepare-commit-msg")


class PrecommitCheck(BaseCheck):
    check_id = "common:precommit"
    name = "Pre-commit Hooks"
    order = 1065
    optional = True
    description = "Looks for pre-commit hook tooling."
    suggestion = "Add pre-commit hooks (pre-commit, Husky or Lefthook)"

    def run(self, context: CheckContext) -> Verdict:
        root = context.path
        found: list[str] = []
        if first_existing(root, (".pre-commit-config.yaml", ".pre-commit-config.yml")):
            found.append("pre-commit")
        if _has_husky(root):
            found.append("Husky")
        if first_existing(root, ("lefthook.yml", "lefthook.yaml", ".lefthook.yml")):
            found.append("Lefthook")
        if (root / ".overcommit.yml").is_file():
            found.append("Overcommit")
        if _has_git_hooks(root):
            found.append("git hooks")
        if not found:
            return self.verdicts.warn(
                "No pre-commit hooks configured (consider adding pre-commit, Husky, or Lefthook)"
            )
        return self.verdicts.passed("Pre-commit hooks configured: " + ", ".join(found))


def _has_husky(root: Path) -> bool:
    husky = root / ".husky"
    if husky.is_dir() and any((husky / name).is_file() for name in _HOOK_NAMES):
        return True
    try:
        package = read_json(root, "package.json")
    except ValueError:
        return False
    if not isinstance(package, Mapping):
        return False
    dev = package.get("devDependencies")
    return "husky" in package or (isinstance(dev, Mapping) and "husky" in dev)


def _has_git_hooks(root: Path) -> bool:
    hooks = root / ".git" / "hooks"
    for name in _HOOK_NAMES:
        hook = hooks / name
        if hook.is_file() and hook.stat().st_mode & 0o111:
            return True
    return False


def register(config: Mapping[str, Any]) -> list[Registration]:
    required = config.get("files", {}).get("required", DEFAULT_REQUIRED_FILES)
    checks: list[BaseCheck] = [
        RequiredFilesCheck(required=required),
        DockerfileCheck(),
        CICheck(),
        SecretsCheck(),
        LicenseCheck(),
        ChangelogCheck(),
        ContributingCheck(),
        EditorconfigCheck(),
        PrecommitCheck(),
    ]
    return [check.registration() for check in checks]


__all__ = [
    "CICheck",
    "ChangelogCheck",
    "ContributingCheck",
    "DockerfileCheck",
    "EditorconfigCheck",
    "LicenseCheck",
    "PrecommitCheck",
    "RequiredFilesCheck",
    "SecretsCheck",
    "changelog_format",
    "identify_license",
    "register",
    "scan_for_secrets",
]
