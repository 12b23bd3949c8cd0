from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from repo_sentinel.checks import common as common_module
from repo_sentinel.checks.common import (
    ChangelogCheck,
    CICheck,
    ContributingCheck,
    DockerfileCheck,
    EditorconfigCheck,
    LicenseCheck,
    PrecommitCheck,
    RequiredFilesCheck,
    SecretsCheck,
    changelog_format,
    identify_license,
    register,
    scan_for_secrets,
)
from repo_sentinel.engine.pipeline import HealthPipeline
from repo_sentinel.engine.report import FaultKind
from repo_sentinel.engine.verdicts import CheckContext, Severity

MakeContext = Callable[..., CheckContext]

# Assembled at runtime so this file does not itself trip secret scanners.
_AWS_KEY = "AKIA" + "ABCDEFGHIJKLMNOP"
_DB_URL = "postgres://" + "admin:hunter2" + "@db.internal/app"


def _write(root: Path, name: str, text: str = "") -> Path:
    target = root / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def test_required_files(tmp_path: Path, make_context: MakeContext) -> None:
    check = RequiredFilesCheck()
    _write(tmp_path, "README.md")

    missing = check.run(make_context(tmp_path))
    _write(tmp_path, "LICENSE")
    present = check.run(make_context(tmp_path))

    assert missing.severity is Severity.WARN
    assert missing.message == "Missing files: LICENSE"
    assert present.severity is Severity.PASS


def test_required_files_are_configurable(tmp_path: Path, make_context: MakeContext) -> None:
    verdict = RequiredFilesCheck(required=["SECURITY.md"]).run(make_context(tmp_path))

    assert verdict.message == "Missing files: SECURITY.md"


def test_dockerfile(tmp_path: Path, make_context: MakeContext) -> None:
    check = DockerfileCheck()
    assert check.run(make_context(tmp_path)).severity is Severity.INFO

    _write(tmp_path, "Containerfile")
    assert check.run(make_context(tmp_path)).message == (
        "Containerfile found (consider adding .dockerignore)"
    )

    _write(tmp_path, ".dockerignore")
    assert check.run(make_context(tmp_path)).message == "Containerfile found with .dockerignore"


def test_ci_detects_multiple_providers(tmp_path: Path, make_context: MakeContext) -> None:
    assert CICheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, ".github/workflows/ci.yml")
    _write(tmp_path, ".gitlab-ci.yml")
    verdict = CICheck().run(make_context(tmp_path))

    assert verdict.severity is Severity.PASS
    assert verdict.message == "GitHub Actions, GitLab CI configured"


def test_ci_ignores_empty_workflows_dir(tmp_path: Path, make_context: MakeContext) -> None:
    (tmp_path / ".github" / "workflows").mkdir(parents=True)
    _write(tmp_path, ".github/workflows/README.md")

    assert CICheck().run(make_context(tmp_path)).severity is Severity.WARN


async def test_secrets_scanner_config_passes(tmp_path: Path, make_context: MakeContext) -> None:
    _write(tmp_path, ".gitleaks.toml")
    _write(tmp_path, ".pre-commit-config.yaml", "repos:\n  - repo: detect-secrets\n")

    verdict = await SecretsCheck().run(make_context(tmp_path))

    assert verdict.severity is Severity.PASS
    assert verdict.message == "Secret scanning configured: Gitleaks, pre-commit hook"


async def test_secrets_runs_gitleaks_when_installed(
    tmp_path: Path, make_context: MakeContext, make_executor: type
) -> None:
    argv = ("gitleaks", "detect", "--no-git", "--no-banner", "--source", ".")
    clean = make_executor({argv: (0, "")})
    leaky = make_executor({argv: (1, "Finding: aws key\nRuleID: aws-access-token")})

    ok = await SecretsCheck().run(make_context(tmp_path, executor=clean, tools=["gitleaks"]))
    found = await SecretsCheck().run(make_context(tmp_path, executor=leaky, tools=["gitleaks"]))

    assert ok.message == "gitleaks: no leaks found"
    assert found.severity is Severity.WARN
    assert found.message.startswith("gitleaks found potential leaks")


async def test_secrets_falls_back_to_builtin_scan(
    tmp_path: Path, make_context: MakeContext
) -> None:
    _write(tmp_path, "config/settings.py", f'KEY = "{_AWS_KEY}"\n')

    verdict = await SecretsCheck().run(make_context(tmp_path))

    assert verdict.severity is Severity.WARN
    assert verdict.message == "Potential secret found: AWS Access Key in config/settings.py:1"


async def test_secrets_clean_repo_is_info(tmp_path: Path, make_context: MakeContext) -> None:
    _write(tmp_path, "main.py", "print('hello')\n")

    verdict = await SecretsCheck().run(make_context(tmp_path))

    assert verdict.severity is Severity.INFO


async def test_slow_builtin_secret_scan_respects_check_timeout(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    make_executor: Callable[..., Any],
    make_locator: Callable[..., Any],
) -> None:
    def slow_scan(root: Path) -> list[str]:
        time.sleep(1.0)
        return []

    monkeypatch.setattr(common_module, "scan_for_secrets", slow_scan)
    pipeline = HealthPipeline(
        executor=make_executor(), locator=make_locator(), default_timeout_seconds=0.1
    )
    started = time.perf_counter()

    report = await pipeline.run(tmp_path, [SecretsCheck().registration()])

    fault = report.outcomes[0].fault
    assert fault is not None
    assert fault.kind is FaultKind.TIMEOUT
    assert time.perf_counter() - started < 0.9


def test_scan_skips_templates_vendored_dirs_and_soft_test_matches(tmp_path: Path) -> None:
    _write(tmp_path, ".env.example", f"DATABASE_URL={_DB_URL}\n")
    _write(tmp_path, "node_modules/pkg/index.js", f'const k = "{_AWS_KEY}"\n')
    _write(tmp_path, "app_test.go", f'const dsn = "{_DB_URL}"\n')
    _write(tmp_path, "README.md", f"{_AWS_KEY}\n")

    assert scan_for_secrets(tmp_path) == []


def test_scan_reports_env_and_test_key_material(tmp_path: Path) -> None:
    _write(tmp_path, ".env", f"DATABASE_URL={_DB_URL}\n")
    _write(tmp_path, "test_keys.py", f"\n\nKEY = '{_AWS_KEY}'\n")

    findings = scan_for_secrets(tmp_path)

    assert findings == ["Database URL in .env:1", "AWS Access Key in test_keys.py:3"]


def test_scan_respects_limit(tmp_path: Path) -> None:
    _write(tmp_path, "keys.py", "".join(f"K{index} = '{_AWS_KEY}'\n" for index in range(20)))

    assert len(scan_for_secrets(tmp_path, limit=4)) == 4


@pytest.mark.parametrize(
    ("body", "family"),
    [
        ("SPDX-License-Identifier: MPL-2.0", "MPL-2.0"),
        ("MIT License\n\nPermission is hereby granted, free of charge", "MIT"),
        ("Apache License\nVersion 2.0, January 2004", "Apache-2.0"),
        ("GNU GENERAL PUBLIC LICENSE\nVersion 3, 29 June 2007", "GPL-3.0"),
        ("GNU LESSER GENERAL PUBLIC LICENSE\nVersion 2.1", "LGPL-2.1"),
        ("Redistribution and use in source and binary forms ... Neither the name", "BSD-3-Clause"),
        ("All rights reserved.", None),
    ],
)
def test_identify_license(body: str, family: str | None) -> None:
    assert identify_license(body) == family


def test_license_check(tmp_path: Path, make_context: MakeContext) -> None:
    assert LicenseCheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, "COPYING", "Proprietary.")
    assert LicenseCheck().run(make_context(tmp_path)).severity is Severity.INFO

    _write(tmp_path, "LICENSE.md", "MIT License")
    verdict = LicenseCheck().run(make_context(tmp_path))
    assert verdict.message == "LICENSE.md: MIT"


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("", "empty"),
        ("# Changelog\n## [Unreleased]\n### Added\n- x\n", "Keep a Changelog format"),
        ("## [1.0.0]\n### Features\n* feat: x\n", "Conventional Changelog format"),
        ("# Release notes\n", "markdown format"),
        ("v1 - first\n", "plain text"),
    ],
)
def test_changelog_format(content: str, expected: str) -> None:
    assert changelog_format(content) == expected


def test_changelog_check(tmp_path: Path, make_context: MakeContext) -> None:
    assert ChangelogCheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, ".goreleaser.yml")
    assert ChangelogCheck().run(make_context(tmp_path)).message == (
        "Release tooling configured: GoReleaser"
    )

    _write(tmp_path, "CHANGES.md", "# Changes\n")
    assert ChangelogCheck().run(make_context(tmp_path)).message == (
        "CHANGES.md found (markdown format), GoReleaser configured"
    )


def test_contributing_check(tmp_path: Path, make_context: MakeContext) -> None:
    assert ContributingCheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, ".github/CONTRIBUTING.md")
    _write(tmp_path, ".github/pull_request_template.md")
    _write(tmp_path, "CODEOWNERS")
    verdict = ContributingCheck().run(make_context(tmp_path))

    assert verdict.message == "Found: .github/CONTRIBUTING.md, PR template, CODEOWNERS"


def test_editorconfig_lists_configured_settings(
    tmp_path: Path, make_context: MakeContext
) -> None:
    assert EditorconfigCheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, ".editorconfig", "[*]\nindent_style = space\ncharset = utf-8\n")
    _write(tmp_path, ".vscode/settings.json", "{}")
    verdict = EditorconfigCheck().run(make_context(tmp_path))

    assert verdict.message == (
        "Editor config: .editorconfig, VS Code settings, configures: indent, charset"
    )


def test_precommit_sources(tmp_path: Path, make_context: MakeContext) -> None:
    assert PrecommitCheck().run(make_context(tmp_path)).severity is Severity.WARN

    _write(tmp_path, "package.json", '{"devDependencies": {"husky": "^9"}}')
    _write(tmp_path, "lefthook.yml")
    hook = _write(tmp_path, ".git/hooks/pre-push", "#!/bin/sh\n")
    os.chmod(hook, 0o755)
    verdict = PrecommitCheck().run(make_context(tmp_path))

    assert verdict.message == "Pre-commit hooks configured: Husky, Lefthook, git hooks"


def test_precommit_ignores_sample_hooks(tmp_path: Path, make_context: MakeContext) -> None:
    _write(tmp_path, ".git/hooks/pre-commit.sample", "#!/bin/sh\n")

    assert PrecommitCheck().run(make_context(tmp_path)).severity is Severity.WARN


def test_register_optional_flags_and_required_files() -> None:
    registrations = register({"files": {"required": ["README.md"]}})

    by_id = {item.check_id: item for item in registrations}
    assert len(registrations) == 9
    assert not any(item.metadata.critical for item in registrations)
    assert {check_id for check_id, item in by_id.items() if item.metadata.optional} == {
        "common:editorconfig",
        "common:precommit",
    }
    assert by_id["common:files"].check.required == ("README.md",)  # type: ignore[attr-defined]


def test_common_battery_gives_identical_results_on_repeat(
    tmp_path: Path, make_executor: Callable[..., Any], make_locator: Callable[..., Any]
) -> None:
    _write(tmp_path, "README.md", "# demo\n")
    _write(tmp_path, "Dockerfile", "FROM python:3.12\nCMD python app.py\n")
    _write(tmp_path, "config/settings.py", f'KEY = "{_AWS_KEY}"\n')
    registrations = register({})
    pipeline = HealthPipeline(executor=make_executor(default=(0, "")), locator=make_locator())

    first = asyncio.run(pipeline.run(tmp_path, registrations))
    second = asyncio.run(pipeline.run(tmp_path, registrations))

    assert [v.to_dict() for v in first.verdicts] == [v.to_dict() for v in second.verdicts]
    assert first.overall == second.overall
    assert len(first.verdicts) == len(registrations)
