"""
repo-sentinel — infrastructure-as-code checks

File: src/repo_sentinel/checks/devops.py
Last updated: 2026-10-19

Purpose
- Terraform, Ansible and Helm checks. They apply to every repository but only
  do real work when the corresponding files exist; otherwise they report INFO.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from repo_sentinel.checks.base import CommandCheck, pluralize, walk_files
from repo_sentinel.engine.verdicts import CheckContext, Registration, Verdict, truncate_message

_PLAYBOOK_NAMES: Final[tuple[str, ...]] = (
    "playbook.yml",
    "playbook.yaml",
    "site.yml",
    "site.yaml",
)
_PLAYBOOK_MARKERS: Final[tuple[str, ...]] = (
    "hosts:",
    "tasks:",
    "gather_facts:",
    "ansible.builtin.",
)
_ANSIBLE_DIRS: Final[tuple[str, ...]] = ("ansible", "playbooks", "roles")


class DevOpsCheck(CommandCheck):
    """Marker base: devops checks are universal and never critical."""


class TerraformCheck(DevOpsCheck):
    check_id = "devops:terraform"
    name = "Terraform Configuration"
    order = 950
    tool = "terraform"
    description = "Checks Terraform formatting with 'terraform fmt -check -recursive'."
    suggestion = "Run 'terraform fmt -recursive' to format configuration"

    async def run(self, context: CheckContext) -> Verdict:
        files = await asyncio.to_thread(find_terraform_files, context.path)
        if not files:
            return self.verdicts.info("No Terraform files found")
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(context, "terraform", "fmt", "-check", "-recursive")
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed(
                f"terraform fmt passed ({pluralize(len(files), 'file')})"
            )
        unformatted = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if unformatted:
            return self.verdicts.warn(
                "Unformatted Terraform files: " + truncate_message(", ".join(unformatted))
            )
        return self.verdicts.warn("terraform fmt failed: " + truncate_message(result.output))


class AnsibleCheck(DevOpsCheck):
    check_id = "devops:ansible"
    name = "Ansible Configuration"
    order = 960
    tool = "ansible-lint"
    description = "Lints Ansible playbooks and roles with ansible-lint."
    suggestion = "Fix issues reported by ansible-lint"

    async def run(self, context: CheckContext) -> Verdict:
        if not await asyncio.to_thread(has_ansible_content, context.path):
            return self.verdicts.info("No Ansible files found")
        if self.tool_missing(context):
            return self.not_installed()
        result = await self.run_tool(context, "ansible-lint", ".")
        skipped = self.not_started(result)
        if skipped is not None:
            return skipped
        if result.is_success():
            return self.verdicts.passed("ansible-lint passed")
        return self.verdicts.warn("ansible-lint found issues: " + truncate_message(result.output))


class HelmCheck(DevOpsCheck):
    check_id = "devops:helm"
    name = "Helm Charts"
    order = 980
    tool = "helm"
    description = "Lints every Helm chart with 'helm lint'."
    suggestion = "Fix issues reported by 'helm lint'"

    async def run(self, context: CheckContext) -> Verdict:
        charts = await asyncio.to_thread(find_helm_charts, context.path)
        if not charts:
            return self.verdicts.info("No Helm charts found")
        if self.tool_missing(context):
            return self.not_installed()

        failures: list[str] = []
        for chart in charts:
            result = await self.run_tool(context, "helm", "lint", str(chart))
            skipped = self.not_started(result)
            if skipped is not None:
                return skipped
            if not result.is_success():
                relative = chart.relative_to(context.path).as_posix() or "."
                failures.append(f"{relative}: {truncate_message(result.output, 80)}")

        if not failures:
            return self.verdicts.passed(f"helm lint passed for {pluralize(len(charts), 'chart')}")
        message = f"helm lint found issues in {pluralize(len(failures), 'chart')}"
        passed = len(charts) - len(failures)
        if passed:
            message += f" ({pluralize(passed, 'chart')} passed)"
        return self.verdicts.warn(message + ": " + "; ".join(failures))


def find_terraform_files(root: Path) -> list[Path]:
    return list(walk_files(root, suffixes=(".tf",)))


def has_ansible_content(root: Path) -> bool:
    if (root / "ansible.cfg").is_file():
        return True
    if any((root / name).is_file() for name in _PLAYBOOK_NAMES):
        return True
    for dirname in _ANSIBLE_DIRS:
        base = root / dirname
        if not base.is_dir():
            continue
        if dirname == "roles":
            return True
        for path in walk_files(base, suffixes=(".yml", ".yaml"), max_depth=3):
            if _looks_like_playbook(path):
                return True
    return False


def _looks_like_playbook(path: Path) -> bool:
    lowered = path.name.lower()
    if "requirements" in lowered or "galaxy" in lowered:
        return False
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            head = handle.read(4096)
    except OSError:
        return False
    return any(marker in head for marker in _PLAYBOOK_MARKERS)


def find_helm_charts(root: Path) -> list[Path]:
    """Directories containing ``Chart.yaml``/``Chart.yml``, in sorted order."""

    charts: list[Path] = []
    for path in walk_files(root):
        if path.name in ("Chart.yaml", "Chart.yml") and path.parent not in charts:
            charts.append(path.parent)
    return charts


def register(config: Mapping[str, Any]) -> list[Registration]:
    checks = [TerraformCheck(), AnsibleCheck(), HelmCheck()]
    return [check.registration() for check in checks]


__all__ = [
    "AnsibleCheck",
    "HelmCheck",
    "TerraformCheck",
    "find_helm_charts",
    "find_terraform_files",
    "has_ansible_content",
    "register",
]
