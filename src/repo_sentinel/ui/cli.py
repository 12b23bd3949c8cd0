"""Command-line interface router for repo-sentinel."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from repo_sentinel import __version__
from repo_sentinel.checks import build_registry
from repo_sentinel.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
    resolve_config_path,
)
from repo_sentinel.engine.detection import detect_from_config, ordered_tags
from repo_sentinel.engine.pipeline import HealthPipeline
from repo_sentinel.engine.registry import CheckRegistry
from repo_sentinel.engine.report import Report
from repo_sentinel.engine.selection import (
    CHECK_ALIASES,
    available_policies,
    filter_registrations,
    resolve_disabled,
)
from repo_sentinel.engine.verdicts import Registration, Severity
from repo_sentinel.main import ExitCode
from repo_sentinel.observability import configure_logging
from repo_sentinel.ui.render import CLIRenderer, create_renderer
from repo_sentinel.utils.tools import KNOWN_TOOLS, detect_tool


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = int(ExitCode.CONFIG_ERROR)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="sentinel",
        description=(
            "repo-sentinel — repository health checks with critical-failure veto.\n\n"
            "Common workflows:\n"
            "  sentinel check              Run every applicable check on .\n"
            "  sentinel run go:build       Run a single check\n"
            "  sentinel list               Show the check catalog\n"
            "  sentinel doctor             Check config and installed tools\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"sentinel {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a .sentinel.toml/.sentinel.yaml file (default: <repo>/.sentinel.toml).",
    )
    common.add_argument("--profile", default=None, help="Application profile (cli, api, ...).")
    common.add_argument("--target", default=None, help="Maturity target (poc, production).")
    common.add_argument(
        "--lang",
        default=None,
        help="Comma-separated ecosystems to check instead of auto-detection.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and debug logs.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    common.add_argument(
        "--json", action="store_true", default=False, help="Emit deterministic JSON output"
    )
    common.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Log line format on stderr (default: from config, text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Run all applicable checks",
        description=(
            "Run every check that applies to the repository, in order.\n"
            "A failing critical check stops the run.\n\n"
            "Exit codes: 0 ok, 1 threshold reached, 2 config error, 3 incomplete, 4 internal."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    check_parser.add_argument("path", nargs="?", default=".", help="Repository to check")
    check_parser.add_argument(
        "--fail-on",
        choices=("warn", "fail"),
        default=None,
        help="Lowest overall status that yields exit code 1 (default: fail).",
    )
    check_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Default per-check timeout in seconds.",
    )
    check_parser.set_defaults(handler=_cmd_check)

    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Run a single check",
    )
    run_parser.add_argument("check_id", help="Check id (example: go:build)")
    run_parser.add_argument("path", nargs="?", default=".", help="Repository to check")
    run_parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds.")
    run_parser.set_defaults(handler=_cmd_run)

    list_parser = subparsers.add_parser("list", parents=[common], help="List registered checks")
    list_parser.add_argument("--path", default=".", help="Repository whose config to load")
    list_parser.add_argument(
        "--ecosystem",
        default=None,
        help="Only show checks for this ecosystem (universal checks included).",
    )
    list_parser.set_defaults(handler=_cmd_list)

    explain_parser = subparsers.add_parser(
        "explain", parents=[common], help="Describe what a check does"
    )
    explain_parser.add_argument("check_id", help="Check id (example: common:license)")
    explain_parser.add_argument("--path", default=".", help="Repository whose config to load")
    explain_parser.set_defaults(handler=_cmd_explain)

    for kind in ("profiles", "targets"):
        policy_parser = subparsers.add_parser(
            kind, parents=[common], help=f"List available {kind}"
        )
        policy_parser.add_argument("--path", default=".", help="Repository whose config to load")
        policy_parser.set_defaults(handler=_cmd_policies, policy_kind=kind[:-1])

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Print the effective configuration"
    )
    config_parser.add_argument("path", nargs="?", default=".", help="Repository root")
    config_parser.set_defaults(handler=_cmd_config)

    doctor_parser = subparsers.add_parser(
        "doctor",
        parents=[common],
        help="Check config, detected ecosystems, and installed tools",
    )
    doctor_parser.add_argument("path", nargs="?", default=".", help="Repository root")
    doctor_parser.set_defaults(handler=_cmd_doctor)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_check(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(
        args,
        repo,
        {
            "checks.fail_on": args.fail_on,
            "checks.default_timeout_seconds": args.timeout,
        },
    )
    _configure_logging(args, config)

    registry = build_registry(config)
    ecosystems = detect_from_config(repo, config)
    selected = _select(registry, ecosystems, config)
    fail_on = Severity.from_label(config["checks"]["fail_on"])

    as_json = _flag(args, "json")
    renderer = _get_renderer(args)
    if not as_json:
        renderer.run_header(str(repo), ordered_tags(ecosystems), len(selected))

    pipeline = HealthPipeline.from_config(
        config, on_progress=None if as_json else renderer.progress
    )
    report = pipeline.run_sync(repo, selected, ecosystems=ecosystems)
    exit_code = exit_code_for(report, fail_on)

    if as_json:
        _emit_json(
            {
                "command": "check",
                "exit_code": int(exit_code),
                "fail_on": fail_on.label,
                "report": report.to_dict(),
            }
        )
        return int(exit_code)

    renderer.blank()
    renderer.results_table(report)
    renderer.summary(report)
    renderer.recommendations(report, {item.check_id: item.metadata for item in selected})
    return int(exit_code)


def _cmd_run(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(
        args, repo, {"checks.default_timeout_seconds": args.timeout}
    )
    _configure_logging(args, config)

    registry = build_registry(config)
    registration = _lookup(registry, args.check_id)
    ecosystems = detect_from_config(repo, config)
    fail_on = Severity.from_label(config["checks"]["fail_on"])

    as_json = _flag(args, "json")
    renderer = _get_renderer(args)
    pipeline = HealthPipeline.from_config(
        config, on_progress=None if as_json else renderer.progress
    )
    report = pipeline.run_sync(repo, (registration,), ecosystems=ecosystems)
    exit_code = exit_code_for(report, fail_on)

    if as_json:
        _emit_json(
            {"command": "run", "exit_code": int(exit_code), "report": report.to_dict()}
        )
        return int(exit_code)

    outcome = report.outcome_for(registration.check_id)
    suggestion = registration.metadata.suggestion
    if outcome is not None and outcome.severity is not Severity.PASS and suggestion:
        renderer.text(f"  Suggestion: {suggestion}")
    if report.cancelled:
        renderer.warning(report.cancel_reason or "cancelled")
    return int(exit_code)


def _cmd_list(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(args, repo)
    _configure_logging(args, config)
    registry = build_registry(config)

    registrations: Sequence[Registration] = registry.registrations()
    ecosystem = _optional_str(getattr(args, "ecosystem", None))
    if ecosystem is not None:
        registrations = registry.select_for([ecosystem.lower()])

    if _flag(args, "json"):
        _emit_json(
            {"command": "list", "checks": [item.metadata.to_dict() for item in registrations]}
        )
        return 0

    rows = [
        (
            item.check_id,
            item.metadata.name,
            ",".join(ordered_tags(item.metadata.ecosystems)),
            str(item.metadata.order),
            _flags_text(item),
        )
        for item in registrations
    ]
    renderer = _get_renderer(args)
    renderer.table(("ID", "Name", "Ecosystems", "Order", "Flags"), rows)
    renderer.blank()
    renderer.text(f"{len(rows)} check(s)")
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(args, repo)
    _configure_logging(args, config)
    registration = _lookup(build_registry(config), args.check_id)
    metadata = registration.metadata

    if _flag(args, "json"):
        _emit_json({"command": "explain", "check": metadata.to_dict()})
        return 0

    renderer = _get_renderer(args)
    renderer.heading(f"{metadata.check_id} — {metadata.name}")
    renderer.kv("Ecosystems", ", ".join(ordered_tags(metadata.ecosystems)))
    renderer.kv("Order", metadata.order)
    renderer.kv("Critical", "yes (a failure stops the run)" if metadata.critical else "no")
    if metadata.optional:
        renderer.kv("Optional", "yes (warnings are reported as info)")
    if metadata.description:
        renderer.section("What it checks:")
        renderer.text(f"  {metadata.description}")
    if metadata.suggestion:
        renderer.section("How to fix:")
        renderer.text(f"  {metadata.suggestion}")
    return 0


def _cmd_policies(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(args, repo)
    _configure_logging(args, config)
    kind = args.policy_kind
    policies = available_policies(kind, config)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": f"{kind}s",
                f"{kind}s": [policies[name].to_dict() for name in sorted(policies)],
            }
        )
        return 0

    rows = [
        (
            policy.name,
            policy.source,
            policy.description,
            ", ".join(policy.disabled) or "(none)",
        )
        for policy in (policies[name] for name in sorted(policies))
    ]
    renderer = _get_renderer(args)
    renderer.table(("Name", "Source", "Description", "Disabled"), rows)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    repo = _repo_path(args)
    config = _load_effective_config(args, repo)
    source = resolve_config_path(repo, _optional_str(getattr(args, "config_path", None)))

    if _flag(args, "json"):
        print(dump_effective_config(config))
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Config file", str(source) if source is not None else "(defaults only)")
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


def _cmd_doctor(args: argparse.Namespace) -> int:
    checks: list[tuple[str, bool, str]] = []
    repo = Path(args.path).expanduser().resolve()

    config: dict[str, Any] | None = None
    try:
        config = _load_effective_config(args, repo)
        source = resolve_config_path(repo, _optional_str(getattr(args, "config_path", None)))
        detail = f"loaded from {source}" if source is not None else "defaults (no config file)"
        checks.append(("config", True, detail))
    except CLIError as exc:
        checks.append(("config", False, str(exc)))

    ecosystems: tuple[str, ...] = ()
    if config is not None and repo.is_dir():
        try:
            ecosystems = ordered_tags(detect_from_config(repo, config))
            checks.append(("ecosystems", True, ", ".join(ecosystems)))
        except ValueError as exc:
            checks.append(("ecosystems", False, str(exc)))
    elif not repo.is_dir():
        checks.append(("ecosystems", False, f"not a directory: {repo}"))

    tools: list[dict[str, object]] = []
    for name, hint in KNOWN_TOOLS:
        info = detect_tool(name)
        if info is None:
            tools.append({"name": name, "found": False, "hint": hint})
        else:
            tools.append(
                {"name": name, "found": True, "path": info.binary_path, "version": info.version}
            )

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "doctor",
                "checks": [
                    {"name": name, "status": "ok" if passed else "fail", "detail": detail}
                    for name, passed, detail in checks
                ],
                "tools": tools,
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.heading("sentinel doctor")
    for name, passed, detail in checks:
        if passed:
            renderer.ok(f"{name}: {detail}")
        else:
            renderer.fail(f"{name}: {detail}")
    renderer.section("Tools:")
    for tool in tools:
        if tool["found"]:
            version = f" ({tool['version']})" if tool.get("version") else ""
            renderer.ok(f"{tool['name']:<14} {tool['path']}{version}")
        else:
            renderer.fail(f"{tool['name']:<14} not found; {tool['hint']}")
    missing = sum(1 for tool in tools if not tool["found"])
    renderer.blank()
    if missing:
        renderer.text(f"{missing} tool(s) missing; checks that need them report INFO.")
    else:
        renderer.text("All tools found.")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def exit_code_for(report: Report, fail_on: Severity) -> ExitCode:
    """Map a finished report onto the process exit-code contract."""

    if report.cancelled:
        return ExitCode.INCOMPLETE
    if report.threshold_reached(fail_on):
        return ExitCode.CHECKS_FAILED
    if report.incomplete:
        return ExitCode.INCOMPLETE
    return ExitCode.SUCCESS


def _select(
    registry: CheckRegistry,
    ecosystems: frozenset[str],
    config: Mapping[str, Any],
) -> tuple[Registration, ...]:
    applicable = registry.select_for(ecosystems)
    return filter_registrations(applicable, resolve_disabled(config))


def _lookup(registry: CheckRegistry, check_id: str) -> Registration:
    wanted = check_id.strip()
    resolved = wanted if wanted in registry else CHECK_ALIASES.get(wanted, wanted)
    if resolved not in registry:
        raise CLIError(
            f"unknown check {wanted!r}; run 'sentinel list' to see available checks",
            exit_code=int(ExitCode.CONFIG_ERROR),
        )
    return registry.get(resolved)


def _flags_text(registration: Registration) -> str:
    flags: list[str] = []
    if registration.metadata.critical:
        flags.append("critical")
    if registration.metadata.optional:
        flags.append("optional")
    return ",".join(flags)


def _repo_path(args: argparse.Namespace) -> Path:
    candidate = Path(getattr(args, "path", ".") or ".").expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"not a directory: {candidate}", exit_code=int(ExitCode.CONFIG_ERROR))
    return candidate


def _load_effective_config(
    args: argparse.Namespace,
    repo: Path,
    extra_overrides: Mapping[str, object] | None = None,
) -> dict[str, Any]:
    overrides: dict[str, object] = {
        "run.profile": _optional_str(getattr(args, "profile", None)),
        "run.target": _optional_str(getattr(args, "target", None)),
        "observability.log_format": getattr(args, "log_format", None),
    }
    lang = _optional_str(getattr(args, "lang", None))
    if lang is not None:
        overrides["language.explicit"] = [
            part.strip().lower() for part in lang.split(",") if part.strip()
        ]
    overrides.update(extra_overrides or {})

    try:
        return load_config(
            repo,
            config_path=_optional_str(getattr(args, "config_path", None)),
            cli_overrides=overrides,
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.CONFIG_ERROR)) from exc


def _configure_logging(args: argparse.Namespace, config: Mapping[str, Any]) -> None:
    observability = config.get("observability", {})
    level = "DEBUG" if _flag(args, "verbose") else observability.get("log_level", "WARNING")
    configure_logging(level, observability.get("log_format", "text"), stream=sys.stderr)


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _optional_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = [
    "CLIError",
    "build_parser",
    "exit_code_for",
    "run_cli",
]
