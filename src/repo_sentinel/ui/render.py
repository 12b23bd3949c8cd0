"""Output rendering for the sentinel CLI.

File: src/repo_sentinel/ui/render.py
Last updated: 2026-10-19

Purpose
- Render run progress, result tables, summaries, veto/cancellation notices,
  and maturity on a ``rich`` console.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.

What should be included in this file
- CLIRenderer class with methods for common output patterns.
- Factory function to create a renderer with appropriate settings.

Functional requirements
- User-controlled text (check messages, paths) is never interpreted as markup.
- Output stays readable without color; status words always accompany symbols.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import TYPE_CHECKING, Final, TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from repo_sentinel.engine.report import CheckOutcome, FaultKind, Report, RunStatus
from repo_sentinel.engine.verdicts import Severity

if TYPE_CHECKING:
    from repo_sentinel.engine.verdicts import CheckMetadata

_SEVERITY_MARKS: Final[dict[Severity, tuple[str, str, str]]] = {
    Severity.PASS: ("✓", "PASS", "green"),
    Severity.INFO: ("ℹ", "INFO", "cyan"),
    Severity.WARN: ("!", "WARN", "yellow"),
    Severity.FAIL: ("✗", "FAIL", "red"),
}
_FAULT_MARK: Final[tuple[str, str, str]] = ("?", "ERROR", "magenta")


def _color_allowed(no_color_flag: bool) -> bool:
    if no_color_flag:
        return False
    return not os.environ.get("NO_COLOR", "")


def format_duration(duration_ms: int) -> str:
    if duration_ms <= 0:
        return ""
    if duration_ms < 1000:
        return f"({duration_ms}ms)"
    return f"({duration_ms / 1000:.1f}s)"


def outcome_mark(outcome: CheckOutcome) -> tuple[str, str, str]:
    """Symbol, status word, and style for one outcome."""

    if outcome.severity is None:
        if outcome.fault is not None and outcome.fault.kind is FaultKind.TIMEOUT:
            return ("?", "TIMEOUT", "magenta")
        return _FAULT_MARK
    return _SEVERITY_MARKS[outcome.severity]


class CLIRenderer:
    """Rich-backed CLI output renderer.

    All user-derived strings go through ``Text`` so square brackets in check
    output are printed literally.
    """

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: TextIO | None = None,
        width: int | None = None,
    ) -> None:
        self.verbose = verbose
        self.color = _color_allowed(no_color)
        self.console = Console(
            file=stream,
            no_color=not self.color,
            highlight=False,
            emoji=False,
            width=width,
        )

    # -- generic -----------------------------------------------------------

    def heading(self, text: str) -> None:
        self.console.print(Text(text, style="bold"))

    def kv(self, key: str, value: object) -> None:
        self.console.print(Text(f"{key}: {value}"))

    def text(self, line: str) -> None:
        self.console.print(Text(line))

    def blank(self) -> None:
        self.console.print()

    def section(self, title: str) -> None:
        self.console.print()
        self.console.print(Text(title, style="bold"))

    def warning(self, text: str) -> None:
        self.console.print(Text(f"  Warning: {text}", style="yellow"))

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self.console.print(Text(f"  {prefix}{entry}"))

    def ok(self, label: str) -> None:
        line = Text("  ")
        line.append("✓", style="green")
        line.append(f" {label}")
        self.console.print(line)

    def fail(self, label: str) -> None:
        line = Text("  ")
        line.append("✗", style="red")
        line.append(f" {label}")
        self.console.print(line)

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        if not rows:
            return
        table = Table(title=title, show_edge=False, box=None, pad_edge=False)
        for header in headers:
            table.add_column(header, overflow="fold")
        for row in rows:
            table.add_row(*(Text(str(cell)) for cell in row))
        self.console.print(table)

    # -- run output --------------------------------------------------------

    def run_header(self, path: str, ecosystems: Sequence[str], total: int) -> None:
        self.heading(f"sentinel check {path}")
        self.text(f"Ecosystems: {', '.join(ecosystems) or 'none'}  Checks: {total}")
        self.blank()

    def progress(self, outcome: CheckOutcome, total: int) -> None:
        """One line per finished check: ``[3/12] ✓ PASS Go Build (120ms) - go:build``."""

        symbol, status, style = outcome_mark(outcome)
        line = Text(f"[{outcome.position}/{total}] ")
        line.append(f"{symbol} {status}", style=style)
        line.append(f" {outcome.metadata.name}")
        duration = format_duration(outcome.duration_ms)
        if duration:
            line.append(f" {duration}", style="dim")
        line.append(f" - {outcome.check_id}", style="dim")
        self.console.print(line)
        message = outcome.message
        if message and (self.verbose or outcome.severity is not Severity.PASS):
            self.console.print(Text(f"    {message}", style="dim"))

    def results_table(self, report: Report) -> None:
        table = Table(show_edge=False, box=None, pad_edge=False)
        table.add_column("#", justify="right")
        table.add_column("Status")
        table.add_column("Check")
        table.add_column("Message", overflow="fold")
        for outcome in report.outcomes:
            symbol, status, style = outcome_mark(outcome)
            table.add_row(
                str(outcome.position),
                Text(f"{symbol} {status}", style=style),
                Text(outcome.check_id),
                Text(outcome.message),
            )
        self.console.print(table)

    def summary(self, report: Report) -> None:
        self.console.print()
        self.console.print(Text("─" * 37, style="dim"))
        self._status_line(report)

        summary = report.summary
        score = f"Score: {summary.passed}/{summary.total} checks passed ({summary.score:.0f}%)"
        if summary.info:
            score += f" + {summary.info} info"
        duration = format_duration(report.duration_ms)
        if duration:
            score += f" in {duration}"
        self.console.print()
        self.console.print(Text(score, style="bold"))
        if report.faults:
            self.console.print(
                Text(f"{len(report.faults)} check(s) could not complete", style="magenta")
            )

        if report.status is RunStatus.INCOMPLETE:
            return
        maturity = report.maturity
        self.console.print()
        self.console.print(Text(f"Maturity: {maturity.level.display_name}", style="bold"))
        self.console.print(Text(f"   {maturity.level.description}", style="dim"))
        for suggestion in maturity.suggestions:
            self.console.print(Text(f"   → {suggestion}", style="dim"))

    def recommendations(
        self, report: Report, metadata: dict[str, CheckMetadata]
    ) -> None:
        lines: list[str] = []
        for outcome in report.outcomes:
            if outcome.severity is Severity.PASS:
                continue
            meta = metadata.get(outcome.check_id)
            if meta is not None and meta.suggestion:
                lines.append(f"{outcome.check_id}: {meta.suggestion}")
        if lines:
            self.section("Recommendations:")
            self.items(lines, prefix="→ ")

    def _status_line(self, report: Report) -> None:
        if report.vetoed_by is not None:
            veto = report.vetoed_by
            self.console.print(Text("STATUS: ✗ CRITICAL FAILURE (Aborted)", style="bold red"))
            self.console.print(
                Text(f"  {veto.name} ({veto.check_id}) failed: {veto.message}", style="red")
            )
            if report.not_run:
                self.console.print(
                    Text(f"  Not run: {', '.join(report.not_run)}", style="dim")
                )
            return
        if report.cancelled:
            self.console.print(Text("STATUS: ? INCOMPLETE (Cancelled)", style="bold magenta"))
            self.console.print(Text(f"  {report.cancel_reason or 'cancelled'}", style="magenta"))
            if report.not_run:
                self.console.print(
                    Text(f"  Not run: {', '.join(report.not_run)}", style="dim")
                )
            return
        if report.overall is Severity.FAIL:
            self.console.print(Text("STATUS: ✗ FAILED", style="bold red"))
        elif report.overall is Severity.WARN:
            self.console.print(Text("STATUS: ⚠ NEEDS ATTENTION", style="bold yellow"))
        else:
            self.console.print(Text("STATUS: ✓ ALL CHECKS PASSED", style="bold green"))


def create_renderer(
    *,
    no_color: bool = False,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer", "format_duration", "outcome_mark"]
