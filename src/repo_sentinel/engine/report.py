"""
repo-sentinel — run report, aggregation, and maturity estimate

File: src/repo_sentinel/engine/report.py
Last updated: 2026-10-19

Purpose
- Record per-check outcomes in execution order for one run.
- Reduce outcomes to one overall severity and a run status.
- Summarize counts and estimate project maturity.

Normative behavior
- Overall is FAIL only through the veto path; otherwise WARN if any verdict is
  at least WARN, else INFO if any INFO, else PASS.
- Faults ("could not run") never participate in severity aggregation.
- A cancelled run has status ``incomplete`` and no overall severity.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from repo_sentinel.engine.detection import ordered_tags
from repo_sentinel.engine.verdicts import CheckMetadata, Severity, Verdict


class FaultKind(StrEnum):
    """Why a check could not produce a verdict."""

    ERROR = "error"
    TIMEOUT = "timeout"
    CONTRACT = "contract"


class RunStatus(StrEnum):
    """Overall run status exposed to formatters and the exit-code mapper."""

    PASS = "pass"
    INFO = "info"
    WARN = "warn"
    FAIL = "fail"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_severity(cls, severity: Severity) -> RunStatus:
        return cls(severity.label)


class MaturityLevel(StrEnum):
    PROOF_OF_CONCEPT = "poc"
    DEVELOPMENT = "development"
    MATURE = "mature"
    PRODUCTION_READY = "production-ready"

    @property
    def display_name(self) -> str:
        return _MATURITY_TITLES[self]

    @property
    def description(self) -> str:
        return _MATURITY_DESCRIPTIONS[self]


_MATURITY_TITLES = {
    MaturityLevel.PROOF_OF_CONCEPT: "Proof of Concept",
    MaturityLevel.DEVELOPMENT: "Development",
    MaturityLevel.MATURE: "Mature",
    MaturityLevel.PRODUCTION_READY: "Production-Ready",
}
_MATURITY_DESCRIPTIONS = {
    MaturityLevel.PROOF_OF_CONCEPT: "Early stage, focus on core functionality first",
    MaturityLevel.DEVELOPMENT: "Core functionality works, quality improvements needed",
    MaturityLevel.MATURE: "Most checks pass, minor improvements recommended",
    MaturityLevel.PRODUCTION_READY: "All checks pass, ready for production deployment",
}


@dataclass(frozen=True, slots=True)
class PipelineFault:
    """A single check that could not complete."""

    check_id: str
    kind: FaultKind
    detail: str

    def to_dict(self) -> dict[str, object]:
        return {"check_id": self.check_id, "kind": self.kind.value, "detail": self.detail}


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    """Verdict (or fault) for one executed registration, tagged with its metadata."""

    metadata: CheckMetadata
    position: int
    duration_ms: int
    verdict: Verdict | None = None
    fault: PipelineFault | None = None
    downgraded: bool = False
    capped: bool = False

    def __post_init__(self) -> None:
        if (self.verdict is None) == (self.fault is None):
            raise ValueError("CheckOutcome requires exactly one of verdict or fault")
        if self.position <= 0:
            raise ValueError("CheckOutcome.position must be >= 1")

    @property
    def check_id(self) -> str:
        return self.metadata.check_id

    @property
    def severity(self) -> Severity | None:
        return self.verdict.severity if self.verdict is not None else None

    @property
    def is_fault(self) -> bool:
        return self.fault is not None

    @property
    def vetoes(self) -> bool:
        return self.metadata.critical and self.severity is Severity.FAIL

    @property
    def status(self) -> str:
        if self.verdict is not None:
            return self.verdict.severity.label
        if self.fault is not None and self.fault.kind is FaultKind.TIMEOUT:
            return "incomplete"
        return "error"

    @property
    def message(self) -> str:
        if self.verdict is not None:
            return self.verdict.message
        return self.fault.detail if self.fault is not None else ""

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.check_id,
            "name": self.metadata.name,
            "position": self.position,
            "status": self.status,
            "passed": self.verdict is not None and self.verdict.passed,
            "message": self.message,
            "ecosystem": self.verdict.ecosystem if self.verdict is not None else None,
            "critical": self.metadata.critical,
            "suggestion": self.metadata.suggestion,
            "duration_ms": self.duration_ms,
            "downgraded": self.downgraded,
            "capped": self.capped,
            "fault": self.fault.to_dict() if self.fault is not None else None,
        }


@dataclass(frozen=True, slots=True)
class VetoRecord:
    check_id: str
    name: str
    position: int
    message: str

    def to_dict(self) -> dict[str, object]:
        return {
            "check_id": self.check_id,
            "name": self.name,
            "position": self.position,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class Summary:
    passed: int
    info: int
    warnings: int
    failed: int
    faults: int

    @property
    def total(self) -> int:
        """Checks that count toward the score; Info and faults are excluded."""
        return self.passed + self.warnings + self.failed

    @property
    def score(self) -> float:
        if self.total == 0:
            return 0.0
        return self.passed / self.total * 100.0

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[CheckOutcome]) -> Summary:
        counts = {severity: 0 for severity in Severity}
        faults = 0
        for outcome in outcomes:
            if outcome.severity is None:
                faults += 1
            else:
                counts[outcome.severity] += 1
        return cls(
            passed=counts[Severity.PASS],
            info=counts[Severity.INFO],
            warnings=counts[Severity.WARN],
            failed=counts[Severity.FAIL],
            faults=faults,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "passed": self.passed,
            "info": self.info,
            "warnings": self.warnings,
            "failed": self.failed,
            "faults": self.faults,
            "total": self.total,
            "score": round(self.score, 1),
        }


@dataclass(frozen=True, slots=True)
class Maturity:
    level: MaturityLevel
    score: float
    suggestions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "level": self.level.value,
            "title": self.level.display_name,
            "description": self.level.description,
            "score": round(self.score, 1),
            "suggestions": list(self.suggestions),
        }


def aggregate(outcomes: Iterable[CheckOutcome], *, vetoed: bool) -> Severity:
    """Reduce completed outcomes to one overall severity."""

    if vetoed:
        return Severity.FAIL
    severities = [outcome.severity for outcome in outcomes if outcome.severity is not None]
    if any(severity >= Severity.WARN for severity in severities):
        return Severity.WARN
    if Severity.INFO in severities:
        return Severity.INFO
    return Severity.PASS


def estimate_maturity(summary: Summary) -> Maturity:
    """Map pass/warn/fail counts onto a maturity level with improvement hints."""

    if summary.total == 0:
        return Maturity(level=MaturityLevel.PROOF_OF_CONCEPT, score=0.0)

    score = summary.score
    suggestions: list[str] = []
    if summary.failed == 0 and summary.warnings == 0 and score == 100.0:
        level = MaturityLevel.PRODUCTION_READY
    elif summary.failed == 0 and score >= 80.0:
        level = MaturityLevel.MATURE
        if summary.warnings:
            suggestions.append("Address warnings to reach production-ready status")
    elif summary.failed <= 2 and score >= 60.0:
        level = MaturityLevel.DEVELOPMENT
        suggestions.append("Fix failing checks to improve maturity")
        if summary.warnings:
            suggestions.append("Review and address warnings")
    else:
        level = MaturityLevel.PROOF_OF_CONCEPT
        suggestions.append("Focus on critical checks first (build, tests)")
        if summary.failed > 2:
            suggestions.append("Many checks failing - prioritize fixing build and test failures")
    return Maturity(level=level, score=score, suggestions=tuple(suggestions))


@dataclass(slots=True)
class Report:
    """Ordered outcomes for one run plus the derived overall status."""

    path: Path
    ecosystems: frozenset[str] = frozenset()
    selected: tuple[str, ...] = ()
    outcomes: list[CheckOutcome] = field(default_factory=list)
    overall: Severity | None = None
    vetoed_by: VetoRecord | None = None
    cancelled: bool = False
    cancel_reason: str | None = None
    duration_ms: int = 0
    _finalized: bool = field(default=False, repr=False)

    def record(self, outcome: CheckOutcome) -> None:
        if self._finalized:
            raise RuntimeError("cannot record outcomes on a finalized report")
        self.outcomes.append(outcome)

    def finalize(
        self,
        *,
        vetoed_by: VetoRecord | None = None,
        cancelled: bool = False,
        cancel_reason: str | None = None,
        duration_ms: int = 0,
    ) -> Report:
        if self._finalized:
            raise RuntimeError("report is already finalized")
        self.vetoed_by = vetoed_by
        self.cancelled = cancelled and vetoed_by is None
        self.cancel_reason = cancel_reason if self.cancelled else None
        self.duration_ms = duration_ms
        # A cancelled run never gets a misleading overall severity.
        if self.cancelled:
            self.overall = None
        else:
            self.overall = aggregate(self.outcomes, vetoed=vetoed_by is not None)
        self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def status(self) -> RunStatus:
        if self.overall is None:
            return RunStatus.INCOMPLETE
        return RunStatus.from_severity(self.overall)

    @property
    def verdicts(self) -> tuple[Verdict, ...]:
        return tuple(item.verdict for item in self.outcomes if item.verdict is not None)

    @property
    def faults(self) -> tuple[PipelineFault, ...]:
        return tuple(item.fault for item in self.outcomes if item.fault is not None)

    @property
    def incomplete(self) -> bool:
        return self.cancelled or bool(self.faults)

    @property
    def not_run(self) -> tuple[str, ...]:
        """Selected checks that never executed because of a veto or cancellation."""
        executed = {item.check_id for item in self.outcomes}
        return tuple(check_id for check_id in self.selected if check_id not in executed)

    @property
    def summary(self) -> Summary:
        return Summary.from_outcomes(self.outcomes)

    @property
    def maturity(self) -> Maturity:
        return estimate_maturity(self.summary)

    def threshold_reached(self, fail_on: Severity) -> bool:
        return self.overall is not None and self.overall >= fail_on

    def outcome_for(self, check_id: str) -> CheckOutcome | None:
        for outcome in self.outcomes:
            if outcome.check_id == check_id:
                return outcome
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "ecosystems": list(ordered_tags(self.ecosystems)),
            "status": self.status.value,
            "overall": self.overall.label if self.overall is not None else None,
            "incomplete": self.incomplete,
            "cancelled": self.cancelled,
            "cancel_reason": self.cancel_reason,
            "vetoed_by": self.vetoed_by.to_dict() if self.vetoed_by is not None else None,
            "results": [outcome.to_dict() for outcome in self.outcomes],
            "faults": [fault.to_dict() for fault in self.faults],
            "not_run": list(self.not_run),
            "summary": self.summary.to_dict(),
            "maturity": self.maturity.to_dict(),
            "duration_ms": self.duration_ms,
        }


__all__ = [
    "CheckOutcome",
    "FaultKind",
    "Maturity",
    "MaturityLevel",
    "PipelineFault",
    "Report",
    "RunStatus",
    "Summary",
    "VetoRecord",
    "aggregate",
    "estimate_maturity",
]
