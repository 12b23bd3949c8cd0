from __future__ import annotations

from pathlib import Path

import pytest

from repo_sentinel.engine.report import (
    CheckOutcome,
    FaultKind,
    MaturityLevel,
    PipelineFault,
    Report,
    RunStatus,
    Summary,
    VetoRecord,
    aggregate,
    estimate_maturity,
)
from repo_sentinel.engine.verdicts import CheckMetadata, Severity, Verdict


def _outcome(
    check_id: str,
    severity: Severity | None,
    *,
    position: int = 1,
    critical: bool = False,
) -> CheckOutcome:
    metadata = CheckMetadata(
        check_id=check_id, name=check_id, ecosystems=["common"], order=position, critical=critical
    )
    if severity is None:
        fault = PipelineFault(check_id=check_id, kind=FaultKind.ERROR, detail="RuntimeError: x")
        return CheckOutcome(metadata=metadata, position=position, duration_ms=3, fault=fault)
    verdict = Verdict(check_id=check_id, name=check_id, severity=severity, message="m")
    return CheckOutcome(metadata=metadata, position=position, duration_ms=3, verdict=verdict)


def test_outcome_requires_exactly_one_of_verdict_or_fault() -> None:
    metadata = CheckMetadata(check_id="a", name="A", ecosystems=["common"], order=1)
    with pytest.raises(ValueError, match="exactly one"):
        CheckOutcome(metadata=metadata, position=1, duration_ms=0)


def test_outcome_position_is_one_based() -> None:
    with pytest.raises(ValueError, match="position"):
        _outcome("a", Severity.PASS, position=0)


def test_outcome_status_for_faults() -> None:
    errored = _outcome("a", None)
    metadata = errored.metadata
    timed_out = CheckOutcome(
        metadata=metadata,
        position=1,
        duration_ms=0,
        fault=PipelineFault(check_id="a", kind=FaultKind.TIMEOUT, detail="slow"),
    )

    assert errored.status == "error"
    assert timed_out.status == "incomplete"
    assert errored.message == "RuntimeError: x"
    assert timed_out.message == "slow"
    assert errored.severity is None
    assert errored.vetoes is False


def test_outcome_status_and_message_for_verdicts() -> None:
    outcome = _outcome("go:build", Severity.FAIL, critical=True)

    assert outcome.status == "fail"
    assert outcome.message == "m"
    assert outcome.vetoes is True


def test_vetoes_requires_critical_fail() -> None:
    assert _outcome("a", Severity.FAIL, critical=True).vetoes is True
    assert _outcome("a", Severity.WARN, critical=True).vetoes is False
    assert _outcome("a", Severity.FAIL).vetoes is False


@pytest.mark.parametrize(
    ("severities", "vetoed", "expected"),
    [
        ([], False, Severity.PASS),
        ([Severity.PASS, Severity.PASS], False, Severity.PASS),
        ([Severity.PASS, Severity.INFO], False, Severity.INFO),
        ([Severity.INFO, Severity.WARN], False, Severity.WARN),
        ([Severity.PASS, Severity.FAIL], False, Severity.WARN),
        ([Severity.PASS], True, Severity.FAIL),
        ([Severity.PASS, None], False, Severity.PASS),
    ],
)
def test_aggregate(
    severities: list[Severity | None], vetoed: bool, expected: Severity
) -> None:
    outcomes = [
        _outcome(f"c{index}", item, position=index + 1)
        for index, item in enumerate(severities)
    ]

    assert aggregate(outcomes, vetoed=vetoed) is expected


def test_summary_excludes_info_and_faults_from_total() -> None:
    summary = Summary.from_outcomes(
        [
            _outcome("a", Severity.PASS),
            _outcome("b", Severity.PASS),
            _outcome("c", Severity.INFO),
            _outcome("d", Severity.WARN),
            _outcome("e", None),
        ]
    )

    assert (summary.passed, summary.info, summary.warnings, summary.failed) == (2, 1, 1, 0)
    assert summary.faults == 1
    assert summary.total == 3
    assert summary.score == pytest.approx(200 / 3)
    assert summary.to_dict()["score"] == 66.7


def test_summary_empty_score_is_zero() -> None:
    assert Summary.from_outcomes([]).score == 0.0


@pytest.mark.parametrize(
    ("passed", "warnings", "failed", "level"),
    [
        (0, 0, 0, MaturityLevel.PROOF_OF_CONCEPT),
        (10, 0, 0, MaturityLevel.PRODUCTION_READY),
        (9, 1, 0, MaturityLevel.MATURE),
        (8, 0, 2, MaturityLevel.DEVELOPMENT),
        (6, 1, 3, MaturityLevel.PROOF_OF_CONCEPT),
        (1, 3, 0, MaturityLevel.PROOF_OF_CONCEPT),
    ],
)
def test_estimate_maturity(passed: int, warnings: int, failed: int, level: MaturityLevel) -> None:
    summary = Summary(passed=passed, info=0, warnings=warnings, failed=failed, faults=0)

    assert estimate_maturity(summary).level is level


def test_maturity_suggestions() -> None:
    mature = estimate_maturity(Summary(passed=9, info=0, warnings=1, failed=0, faults=0))
    assert mature.suggestions == ("Address warnings to reach production-ready status",)

    poc = estimate_maturity(Summary(passed=1, info=0, warnings=0, failed=3, faults=0))
    assert poc.suggestions[0] == "Focus on critical checks first (build, tests)"
    assert len(poc.suggestions) == 2
    assert MaturityLevel.PRODUCTION_READY.display_name == "Production-Ready"


def test_report_finalize_vetoed(tmp_path: Path) -> None:
    report = Report(path=tmp_path, selected=("go:module", "go:build", "go:tests"))
    report.record(_outcome("go:module", Severity.PASS, position=1))
    report.record(_outcome("go:build", Severity.FAIL, position=2, critical=True))

    veto = VetoRecord(check_id="go:build", name="go:build", position=2, message="m")
    report.finalize(vetoed_by=veto, duration_ms=12)

    assert report.overall is Severity.FAIL
    assert report.status is RunStatus.FAIL
    assert report.not_run == ("go:tests",)
    assert report.threshold_reached(Severity.FAIL)
    assert report.incomplete is False


def test_report_finalize_cancelled_has_no_overall(tmp_path: Path) -> None:
    report = Report(path=tmp_path, selected=("a", "b"))
    report.record(_outcome("a", Severity.WARN))

    report.finalize(cancelled=True, cancel_reason="interrupted by SIGINT")

    assert report.overall is None
    assert report.status is RunStatus.INCOMPLETE
    assert report.incomplete is True
    assert report.cancel_reason == "interrupted by SIGINT"
    assert report.threshold_reached(Severity.PASS) is False
    assert report.to_dict()["overall"] is None


def test_report_faults_mark_incomplete_but_keep_overall(tmp_path: Path) -> None:
    report = Report(path=tmp_path, selected=("a", "b"))
    report.record(_outcome("a", Severity.PASS, position=1))
    report.record(_outcome("b", None, position=2))

    report.finalize()

    assert report.overall is Severity.PASS
    assert report.incomplete is True
    assert [fault.check_id for fault in report.faults] == ["b"]
    assert report.outcome_for("b") is not None
    assert report.outcome_for("zzz") is None


def test_report_is_frozen_after_finalize(tmp_path: Path) -> None:
    report = Report(path=tmp_path).finalize()

    with pytest.raises(RuntimeError, match="finalized"):
        report.record(_outcome("a", Severity.PASS))
    with pytest.raises(RuntimeError, match="already finalized"):
        report.finalize()


def test_report_to_dict_shape(tmp_path: Path) -> None:
    report = Report(path=tmp_path, ecosystems=frozenset({"common", "go"}), selected=("a",))
    report.record(_outcome("a", Severity.INFO))
    payload = report.finalize(duration_ms=5).to_dict()

    assert payload["ecosystems"] == ["go", "common"]
    assert payload["status"] == "info"
    assert payload["results"][0]["id"] == "a"
    assert payload["results"][0]["passed"] is True
    assert payload["summary"]["total"] == 0
    assert payload["maturity"]["level"] == "poc"
    assert payload["vetoed_by"] is None
