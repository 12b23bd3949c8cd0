"""
repo-sentinel — check pipeline

File: src/repo_sentinel/engine/pipeline.py
Last updated: 2026-10-19

Purpose
- Run selected, ordered registrations against one repository path and produce
  a ``Report``, honoring veto semantics.

Normative behavior
- Checks run sequentially in the given order; one external process at a time.
- Each check runs under a bounded timeout (per-check override, else default).
- A critical check returning FAIL vetoes the run: nothing after it executes and
  the overall status is FAIL.
- A raised exception, a timeout, or a contract violation is a fault for that
  check only; the run continues and faults never affect severity.
- Optional checks have WARN downgraded to INFO; non-critical checks have FAIL
  capped at WARN so the veto path is the only way to an overall FAIL.
- Cancellation kills the in-flight check and finalizes the report as
  ``incomplete``.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import structlog

from repo_sentinel.constants import DEFAULT_CHECK_TIMEOUT_SECONDS
from repo_sentinel.engine.execution import CommandExecutor, LocalSubprocessExecutor
from repo_sentinel.engine.report import (
    CheckOutcome,
    FaultKind,
    PipelineFault,
    Report,
    VetoRecord,
)
from repo_sentinel.engine.verdicts import (
    CheckContext,
    Registration,
    Severity,
    Verdict,
)
from repo_sentinel.utils.concurrency import (
    CancellationToken,
    cancel_on_interrupt,
    run_with_timeout,
)
from repo_sentinel.utils.tools import ToolLocator, which

ProgressCallback = Callable[[CheckOutcome, int], None]


class HealthPipeline:
    """Sequential check runner with per-check timeouts and critical veto."""

    def __init__(
        self,
        *,
        executor: CommandExecutor | None = None,
        config: Mapping[str, Any] | None = None,
        default_timeout_seconds: float = DEFAULT_CHECK_TIMEOUT_SECONDS,
        timeouts: Mapping[str, float] | None = None,
        locator: ToolLocator = which,
        on_progress: ProgressCallback | None = None,
        logger: Any | None = None,
    ) -> None:
        if default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be > 0")
        resolved_timeouts = dict(timeouts or {})
        for check_id, value in resolved_timeouts.items():
            if value <= 0:
                raise ValueError(f"timeout for check {check_id!r} must be > 0")

        self._executor = executor if executor is not None else LocalSubprocessExecutor()
        self._config: Mapping[str, Any] = config if config is not None else {}
        self._default_timeout_seconds = float(default_timeout_seconds)
        self._timeouts = {key: float(value) for key, value in resolved_timeouts.items()}
        self._locator = locator
        self._on_progress = on_progress
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        executor: CommandExecutor | None = None,
        locator: ToolLocator = which,
        on_progress: ProgressCallback | None = None,
    ) -> HealthPipeline:
        checks = config.get("checks", {})
        return cls(
            executor=executor,
            config=config,
            default_timeout_seconds=float(
                checks.get("default_timeout_seconds", DEFAULT_CHECK_TIMEOUT_SECONDS)
            ),
            timeouts=checks.get("timeouts", {}),
            locator=locator,
            on_progress=on_progress,
        )

    def timeout_for(self, check_id: str) -> float:
        return self._timeouts.get(check_id, self._default_timeout_seconds)

    async def run(
        self,
        path: str | Path,
        registrations: Sequence[Registration],
        *,
        ecosystems: frozenset[str] = frozenset(),
        cancel_token: CancellationToken | None = None,
    ) -> Report:
        root = Path(path)
        token = cancel_token or CancellationToken()
        report = Report(
            path=root,
            ecosystems=ecosystems,
            selected=tuple(item.check_id for item in registrations),
        )
        started = time.perf_counter()
        veto: VetoRecord | None = None
        cancelled = False
        total = len(registrations)

        for position, registration in enumerate(registrations, start=1):
            if token.is_cancelled:
                cancelled = True
                break

            context = CheckContext(
                path=root,
                executor=self._executor,
                config=self._config,
                ecosystems=ecosystems,
                locator=self._locator,
                cancel_token=token,
            )
            try:
                outcome = await self._run_check(registration, position, context, token)
            except asyncio.CancelledError:
                cancelled = True
                self._logger.warning(
                    "pipeline_cancelled",
                    check_id=registration.check_id,
                    position=position,
                    reason=token.reason,
                )
                break

            report.record(outcome)
            if self._on_progress is not None:
                self._on_progress(outcome, total)

            if outcome.vetoes:
                veto = VetoRecord(
                    check_id=outcome.check_id,
                    name=registration.metadata.name,
                    position=position,
                    message=outcome.message,
                )
                self._logger.info(
                    "pipeline_vetoed",
                    check_id=outcome.check_id,
                    position=position,
                    skipped=total - position,
                )
                break

        return report.finalize(
            vetoed_by=veto,
            cancelled=cancelled,
            cancel_reason=(token.reason or "cancelled") if cancelled else None,
            duration_ms=_duration_ms(started),
        )

    def run_sync(
        self,
        path: str | Path,
        registrations: Sequence[Registration],
        *,
        ecosystems: frozenset[str] = frozenset(),
    ) -> Report:
        """Run on a fresh event loop; SIGINT/SIGTERM cancel the run cooperatively."""

        async def _main() -> Report:
            token = CancellationToken()
            with cancel_on_interrupt(token):
                return await self.run(
                    path, registrations, ecosystems=ecosystems, cancel_token=token
                )

        return asyncio.run(_main())

    async def _run_check(
        self,
        registration: Registration,
        position: int,
        context: CheckContext,
        cancel_token: CancellationToken,
    ) -> CheckOutcome:
        metadata = registration.metadata
        timeout_seconds = self.timeout_for(metadata.check_id)
        start = time.perf_counter()
        self._logger.debug("check_started", check_id=metadata.check_id, position=position)

        try:
            raw = await self._invoke_check(
                registration=registration,
                context=context,
                timeout_seconds=timeout_seconds,
                cancel_token=cancel_token,
            )
        except TimeoutError:
            return self._fault(
                registration,
                position,
                start,
                FaultKind.TIMEOUT,
                f"check timed out after {timeout_seconds:g}s",
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - one broken check must not abort the run.
            return self._fault(
                registration,
                position,
                start,
                FaultKind.ERROR,
                f"{type(exc).__name__}: {exc}",
            )

        if not isinstance(raw, Verdict):
            return self._fault(
                registration,
                position,
                start,
                FaultKind.CONTRACT,
                f"check returned {type(raw).__name__}, expected Verdict",
            )
        if raw.check_id != metadata.check_id:
            return self._fault(
                registration,
                position,
                start,
                FaultKind.CONTRACT,
                f"verdict id {raw.check_id!r} does not match registration",
            )

        verdict = raw
        downgraded = False
        capped = False
        if metadata.optional and verdict.severity is Severity.WARN:
            verdict = verdict.with_severity(Severity.INFO)
            downgraded = True
        if not metadata.critical and verdict.severity is Severity.FAIL:
            verdict = verdict.with_severity(Severity.WARN)
            capped = True
            self._logger.warning("severity_capped", check_id=metadata.check_id)

        outcome = CheckOutcome(
            metadata=metadata,
            position=position,
            duration_ms=_duration_ms(start),
            verdict=verdict,
            downgraded=downgraded,
            capped=capped,
        )
        self._logger.debug(
            "check_finished",
            check_id=metadata.check_id,
            severity=verdict.severity.label,
            duration_ms=outcome.duration_ms,
        )
        return outcome

    async def _invoke_check(
        self,
        *,
        registration: Registration,
        context: CheckContext,
        timeout_seconds: float,
        cancel_token: CancellationToken,
    ) -> object:
        run = registration.check.run
        awaitable: Awaitable[object]
        if inspect.iscoroutinefunction(run):
            awaitable = run(context)
        else:
            # Sync bodies block; keep them off the loop so timeouts and SIGINT still fire.
            awaitable = _run_off_loop(run, context)
        return await run_with_timeout(awaitable, timeout_seconds, cancel_token)

    def _fault(
        self,
        registration: Registration,
        position: int,
        start: float,
        kind: FaultKind,
        detail: str,
    ) -> CheckOutcome:
        self._logger.warning(
            "check_fault",
            check_id=registration.check_id,
            kind=kind.value,
            detail=detail,
        )
        return CheckOutcome(
            metadata=registration.metadata,
            position=position,
            duration_ms=_duration_ms(start),
            fault=PipelineFault(check_id=registration.check_id, kind=kind, detail=detail),
        )


def _duration_ms(start: float) -> int:
    elapsed_seconds = max(time.perf_counter() - start, 0.0)
    return int(round(elapsed_seconds * 1000))


async def _run_off_loop(run: Callable[[CheckContext], object], context: CheckContext) -> object:
    result = await asyncio.to_thread(run, context)
    if inspect.isawaitable(result):
        return await result
    return result


__all__ = [
    "HealthPipeline",
    "ProgressCallback",
]
