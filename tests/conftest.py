"""Shared fakes for the repo-sentinel test suite.

Nothing here touches the network or real external tools: commands go through
``FakeExecutor`` and tool lookup through ``fake_locator``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import structlog

from repo_sentinel.engine.execution import CommandResult, CommandSpec
from repo_sentinel.engine.verdicts import (
    CheckContext,
    CheckMetadata,
    Registration,
    Severity,
    Verdict,
)
from repo_sentinel.observability import LOGGER_NAME

Reply = CommandResult | tuple[int, str] | tuple[int, str, str]


class FakeExecutor:
    """``CommandExecutor`` answering from a table keyed by argv."""

    def __init__(
        self,
        replies: Mapping[tuple[str, ...], Reply] | None = None,
        *,
        default: Reply | None = None,
    ) -> None:
        self.replies: dict[tuple[str, ...], Reply] = dict(replies or {})
        self.default = default
        self.calls: list[CommandSpec] = []

    @property
    def argvs(self) -> list[tuple[str, ...]]:
        return [spec.argv for spec in self.calls]

    async def run(self, spec: CommandSpec) -> CommandResult:
        self.calls.append(spec)
        reply = self.replies.get(spec.argv, self.default)
        if reply is None:
            raise AssertionError(f"unexpected command: {spec.argv}")
        if isinstance(reply, CommandResult):
            return reply
        exit_code, stdout, *rest = reply
        return CommandResult(
            argv=spec.argv,
            exit_code=exit_code,
            stdout=stdout,
            stderr=rest[0] if rest else "",
            duration_ms=1,
        )


def fake_locator(*tools: str) -> Callable[[str], str | None]:
    available = frozenset(tools)

    def locate(name: str) -> str | None:
        return f"/usr/bin/{name}" if name in available else None

    return locate


@dataclass
class ScriptedCheck:
    """Check whose behavior is fixed up front: a severity, an exception, or a delay.

    ``sleep_seconds`` yields to the loop; ``blocking_seconds`` holds the thread."""

    check_id: str
    name: str = ""
    severity: Severity = Severity.PASS
    message: str = "scripted"
    raises: BaseException | None = None
    sleep_seconds: float = 0.0
    blocking_seconds: float = 0.0
    result: Any = None
    is_async: bool = True
    calls: int = field(default=0)

    def __post_init__(self) -> None:
        self.name = self.name or self.check_id

    def _produce(self) -> Any:
        self.calls += 1
        if self.blocking_seconds:
            time.sleep(self.blocking_seconds)
        if self.raises is not None:
            raise self.raises
        if self.result is not None:
            return self.result
        return Verdict(
            check_id=self.check_id,
            name=self.name,
            severity=self.severity,
            message=self.message,
        )

    def run(self, context: CheckContext) -> Any:
        if not self.is_async:
            return self._produce()
        return self._run_async()

    async def _run_async(self) -> Any:
        if self.sleep_seconds:
            await asyncio.sleep(self.sleep_seconds)
        return self._produce()


def scripted(
    check_id: str,
    severity: Severity = Severity.PASS,
    *,
    order: int = 100,
    critical: bool = False,
    optional: bool = False,
    ecosystems: Iterable[str] = ("common",),
    suggestion: str | None = None,
    **behavior: Any,
) -> Registration:
    check = ScriptedCheck(check_id=check_id, severity=severity, **behavior)
    metadata = CheckMetadata(
        check_id=check_id,
        name=check.name,
        ecosystems=frozenset(ecosystems),
        order=order,
        critical=critical,
        optional=optional,
        suggestion=suggestion,
    )
    return Registration(check=check, metadata=metadata)


@pytest.fixture
def make_executor() -> type[FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def make_locator() -> Callable[..., Callable[[str], str | None]]:
    return fake_locator


@pytest.fixture
def make_registration() -> Callable[..., Registration]:
    return scripted


@pytest.fixture
def make_context() -> Callable[..., CheckContext]:
    def build(
        path: Path,
        *,
        executor: FakeExecutor | None = None,
        tools: Iterable[str] = (),
        config: Mapping[str, Any] | None = None,
        ecosystems: Iterable[str] = ("common",),
    ) -> CheckContext:
        return CheckContext(
            path=path,
            executor=executor if executor is not None else FakeExecutor(),
            config=config or {},
            ecosystems=frozenset(ecosystems),
            locator=fake_locator(*tools),
        )

    return build


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    for name in list(os.environ):
        if name.startswith("SENTINEL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    structlog.reset_defaults()
