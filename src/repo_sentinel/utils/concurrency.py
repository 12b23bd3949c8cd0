"""Async cancellation and timeout primitives used by the check pipeline."""

from __future__ import annotations

import asyncio
import inspect
import signal
from contextlib import contextmanager, suppress
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterator

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation token backed by ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if self._reason is None:
            self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError(self._reason or "operation cancelled")


async def run_with_timeout(
    coroutine: Awaitable[T],
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
) -> T:
    """Run ``coroutine`` with timeout and cooperative cancellation support.

    Raises ``TimeoutError`` when the deadline passes and ``asyncio.CancelledError``
    when ``cancel_token`` fires first. In both cases the inner task is cancelled
    and awaited before returning, so subprocesses it owns are reaped.
    """
    if timeout_seconds <= 0:
        _close_unscheduled_coroutine(coroutine)
        raise ValueError("timeout_seconds must be > 0")

    token = cancel_token or CancellationToken()
    if token.is_cancelled:
        _close_unscheduled_coroutine(coroutine)
        raise asyncio.CancelledError("operation cancelled")

    check_task: asyncio.Task[T] = asyncio.create_task(_await_value(coroutine))
    watcher = asyncio.create_task(token.wait())
    try:
        finished, _ = await asyncio.wait(
            {check_task, watcher}, timeout=timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
        if check_task in finished:
            return check_task.result()
        await _reap(check_task)
        if token.is_cancelled:
            raise asyncio.CancelledError(token.reason or "operation cancelled")
        raise TimeoutError(f"operation timed out after {timeout_seconds} seconds")
    finally:
        await _reap(check_task)
        await _reap(watcher)


@contextmanager
def cancel_on_interrupt(
    token: CancellationToken,
    *,
    signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[None]:
    """Route operator interrupts to ``token`` for the duration of the block.

    Must be entered from inside a running event loop. Platforms without
    ``add_signal_handler`` keep their default interrupt behavior.
    """
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for signum in signals:
        with suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(signum, token.cancel, f"interrupted by {signum.name}")
            installed.append(signum)
    try:
        yield
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)


async def _await_value(awaitable: Awaitable[T]) -> T:
    return await awaitable


async def _reap(task: asyncio.Task[object]) -> None:
    if task.done():
        return
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


def _close_unscheduled_coroutine(awaitable: Awaitable[object]) -> None:
    # Rejected before scheduling; avoids "coroutine was never awaited".
    if inspect.iscoroutine(awaitable):
        awaitable.close()


__all__ = [
    "CancellationToken",
    "cancel_on_interrupt",
    "run_with_timeout",
]
