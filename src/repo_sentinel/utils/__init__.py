"""Utility exports for concurrency and tool detection helpers."""

from repo_sentinel.utils.concurrency import (
    CancellationToken,
    cancel_on_interrupt,
    run_with_timeout,
)
from repo_sentinel.utils.tools import ToolInfo, detect_tool, install_hint, which

__all__ = [
    "CancellationToken",
    "ToolInfo",
    "cancel_on_interrupt",
    "detect_tool",
    "install_hint",
    "run_with_timeout",
    "which",
]
