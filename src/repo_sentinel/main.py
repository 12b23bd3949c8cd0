"""Executable CLI entrypoint for ``repo_sentinel``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    CHECKS_FAILED = 1
    CONFIG_ERROR = 2
    INCOMPLETE = 3
    INTERNAL_ERROR = 4


_KNOWN_CODES = frozenset(int(code) for code in ExitCode)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m repo_sentinel`` and the ``sentinel`` script."""

    try:
        from repo_sentinel.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _normalize_exit_code(exc.code)
    except BaseException as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _route_exception(exc)
        _emit_failure(exc, exit_code)
        return int(exit_code)


def _normalize_exit_code(raw_code: object) -> int:
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, int) and raw_code in _KNOWN_CODES:
        return raw_code
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    user_errors = (*_config_error_types(), FileNotFoundError, NotADirectoryError, PermissionError)
    for item in _iter_exception_chain(exc):
        if isinstance(item, KeyboardInterrupt):
            return ExitCode.INCOMPLETE
        if isinstance(item, user_errors):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _config_error_types() -> tuple[type[BaseException], ...]:
    from repo_sentinel.config import ConfigLoadError, ConfigValidationError
    from repo_sentinel.engine.detection import UnknownEcosystemError
    from repo_sentinel.engine.registry import RegistryError
    from repo_sentinel.engine.selection import SelectionError

    return (
        ConfigLoadError,
        ConfigValidationError,
        RegistryError,
        SelectionError,
        UnknownEcosystemError,
    )


def _iter_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__


def _emit_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    if exit_code is ExitCode.INCOMPLETE:
        _write_stderr("interrupted")
        return
    _write_stderr(f"error: {str(exc).strip() or exc.__class__.__name__}")


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint"]
