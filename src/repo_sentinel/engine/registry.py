"""
repo-sentinel — check registry

File: src/repo_sentinel/engine/registry.py
Last updated: 2026-10-19

Purpose
- Hold the complete, de-duplicated catalog of registered checks.
- Compose the catalog from independent per-ecosystem registration groups.

Normative behavior
- Built once, then read-only; safe to share across concurrent runs.
- Duplicate identities, an empty catalog, or a registration that violates the
  check contract raise ``RegistryError`` before any repository is assessed.
- ``select_for`` orders by ascending ``order``; ties keep registration order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any, NoReturn

import structlog

from repo_sentinel.constants import ECOSYSTEM_COMMON
from repo_sentinel.engine.verdicts import Check, Registration

RegistrationGroup = Callable[[Mapping[str, Any]], Sequence[Registration]]


class RegistryError(ValueError):
    """Configuration fault detected while building the registry."""


class CheckRegistry:
    """Immutable, ordered catalog of ``Registration`` entries."""

    __slots__ = ("_by_id", "_ordered")

    def __init__(self, registrations: Iterable[Registration]) -> None:
        ordered: list[Registration] = []
        by_id: dict[str, Registration] = {}
        for index, registration in enumerate(registrations):
            _validate_registration(registration, index)
            existing = by_id.get(registration.check_id)
            if existing is not None:
                _fail(
                    f"duplicate check id {registration.check_id!r} "
                    f"(already registered as {existing.metadata.name!r})"
                )
            by_id[registration.check_id] = registration
            ordered.append(registration)

        if not ordered:
            _fail("registry is empty; at least one check must be registered")

        # Stable sort keeps registration sequence on equal ``order``.
        self._ordered: tuple[Registration, ...] = tuple(
            sorted(ordered, key=lambda item: item.metadata.order)
        )
        self._by_id: Mapping[str, Registration] = MappingProxyType(by_id)

    @classmethod
    def build(
        cls,
        groups: Sequence[RegistrationGroup],
        config: Mapping[str, Any] | None = None,
        *,
        logger: Any | None = None,
    ) -> CheckRegistry:
        """Call each group with ``config``, flatten in group order, and freeze."""

        log = logger if logger is not None else structlog.get_logger(__name__)
        effective = config if config is not None else {}
        collected: list[Registration] = []
        for group in groups:
            produced = group(effective)
            if isinstance(produced, Registration):
                _fail(f"group {_group_name(group)} must return a sequence of registrations")
            collected.extend(produced)

        registry = cls(collected)
        log.debug("registry_built", groups=len(groups), checks=len(registry))
        return registry

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[Registration]:
        return iter(self._ordered)

    def __contains__(self, check_id: object) -> bool:
        return isinstance(check_id, str) and check_id in self._by_id

    def contains(self, check_id: str) -> bool:
        return check_id in self

    def get(self, check_id: str) -> Registration:
        registration = self._by_id.get(check_id.strip())
        if registration is None:
            raise KeyError(f"unknown check {check_id!r}")
        return registration

    def registrations(self) -> tuple[Registration, ...]:
        return self._ordered

    def registered_ids(self) -> tuple[str, ...]:
        return tuple(item.check_id for item in self._ordered)

    def select_for(self, ecosystems: Iterable[str]) -> tuple[Registration, ...]:
        """Return registrations applicable to ``ecosystems`` plus universal ones."""

        wanted = frozenset(tag.strip().lower() for tag in ecosystems if tag.strip())
        return tuple(
            registration
            for registration in self._ordered
            if ECOSYSTEM_COMMON in registration.metadata.ecosystems
            or registration.metadata.ecosystems & wanted
        )


def _validate_registration(registration: object, index: int) -> None:
    if not isinstance(registration, Registration):
        _fail(f"entry {index} is {type(registration).__name__}, expected Registration")
    check = registration.check
    if not isinstance(check, Check):
        _fail(f"{registration.check_id!r}: {type(check).__name__} does not implement Check")
    if check.check_id != registration.metadata.check_id:
        _fail(
            f"{registration.metadata.check_id!r}: metadata id does not match "
            f"check id {check.check_id!r}"
        )


def _group_name(group: object) -> str:
    module = getattr(group, "__module__", "")
    name = getattr(group, "__qualname__", type(group).__name__)
    return f"{module}.{name}" if module else name


def _fail(message: str) -> NoReturn:
    raise RegistryError(message)


__all__ = [
    "CheckRegistry",
    "RegistrationGroup",
    "RegistryError",
]
