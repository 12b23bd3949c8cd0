"""
repo-sentinel — engine public API.

File: src/repo_sentinel/engine/__init__.py
Last updated: 2026-10-19

Purpose
- Export the verdict model, registry, detection, selection, pipeline, and
  report types used by the CLI and by check modules.
"""

from repo_sentinel.engine.detection import (
    INDICATOR_FILES,
    UnknownEcosystemError,
    detect,
    detect_from_config,
    detect_with_override,
    normalize_tags,
)
from repo_sentinel.engine.execution import (
    CommandExecutor,
    CommandResult,
    CommandSpec,
    LocalSubprocessExecutor,
)
from repo_sentinel.engine.pipeline import HealthPipeline, ProgressCallback
from repo_sentinel.engine.registry import CheckRegistry, RegistrationGroup, RegistryError
from repo_sentinel.engine.report import (
    CheckOutcome,
    FaultKind,
    Maturity,
    MaturityLevel,
    PipelineFault,
    Report,
    RunStatus,
    Summary,
    VetoRecord,
    aggregate,
    estimate_maturity,
)
from repo_sentinel.engine.selection import (
    SelectionError,
    SelectionPolicy,
    available_policies,
    filter_registrations,
    is_disabled,
    matches_pattern,
    resolve_disabled,
    resolve_policy,
)
from repo_sentinel.engine.verdicts import (
    Check,
    CheckContext,
    CheckMetadata,
    Registration,
    Severity,
    Verdict,
    VerdictBuilder,
    truncate_message,
)

__all__ = [
    "INDICATOR_FILES",
    "Check",
    "CheckContext",
    "CheckMetadata",
    "CheckOutcome",
    "CheckRegistry",
    "CommandExecutor",
    "CommandResult",
    "CommandSpec",
    "FaultKind",
    "HealthPipeline",
    "LocalSubprocessExecutor",
    "Maturity",
    "MaturityLevel",
    "PipelineFault",
    "ProgressCallback",
    "Registration",
    "RegistrationGroup",
    "RegistryError",
    "Report",
    "RunStatus",
    "SelectionError",
    "SelectionPolicy",
    "Severity",
    "Summary",
    "UnknownEcosystemError",
    "Verdict",
    "VerdictBuilder",
    "VetoRecord",
    "aggregate",
    "available_policies",
    "detect",
    "detect_from_config",
    "detect_with_override",
    "estimate_maturity",
    "filter_registrations",
    "is_disabled",
    "matches_pattern",
    "normalize_tags",
    "resolve_disabled",
    "resolve_policy",
    "truncate_message",
]
