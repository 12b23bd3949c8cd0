"""
repo-sentinel — repository health checker

File: src/repo_sentinel/__init__.py
Last updated: 2026-10-19

Purpose
- Package root. Runs an ordered battery of quality checks against a source
  repository and aggregates them into one verdict, where a failing critical
  check vetoes the remainder of the run.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
