"""External tool detection for checks and ``sentinel doctor``.

Detection is offline: ``shutil.which`` for presence and ``<tool> --version``
for the version line shown by doctor.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

ToolLocator = Callable[[str], str | None]

# Tools the built-in checks may invoke, in doctor display order.
KNOWN_TOOLS: Final[tuple[tuple[str, str], ...]] = (
    ("go", "https://go.dev/doc/install"),
    ("gofmt", "ships with the Go toolchain"),
    ("govulncheck", "go install golang.org/x/vuln/cmd/govulncheck@latest"),
    ("python3", "https://www.python.org/downloads/"),
    ("pytest", "pip install pytest"),
    ("ruff", "pip install ruff"),
    ("black", "pip install black"),
    ("flake8", "pip install flake8"),
    ("mypy", "pip install mypy"),
    ("pyright", "npm install -g pyright"),
    ("pip-audit", "pip install pip-audit"),
    ("node", "https://nodejs.org/"),
    ("npm", "ships with Node.js"),
    ("npx", "ships with Node.js"),
    ("yarn", "npm install -g yarn"),
    ("pnpm", "npm install -g pnpm"),
    ("mvn", "https://maven.apache.org/install.html"),
    ("gradle", "https://gradle.org/install/"),
    ("gitleaks", "https://github.com/gitleaks/gitleaks#installing"),
    ("terraform", "https://developer.hashicorp.com/terraform/install"),
    ("ansible-lint", "pip install ansible-lint"),
    ("helm", "https://helm.sh/docs/intro/install/"),
)


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """Metadata about one detected executable."""

    name: str
    binary_path: str
    version: str | None


def which(name: str) -> str | None:
    """Default locator used by checks; tests inject their own."""
    return shutil.which(name)


def detect_tool(name: str, *, locator: ToolLocator = which) -> ToolInfo | None:
    """Return ``ToolInfo`` when ``name`` is on PATH, else ``None``."""
    path = locator(name)
    if path is None:
        return None
    return ToolInfo(name=name, binary_path=path, version=_get_version(path))


def install_hint(name: str) -> str:
    for tool, hint in KNOWN_TOOLS:
        if tool == name:
            return hint
    return "see the tool's documentation"


def _get_version(binary_path: str) -> str | None:
    try:
        result = subprocess.run(
            [binary_path, "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    output = result.stdout.strip() or result.stderr.strip()
    if result.returncode == 0 and output:
        return output.splitlines()[0]
    return None


__all__ = [
    "KNOWN_TOOLS",
    "ToolInfo",
    "ToolLocator",
    "detect_tool",
    "install_hint",
    "which",
]
