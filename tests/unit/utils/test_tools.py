from __future__ import annotations

import sys

from repo_sentinel.utils.tools import KNOWN_TOOLS, detect_tool, install_hint


def test_detect_tool_returns_none_when_locator_misses() -> None:
    assert detect_tool("gitleaks", locator=lambda name: None) is None


def test_detect_tool_reads_version_line_from_real_binary() -> None:
    info = detect_tool("python", locator=lambda name: sys.executable)

    assert info is not None
    assert info.name == "python"
    assert info.binary_path == sys.executable
    assert info.version is not None
    assert info.version.startswith("Python ")


def test_detect_tool_tolerates_unrunnable_path(tmp_path) -> None:
    missing = tmp_path / "not-a-binary"

    info = detect_tool("ghost", locator=lambda name: str(missing))

    assert info is not None
    assert info.version is None


def test_install_hint_known_and_unknown() -> None:
    assert install_hint("ruff") == "pip install ruff"
    assert install_hint("no-such-tool") == "see the tool's documentation"


def test_known_tools_are_unique() -> None:
    names = [name for name, _ in KNOWN_TOOLS]
    assert len(names) == len(set(names))
