"""UI package exports for the CLI and rendering."""

from repo_sentinel.ui.cli import CLIError, build_parser, exit_code_for, run_cli
from repo_sentinel.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "exit_code_for",
    "run_cli",
]
