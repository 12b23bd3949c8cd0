"""Module entrypoint for ``python -m repo_sentinel``."""

from __future__ import annotations

from repo_sentinel.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
