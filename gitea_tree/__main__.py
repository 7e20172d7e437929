#!/usr/bin/env python3
"""Module entrypoint for `gitea_tree`.

Usage:
  - `python3 -m gitea_tree https://gitea.example.com/owner/repo`
"""

from __future__ import annotations

from .cli import _cli


if __name__ == "__main__":
    raise SystemExit(_cli())
