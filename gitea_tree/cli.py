"""
CLI wrapper for gitea_tree.

Resolves a Gitea page URL to its repository context and prints the sidebar tree
the page would get: the full tree, the root listing (lazy mode), or the PR diff
tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import argparse
import json
import logging
import sys
import urllib.parse

from . import GiteaTreeAdapter
from .client import HostError
from .config import STORE_LAZY_LOAD, STORE_PR_DIFF_ONLY, default_settings_file
from .context import ContextResolutionError
from .page_hints import PageHints
from .settings_store import JsonSettingsStore
from .types import EntryType, TreeEntry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_A_REPO = 1
EXIT_HOST_ERROR = 2


def format_tree(entries: List[TreeEntry], *, title: str) -> str:
    """Indented listing; diff entries get their +/- counts."""
    lines = [title, f"   {len(entries)} items", ""]
    for e in entries:
        indent = "   " + "    " * e.depth
        if e.type == EntryType.TREE:
            label = f"📁 {e.name}/"
        else:
            label = f"📄 {e.name}"
        if e.patch is not None:
            stats = f"+{e.patch.additions} -{e.patch.deletions}"
            if e.type == EntryType.TREE:
                stats = f"{stats} ({e.patch.files_changed} files)"
            else:
                stats = f"{stats} [{e.patch.action}]"
            label = f"{label:<40} {stats}"
        lines.append(f"{indent}{label}")
    return "\n".join(lines)


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Resolve a Gitea page URL and print the file tree a sidebar would show for it.",
        epilog="Examples:\n"
               "  %(prog)s https://gitea.example.com/owner/repo\n"
               "  %(prog)s https://gitea.example.com/owner/repo/pulls/42 --fetch-page\n"
               "  %(prog)s https://gitea.example.com/owner/repo --html-file page.html --json",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", help="Page URL (repository, branch, commit or pull request page)")
    hints_group = parser.add_mutually_exclusive_group()
    hints_group.add_argument("--html-file", help="Saved page HTML to read ref hints from")
    hints_group.add_argument("--fetch-page", action="store_true", help="Download the page HTML to read ref hints from")
    parser.add_argument("--token", help="Access token (default: settings store, then ~/.config/tea/config.yml)")
    parser.add_argument("--settings-file", default=str(default_settings_file()), help="JSON settings file (default: %(default)s)")
    parser.add_argument("--lazy", action="store_true", help="Set the global lazy-load flag before resolving")
    parser.add_argument(
        "--pr-diff",
        dest="pr_diff",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Set the 'show only changed files in PR' flag",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of an indented tree")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    store = JsonSettingsStore(Path(args.settings_file).expanduser())
    if args.lazy:
        store.set(STORE_LAZY_LOAD, True)
    if args.pr_diff is not None:
        store.set(STORE_PR_DIFF_ONLY, bool(args.pr_diff))

    adapter = GiteaTreeAdapter.for_page_url(args.url, store)
    token = args.token or adapter.get_access_token()
    path = urllib.parse.urlsplit(args.url).path

    try:
        if args.html_file:
            hints = PageHints.from_html(Path(args.html_file).read_text(encoding="utf-8"))
        elif args.fetch_page:
            hints = PageHints.from_html(adapter.api.get_page_html(args.url, token=token))
        else:
            hints = PageHints()

        repo = adapter.get_repo_from_path(None, token, path=path, hints=hints)
        if repo is None:
            logger.error("Not a repository page: %s", args.url)
            return EXIT_NOT_A_REPO

        logger.info("Repository %s @ %s%s", repo.key, repo.display_branch or repo.branch,
                    f" (PR #{repo.pull_number})" if repo.pull_number else "")

        if repo.pull_number:
            entries = adapter.get_patch(repo, token)
            title = f"🌲 Changed files in PR #{repo.pull_number}"
        else:
            eager = adapter.should_load_entire_tree(repo)
            result = adapter.load_code_tree(repo, token=token) if eager else None
            if result is None or result.truncated:
                if result is not None:
                    logger.info("⚠️  Tree was truncated; falling back to lazy loading")
                # Root listing only: the branch name doubles as the root tree id.
                result = adapter.load_code_tree(repo, TreeEntry(path="", type=EntryType.TREE), token=token)
                title = f"🌲 {repo.key} @ {repo.branch} (lazy, root only)"
            else:
                title = f"🌲 {repo.key} @ {repo.branch}"
            entries = result.entries
    except (HostError, ContextResolutionError) as e:
        logger.error("Error: %s", e)
        if isinstance(e, HostError) and e.status in (401, 403):
            logger.error("Create a token at: %s", adapter.create_token_url())
        return EXIT_HOST_ERROR

    if args.json:
        print(json.dumps({"repo": repo.to_dict(), "tree": [e.to_dict() for e in entries]}, indent=2))
    else:
        print(format_tree(entries, title=title))
    return EXIT_OK


def main() -> None:
    sys.exit(_cli())
