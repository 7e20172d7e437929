# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository context resolution.

Turns a page path + page hints into a RepoContext:

    /owner/repo/src/branch/main      -> branch from hints / URL
    /owner/repo/commit/3f2a9c1       -> branch "3f2a9c1"
    /owner/repo/pulls/42             -> branch = PR base ref, pull_number "42"

Branch inference is an ordered list of candidate rules; the first non-empty
answer wins. When none applies, the repository's default branch is fetched
from the host and memoized per `owner/repo` in a DefaultBranchCache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from .client import GiteaAPIClient, HostError
from .config import DEFAULT_REF, STORE_PR_DIFF_ONLY
from .page_hints import PageHints, PagePath, parse_page_path, ref_from_label
from .settings_store import SettingsStore
from .types import RepoContext

# Gitea reserved user names (top-level routes that are not users/orgs).
RESERVED_USER_NAMES = frozenset(
    {
        ".well-known",
        "admin",
        "api",
        "assets",
        "attachments",
        "avatar",
        "avatars",
        "captcha",
        "commits",
        "debug",
        "error",
        "explore",
        "favicon.ico",
        "ghost",
        "issues",
        "login",
        "manifest.json",
        "metrics",
        "milestones",
        "new",
        "notifications",
        "org",
        "pulls",
        "raw",
        "repo",
        "repo-avatars",
        "robots.txt",
        "search",
        "serviceworker.js",
        "ssh_info",
        "swagger.v1.json",
        "user",
        "v2",
    }
)
RESERVED_REPO_NAMES = frozenset({"followers", "following", "repositories"})


class ContextResolutionError(Exception):
    """The branch could not be inferred from the page and the default-branch lookup failed."""


class DefaultBranchCache:
    """Process-lifetime memo of `owner/repo` -> default branch."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def put(self, key: str, branch: str) -> None:
        self._items[key] = branch

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


@dataclass(frozen=True)
class BranchInput:
    """Everything a branch rule may look at."""

    page: PagePath
    hints: PageHints
    previous: Optional[RepoContext]
    default_branches: DefaultBranchCache

    @property
    def key(self) -> str:
        return f"{self.page.username}/{self.page.reponame}"


BranchRule = Callable[[BranchInput], Optional[str]]


def _commit_id(inp: BranchInput) -> Optional[str]:
    return inp.page.type_id if inp.page.type == "commit" else None


def _releases_or_tags(inp: BranchInput) -> Optional[str]:
    return DEFAULT_REF if inp.page.type in ("releases", "tags") else None


def _current_ref_hint(inp: BranchInput) -> Optional[str]:
    return inp.hints.current_ref or None


# Gitea commits links carry the ref kind before the ref: /{u}/{r}/commits/branch/{ref}
COMMITS_REF_KINDS = ("branch/", "tag/", "commit/")


def _commits_link_hint(inp: BranchInput) -> Optional[str]:
    href = inp.hints.commits_href
    if not href:
        return None
    _, sep, ref = href.partition("/commits/")
    if not sep:
        return href.rstrip("/").rsplit("/", 1)[-1] or None
    for kind in COMMITS_REF_KINDS:
        if ref.startswith(kind):
            ref = ref[len(kind):]
            break
    return ref.strip("/") or None


def _tree_or_blob_id(inp: BranchInput) -> Optional[str]:
    return inp.page.type_id if inp.page.type in ("tree", "blob") else None


def _pr_base_ref(inp: BranchInput) -> Optional[str]:
    if not inp.page.is_pr:
        return None
    return ref_from_label(inp.hints.base_ref_label) or None


def _previous_branch(inp: BranchInput) -> Optional[str]:
    prev = inp.previous
    if prev is not None and prev.username == inp.page.username and prev.reponame == inp.page.reponame:
        return prev.branch or None
    return None


def _cached_default_branch(inp: BranchInput) -> Optional[str]:
    return inp.default_branches.get(inp.key)


# Order matters: earlier rules win.
BRANCH_RULES: Tuple[Tuple[str, BranchRule], ...] = (
    ("commit", _commit_id),
    ("releases_or_tags", _releases_or_tags),
    ("current_ref_hint", _current_ref_hint),
    ("commits_link_hint", _commits_link_hint),
    ("tree_or_blob", _tree_or_blob_id),
    ("pr_base_ref", _pr_base_ref),
    ("previous_context", _previous_branch),
    ("default_branch_cache", _cached_default_branch),
)


def infer_branch(inp: BranchInput, rules: Sequence[Tuple[str, BranchRule]] = BRANCH_RULES) -> Tuple[Optional[str], Optional[str]]:
    """Return (branch, rule_name) from the first rule with a non-empty answer, else (None, None)."""
    for name, rule in rules:
        value = rule(inp)
        if value:
            return value, name
    return None, None


def is_reserved(page: PagePath) -> bool:
    return page.username in RESERVED_USER_NAMES or page.reponame in RESERVED_REPO_NAMES


class ContextResolver:
    """Resolves RepoContext values for pages of one host.

    Owns the default-branch memo; reads the "PR diff only" flag from the settings store.
    """

    def __init__(
        self,
        api: GiteaAPIClient,
        store: SettingsStore,
        *,
        default_branches: Optional[DefaultBranchCache] = None,
    ):
        self.api = api
        self.store = store
        self.default_branches = default_branches if default_branches is not None else DefaultBranchCache()
        self.logger = logging.getLogger(self.__class__.__name__)

    def resolve(
        self,
        path: str,
        hints: Optional[PageHints] = None,
        previous: Optional[RepoContext] = None,
        *,
        token: Optional[str] = None,
    ) -> Optional[RepoContext]:
        """Resolve the page at `path`.

        Returns:
            RepoContext with a non-empty branch, or None when the page is not a repository page

        Raises:
            ContextResolutionError: branch not inferable and the default-branch lookup failed
        """
        page = parse_page_path(path)
        if page is None or is_reserved(page):
            return None
        hints = hints or PageHints()

        inp = BranchInput(page=page, hints=hints, previous=previous, default_branches=self.default_branches)
        branch, rule = infer_branch(inp)

        repo = RepoContext(username=page.username, reponame=page.reponame, branch=branch)
        if branch:
            self.logger.debug("Resolved %s branch=%s via %s", repo.key, branch, rule)
        else:
            repo.branch = self._fetch_default_branch(repo, token=token)

        if page.is_pr:
            show_only_changed = self.store.get(STORE_PR_DIFF_ONLY)
            repo.pull_number = page.type_id if (show_only_changed and page.type_id) else None
            head = ref_from_label(hints.head_ref_label)
            repo.display_branch = f"{repo.branch} < {head}" if head else None

        return repo

    def _fetch_default_branch(self, repo: RepoContext, *, token: Optional[str]) -> str:
        try:
            data = self.api.get(None, repo=repo, token=token)
        except HostError as e:
            raise ContextResolutionError(f"Cannot determine branch for {repo.key}: {e}") from e

        branch = (data or {}).get("default_branch") if isinstance(data, dict) else None
        branch = branch or DEFAULT_REF
        self.default_branches.put(repo.key, branch)
        self.logger.debug("Resolved %s branch=%s via default-branch lookup", repo.key, branch)
        return branch
