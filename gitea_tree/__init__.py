# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Gitea repository context + file tree resolution for a sidebar tree viewer.

Pipeline:
    page URL/hints --ContextResolver--> RepoContext
                   --LoadPolicy-------> eager (recursive) or lazy (per node)
                   --TreeMaterializer / DiffTreeBuilder--> [TreeEntry, ...]

`GiteaTreeAdapter` wires the pieces for one host and exposes the operations the
tree renderer calls. All collaborator state (settings store, default-branch
memo, API client) is injected so the pipeline can run against fakes.

Example:
    store = JsonSettingsStore(default_settings_file())
    adapter = GiteaTreeAdapter.for_page_url("https://gitea.example.com/o/r/pulls/7", store)
    repo = adapter.get_repo_from_path(None, token, path="/o/r/pulls/7", hints=hints)
    if repo and repo.pull_number:
        tree = adapter.get_patch(repo, token)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from .client import GiteaAPIClient, HostError
from .config import STORE_TOKEN, api_base_url, create_token_url, get_token_from_tea_config
from .context import ContextResolutionError, ContextResolver, DefaultBranchCache
from .diff_tree import DiffTreeBuilder, build_diff_tree
from .huge_repos import HugeRepoCache, LoadPolicy
from .page_hints import PageHints, content_path_from_url, is_pr_page, item_href
from .settings_store import InMemorySettingsStore, JsonSettingsStore, SettingsStore
from .tree import TreeMaterializer
from .types import EntryType, PatchInfo, RepoContext, TreeEntry, TreeResult, TreeStatus


class GiteaTreeAdapter:
    """Operations exposed to the tree-rendering collaborator for one Gitea host."""

    def __init__(
        self,
        api: GiteaAPIClient,
        store: SettingsStore,
        *,
        page_url: str = "",
        default_branches: Optional[DefaultBranchCache] = None,
        huge_repos: Optional[HugeRepoCache] = None,
    ):
        self.api = api
        self.store = store
        self.page_url = page_url
        self.resolver = ContextResolver(api, store, default_branches=default_branches)
        self.policy = LoadPolicy(store, huge_repos)
        self.trees = TreeMaterializer(api, self.policy)
        self.diffs = DiffTreeBuilder(api)
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def for_page_url(cls, page_url: str, store: SettingsStore, **kwargs: Any) -> "GiteaTreeAdapter":
        return cls(GiteaAPIClient(api_base_url(page_url)), store, page_url=page_url, **kwargs)

    # ------------------------------------------------------------------
    # Exposed operations
    # ------------------------------------------------------------------

    def get_repo_from_path(
        self,
        previous: Optional[RepoContext],
        token: Optional[str],
        *,
        path: str,
        hints: Optional[PageHints] = None,
    ) -> Optional[RepoContext]:
        """Resolve the page context; None when the page is not a repository page.

        Raises:
            ContextResolutionError: see ContextResolver.resolve
        """
        return self.resolver.resolve(path, hints, previous, token=token)

    def should_load_entire_tree(self, repo: RepoContext) -> bool:
        return self.policy.should_load_entire_tree(repo)

    def load_code_tree(
        self,
        repo: RepoContext,
        node: Optional[TreeEntry] = None,
        token: Optional[str] = None,
    ) -> TreeResult:
        return self.trees.load_code_tree(repo, node, token=token)

    def get_patch(self, repo: RepoContext, token: Optional[str] = None) -> List[TreeEntry]:
        return self.diffs.get_patch(repo, token=token)

    # ------------------------------------------------------------------
    # Host helpers
    # ------------------------------------------------------------------

    def get_access_token(self) -> Optional[str]:
        """Token from the settings store, else from the tea CLI config for this host."""
        token = self.store.get(STORE_TOKEN)
        if token:
            return str(token)
        if self.page_url:
            return get_token_from_tea_config(self.page_url)
        return None

    def create_token_url(self) -> str:
        return create_token_url(self.page_url)

    @staticmethod
    def is_on_pr_page(path: str) -> bool:
        return is_pr_page(path)

    @staticmethod
    def item_href(repo: RepoContext, encoded_path: str, encoded_branch: str) -> str:
        return item_href(repo.username, repo.reponame, encoded_path, encoded_branch)

    def get_content(
        self,
        repo: RepoContext,
        content_path: Optional[str] = None,
        *,
        is_repo_metadata: bool = False,
        token: Optional[str] = None,
    ) -> Any:
        """GET /contents/{path}?ref={branch}, or the repository metadata itself.

        Raises:
            HostError: on HTTP failure
        """
        if is_repo_metadata:
            return self.api.get(None, repo=repo, token=token)
        path = content_path if content_path is not None else (content_path_from_url(self.page_url) or "")
        return self.api.get(
            f"/contents/{path}",
            repo=repo,
            token=token,
            params={"ref": repo.branch or ""},
        )

    def load_repo_data(
        self,
        *,
        path: str,
        hints: Optional[PageHints] = None,
        content_path: Optional[str] = None,
        is_repo_metadata: bool = False,
    ) -> Union[Dict[str, Any], bool, None]:
        """Resolve the context and fetch content in one go.

        Returns:
            {"repo": RepoContext, "content_data": <json>}; None when the page is not a
            repository page; False when any host/resolution error occurred
        """
        token = self.get_access_token()
        try:
            repo = self.resolver.resolve(path, hints, None, token=token)
            if repo is None:
                return None
            data = self.get_content(repo, content_path, is_repo_metadata=is_repo_metadata, token=token)
        except (HostError, ContextResolutionError) as e:
            self.logger.warning("Failed to load repo data for %s: %s", path, e)
            return False
        return {"repo": repo, "content_data": data}


__all__ = [
    "ContextResolutionError",
    "ContextResolver",
    "DefaultBranchCache",
    "DiffTreeBuilder",
    "EntryType",
    "GiteaAPIClient",
    "GiteaTreeAdapter",
    "HostError",
    "HugeRepoCache",
    "InMemorySettingsStore",
    "JsonSettingsStore",
    "LoadPolicy",
    "PageHints",
    "PatchInfo",
    "RepoContext",
    "SettingsStore",
    "TreeEntry",
    "TreeMaterializer",
    "TreeResult",
    "TreeStatus",
    "build_diff_tree",
]
