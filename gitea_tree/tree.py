# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tree listing (GET /repos/{owner}/{repo}/git/trees/{ref-or-sha}).

API:
  - full tree:   /git/trees/{branch}?recursive=1
  - lazy node:   /git/trees/{node_sha}
Response (truncated):
  {
    "sha": "9c3d...",
    "url": "https://gitea.example.com/api/v1/repos/o/r/git/trees/9c3d...",
    "tree": [
      {"path": "src", "mode": "040000", "type": "tree", "sha": "1a2b...", "url": "..."},
      {"path": "src/main.py", "mode": "100644", "type": "blob", "size": 812, "sha": "3c4d...", "url": "..."}
    ],
    "truncated": false,
    "page": 1,
    "total_count": 2
  }

A truncated listing is not an error: the repository is recorded as huge and a
TreeResult(TRUNCATED) is returned so the caller can fall back to lazy loading.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .client import GiteaAPIClient
from .huge_repos import LoadPolicy
from .page_hints import encode_ref
from .types import RepoContext, TreeEntry, TreeResult, TreeStatus

_logger = logging.getLogger(__name__)


def tree_request_for(repo: RepoContext, node: Optional[TreeEntry] = None) -> Dict[str, Any]:
    """Path and query for a tree request.

    No node -> recursive listing at the repo's branch; a node -> that node's sha
    (or the branch itself when the node carries no sha).
    """
    if not repo.branch:
        raise ValueError(f"branch must be resolved before loading the tree of {repo.key}")
    encoded_branch = encode_ref(repo.branch)
    if node is not None:
        return {"path": node.sha or encoded_branch, "params": None}
    return {"path": encoded_branch, "params": {"recursive": "1"}}


class TreeMaterializer:
    def __init__(self, api: GiteaAPIClient, policy: LoadPolicy):
        self.api = api
        self.policy = policy

    def get_tree(
        self,
        path: str,
        repo: RepoContext,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> TreeResult:
        """Fetch one tree listing.

        Raises:
            HostError: on HTTP failure
        """
        data = self.api.get(f"/git/trees/{path}", repo=repo, token=token, params=params)
        data = data if isinstance(data, dict) else {}

        if data.get("truncated"):
            try:
                self.policy.record_truncated(repo)
            except (OSError, ValueError, TypeError) as e:
                _logger.warning("Failed to record %s as a huge repo: %s", repo.key, e)
            return TreeResult(status=TreeStatus.TRUNCATED, sha=data.get("sha"))

        entries = [TreeEntry.from_api(item) for item in (data.get("tree") or []) if isinstance(item, dict)]
        return TreeResult(status=TreeStatus.OK, entries=entries, sha=data.get("sha"))

    def load_code_tree(
        self,
        repo: RepoContext,
        node: Optional[TreeEntry] = None,
        *,
        token: Optional[str] = None,
    ) -> TreeResult:
        req = tree_request_for(repo, node)
        return self.get_tree(req["path"], repo, token=token, params=req["params"])
