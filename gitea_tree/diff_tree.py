# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pull-request diff tree.

API:
  - GET /repos/{owner}/{repo}/pulls/{index}/files?per_page=300   (single page, no follow-up)
Example response item:
  {
    "filename": "src/app/main.py",
    "status": "modified",
    "additions": 12,
    "deletions": 3,
    "changes": 15,
    "html_url": "https://gitea.example.com/o/r/src/commit/ab12.../src/app/main.py",
    "contents_url": "...",
    "raw_url": "..."
  }

The flat file list is folded into a tree containing only the changed files and
their ancestor folders. Folder entries aggregate additions/deletions and count
changed files below them. The output is sorted by path so a parent always
precedes its descendants.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .client import GiteaAPIClient
from .config import PATCH_PAGE_SIZE
from .types import EntryType, PatchInfo, RepoContext, TreeEntry


def _as_int(x: Any) -> int:
    try:
        return int(x or 0)
    except (ValueError, TypeError):
        return 0


def build_diff_map(files: Iterable[Dict[str, Any]]) -> Dict[str, PatchInfo]:
    """Fold changed files (host order) into {path: PatchInfo} for files and their folders."""
    diff_map: Dict[str, PatchInfo] = {}

    for index, f in enumerate(files):
        filename = str(f.get("filename") or "")
        if not filename:
            continue
        additions = _as_int(f.get("additions"))
        deletions = _as_int(f.get("deletions"))

        diff_map[filename] = PatchInfo(
            type=EntryType.BLOB,
            filename=filename,
            diff_id=index,
            action=f.get("status"),
            additions=additions,
            deletions=deletions,
            blob_url=f.get("blob_url") or f.get("html_url"),
            path=f.get("path") or filename,
            sha=f.get("sha"),
        )

        prefix = ""
        for segment in filename.split("/")[:-1]:
            if not segment:
                continue
            prefix = f"{prefix}/{segment}" if prefix else segment
            folder = diff_map.get(prefix)
            if folder is None:
                diff_map[prefix] = PatchInfo(
                    type=EntryType.TREE,
                    filename=prefix,
                    files_changed=1,
                    additions=additions,
                    deletions=deletions,
                )
            else:
                folder.add_file(additions, deletions)

    return diff_map


def diff_map_to_tree(diff_map: Dict[str, PatchInfo]) -> List[TreeEntry]:
    """Project a diff map into tree entries, parents before children."""
    tree = [
        TreeEntry(path=path, type=patch.type, sha=patch.sha, url=patch.blob_url, patch=patch)
        for path, patch in diff_map.items()
    ]
    # Case-insensitive code-point order, an approximation of locale collation (a-b < a/c).
    # A parent's key is a prefix of its children's keys, so parents still come first.
    tree.sort(key=lambda e: (e.path.casefold(), e.path))
    return tree


def build_diff_tree(files: Iterable[Dict[str, Any]]) -> List[TreeEntry]:
    return diff_map_to_tree(build_diff_map(files))


class DiffTreeBuilder:
    def __init__(self, api: GiteaAPIClient):
        self.api = api

    def get_patch(self, repo: RepoContext, *, token: Optional[str] = None) -> List[TreeEntry]:
        """Changed files of `repo.pull_number` plus their ancestor folders.

        Raises:
            ValueError: repo has no pull_number
            HostError: on HTTP failure
        """
        if not repo.pull_number:
            raise ValueError(f"{repo.key}: get_patch requires a pull request number")

        files = self.api.get(
            f"/pulls/{repo.pull_number}/files",
            repo=repo,
            token=token,
            params={"per_page": PATCH_PAGE_SIZE},
        )
        return build_diff_tree(f for f in (files or []) if isinstance(f, dict))
