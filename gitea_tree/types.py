# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared data types for the context/tree pipeline.

This module MUST NOT import any other gitea_tree module to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EntryType(str, Enum):
    """Git object kinds that appear in a tree listing."""

    BLOB = "blob"
    TREE = "tree"


class TreeStatus(str, Enum):
    """Outcome of a tree fetch that did not fail at the HTTP level."""

    OK = "ok"
    TRUNCATED = "truncated"


@dataclass
class RepoContext:
    """What repository/ref/PR the current page addresses.

    `branch` stays mutable until it is resolved; every tree fetch requires it.
    """

    username: str
    reponame: str
    branch: Optional[str] = None
    display_branch: Optional[str] = None
    pull_number: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.username}/{self.reponame}"

    def same_repo(self, other: Optional["RepoContext"]) -> bool:
        return other is not None and other.username == self.username and other.reponame == self.reponame

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "reponame": self.reponame,
            "branch": self.branch,
            "display_branch": self.display_branch,
            "pull_number": self.pull_number,
        }


@dataclass
class PatchInfo:
    """Change statistics attached to a diff-tree entry.

    Blob entries describe one changed file. Tree entries aggregate every changed
    blob below the folder: `files_changed` counts them, `additions`/`deletions`
    are their sums.
    """

    type: EntryType
    filename: str
    additions: int = 0
    deletions: int = 0
    # blob only
    diff_id: Optional[int] = None
    action: Optional[str] = None
    blob_url: Optional[str] = None
    path: Optional[str] = None
    sha: Optional[str] = None
    # tree only
    files_changed: int = 0

    def add_file(self, additions: int, deletions: int) -> None:
        self.additions += additions
        self.deletions += deletions
        self.files_changed += 1

    def to_dict(self) -> Dict[str, Any]:
        if self.type == EntryType.TREE:
            return {
                "type": self.type.value,
                "filename": self.filename,
                "filesChanged": self.files_changed,
                "additions": self.additions,
                "deletions": self.deletions,
            }
        return {
            "type": self.type.value,
            "diffId": self.diff_id,
            "action": self.action,
            "additions": self.additions,
            "deletions": self.deletions,
            "blob_url": self.blob_url,
            "filename": self.filename,
            "path": self.path,
            "sha": self.sha,
        }


@dataclass
class TreeEntry:
    """One row of a flat tree listing (host response or synthesized diff tree)."""

    path: str
    type: EntryType
    sha: Optional[str] = None
    url: Optional[str] = None
    patch: Optional[PatchInfo] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "TreeEntry":
        """Build from one element of the host's `tree` array.

        Gitea also reports submodules ("commit") and symlinks via `type`/`mode`;
        anything that is not a tree is listed as a blob.
        """
        kind = EntryType.TREE if item.get("type") == EntryType.TREE.value else EntryType.BLOB
        return cls(
            path=str(item.get("path") or ""),
            type=kind,
            sha=item.get("sha"),
            url=item.get("url"),
        )

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def depth(self) -> int:
        return self.path.count("/")

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "sha": self.sha,
            "type": self.type.value,
            "url": self.url,
        }
        if self.patch is not None:
            d["patch"] = self.patch.to_dict()
        return d


@dataclass
class TreeResult:
    """Tagged result of a tree fetch.

    TRUNCATED means the host cut the listing short; `entries` is empty and the
    caller is expected to switch to lazy per-node loading.
    """

    status: TreeStatus
    entries: List[TreeEntry] = field(default_factory=list)
    sha: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == TreeStatus.OK

    @property
    def truncated(self) -> bool:
        return self.status == TreeStatus.TRUNCATED
