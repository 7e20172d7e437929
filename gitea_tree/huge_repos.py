# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Eager vs lazy tree loading, and the bounded "huge repos" cache behind it.

A repository whose recursive tree listing came back truncated is remembered as
huge and loaded node-by-node on later visits.

Cache (settings key `huge_repos`):
  {"owner/repo": <last access, epoch ms>, ...}
  - at most MAX_HUGE_REPOS entries; the smallest timestamp is evicted first
  - non-numeric / non-positive timestamps count as absent
  - a visit to a cached repo bumps its timestamp (approximate LRU)

The read-modify-write against the store is not atomic; two concurrent writers
may briefly exceed the bound.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from .config import MAX_HUGE_REPOS, STORE_HUGE_REPOS, STORE_LAZY_LOAD, STORE_PR_DIFF_ONLY
from .settings_store import SettingsStore
from .types import RepoContext

_logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def is_valid_timestamp(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0


class HugeRepoCache:
    """Huge-repo timestamps persisted through a SettingsStore."""

    def __init__(
        self,
        store: SettingsStore,
        *,
        max_size: int = MAX_HUGE_REPOS,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.max_size = int(max_size)
        self.clock = clock

    def _load(self) -> Dict[str, Any]:
        raw = self.store.get(STORE_HUGE_REPOS)
        return dict(raw) if isinstance(raw, dict) else {}

    def entries(self) -> Dict[str, int]:
        """Valid entries only."""
        return {k: v for (k, v) in self._load().items() if is_valid_timestamp(v)}

    def contains(self, key: str) -> bool:
        return is_valid_timestamp(self._load().get(key))

    def touch(self, key: str) -> bool:
        """Bump the timestamp of an existing valid entry. Returns False if absent."""
        items = self._load()
        if not is_valid_timestamp(items.get(key)):
            return False
        items[key] = self.clock()
        self.store.set(STORE_HUGE_REPOS, items)
        return True

    def record(self, key: str) -> Optional[str]:
        """Insert or refresh `key` with the current time.

        Invalid entries are dropped. If the insert would exceed `max_size`, the
        entry with the smallest timestamp is evicted (linear scan).

        Returns:
            The evicted key, if any
        """
        items = self.entries()
        evicted: Optional[str] = None
        if key not in items:
            while items and len(items) >= self.max_size:
                oldest = min(items, key=lambda k: items[k])
                del items[oldest]
                evicted = oldest
        items[key] = self.clock()
        self.store.set(STORE_HUGE_REPOS, items)
        if evicted:
            _logger.debug("Evicted %s from huge-repo cache", evicted)
        return evicted


class LoadPolicy:
    """Decides whether a repository's full tree is fetched in one recursive call."""

    def __init__(self, store: SettingsStore, huge_repos: Optional[HugeRepoCache] = None):
        self.store = store
        self.huge_repos = huge_repos if huge_repos is not None else HugeRepoCache(store)
        self.logger = logging.getLogger(self.__class__.__name__)

    def should_load_entire_tree(self, repo: RepoContext) -> bool:
        # The diff view needs every changed file up front.
        if self.store.get(STORE_PR_DIFF_ONLY) and repo.pull_number:
            return True

        if self.store.get(STORE_LAZY_LOAD):
            return False

        if self.huge_repos.touch(repo.key):
            self.logger.debug("%s is a known huge repo; loading lazily", repo.key)
            return False
        return True

    def record_truncated(self, repo: RepoContext) -> None:
        self.huge_repos.record(repo.key)
        self.logger.info("Tree listing for %s was truncated; future visits load lazily", repo.key)
