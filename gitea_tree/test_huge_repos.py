"""
Pytest tests for the eager/lazy load policy and the huge-repo cache (gitea_tree/huge_repos.py).
"""

import pytest

from gitea_tree.config import MAX_HUGE_REPOS, STORE_HUGE_REPOS, STORE_LAZY_LOAD, STORE_PR_DIFF_ONLY
from gitea_tree.huge_repos import HugeRepoCache, LoadPolicy, is_valid_timestamp
from gitea_tree.types import RepoContext


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def _policy(store, clock=None):
    return LoadPolicy(store, HugeRepoCache(store, clock=clock or FakeClock()))


# ============================================================================
# is_valid_timestamp
# ============================================================================

@pytest.mark.parametrize("value", [1, 1_700_000_000_000, 12.5])
def test_valid_timestamps(value):
    assert is_valid_timestamp(value)


@pytest.mark.parametrize("value", [None, 0, -5, "1700000000000", True, False, {}, []])
def test_invalid_timestamps(value):
    assert not is_valid_timestamp(value)


# ============================================================================
# should_load_entire_tree
# ============================================================================

def test_unknown_repo_loads_eagerly(store, repo):
    assert _policy(store).should_load_entire_tree(repo) is True


def test_known_huge_repo_loads_lazily_and_is_touched(store, repo):
    store.set(STORE_HUGE_REPOS, {repo.key: 100})
    clock = FakeClock(start=5000)

    assert _policy(store, clock).should_load_entire_tree(repo) is False
    assert store.get(STORE_HUGE_REPOS)[repo.key] == 5001


def test_invalid_timestamp_counts_as_absent(store, repo):
    store.set(STORE_HUGE_REPOS, {repo.key: "yesterday"})
    assert _policy(store).should_load_entire_tree(repo) is True
    # Not touched either.
    assert store.get(STORE_HUGE_REPOS)[repo.key] == "yesterday"


def test_global_lazy_load_disables_eager(store, repo):
    store.set(STORE_LAZY_LOAD, True)
    assert _policy(store).should_load_entire_tree(repo) is False


@pytest.mark.parametrize("lazy", [False, True])
@pytest.mark.parametrize("huge", [False, True])
def test_pr_diff_view_always_loads_eagerly(store, lazy, huge):
    pr_repo = RepoContext(username="octo", reponame="widgets", branch="main", pull_number="42")
    store.set(STORE_PR_DIFF_ONLY, True)
    store.set(STORE_LAZY_LOAD, lazy)
    if huge:
        store.set(STORE_HUGE_REPOS, {pr_repo.key: 100})
    assert _policy(store).should_load_entire_tree(pr_repo) is True


def test_pr_number_without_diff_flag_follows_cache(store):
    pr_repo = RepoContext(username="octo", reponame="widgets", branch="main", pull_number="42")
    store.set(STORE_PR_DIFF_ONLY, False)
    store.set(STORE_HUGE_REPOS, {pr_repo.key: 100})
    assert _policy(store).should_load_entire_tree(pr_repo) is False


# ============================================================================
# HugeRepoCache.record
# ============================================================================

def test_record_adds_repo(store, repo):
    cache = HugeRepoCache(store, clock=FakeClock())
    assert not cache.contains(repo.key)
    cache.record(repo.key)
    assert cache.contains(repo.key)


def test_record_at_bound_evicts_oldest(store):
    full = {f"owner/repo{i}": 1000 + i for i in range(MAX_HUGE_REPOS)}
    # Smallest timestamp is not the first inserted key.
    full["owner/repo17"] = 1
    store.set(STORE_HUGE_REPOS, full)
    cache = HugeRepoCache(store, clock=FakeClock())

    evicted = cache.record("octo/new")

    items = store.get(STORE_HUGE_REPOS)
    assert evicted == "owner/repo17"
    assert len(items) == MAX_HUGE_REPOS
    assert "owner/repo17" not in items
    assert "octo/new" in items


def test_record_below_bound_does_not_evict(store):
    store.set(STORE_HUGE_REPOS, {"a/b": 5, "c/d": 6})
    cache = HugeRepoCache(store, clock=FakeClock())
    assert cache.record("e/f") is None
    assert set(store.get(STORE_HUGE_REPOS)) == {"a/b", "c/d", "e/f"}


def test_record_existing_repo_refreshes_without_eviction(store):
    full = {f"owner/repo{i}": 1000 + i for i in range(MAX_HUGE_REPOS)}
    store.set(STORE_HUGE_REPOS, full)
    cache = HugeRepoCache(store, clock=FakeClock(start=9000))

    assert cache.record("owner/repo3") is None
    items = store.get(STORE_HUGE_REPOS)
    assert len(items) == MAX_HUGE_REPOS
    assert items["owner/repo3"] == 9001


def test_record_drops_invalid_entries(store):
    store.set(STORE_HUGE_REPOS, {"bad/one": None, "bad/two": "x", "ok/one": 10})
    HugeRepoCache(store, clock=FakeClock()).record("new/one")
    assert set(store.get(STORE_HUGE_REPOS)) == {"ok/one", "new/one"}


def test_custom_bound(store):
    cache = HugeRepoCache(store, max_size=2, clock=FakeClock())
    cache.record("a/1")
    cache.record("a/2")
    assert cache.record("a/3") == "a/1"
    assert set(cache.entries()) == {"a/2", "a/3"}
