"""Shared pytest fixtures for gitea_tree tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from gitea_tree.client import HostError
from gitea_tree.settings_store import InMemorySettingsStore
from gitea_tree.types import RepoContext


class FakeAPI:
    """Stands in for GiteaAPIClient: canned JSON per endpoint path, records every call."""

    base_url = "https://gitea.example.com/api/v1"

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, Optional[Dict[str, Any]], Optional[str]]] = []

    def get(self, path, *, repo: RepoContext, token=None, params=None):
        key = path or ""
        self.calls.append((key, params, token))
        url = f"{self.base_url}/repos/{repo.username}/{repo.reponame}{key}"
        if key not in self.responses:
            raise HostError(url=url, method="GET", status=404, body={"message": "not found"})
        value = self.responses[key]
        if isinstance(value, HostError):
            raise value
        return value


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def repo() -> RepoContext:
    return RepoContext(username="octo", reponame="widgets", branch="main")
