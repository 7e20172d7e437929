"""
Pytest tests for the REST client (gitea_tree/client.py).

requests.get is replaced with a recorder; no network access.
"""

import pytest
import requests

from gitea_tree import client as client_mod
from gitea_tree.client import GiteaAPIClient, HostError
from gitea_tree.types import RepoContext


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


@pytest.fixture
def recorder(monkeypatch):
    calls = []
    queue = []

    def fake_get(url, headers=None, params=None, timeout=None, **kwargs):
        calls.append({"url": url, "headers": dict(headers or {}), "params": params, "timeout": timeout})
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(client_mod.requests, "get", fake_get)
    return calls, queue


@pytest.fixture
def repo():
    return RepoContext(username="octo", reponame="widgets", branch="main")


def test_get_builds_repo_scoped_url(recorder, repo):
    calls, queue = recorder
    queue.append(FakeResponse(200, {"default_branch": "main"}))

    api = GiteaAPIClient("https://gitea.example.com/api/v1/")
    assert api.get(None, repo=repo) == {"default_branch": "main"}

    assert calls[0]["url"] == "https://gitea.example.com/api/v1/repos/octo/widgets"
    assert "Authorization" not in calls[0]["headers"]
    assert calls[0]["timeout"] == 10
    assert api.stats.calls_by_label == {"repo": 1}


def test_get_sends_token_and_params(recorder, repo):
    calls, queue = recorder
    queue.append(FakeResponse(200, {"tree": []}))

    api = GiteaAPIClient("https://gitea.example.com/api/v1")
    api.get("/git/trees/main", repo=repo, token="s3cret", params={"recursive": "1"})

    assert calls[0]["url"] == "https://gitea.example.com/api/v1/repos/octo/widgets/git/trees/main"
    assert calls[0]["headers"]["Authorization"] == "token s3cret"
    assert calls[0]["params"] == {"recursive": "1"}
    assert api.stats.urls == ["https://gitea.example.com/api/v1/repos/octo/widgets/git/trees/main?recursive=1"]
    assert api.stats.calls_by_label == {"git/trees": 1}


def test_absolute_url_is_used_as_is(recorder, repo):
    calls, queue = recorder
    queue.append(FakeResponse(200, []))

    GiteaAPIClient("https://gitea.example.com/api/v1").get("https://other.example.com/x", repo=repo)
    assert calls[0]["url"] == "https://other.example.com/x"


def test_non_2xx_raises_host_error_with_body(recorder, repo):
    calls, queue = recorder
    queue.append(FakeResponse(404, {"message": "The target couldn't be found."}))

    api = GiteaAPIClient("https://gitea.example.com/api/v1")
    with pytest.raises(HostError) as excinfo:
        api.get("/pulls/9/files", repo=repo, params={"per_page": 300})

    err = excinfo.value
    assert err.status == 404
    assert err.method == "GET"
    assert err.url == "https://gitea.example.com/api/v1/repos/octo/widgets/pulls/9/files?per_page=300"
    assert err.body == {"message": "The target couldn't be found."}
    assert api.stats.errors_by_status == {404: 1}
    assert api.stats.last_error["status"] == 404


def test_non_json_error_body_falls_back_to_text(recorder, repo):
    _, queue = recorder
    queue.append(FakeResponse(502, None, text="<html>Bad Gateway</html>"))

    with pytest.raises(HostError) as excinfo:
        GiteaAPIClient("https://gitea.example.com/api/v1").get(None, repo=repo)
    assert excinfo.value.body == "<html>Bad Gateway</html>"


def test_transport_error_raises_host_error_without_status(recorder, repo):
    _, queue = recorder
    queue.append(requests.exceptions.ConnectionError("connection refused"))

    with pytest.raises(HostError) as excinfo:
        GiteaAPIClient("https://gitea.example.com/api/v1").get(None, repo=repo)
    assert excinfo.value.status is None
    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)


def test_get_page_html(recorder):
    calls, queue = recorder
    queue.append(FakeResponse(200, None, text="<html></html>"))

    html = GiteaAPIClient("https://gitea.example.com/api/v1").get_page_html("https://gitea.example.com/o/r", token="t")
    assert html == "<html></html>"
    assert calls[0]["headers"]["Authorization"] == "token t"
