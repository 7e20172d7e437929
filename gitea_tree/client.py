# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Gitea REST API client.

Every request is a GET against `{base_url}/repos/{owner}/{repo}{path}` (or an
absolute URL). Responses are returned as parsed JSON; anything that is not a
2xx response raises HostError carrying the request URL/method and the host's
status and body.
"""

from __future__ import annotations

import logging
import time
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .config import DEFAULT_TIMEOUT_S
from .types import RepoContext


class HostError(Exception):
    """Non-2xx (or failed) HTTP request to the host.

    `status` is None when no response was received (connection error, timeout).
    """

    def __init__(self, *, url: str, method: str = "GET", status: Optional[int] = None, body: Any = None):
        self.url = url
        self.method = method
        self.status = status
        self.body = body
        super().__init__(f"{method} {url} failed: status={status} body={str(body)[:300]!r}")


@dataclass
class RestStats:
    """Per-client request counters."""

    calls_total: int = 0
    calls_by_label: Dict[str, int] = field(default_factory=dict)
    errors_by_status: Dict[int, int] = field(default_factory=dict)
    time_total_s: float = 0.0
    last_error: Optional[Dict[str, Any]] = None
    urls: List[str] = field(default_factory=list)


class GiteaAPIClient:
    """Gitea API client.

    Example:
        client = GiteaAPIClient("https://gitea.example.com/api/v1")
        repo_meta = client.get("", repo=RepoContext("owner", "repo"), token=tok)
    """

    def __init__(self, base_url: str, *, timeout: int = DEFAULT_TIMEOUT_S):
        self.base_url = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.headers = {"Accept": "application/json"}
        self.logger = logging.getLogger(self.__class__.__name__)
        self.stats = RestStats()

    def url_for(self, path: Optional[str], repo: RepoContext) -> str:
        if path and path.startswith("http"):
            return path
        return f"{self.base_url}/repos/{repo.username}/{repo.reponame}{path or ''}"

    @staticmethod
    def _label_for_path(path: Optional[str]) -> str:
        """Short, stable label for stats ("git/trees", "pulls/files", "repo", ...)."""
        p = urllib.parse.urlsplit(path or "").path
        if not p:
            return "repo"
        if p.startswith("/git/trees"):
            return "git/trees"
        if p.startswith("/pulls/") and p.endswith("/files"):
            return "pulls/files"
        if p.startswith("/contents"):
            return "contents"
        return p.strip("/").split("/", 1)[0] or "repo"

    def get(
        self,
        path: Optional[str],
        *,
        repo: RepoContext,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """GET a repository-scoped endpoint and return its JSON body.

        Args:
            path: endpoint below /repos/{owner}/{repo} (e.g. "/git/trees/main"), "" / None for
                  the repository itself, or an absolute http(s) URL used as-is
            repo: repository coordinates
            token: optional access token (sent as `Authorization: token <tok>`)
            params: query parameters

        Raises:
            HostError: on non-2xx responses and on transport failures
        """
        url = self.url_for(path, repo)
        label = self._label_for_path(path)
        headers = dict(self.headers)
        if token:
            headers["Authorization"] = f"token {token}"

        self.stats.calls_total += 1
        self.stats.calls_by_label[label] = int(self.stats.calls_by_label.get(label, 0)) + 1
        url_full = url
        if params:
            q = urllib.parse.urlencode(params, doseq=True)
            sep = "&" if ("?" in url_full) else "?"
            url_full = f"{url_full}{sep}{q}"
        self.stats.urls.append(url_full)
        self.logger.debug("GITEA REST GET [%s] %s", label, url_full)

        t0 = time.monotonic()
        try:
            resp = requests.get(url, headers=headers, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.stats.last_error = {"status": None, "url": url_full, "body": str(e)}
            raise HostError(url=url_full, method="GET", status=None, body=str(e)) from e
        finally:
            self.stats.time_total_s += max(0.0, time.monotonic() - t0)

        code = int(resp.status_code or 0)
        self.logger.debug("GITEA REST RESP [%s] status=%s", label, code)
        if code < 200 or code >= 300:
            try:
                body: Any = resp.json()
            except ValueError:
                body = resp.text
            self.stats.errors_by_status[code] = int(self.stats.errors_by_status.get(code, 0)) + 1
            self.stats.last_error = {"status": code, "url": url_full, "body": str(body)[:300]}
            raise HostError(url=url_full, method="GET", status=code, body=body)

        try:
            return resp.json()
        except ValueError as e:  # requests raises a ValueError subclass on bad JSON
            raise HostError(url=url_full, method="GET", status=code, body=resp.text) from e

    def get_page_html(self, page_url: str, *, token: Optional[str] = None) -> str:
        """Fetch a rendered page (not an API endpoint) so its hints can be scraped."""
        headers = {"Accept": "text/html"}
        if token:
            headers["Authorization"] = f"token {token}"
        self.logger.debug("GITEA PAGE GET %s", page_url)
        try:
            resp = requests.get(page_url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise HostError(url=page_url, method="GET", status=None, body=str(e)) from e
        if resp.status_code < 200 or resp.status_code >= 300:
            raise HostError(url=page_url, method="GET", status=resp.status_code, body=resp.text)
        return resp.text
