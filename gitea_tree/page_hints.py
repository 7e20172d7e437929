# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Page-level inputs to context resolution.

A repository page is described by its URL path plus a handful of strings the
rendered HTML exposes (current ref label, commits link, PR base/head labels).
`PageHints.from_html()` scrapes them with BeautifulSoup; callers that already
know them can construct `PageHints` directly.
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

# (username)/(reponame)[/(type)][/(typeId)]
PAGE_PATH_RE = re.compile(r"([^/]+)/([^/]+)(?:/([^/]+))?(?:/([^/]+))?")
# .../blob/<ref>/<path> or .../tree/<ref>/<path>
CONTENT_PATH_RE = re.compile(r".*/(?:blob|tree)/[^/]+/(.*)")
# "<label>:<ref>"; everything after the first colon
LABEL_REF_RE = re.compile(r":(.*)")

CURRENT_REF_SELECTOR = ".choose strong"
COMMITS_LINK_SELECTOR = ".overall-summary .numbers-summary .commits a"
BASE_REF_SELECTOR = ".commit-ref:not(.head-ref)"
HEAD_REF_SELECTOR = ".commit-ref.head-ref"


@dataclass(frozen=True)
class PagePath:
    username: str
    reponame: str
    type: Optional[str] = None
    type_id: Optional[str] = None

    @property
    def is_pr(self) -> bool:
        return self.type == "pulls"


@dataclass(frozen=True)
class PageHints:
    """Read-only strings taken from the rendered page. Empty string == absent."""

    current_ref: str = ""
    commits_href: str = ""
    base_ref_label: str = ""
    head_ref_label: str = ""

    @classmethod
    def from_html(cls, html: str) -> "PageHints":
        soup = BeautifulSoup(html or "", "lxml")

        current = soup.select_one(CURRENT_REF_SELECTOR)
        commits = soup.select_one(COMMITS_LINK_SELECTOR)
        base = soup.select_one(BASE_REF_SELECTOR)
        head = soup.select_one(HEAD_REF_SELECTOR)

        return cls(
            current_ref=current.get_text(strip=True) if current is not None else "",
            commits_href=str(commits.get("href") or "") if commits is not None else "",
            base_ref_label=str(base.get("title") or "") if base is not None else "",
            head_ref_label=str(head.get("title") or "") if head is not None else "",
        )


def parse_page_path(path: str) -> Optional[PagePath]:
    """Split a URL path into username/reponame/type/typeId; None if it has fewer than two segments."""
    m = PAGE_PATH_RE.search(path or "")
    if not m:
        return None
    return PagePath(username=m.group(1), reponame=m.group(2), type=m.group(3), type_id=m.group(4))


def is_pr_page(path: str) -> bool:
    parsed = parse_page_path(path)
    return bool(parsed and parsed.is_pr)


def ref_from_label(label: str) -> Optional[str]:
    """`"owner:feature"` -> `"feature"`; None when there is no colon."""
    m = LABEL_REF_RE.search(label or "")
    return m.group(1) if m else None


def content_path_from_url(url: str) -> Optional[str]:
    """File path below the ref on blob/tree pages, e.g. `/o/r/src/blob/main/a/b.py` -> `a/b.py`."""
    m = CONTENT_PATH_RE.match(url or "")
    return m.group(1) if m else None


def encode_ref(ref: str) -> str:
    """Percent-encode a ref for use as one URL path segment (idempotent for already-encoded refs)."""
    return urllib.parse.quote(urllib.parse.unquote(ref), safe="")


def item_href(username: str, reponame: str, encoded_path: str, encoded_branch: str) -> str:
    """Link target for a file or folder in the sidebar."""
    return f"/{username}/{reponame}/src/branch/{encoded_branch}/{encoded_path}"
