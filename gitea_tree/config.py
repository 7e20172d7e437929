# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared constants and configuration for gitea_tree.

Store keys, defaults and limits live here so call sites don't duplicate
literals across modules.
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_logger = logging.getLogger(__name__)

#
# Limits and fixed request parameters
#
MAX_HUGE_REPOS: int = 50
# ^ Upper bound on remembered "huge" repositories (lazy-loaded). The oldest entry is evicted first.
PATCH_PAGE_SIZE: int = 300
# ^ `per_page` for GET /pulls/{n}/files. Not configurable; PRs with more changed files are cut off.
DEFAULT_REF: str = "master"
# ^ Ref used for releases/tags pages and when the host reports no default branch.
DEFAULT_TIMEOUT_S: int = 10
# ^ Per-request HTTP timeout (seconds).
API_PREFIX: str = "/api/v1"

#
# Settings store keys
#
STORE_PR_DIFF_ONLY: str = "pr_diff_only"
# ^ "show only changed files in PR"
STORE_LAZY_LOAD: str = "lazy_load"
# ^ global switch that disables eager loading of full trees
STORE_TOKEN: str = "gitea_token"
STORE_HUGE_REPOS: str = "huge_repos"
# ^ {"owner/repo": last_access_ms, ...}

DEFAULT_SETTINGS: Dict[str, Any] = {
    STORE_PR_DIFF_ONLY: True,
    STORE_LAZY_LOAD: False,
    STORE_TOKEN: None,
    STORE_HUGE_REPOS: {},
}


# ======================================================================================
# Cache location policy
#
# Persistent state (the JSON settings file used by the CLI) lives under:
#   - $GITEA_TREE_CACHE_DIR   (explicit override), else
#   - ~/.cache/gitea-tree     (default)
# ======================================================================================

def gitea_tree_cache_dir() -> Path:
    """Return the cache directory for gitea_tree.

    Resolution order:
    - GITEA_TREE_CACHE_DIR (explicit override)
    - ~/.cache/gitea-tree
    """
    override = os.environ.get("GITEA_TREE_CACHE_DIR")
    if override:
        return Path(override).expanduser()

    return Path.home() / ".cache" / "gitea-tree"


def default_settings_file() -> Path:
    return gitea_tree_cache_dir() / "settings.json"


def api_base_url(page_url: str) -> str:
    """Map a page URL to the REST API root of its host.

    github.com pages go to api.github.com; anything else is assumed to be a
    Gitea instance serving its API under /api/v1.
    """
    parsed = urllib.parse.urlsplit(page_url)
    scheme = parsed.scheme or "https"
    if parsed.netloc == "github.com":
        return "https://api.github.com"
    return f"{scheme}://{parsed.netloc}{API_PREFIX}"


def create_token_url(page_url: str) -> str:
    """Where a user creates an access token on this host."""
    parsed = urllib.parse.urlsplit(page_url)
    return f"{parsed.scheme or 'https'}://{parsed.netloc}/user/settings/applications"


def get_token_from_tea_config(page_url: str, config_path: Optional[Path] = None) -> Optional[str]:
    """Get a Gitea token from the `tea` CLI configuration.

    Reads ~/.config/tea/config.yml and returns the token of the first login whose
    `url` points at the same host as `page_url`.

    Returns:
        Token string, or None if not found
    """
    path = config_path or (Path.home() / ".config" / "tea" / "config.yml")
    host = urllib.parse.urlsplit(page_url).netloc
    try:
        if not path.exists():
            return None
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:  # File read or YAML parse errors
        _logger.debug("Could not read tea config %s: %s", path, e)
        return None

    if not isinstance(config, dict):
        return None
    for login in config.get("logins") or []:
        if not isinstance(login, dict):
            continue
        login_host = urllib.parse.urlsplit(str(login.get("url") or "")).netloc
        if login_host and login_host == host and login.get("token"):
            return str(login["token"])
    return None
