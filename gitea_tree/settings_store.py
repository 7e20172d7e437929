# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Key/value settings stores consumed by the context and tree pipeline.

The pipeline only ever calls `get(key)` and `set(key, value)`:
- InMemorySettingsStore: process-local dict (tests, one-shot CLI runs)
- JsonSettingsStore: disk-backed JSON file with thread + inter-process locking

Values are JSON-serializable. Missing keys fall back to `config.DEFAULT_SETTINGS`.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import time
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Protocol

from .config import DEFAULT_SETTINGS

try:
    import fcntl  # type: ignore
except Exception:  # pragma: no cover - best-effort on non-POSIX
    fcntl = None  # type: ignore

_logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


def _default_for(key: str, defaults: Dict[str, Any]) -> Any:
    # Copy so callers can mutate the returned dict (e.g. huge_repos) before set().
    return copy.deepcopy(defaults.get(key))


class InMemorySettingsStore:
    """Dict-backed store. Values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, *, defaults: Optional[Dict[str, Any]] = None):
        self._mu = Lock()
        self._defaults = dict(DEFAULT_SETTINGS if defaults is None else defaults)
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def get(self, key: str) -> Any:
        with self._mu:
            if key in self._data:
                return copy.deepcopy(self._data[key])
            return _default_for(key, self._defaults)

    def set(self, key: str, value: Any) -> None:
        with self._mu:
            self._data[key] = copy.deepcopy(value)


class JsonSettingsStore:
    """Disk-backed settings store.

    Provides:
    - Thread-safe access with Lock
    - Inter-process locking (fcntl) around read-modify-write
    - Atomic writes (tmp file + rename)

    On-disk schema: {"version": <int>, "items": {key: value, ...}}
    """

    def __init__(self, settings_file: Path, *, schema_version: int = 1, defaults: Optional[Dict[str, Any]] = None):
        self._mu = Lock()
        self._file = Path(settings_file)
        self._schema_version = schema_version
        self._defaults = dict(DEFAULT_SETTINGS if defaults is None else defaults)

    @property
    def path(self) -> Path:
        return self._file

    def _lock_file_path(self) -> Path:
        """Path to lock file (next to settings file)."""
        return self._file.with_name(f".{self._file.name}.lock")

    def _acquire_disk_lock(self, *, timeout_s: float = 10.0) -> Optional[object]:
        """Best-effort inter-process lock. Returns file handle on success, None on failure/timeout."""
        if fcntl is None:
            return None

        lock_path = self._lock_file_path()
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        fh = open(lock_path, "w")
        start = time.monotonic()
        while time.monotonic() - start < float(timeout_s):
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fh
            except OSError:
                time.sleep(0.05)

        fh.close()
        _logger.warning("Timed out waiting for settings lock %s", lock_path)
        return None

    def _release_disk_lock(self, lock_fh: Optional[object]) -> None:
        if lock_fh is None:
            return
        try:
            if fcntl is not None:
                fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
        finally:
            lock_fh.close()

    def _read_items(self) -> Dict[str, Any]:
        if not self._file.exists():
            return {}
        try:
            raw = json.loads(self._file.read_text() or "{}")
        except (OSError, ValueError) as e:
            _logger.warning("Ignoring unreadable settings file %s: %s", self._file, e)
            return {}
        items = raw.get("items") if isinstance(raw, dict) else None
        return dict(items) if isinstance(items, dict) else {}

    def get(self, key: str) -> Any:
        with self._mu:
            items = self._read_items()
            if key in items:
                return items[key]
            return _default_for(key, self._defaults)

    def set(self, key: str, value: Any) -> None:
        with self._mu:
            self._file.parent.mkdir(parents=True, exist_ok=True)
            lock_fh = self._acquire_disk_lock()
            try:
                # Merge with disk state so concurrent writers of other keys survive.
                items = self._read_items()
                items[key] = value
                data = {"version": self._schema_version, "items": items}

                tmp = f"{self._file}.tmp.{os.getpid()}"
                Path(tmp).write_text(json.dumps(data, separators=(",", ":")))
                os.replace(tmp, str(self._file))
            finally:
                self._release_disk_lock(lock_fh)
