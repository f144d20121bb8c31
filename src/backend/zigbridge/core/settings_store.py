"""Durable key-value store for runtime-tunable gateway configuration.

The store is a single YAML document. Reads return deep copies so callers can
never mutate the committed state; every ``set`` rewrites the file atomically.
Without a path the store lives in memory only.
"""

import copy
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Sequence

import structlog
import yaml

logger = structlog.get_logger()

MANDATORY_PROPERTIES = ["ieeeAddr", "source", "callback_url"]

DEFAULT_CONFIGURATION: dict[str, Any] = {
    "frontend": {"auth_token": ""},
    "gateway": {
        "callbacks": [],
        "tracked_properties": list(MANDATORY_PROPERTIES),
        "default_devices": [],
        "alarm_setting": {"models": []},
    },
    "devices": {},
    "availability": {
        "active": {"timeout": 10},
        "passive": {"timeout": 1500},
    },
}


class ConfigStoreError(Exception):
    """Raised when the configuration document cannot be read or persisted."""
    pass


def _merge_defaults(defaults: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


class SettingsStore:
    """YAML-backed configuration document with path-based get/set."""

    def __init__(self, path: str | Path | None = None, initial: dict[str, Any] | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        data: dict[str, Any] = {}
        if self.path and self.path.exists():
            data = self._read(self.path)
        if initial:
            data = _merge_defaults(data, initial)
        self._data = _merge_defaults(DEFAULT_CONFIGURATION, data)

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigStoreError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigStoreError(f"{path} must contain a YAML mapping at the root")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False)
            os.replace(tmp, self.path)
        except OSError as e:
            raise ConfigStoreError(f"Cannot write {self.path}: {e}") from e

    def get(self) -> dict[str, Any]:
        """Return a copy of the whole document."""
        with self._lock:
            return copy.deepcopy(self._data)

    def get_path(self, path: Sequence[str], default: Any = None) -> Any:
        """Return a copy of the value at ``path`` or ``default`` when absent."""
        with self._lock:
            node: Any = self._data
            for key in path:
                if not isinstance(node, dict) or key not in node:
                    return default
                node = node[key]
            return copy.deepcopy(node)

    def set(self, path: Sequence[str], value: Any) -> None:
        """Replace the value at ``path`` and persist the document.

        The in-memory document only changes once the write succeeded.
        """
        if not path:
            raise ValueError("path must not be empty")
        with self._lock:
            data = copy.deepcopy(self._data)
            node = data
            for key in path[:-1]:
                child = node.get(key)
                if not isinstance(child, dict):
                    child = {}
                    node[key] = child
                node = child
            node[path[-1]] = copy.deepcopy(value)
            self._write(data)
            self._data = data
        logger.debug("Configuration updated", path=".".join(path))
