"""
JSON key-value store backed by a directory tree.

Each value is one JSON blob stored at ``{root}/{namespace}/{key}.json``.
Namespaces separate user data (one per user id) from account-wide data
(``_global``). Writes go through a temporary file and ``os.replace`` so a
crash never leaves a half-written blob behind.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from commitments.exceptions import PersistenceError

logger = logging.getLogger(__name__)

GLOBAL_NAMESPACE = "_global"


def _sanitize(name: str) -> str:
    """Return *name* restricted to characters safe for a path segment."""
    return re.sub(r"[^\w.\-]", "_", name) or "_"


class KeyValueStore:
    """Namespaced JSON-blob store.

    Args:
        root: Directory holding all namespaces; created on first write.
        namespace: Sub-directory for this view of the store.
    """

    def __init__(self, root: Path, namespace: str = GLOBAL_NAMESPACE) -> None:
        self.root = Path(root)
        self.namespace = namespace
        self._dir = self.root / _sanitize(namespace)

    def scoped(self, namespace: str) -> KeyValueStore:
        """Return a view of the same root under another namespace."""
        return KeyValueStore(self.root, namespace)

    def _path(self, key: str) -> Path:
        return self._dir / f"{_sanitize(key)}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded blob for *key*, or *default* if absent or corrupt."""
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading '%s' from %s: %s", key, self._dir, exc)
            return default

    def set(self, key: str, value: Any) -> None:
        """Serialise *value* as JSON under *key*.

        Raises:
            PersistenceError: If the blob cannot be written.
        """
        path = self._path(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(value, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error saving '%s' to %s: %s", key, self._dir, exc)
            raise PersistenceError(f"Could not save '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        """Remove *key*; missing keys are ignored."""
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Could not delete '{key}': {exc}") from exc

    def namespaces(self) -> list[str]:
        """List existing namespaces other than the global one."""
        if not self.root.exists():
            return []
        return sorted(
            p.name
            for p in self.root.iterdir()
            if p.is_dir() and p.name != GLOBAL_NAMESPACE
        )
