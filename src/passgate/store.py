"""Persistent string key/value store.

Each key is a file under the store directory, written with owner-only
permissions. Values are plain strings; nothing here is encrypted, so only
non-secret identifiers (such as the device trust id) belong in it.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from passgate.config import get_settings
from passgate.exceptions import StoreError
from passgate.logging import get_logger

LOG = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class ConfigStore:
    """String key/value store backed by one file per key."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir if base_dir is not None else get_settings().store_dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key) or key in {".", ".."}:
            raise StoreError(f"Invalid store key: {key!r}")
        return self.base_dir / key

    def read_string(self, key: str) -> str | None:
        """Return the stored value for ``key``, or None if unset."""
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Failed to read store key {key!r}: {exc}") from exc

    def write_string(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``, replacing any previous value."""
        path = self._path(key)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f".{key}.tmp")
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StoreError(f"Failed to write store key {key!r}: {exc}") from exc
        LOG.debug("store_key_written", key=key)

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StoreError(f"Failed to delete store key {key!r}: {exc}") from exc
        LOG.debug("store_key_deleted", key=key)
        return True
