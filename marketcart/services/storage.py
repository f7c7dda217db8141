from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 0
_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class StateStorage(Protocol):
    def load(self, key: str) -> dict[str, Any] | None: ...

    def save(self, key: str, state: dict[str, Any]) -> None: ...

    def remove(self, key: str) -> None: ...


def _envelope(state: dict[str, Any]) -> dict[str, Any]:
    return {"state": state, "version": SNAPSHOT_VERSION}


def _open_envelope(key: str, raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict) or not isinstance(raw.get("state"), dict):
        logger.warning("cart_snapshot_invalid", extra={"key": key})
        return None
    if raw.get("version", SNAPSHOT_VERSION) != SNAPSHOT_VERSION:
        logger.warning("cart_snapshot_version_mismatch", extra={"key": key, "version": raw.get("version")})
        return None
    return raw["state"]


class MemoryStateStorage:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str) -> dict[str, Any] | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return _open_envelope(key, json.loads(raw))

    def save(self, key: str, state: dict[str, Any]) -> None:
        self._data[key] = json.dumps(_envelope(state), ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def raw(self, key: str) -> str | None:
        return self._data.get(key)


class FileStateStorage:
    """One JSON file per key under ``root``, replaced atomically on every save."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY_RE.fullmatch(key or ""):
            raise ValueError(f"Invalid storage key {key!r}")
        return self.root / f"{key}.json"

    def load(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("cart_snapshot_unreadable", extra={"key": key, "error": str(exc)})
            return None
        return _open_envelope(key, raw)

    def save(self, key: str, state: dict[str, Any]) -> None:
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                json.dump(_envelope(state), out, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
