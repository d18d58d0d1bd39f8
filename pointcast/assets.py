"""Registry that maps local files to opaque asset URLs served over HTTP."""

from __future__ import annotations

import posixpath
import threading
import uuid


def _clean_path(path: str) -> str:
    return posixpath.normpath(path.replace("\\", "/"))


def _suffix(path: str) -> str:
    name = posixpath.basename(path)
    _, dot, suffix = name.rpartition(".")
    return suffix if dot else ""


class AssetRegistry:
    """Gives each registered file a stable random asset id and URL."""

    def __init__(self, http_port: int = 28081) -> None:
        self.http_port = http_port
        self._by_id: dict[str, str] = {}
        self._by_path: dict[str, str] = {}
        self._lock = threading.Lock()

    def _url(self, asset_id: str) -> str:
        return f"http://localhost:{self.http_port}/assets/{asset_id}"

    def register(self, absolute_path: str) -> str:
        """Register a file and return its served URL; an empty path gives ""."""
        if not absolute_path:
            return ""
        path = _clean_path(absolute_path)
        with self._lock:
            asset_id = self._by_path.get(path)
            if asset_id is None:
                suffix = _suffix(path)
                asset_id = str(uuid.uuid4())
                if suffix:
                    asset_id = f"{asset_id}.{suffix}"
                self._by_id[asset_id] = path
                self._by_path[path] = asset_id
            return self._url(asset_id)

    def resolve(self, asset_id: str) -> str | None:
        """Return the real path behind an asset id, or None if unknown."""
        with self._lock:
            return self._by_id.get(asset_id)

    def has_asset(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._by_id

    def __contains__(self, asset_id: object) -> bool:
        return isinstance(asset_id, str) and self.has_asset(asset_id)