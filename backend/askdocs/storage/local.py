"""Filesystem-backed document storage."""

from __future__ import annotations

from pathlib import Path

from askdocs.core.errors import StorageError


class LocalStorage:
    """Stores uploaded files under a root directory.

    Paths are relative, ``<owner>/<file>`` by convention; anything resolving
    outside the root is rejected.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser()

    def upload(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store {path}: {exc}") from exc
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Failed to download file: {path} not found") from exc
        except OSError as exc:
            raise StorageError(f"Failed to download file: {exc}") from exc

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        target = (root / path).resolve()
        if target == root or root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target


__all__ = ["LocalStorage"]
