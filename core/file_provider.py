"""Filesystem access for the traversal: directory listings and lazily read, cached file content."""
import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str  # absolute
    is_dir: bool


class FileProvider:
    """Reads files on demand and keeps their bytes until `clear_cache()`.

    The orchestrator clears the cache when a directory's processing completes,
    so the same file is read at most once per directory even when several
    content patterns and detectors probe it.
    """

    def __init__(self, base_path: str):
        self.base_path = os.path.abspath(base_path)
        self._cache: Dict[str, bytes] = {}

    def list_dir(self, path: str) -> List[FileEntry]:
        """Entries sorted by name. Raises OSError when the directory cannot be listed."""
        entries: List[FileEntry] = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    if not is_dir and not entry.is_file():
                        continue
                except OSError:
                    continue
                entries.append(FileEntry(name=entry.name, path=entry.path, is_dir=is_dir))
        entries.sort(key=lambda e: e.name)
        return entries

    def read_file(self, path: str) -> bytes:
        if path not in self._cache:
            with open(path, "rb") as f:
                self._cache[path] = f.read()
        return self._cache[path]

    def read_text(self, path: str) -> Optional[str]:
        """File text, or None if it cannot be read or decoded."""
        try:
            return self.read_file(path).decode("utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def relative(self, path: str) -> str:
        """Path relative to the scan root, '/'-separated with a leading slash."""
        rel = os.path.relpath(os.path.abspath(path), self.base_path)
        if rel == ".":
            return "/"
        return "/" + rel.replace(os.sep, "/")

    def clear_cache(self) -> None:
        self._cache.clear()

    def cached_count(self) -> int:
        return len(self._cache)
