"""Path exclusion: default ignored directories, user globs and the root .gitignore."""
import os
import fnmatch
import logging
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

# Version control metadata, installed packages and tool caches. Build output
# directories (build, dist, target, ...) are left to .gitignore and user patterns.
DEFAULT_EXCLUDED_DIRS = {
    ".git", ".hg", ".svn", "node_modules", "bower_components", ".venv", "venv",
    "__pycache__", ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    ".idea", ".vscode", ".gradle", ".terraform", ".next", ".nuxt",
}


def read_gitignore(base_path: str) -> List[str]:
    """Simple patterns from the root .gitignore; negations are not supported and skipped."""
    path = os.path.join(base_path, ".gitignore")
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError:
        return []
    patterns = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        patterns.append(line)
    return patterns


class ExclusionPredicate:
    """Answers is_excluded(path) for absolute paths below the scan root."""

    def __init__(
        self,
        base_path: str,
        patterns: Optional[Iterable[str]] = None,
        use_defaults: bool = True,
        use_gitignore: bool = True,
    ):
        self.base_path = os.path.abspath(base_path)
        self.excluded_dirs = set(DEFAULT_EXCLUDED_DIRS) if use_defaults else set()
        self.patterns: List[str] = list(patterns or [])
        if use_gitignore:
            self.patterns.extend(read_gitignore(self.base_path))
        logger.debug(f"Exclusion patterns: {self.patterns}")

    def is_excluded(self, path: str) -> bool:
        abs_path = os.path.abspath(path)
        if abs_path == self.base_path:
            return False
        name = os.path.basename(abs_path)
        is_dir = os.path.isdir(abs_path)
        if is_dir and name in self.excluded_dirs:
            return True
        rel = os.path.relpath(abs_path, self.base_path).replace(os.sep, "/")
        for pattern in self.patterns:
            if pattern.endswith("/"):
                if not is_dir:
                    continue
                pattern = pattern.rstrip("/")
            anchored = pattern.startswith("/")
            pattern = pattern.lstrip("/")
            if pattern.startswith("**/"):
                pattern = pattern[3:]
                anchored = False
            if "/" in pattern or anchored:
                if fnmatch.fnmatchcase(rel, pattern) or fnmatch.fnmatchcase(rel, pattern + "/*"):
                    return True
            elif fnmatch.fnmatchcase(name, pattern):
                return True
        return False

    def __call__(self, path: str) -> bool:
        return self.is_excluded(path)
