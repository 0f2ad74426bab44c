"""Helpers shared by the ecosystem detectors."""
import os
import fnmatch
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from core.file_provider import FileEntry, FileProvider
from models.payload import Dependency, Payload

logger = logging.getLogger(__name__)


def find_file(files: Sequence[FileEntry], *names: str) -> Optional[FileEntry]:
    """First of the given names present in the listing (names are in priority order)."""
    by_name = {f.name: f for f in files}
    for name in names:
        if name in by_name:
            return by_name[name]
    return None


def find_files(files: Sequence[FileEntry], *patterns: str) -> List[FileEntry]:
    return [f for f in files if any(fnmatch.fnmatchcase(f.name, p) for p in patterns)]


def directory_name(current_path: str) -> str:
    return os.path.basename(os.path.normpath(current_path)) or "root"


def new_component(name: str, relative_path: str, component_type: str, tech: str, manifest: str) -> Payload:
    payload = Payload(name=name, path=relative_path, type=component_type)
    payload.add_primary_tech(tech)
    payload.add_tech(tech, f"matched file: {manifest}")
    return payload


def read_lock(
    files: Sequence[FileEntry],
    provider: FileProvider,
    candidates: Sequence[Tuple[str, Callable[[str], Optional[List[Dependency]]]]],
) -> Optional[List[Dependency]]:
    """Parse the first usable lock file among (filename, parser) candidates, in order."""
    for filename, parser in candidates:
        entry = find_file(files, filename)
        if entry is None:
            continue
        text = provider.read_text(entry.path)
        if text is None:
            continue
        dependencies = parser(text)
        if dependencies is not None:
            return dependencies
        logger.debug(f"Ignoring unusable lock file {entry.path}")
    return None
