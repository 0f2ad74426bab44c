"""Podfile and Podfile.lock."""
import re
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import yaml

from models.payload import Dependency, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "cocoapods"

_POD = re.compile(r"""^\s*pod\s+['"]([^'"]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")
_TARGET = re.compile(r"""^\s*(?:abstract_)?target\s+['"]([^'"]+)['"]""")
_PLATFORM = re.compile(r"""^\s*platform\s+:(\w+)(?:\s*,\s*['"]([^'"]+)['"])?""")
_BLOCK_START = re.compile(r"\bdo\s*(\|[^|]*\|)?\s*$")
_LOCK_ENTRY = re.compile(r"^(\S+)(?:\s+\(([^)]*)\))?")


@dataclass
class Podfile:
    platform: str = ""
    platform_version: str = ""
    targets: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)


def _is_test_target(name: str) -> bool:
    return name.endswith("Tests")


def parse_podfile(text: str, source: str = "Podfile") -> Podfile:
    """Pods declared inside a `*Tests` target are dev dependencies."""
    podfile = Podfile()
    # open `do` blocks; None for blocks that are not targets
    blocks: List[Optional[str]] = []
    seen = set()
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].rstrip()
        if not line.strip():
            continue
        if line.strip() == "end":
            if blocks:
                blocks.pop()
            continue
        target = _TARGET.match(line)
        if target:
            podfile.targets.append(target.group(1))
            blocks.append(target.group(1))
            continue
        if _BLOCK_START.search(line):
            blocks.append(None)
            continue
        platform = _PLATFORM.match(line)
        if platform:
            podfile.platform = platform.group(1)
            podfile.platform_version = platform.group(2) or ""
            continue
        pod = _POD.match(line)
        if not pod or pod.group(1) in seen:
            continue
        seen.add(pod.group(1))
        targets = [b for b in blocks if b]
        podfile.dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=pod.group(1),
            version=pod.group(2) or "",
            scope=SCOPE_DEV if targets and _is_test_target(targets[-1]) else SCOPE_PROD,
            direct=True,
            metadata={"source": source},
        ))
    return podfile


def _lock_entry(value: Any) -> Optional[Tuple[str, str]]:
    match = _LOCK_ENTRY.match(str(value).strip())
    if not match:
        return None
    return match.group(1), match.group(2) or ""


def parse_podfile_lock(text: str, manifest: List[Dependency], source: str = "Podfile.lock") -> Optional[List[Dependency]]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("PODS"), list):
        return None

    declared = {d.name: d for d in manifest}
    requested = set()
    for item in data.get("DEPENDENCIES") or []:
        entry = _lock_entry(item)
        if entry:
            requested.add(entry[0])

    dependencies: List[Dependency] = []
    seen = set()
    for item in data["PODS"]:
        # a pod with dependencies of its own is a single-key mapping
        key = next(iter(item), "") if isinstance(item, dict) else item
        entry = _lock_entry(key)
        if entry is None or entry[0] in seen:
            continue
        name, version = entry
        seen.add(name)
        dep = declared.get(name)
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=name,
            version=version,
            scope=dep.scope if dep else SCOPE_PROD,
            direct=dep is not None or name in requested,
            metadata={"source": source},
        ))
    return dependencies
