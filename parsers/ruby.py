"""Gemfile and Gemfile.lock parsers."""
import re
import logging
from typing import List, Optional, Set

from models.payload import Dependency, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "ruby"
DEV_GROUPS = {"development", "test"}

_GEM = re.compile(r"""^\s*gem\s+["']([^"']+)["'](?:\s*,\s*["']([^"']+)["'])?(.*)$""")
_GROUP = re.compile(r"^\s*group\s+(.+?)\s+do\b")
_INLINE_GROUP = re.compile(r"group[s]?:\s*(\[[^\]]*\]|:\w+)")
_LOCK_SPEC = re.compile(r"^    ([^\s(]+) \(([^)]+)\)")
_LOCK_DIRECT = re.compile(r"^  ([^\s(!]+)")


def _groups(text: str) -> Set[str]:
    return set(re.findall(r":(\w+)", text))


def parse_gemfile(text: str, source: str = "Gemfile") -> List[Dependency]:
    dependencies: List[Dependency] = []
    seen = set()
    group_stack: List[Set[str]] = []
    for line in text.splitlines():
        stripped = line.split("#", 1)[0].rstrip()
        if not stripped.strip():
            continue
        group = _GROUP.match(stripped)
        if group:
            group_stack.append(_groups(group.group(1)))
            continue
        if re.match(r"^\s*(\w+\s.*\bdo\b|\w+\s+do)\s*(\|.*\|)?$", stripped):
            # platforms/source/path blocks nest like groups without changing scope
            group_stack.append(set())
            continue
        if stripped.strip() == "end":
            if group_stack:
                group_stack.pop()
            continue
        gem = _GEM.match(stripped)
        if not gem or gem.group(1) in seen:
            continue
        name, version, rest = gem.groups()
        seen.add(name)
        groups = set().union(*group_stack) if group_stack else set()
        inline = _INLINE_GROUP.search(rest or "")
        if inline:
            groups |= _groups(inline.group(1))
        scope = SCOPE_DEV if groups and groups <= DEV_GROUPS else SCOPE_PROD
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM, name=name, version=version or "", scope=scope,
            direct=True, metadata={"source": source},
        ))
    return dependencies


def parse_gemfile_lock(text: str, manifest: List[Dependency], source: str = "Gemfile.lock") -> Optional[List[Dependency]]:
    if "specs:" not in text:
        return None
    declared = {d.name: d for d in manifest}
    section = ""
    specs = []
    direct_names: Set[str] = set()
    for line in text.splitlines():
        if line and not line[0].isspace():
            section = line.strip()
            continue
        if section in ("GEM", "GIT", "PATH"):
            match = _LOCK_SPEC.match(line)
            if match:
                specs.append((match.group(1), match.group(2)))
        elif section == "DEPENDENCIES":
            match = _LOCK_DIRECT.match(line)
            if match:
                direct_names.add(match.group(1))

    dependencies: List[Dependency] = []
    seen = set()
    for name, version in specs:
        if name in seen:
            continue
        seen.add(name)
        dep = declared.get(name)
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=name,
            version=version,
            scope=dep.scope if dep else SCOPE_PROD,
            direct=dep is not None or name in direct_names,
            metadata={"source": source},
        ))
    return dependencies
