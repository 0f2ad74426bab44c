"""Conan recipes (conanfile.py, conanfile.txt) and conan.lock."""
import re
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models.payload import Dependency, SCOPE_BUILD, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "conan"

TXT_SECTIONS = {
    "requires": SCOPE_PROD,
    "tool_requires": SCOPE_BUILD,
    "build_requires": SCOPE_BUILD,
    "test_requires": SCOPE_DEV,
}

_CALL = re.compile(r"""self\.(requires|tool_requires|build_requires|test_requires)\(\s*["']([^"']+)["']""")
_ATTRIBUTE = re.compile(r"""^\s*(requires|tool_requires|build_requires|test_requires)\s*=\s*(.+)$""", re.MULTILINE)
_LIST_BODY = re.compile(r"""^\s*[\[(]((?:\s*["'][^"']*["']\s*,?)*)""")
_QUOTED = re.compile(r"""["']([^"']+)["']""")
_NAME = re.compile(r"""^\s*name\s*=\s*["']([^"']+)["']""", re.MULTILINE)
_RECIPE_CLASS = re.compile(r"^class\s+(\w+?)(?:Conan|Recipe)\s*\(", re.MULTILINE)


def split_reference(reference: str) -> Tuple[str, str]:
    """'fmt/10.1.1@user/channel#rrev%ts' -> ('fmt', '10.1.1')."""
    reference = reference.strip()
    name, _, rest = reference.partition("/")
    version = re.split(r"[@#%]", rest, maxsplit=1)[0] if rest else ""
    return name, version


@dataclass
class ConanRecipe:
    name: str = ""
    dependencies: List[Dependency] = field(default_factory=list)


def _add(recipe: ConanRecipe, reference: str, scope: str, source: str) -> None:
    name, version = split_reference(reference)
    if not name or any(d.name == name for d in recipe.dependencies):
        return
    recipe.dependencies.append(Dependency(
        ecosystem=ECOSYSTEM, name=name, version=version, scope=scope,
        direct=True, metadata={"source": source},
    ))


def parse_conanfile_txt(text: str, source: str = "conanfile.txt") -> ConanRecipe:
    recipe = ConanRecipe()
    section = ""
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            continue
        if section in TXT_SECTIONS and "/" in line:
            _add(recipe, line, TXT_SECTIONS[section], source)
    return recipe


def parse_conanfile_py(text: str, source: str = "conanfile.py") -> ConanRecipe:
    recipe = ConanRecipe()
    name = _NAME.search(text)
    if name:
        recipe.name = name.group(1)
    else:
        recipe_class = _RECIPE_CLASS.search(text)
        if recipe_class:
            recipe.name = recipe_class.group(1).lower()

    for match in _ATTRIBUTE.finditer(text):
        value = text[match.start(2):]
        body = _LIST_BODY.match(value)
        references = _QUOTED.findall(body.group(1) if body else match.group(2))
        for reference in references:
            _add(recipe, reference, TXT_SECTIONS[match.group(1)], source)
    for match in _CALL.finditer(text):
        _add(recipe, match.group(2), TXT_SECTIONS[match.group(1)], source)
    return recipe


def parse_conan_lock(text: str, manifest: List[Dependency], source: str = "conan.lock") -> Optional[List[Dependency]]:
    """Conan 2 lock lists, or the Conan 1 `graph_lock` node table."""
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict):
        return None

    references: List[Tuple[str, str]] = []
    if "graph_lock" in data:
        nodes = (data.get("graph_lock") or {}).get("nodes") or {}
        for key, node in nodes.items():
            if key != "0" and isinstance(node, dict) and node.get("ref"):
                references.append((str(node["ref"]), SCOPE_PROD))
    elif "requires" in data or "build_requires" in data:
        for section, scope in (("requires", SCOPE_PROD), ("build_requires", SCOPE_BUILD)):
            for reference in data.get(section) or []:
                references.append((str(reference), scope))
    else:
        return None

    declared = {d.name: d for d in manifest}
    dependencies: List[Dependency] = []
    seen = set()
    for reference, scope in references:
        name, version = split_reference(reference)
        if not name or name in seen:
            continue
        seen.add(name)
        dep = declared.get(name)
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=name,
            version=version,
            scope=dep.scope if dep else scope,
            direct=dep is not None,
            metadata={"source": source},
        ))
    return dependencies
