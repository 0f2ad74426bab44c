"""Parsers for requirements files, pyproject.toml, poetry.lock and uv.lock."""
import re
import logging
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.component_refs import normalize_python_name
from models.payload import Dependency, SCOPE_DEV, SCOPE_OPTIONAL, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "python"

_REQUIREMENT = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(\[[^\]]*\])?\s*(.*)$")


def parse_requirement(line: str) -> Optional[Tuple[str, str]]:
    """'Django[argon2]>=4.2 ; python_version > "3.8"' -> ('Django', '>=4.2')."""
    line = line.split(" #", 1)[0].split(";", 1)[0].strip()
    if not line or line.startswith(("#", "-", "git+", "http://", "https://", ".", "/")):
        return None
    if " @ " in line:
        line = line.split(" @ ", 1)[0]
    match = _REQUIREMENT.match(line)
    if not match:
        return None
    return match.group(1), match.group(3).strip().replace(" ", "")


def _dependency(name: str, version: str, scope: str, source: str, direct: bool = True) -> Dependency:
    return Dependency(ecosystem=ECOSYSTEM, name=name, version=version, scope=scope, direct=direct, metadata={"source": source})


def parse_requirements_txt(text: str, source: str = "requirements.txt") -> List[Dependency]:
    scope = SCOPE_DEV if re.search(r"(dev|test)", source, re.IGNORECASE) else SCOPE_PROD
    dependencies: List[Dependency] = []
    seen = set()
    for raw in text.splitlines():
        parsed = parse_requirement(raw)
        if not parsed:
            continue
        name, version = parsed
        if normalize_python_name(name) in seen:
            continue
        seen.add(normalize_python_name(name))
        dependencies.append(_dependency(name, version, scope, source))
    return dependencies


@dataclass
class PyProject:
    name: str = ""
    version: str = ""
    dependencies: List[Dependency] = field(default_factory=list)
    is_poetry: bool = False


def _table(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _poetry_version(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("version", ""))
    return str(value or "")


def parse_pyproject(text: str, source: str = "pyproject.toml") -> Optional[PyProject]:
    """PEP 621 project tables, PEP 735 dependency groups and Poetry sections."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None

    project = data.get("project") if isinstance(data.get("project"), dict) else {}
    poetry = data.get("tool", {}).get("poetry") if isinstance(data.get("tool"), dict) else None
    poetry = poetry if isinstance(poetry, dict) else {}

    result = PyProject(
        name=str(project.get("name") or poetry.get("name") or ""),
        version=str(project.get("version") or poetry.get("version") or ""),
        is_poetry=bool(poetry),
    )
    seen = set()

    def add(name: str, version: str, scope: str) -> None:
        key = normalize_python_name(name)
        if key in seen or key == "python":
            return
        seen.add(key)
        result.dependencies.append(_dependency(name, version, scope, source))

    def add_requirements(items: Any, scope: str) -> None:
        for item in items if isinstance(items, list) else []:
            if isinstance(item, str):
                parsed = parse_requirement(item)
                if parsed:
                    add(parsed[0], parsed[1], scope)

    add_requirements(project.get("dependencies"), SCOPE_PROD)
    optional = project.get("optional-dependencies")
    if isinstance(optional, dict):
        for items in optional.values():
            add_requirements(items, SCOPE_OPTIONAL)
    groups = data.get("dependency-groups")
    if isinstance(groups, dict):
        for items in groups.values():
            add_requirements(items, SCOPE_DEV)

    for name, value in _table(poetry.get("dependencies")).items():
        add(name, _poetry_version(value), SCOPE_PROD)
    for name, value in _table(poetry.get("dev-dependencies")).items():
        add(name, _poetry_version(value), SCOPE_DEV)
    poetry_groups = poetry.get("group")
    if isinstance(poetry_groups, dict):
        for group in poetry_groups.values():
            if isinstance(group, dict):
                for name, value in _table(group.get("dependencies")).items():
                    add(name, _poetry_version(value), SCOPE_DEV)
    return result


def _parse_lock_packages(text: str, source: str) -> Optional[List[Dict[str, Any]]]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    packages = data.get("package")
    if not isinstance(packages, list):
        return None
    return [p for p in packages if isinstance(p, dict) and p.get("name")]


def _lock_dependencies(
    packages: List[Dict[str, Any]],
    manifest: List[Dependency],
    source: str,
    project_name: str = "",
) -> List[Dependency]:
    direct = {normalize_python_name(d.name): d for d in manifest}
    own = normalize_python_name(project_name) if project_name else ""
    dependencies: List[Dependency] = []
    for package in packages:
        name = str(package["name"])
        key = normalize_python_name(name)
        if key == own:
            continue
        declared = direct.get(key)
        if declared is not None:
            dependencies.append(_dependency(declared.name, str(package.get("version", "")), declared.scope, source))
        else:
            scope = SCOPE_DEV if package.get("category") == "dev" else SCOPE_PROD
            dependencies.append(_dependency(name, str(package.get("version", "")), scope, source, direct=False))
    return dependencies


def parse_poetry_lock(text: str, manifest: List[Dependency], source: str = "poetry.lock") -> Optional[List[Dependency]]:
    packages = _parse_lock_packages(text, source)
    if packages is None:
        return None
    return _lock_dependencies(packages, manifest, source)


def parse_uv_lock(text: str, manifest: List[Dependency], project_name: str = "", source: str = "uv.lock") -> Optional[List[Dependency]]:
    packages = _parse_lock_packages(text, source)
    if packages is None:
        return None
    # The project itself is recorded as an editable or virtual package
    packages = [p for p in packages if not (isinstance(p.get("source"), dict) and ({"editable", "virtual"} & set(p["source"])))]
    return _lock_dependencies(packages, manifest, source, project_name)
