"""Parsers for package.json and the npm, Yarn and pnpm lock files."""
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from models.payload import Dependency, SCOPE_DEV, SCOPE_OPTIONAL, SCOPE_PEER, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "npm"

# package.json sections in precedence order; a name listed twice keeps the first scope
SECTIONS = (
    ("dependencies", SCOPE_PROD),
    ("devDependencies", SCOPE_DEV),
    ("peerDependencies", SCOPE_PEER),
    ("optionalDependencies", SCOPE_OPTIONAL),
)


@dataclass
class PackageJson:
    name: str = ""
    version: str = ""
    sections: Dict[str, Dict[str, str]] = field(default_factory=dict)
    workspaces: List[str] = field(default_factory=list)

    def direct_scopes(self) -> Dict[str, str]:
        scopes: Dict[str, str] = {}
        for section, scope in SECTIONS:
            for name in self.sections.get(section, {}):
                scopes.setdefault(name, scope)
        return scopes


def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def parse_package_json(text: str) -> Optional[PackageJson]:
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid package.json: {e}")
        return None
    if not isinstance(data, dict):
        return None
    workspaces = data.get("workspaces") or []
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages") or []
    return PackageJson(
        name=str(data.get("name") or ""),
        version=str(data.get("version") or ""),
        sections={section: _string_map(data.get(section)) for section, _ in SECTIONS},
        workspaces=[str(w) for w in workspaces if isinstance(w, str)],
    )


def package_json_dependencies(package: PackageJson, source: str = "package.json") -> List[Dependency]:
    dependencies: List[Dependency] = []
    seen = set()
    for section, scope in SECTIONS:
        for name, version in package.sections.get(section, {}).items():
            if name in seen:
                continue
            seen.add(name)
            dependencies.append(Dependency(
                ecosystem=ECOSYSTEM,
                name=name,
                version=version,
                scope=scope,
                direct=True,
                metadata={"source": source},
            ))
    return dependencies


def _lock_dependency(name: str, version: str, scope: str, direct: bool, source: str) -> Dependency:
    return Dependency(ecosystem=ECOSYSTEM, name=name, version=version, scope=scope, direct=direct, metadata={"source": source})


def parse_package_lock(text: str, package: PackageJson, source: str = "package-lock.json") -> Optional[List[Dependency]]:
    """package-lock.json v1, v2 and v3. Returns None if the lock is unusable."""
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict):
        return None

    direct = package.direct_scopes()
    dependencies: List[Dependency] = []
    packages = data.get("packages")
    if isinstance(packages, dict):
        for key, info in packages.items():
            if not key or not isinstance(info, dict) or "node_modules/" not in key:
                continue
            name = info.get("name") or key.rsplit("node_modules/", 1)[1]
            top_level = key == f"node_modules/{name}"
            is_direct = top_level and name in direct
            if is_direct:
                scope = direct[name]
            else:
                scope = SCOPE_DEV if info.get("dev") else SCOPE_OPTIONAL if info.get("optional") else SCOPE_PROD
            dependencies.append(_lock_dependency(name, str(info.get("version", "")), scope, is_direct, source))
        return dependencies

    legacy = data.get("dependencies")
    if isinstance(legacy, dict):
        for name, info in legacy.items():
            if not isinstance(info, dict):
                continue
            is_direct = name in direct
            scope = direct[name] if is_direct else (SCOPE_DEV if info.get("dev") else SCOPE_PROD)
            dependencies.append(_lock_dependency(name, str(info.get("version", "")), scope, is_direct, source))
        return dependencies
    return None


def _spec_name(spec: str) -> str:
    """'@scope/pkg@^1.0.0' -> '@scope/pkg', 'pkg@npm:^1' -> 'pkg'."""
    spec = spec.strip().strip('"').strip("'")
    at = spec.find("@", 1)
    return spec[:at] if at > 0 else spec


_YARN_VERSION = re.compile(r'^\s+version:?\s+"?([^"\s]+)"?')


def parse_yarn_lock(text: str, package: PackageJson, source: str = "yarn.lock") -> Optional[List[Dependency]]:
    """Classic (v1) and Berry yarn.lock files. Yarn does not mark direct entries, package.json does."""
    direct = package.direct_scopes()
    dependencies: List[Dependency] = []
    seen = set()
    names: List[str] = []
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        if not line[0].isspace():
            if line.rstrip().endswith(":") and not line.startswith("__metadata"):
                specs = line.rstrip()[:-1].split(",")
                names = list(dict.fromkeys(_spec_name(s) for s in specs if s.strip()))
            else:
                names = []
            continue
        match = _YARN_VERSION.match(line)
        if match and names:
            version = match.group(1)
            for name in names:
                if name in seen:
                    continue
                seen.add(name)
                is_direct = name in direct
                dependencies.append(_lock_dependency(name, version, direct.get(name, SCOPE_PROD), is_direct, source))
            names = []
    if not dependencies and text.strip() and "version" not in text:
        return None
    return dependencies


def _pnpm_version(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("version", "")
    version = str(value or "")
    # Peer suffixes: 18.2.0(react@18.2.0) or the older 18.2.0_react@18.2.0
    return re.split(r"[(_]", version, 1)[0]


_PNPM_KEY = re.compile(r"^/?((?:@[^/@]+/)?[^/@]+)[@/]([^(_/]+)")


def parse_pnpm_lock(text: str, package: PackageJson, source: str = "pnpm-lock.yaml") -> Optional[List[Dependency]]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict):
        return None

    importer = data
    importers = data.get("importers")
    if isinstance(importers, dict) and isinstance(importers.get("."), dict):
        importer = importers["."]

    direct = package.direct_scopes()
    dependencies: List[Dependency] = []
    seen = set()
    for section, scope in SECTIONS:
        entries = importer.get(section)
        if not isinstance(entries, dict):
            continue
        for name, value in entries.items():
            if name in seen:
                continue
            seen.add(name)
            dependencies.append(_lock_dependency(name, _pnpm_version(value), direct.get(name, scope), True, source))

    packages = data.get("packages")
    if isinstance(packages, dict):
        for key, info in packages.items():
            match = _PNPM_KEY.match(str(key))
            if not match or match.group(1) in seen:
                continue
            name = match.group(1)
            seen.add(name)
            dev = isinstance(info, dict) and info.get("dev") is True
            dependencies.append(_lock_dependency(name, match.group(2), SCOPE_DEV if dev else SCOPE_PROD, False, source))
    return dependencies
