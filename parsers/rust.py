"""Cargo.toml and Cargo.lock parsers."""
import logging
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.payload import Dependency, SCOPE_BUILD, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "cargo"

TABLES = (
    ("dependencies", SCOPE_PROD),
    ("dev-dependencies", SCOPE_DEV),
    ("build-dependencies", SCOPE_BUILD),
)


@dataclass
class CargoManifest:
    package_name: str = ""
    version: str = ""
    is_workspace: bool = False
    members: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)


def _version(spec: Any) -> str:
    if isinstance(spec, dict):
        return str(spec.get("version", ""))
    return str(spec or "")


def parse_cargo_toml(text: str, source: str = "Cargo.toml") -> Optional[CargoManifest]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None

    package = data.get("package") if isinstance(data.get("package"), dict) else {}
    workspace = data.get("workspace") if isinstance(data.get("workspace"), dict) else None
    manifest = CargoManifest(
        package_name=str(package.get("name", "")),
        version=str(package.get("version", "")) if not isinstance(package.get("version"), dict) else "",
        is_workspace=workspace is not None,
        members=[str(m) for m in (workspace or {}).get("members", []) if isinstance(m, str)],
    )

    tables: List[tuple] = [(data.get(name), scope) for name, scope in TABLES]
    # [target.'cfg(unix)'.dependencies] and friends
    targets = data.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            if isinstance(target, dict):
                tables.extend((target.get(name), scope) for name, scope in TABLES)

    seen = set()
    for table, scope in tables:
        if not isinstance(table, dict):
            continue
        for name, spec in table.items():
            # `foo = { package = "bar" }` renames a crate
            crate = spec.get("package", name) if isinstance(spec, dict) else name
            if crate in seen:
                continue
            seen.add(crate)
            manifest.dependencies.append(Dependency(
                ecosystem=ECOSYSTEM,
                name=crate,
                version=_version(spec),
                scope=scope,
                direct=True,
                metadata={"source": source},
            ))
    return manifest


def parse_cargo_lock(text: str, manifest: List[Dependency], package_name: str = "", source: str = "Cargo.lock") -> Optional[List[Dependency]]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    packages = data.get("package")
    if not isinstance(packages, list):
        return None

    declared = {d.name: d for d in manifest}
    dependencies: List[Dependency] = []
    seen = set()
    for package in packages:
        if not isinstance(package, dict) or not package.get("name"):
            continue
        name = str(package["name"])
        # Several versions of one crate can be locked; the first wins
        if name == package_name or name in seen:
            continue
        seen.add(name)
        dep = declared.get(name)
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=name,
            version=str(package.get("version", "")),
            scope=dep.scope if dep else SCOPE_PROD,
            direct=dep is not None,
            metadata={"source": source},
        ))
    return dependencies
