"""composer.json and composer.lock parsers."""
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from models.payload import Dependency, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "php"


def is_platform_package(name: str) -> bool:
    """php itself, extensions and libraries are not installable packages."""
    return name in ("php", "composer-plugin-api", "composer-runtime-api") or name.startswith(("ext-", "lib-"))


@dataclass
class ComposerProject:
    name: str = ""
    dependencies: List[Dependency] = field(default_factory=list)


def parse_composer_json(text: str, source: str = "composer.json") -> Optional[ComposerProject]:
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    project = ComposerProject(name=str(data.get("name") or ""))
    for section, scope in (("require", SCOPE_PROD), ("require-dev", SCOPE_DEV)):
        entries = data.get(section)
        if not isinstance(entries, dict):
            continue
        for name, version in entries.items():
            if is_platform_package(name):
                continue
            project.dependencies.append(Dependency(
                ecosystem=ECOSYSTEM, name=name, version=str(version), scope=scope,
                direct=True, metadata={"source": source},
            ))
    return project


def parse_composer_lock(text: str, manifest: List[Dependency], source: str = "composer.lock") -> Optional[List[Dependency]]:
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    declared = {d.name: d for d in manifest}
    dependencies: List[Dependency] = []
    for section, scope in (("packages", SCOPE_PROD), ("packages-dev", SCOPE_DEV)):
        for package in data.get(section) or []:
            if not isinstance(package, dict) or not package.get("name"):
                continue
            name = str(package["name"])
            dependencies.append(Dependency(
                ecosystem=ECOSYSTEM,
                name=name,
                version=str(package.get("version", "")),
                scope=declared[name].scope if name in declared else scope,
                direct=name in declared,
                metadata={"source": source},
            ))
    return dependencies
