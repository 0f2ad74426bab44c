"""deno.json(c) import maps and deno.lock (formats 2 to 4)."""
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models.payload import Dependency, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "deno"
NPM = "npm"

# https://deno.land/x/oak@v12.6.1/mod.ts, https://deno.land/std@0.208.0/..., https://esm.sh/preact@10.19.2
_URL_PACKAGE = re.compile(r"^https?://([^/]+/(?:x/)?[^/@]+)@([^/?#]+)")
_LINE_COMMENT = re.compile(r"^\s*//.*$", re.MULTILINE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _split_package(spec: str) -> Tuple[str, str]:
    """'@scope/name@1.2/sub' -> ('@scope/name', '1.2')."""
    at = spec.find("@", 1)
    if at == -1:
        name, version = spec, ""
    else:
        name, version = spec[:at], spec[at + 1:]
    parts = name.split("/")
    name = "/".join(parts[:2] if name.startswith("@") else parts[:1])
    return name, version.split("/", 1)[0]


def split_specifier(spec: str) -> Optional[Tuple[str, str, str]]:
    """(ecosystem, name, version) of an import specifier, or None for local paths."""
    spec = spec.strip()
    if spec.startswith("npm:"):
        name, version = _split_package(spec[4:].lstrip("/"))
        return (NPM, name, version) if name else None
    if spec.startswith("jsr:"):
        name, version = _split_package(spec[4:].lstrip("/"))
        return (ECOSYSTEM, name, version) if name else None
    if spec.startswith(("http://", "https://")):
        match = _URL_PACKAGE.match(spec)
        if match:
            return ECOSYSTEM, match.group(1), match.group(2)
        return ECOSYSTEM, spec.split("://", 1)[1].split("?", 1)[0].rstrip("/"), ""
    return None


def _load_jsonc(text: str, source: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except ValueError:
        try:
            data = json.loads(_TRAILING_COMMA.sub(r"\1", _LINE_COMMENT.sub("", text)))
        except ValueError as e:
            logger.debug(f"Invalid {source}: {e}")
            return None
    return data if isinstance(data, dict) else None


@dataclass
class DenoConfig:
    name: str = ""
    version: str = ""
    dependencies: List[Dependency] = field(default_factory=list)


def parse_deno_json(text: str, source: str = "deno.json") -> Optional[DenoConfig]:
    data = _load_jsonc(text, source)
    if data is None:
        return None
    config = DenoConfig(name=str(data.get("name") or ""), version=str(data.get("version") or ""))
    imports = data.get("imports")
    if not isinstance(imports, dict):
        return config
    seen = set()
    for specifier in imports.values():
        parsed = split_specifier(str(specifier))
        if parsed is None or parsed[:2] in seen:
            continue
        seen.add(parsed[:2])
        ecosystem, name, version = parsed
        config.dependencies.append(Dependency(
            ecosystem=ecosystem, name=name, version=version, scope=SCOPE_PROD,
            direct=True, metadata={"source": source},
        ))
    return config


def _resolved_version(value: Any) -> str:
    value = str(value)
    if value.startswith(("npm:", "jsr:")):
        parsed = split_specifier(value)
        value = parsed[2] if parsed else ""
    # npm peer-dependency suffix: 18.2.0_react@18.2.0
    return value.split("_", 1)[0]


def parse_deno_lock(text: str, source: str = "deno.lock") -> Optional[List[Dependency]]:
    """Requested specifiers and remote modules are direct; other locked packages are transitive."""
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if not isinstance(data, dict) or not data.get("version"):
        return None

    # Format 4 keeps the package tables at the top level, format 3 under "packages"
    packages = data if "specifiers" in data else data.get("packages") or {}
    if not isinstance(packages, dict):
        packages = {}

    dependencies: List[Dependency] = []
    seen = set()

    def add(ecosystem: str, name: str, version: str, direct: bool) -> None:
        if (ecosystem, name) in seen:
            return
        seen.add((ecosystem, name))
        dependencies.append(Dependency(
            ecosystem=ecosystem, name=name, version=version, scope=SCOPE_PROD,
            direct=direct, metadata={"source": source},
        ))

    specifiers = packages.get("specifiers") or {}
    if isinstance(specifiers, dict):
        for requested, resolved in specifiers.items():
            parsed = split_specifier(str(requested))
            if parsed is not None:
                add(parsed[0], parsed[1], _resolved_version(resolved), True)

    remote = data.get("remote") or {}
    if isinstance(remote, dict):
        for url in remote:
            parsed = split_specifier(str(url))
            if parsed is not None and parsed[2]:
                add(parsed[0], parsed[1], parsed[2], True)

    for table, ecosystem in (("jsr", ECOSYSTEM), ("npm", NPM)):
        entries = packages.get(table) or {}
        if not isinstance(entries, dict):
            continue
        for key in entries:
            name, version = _split_package(str(key))
            if name:
                add(ecosystem, name, _resolved_version(version), False)
    return dependencies
