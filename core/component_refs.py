"""Links dependencies to the components of the same tree that provide them.

Runs on the finished tree and only attaches a new `componentRefs` field.
"""
import re
import logging
from typing import Dict, List, Tuple

from models.payload import Payload

logger = logging.getLogger(__name__)

PACKAGE_NAMES_PROPERTY = "package_names"

# Dependency ecosystems that resolve against another ecosystem's package names
REF_ECOSYSTEMS = {
    "gradle": "maven",
}


def normalize_python_name(name: str) -> str:
    """PEP 503 normalisation."""
    return re.sub(r"[-_.]+", "-", name).lower()


def _normalize(ecosystem: str, name: str) -> str:
    if ecosystem == "python":
        return normalize_python_name(name)
    return name


def build_registry(root: Payload) -> Dict[Tuple[str, str], Payload]:
    registry: Dict[Tuple[str, str], Payload] = {}
    for node in root.walk():
        names = node.properties.get(PACKAGE_NAMES_PROPERTY)
        if not isinstance(names, dict):
            continue
        for ecosystem, name in names.items():
            if isinstance(name, str) and name:
                registry.setdefault((ecosystem, _normalize(ecosystem, name)), node)
    return registry


def resolve_component_refs(root: Payload) -> int:
    """Attach componentRefs to nodes depending on sibling components. Returns the number of refs."""
    registry = build_registry(root)
    total = 0
    for node in root.walk():
        refs: List[Dict[str, str]] = []
        for dep in node.dependencies:
            ecosystem = REF_ECOSYSTEMS.get(dep.ecosystem, dep.ecosystem)
            target = registry.get((ecosystem, _normalize(ecosystem, dep.name)))
            if target is None or target is node:
                continue
            ref = {"target_id": target.id, "package_name": dep.name}
            if ref not in refs:
                refs.append(ref)
        if refs:
            node.attach_field("componentRefs", refs)
            total += len(refs)
    logger.debug(f"Resolved {total} component references")
    return total
