"""MSBuild project files and packages.config."""
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.payload import Dependency, SCOPE_DEV, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "nuget"
CENTRAL_VERSIONS_FILE = "Directory.Packages.props"


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


@dataclass
class DotnetProject:
    sdk: str = ""
    assembly_name: str = ""
    target_frameworks: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)


def parse_project_file(
    text: str, source: str, central_versions: Optional[Dict[str, str]] = None,
) -> Optional[DotnetProject]:
    """.csproj / .fsproj / .vbproj: PackageReference items and TargetFramework(s).

    A PackageReference without a version takes it from `central_versions`
    (lower-cased package id -> version, see parse_central_versions).
    """
    try:
        # ElementTree rejects str input that has an encoding declaration
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if _local(root.tag) != "Project":
        return None

    project = DotnetProject(sdk=root.get("Sdk", ""))
    seen = set()
    for element in root.iter():
        name = _local(element.tag)
        text_value = (element.text or "").strip()
        if name in ("TargetFramework", "TargetFrameworks") and text_value:
            for framework in text_value.split(";"):
                if framework and framework not in project.target_frameworks:
                    project.target_frameworks.append(framework)
        elif name == "AssemblyName" and text_value:
            project.assembly_name = text_value
        elif name == "PackageReference":
            package = element.get("Include") or element.get("Update")
            if not package or package in seen:
                continue
            seen.add(package)
            version = element.get("Version") or element.get("VersionOverride") or ""
            if not version:
                for child in element:
                    if _local(child.tag) == "Version":
                        version = (child.text or "").strip()
            metadata = {"source": source}
            if not version and central_versions and package.lower() in central_versions:
                version = central_versions[package.lower()]
                metadata["version_source"] = CENTRAL_VERSIONS_FILE
            project.dependencies.append(Dependency(
                ecosystem=ECOSYSTEM, name=package, version=version, scope=SCOPE_PROD,
                direct=True, metadata=metadata,
            ))
    return project


def parse_packages_config(text: str, source: str = "packages.config") -> Optional[List[Dependency]]:
    try:
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    dependencies: List[Dependency] = []
    for element in root:
        if _local(element.tag) != "package" or not element.get("id"):
            continue
        dev = element.get("developmentDependency", "").lower() == "true"
        dependencies.append(Dependency(
            ecosystem=ECOSYSTEM,
            name=element.get("id"),
            version=element.get("version", ""),
            scope=SCOPE_DEV if dev else SCOPE_PROD,
            direct=True,
            metadata={"source": source},
        ))
    return dependencies


def parse_central_versions(text: str, source: str = CENTRAL_VERSIONS_FILE) -> Optional[Dict[str, str]]:
    """PackageVersion items of a Directory.Packages.props, keyed by lower-cased package id."""
    try:
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    versions: Dict[str, str] = {}
    for element in root.iter():
        if _local(element.tag) != "PackageVersion":
            continue
        package = element.get("Include") or element.get("Update")
        version = element.get("Version", "")
        if package and version:
            versions[package.lower()] = version
    return versions
