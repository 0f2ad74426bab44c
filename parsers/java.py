"""Parsers for Maven pom.xml and Gradle build scripts."""
import re
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.payload import Dependency, SCOPE_BUILD, SCOPE_DEV, SCOPE_OPTIONAL, SCOPE_PROD

logger = logging.getLogger(__name__)

MAVEN = "maven"
GRADLE = "gradle"

MAVEN_SCOPES = {
    "compile": SCOPE_PROD,
    "runtime": SCOPE_PROD,
    "test": SCOPE_DEV,
    "provided": SCOPE_BUILD,
    "system": SCOPE_BUILD,
}

_PROPERTY = re.compile(r"\$\{([^}]+)\}")


@dataclass
class MavenProject:
    group_id: str = ""
    artifact_id: str = ""
    version: str = ""
    packaging: str = ""
    modules: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    # <parent> reference; parent_path is None when <relativePath/> disables the local lookup
    parent_artifact_id: str = ""
    parent_path: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    # groupId:artifactId -> version from dependencyManagement, own and inherited
    managed_versions: Dict[str, str] = field(default_factory=dict)
    profiles: List[str] = field(default_factory=list)

    @property
    def coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}" if self.group_id else self.artifact_id


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: Optional[ET.Element], name: str) -> List[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _local(child.tag) == name]


def _text(element: Optional[ET.Element], name: str) -> str:
    child = _child(element, name)
    return (child.text or "").strip() if child is not None else ""


def _substitute(value: str, properties: Dict[str, str]) -> str:
    # Unknown properties are left as written
    for _ in range(5):
        replaced = _PROPERTY.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def _active_profiles(root: ET.Element) -> List[ET.Element]:
    """Profiles with activeByDefault; other activations need a live build and are never on."""
    active = []
    for profile in _children(_child(root, "profiles"), "profile"):
        if _text(_child(profile, "activation"), "activeByDefault").lower() == "true":
            active.append(profile)
    return active


def _read_properties(element: Optional[ET.Element], properties: Dict[str, str]) -> None:
    declared = _child(element, "properties")
    if declared is not None:
        for prop in declared:
            properties[_local(prop.tag)] = (prop.text or "").strip()


def _coordinates(dep: ET.Element, properties: Dict[str, str]) -> str:
    group_id = _substitute(_text(dep, "groupId"), properties)
    artifact_id = _substitute(_text(dep, "artifactId"), properties)
    return f"{group_id}:{artifact_id}" if artifact_id else ""


def resolve_parent_path(relative_path: Optional[str]) -> Optional[str]:
    """Path of the parent pom relative to the child's directory."""
    if relative_path is None:
        return "../pom.xml"
    if not relative_path:
        return None
    if not relative_path.endswith(".xml"):
        return relative_path.rstrip("/") + "/pom.xml"
    return relative_path


def parse_pom(text: str, source: str = "pom.xml", parent: Optional[MavenProject] = None) -> Optional[MavenProject]:
    """Effective dependencies of a pom.

    `parent` is the already parsed parent pom: its properties and managed
    versions are inherited, the child's own declarations override them.
    """
    try:
        # ElementTree rejects str input that has an encoding declaration
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as e:
        logger.debug(f"Invalid {source}: {e}")
        return None
    if _local(root.tag) != "project":
        return None

    parent_ref = _child(root, "parent")
    relative_path = _child(parent_ref, "relativePath")
    project = MavenProject(
        group_id=_text(root, "groupId") or _text(parent_ref, "groupId"),
        artifact_id=_text(root, "artifactId"),
        version=_text(root, "version") or _text(parent_ref, "version"),
        packaging=_text(root, "packaging"),
        modules=[(m.text or "").strip() for m in _children(_child(root, "modules"), "module")],
        parent_artifact_id=_text(parent_ref, "artifactId"),
    )
    if parent_ref is not None:
        project.parent_path = resolve_parent_path(
            None if relative_path is None else (relative_path.text or "").strip()
        )

    profiles = _active_profiles(root)
    project.profiles = [_text(p, "id") for p in profiles]

    properties: Dict[str, str] = dict(parent.properties) if parent else {}
    if parent_ref is not None:
        properties.update({
            "project.parent.groupId": _text(parent_ref, "groupId"),
            "project.parent.artifactId": _text(parent_ref, "artifactId"),
            "project.parent.version": _text(parent_ref, "version"),
        })
    _read_properties(root, properties)
    for profile in profiles:
        _read_properties(profile, properties)
    properties.update({
        "project.groupId": project.group_id,
        "project.artifactId": project.artifact_id,
        "project.version": project.version,
        "pom.version": project.version,
    })
    project.properties = properties

    managed: Dict[str, str] = dict(parent.managed_versions) if parent else {}
    imports: List[Dependency] = []
    for container in [root] + profiles:
        management = _child(_child(container, "dependencyManagement"), "dependencies")
        for dep in _children(management, "dependency"):
            name = _coordinates(dep, properties)
            version = _substitute(_text(dep, "version"), properties)
            if not name:
                continue
            if _text(dep, "scope") == "import" and _text(dep, "type") == "pom":
                # a BOM is the only managed entry that is itself a dependency
                imports.append(Dependency(
                    ecosystem=MAVEN, name=name, version=version, scope=SCOPE_BUILD,
                    direct=True, metadata={"source": source, "bom": "true"},
                ))
            elif version:
                managed[name] = version
    project.managed_versions = managed

    seen = set()
    for container in [root] + profiles:
        for dep in _children(_child(container, "dependencies"), "dependency"):
            name = _coordinates(dep, properties)
            if not name or name in seen:
                continue
            seen.add(name)
            scope = MAVEN_SCOPES.get(_text(dep, "scope") or "compile", SCOPE_PROD)
            if _text(dep, "optional") == "true":
                scope = SCOPE_OPTIONAL
            metadata = {"source": source}
            version = _substitute(_text(dep, "version"), properties)
            if not version and name in managed:
                version = managed[name]
                metadata["version_source"] = "dependencyManagement"
            project.dependencies.append(Dependency(
                ecosystem=MAVEN, name=name, version=version, scope=scope,
                direct=True, metadata=metadata,
            ))
    project.dependencies.extend(d for d in imports if d.name not in seen)
    return project


# [INFO]    org.postgresql:postgresql:jar:42.7.3:compile -- module org.postgresql.jdbc
_LIST_ENTRY = re.compile(r"^(?:\[\w+\]\s*)?([\w.\-]+:[\w.\-]+:[^\s]+)")


def parse_dependency_list(text: str, manifest: List[Dependency], source: str = "dependency-list.txt") -> Optional[List[Dependency]]:
    """Output of `mvn dependency:list`; entries absent from the pom are transitive."""
    declared = {d.name: d for d in manifest}
    dependencies: List[Dependency] = []
    seen = set()
    for line in text.splitlines():
        match = _LIST_ENTRY.match(line.strip())
        if not match:
            continue
        parts = match.group(1).split(":")
        # group:artifact:type:version:scope or group:artifact:type:classifier:version:scope
        if len(parts) not in (5, 6):
            continue
        name = f"{parts[0]}:{parts[1]}"
        if name in seen:
            continue
        seen.add(name)
        dep = declared.get(name)
        dependencies.append(Dependency(
            ecosystem=MAVEN,
            name=name,
            version=parts[-2],
            scope=dep.scope if dep else MAVEN_SCOPES.get(parts[-1], SCOPE_PROD),
            direct=dep is not None,
            metadata={"source": source},
        ))
    return dependencies or None


GRADLE_SCOPES = {
    "implementation": SCOPE_PROD,
    "api": SCOPE_PROD,
    "compile": SCOPE_PROD,
    "runtimeOnly": SCOPE_PROD,
    "compileOnly": SCOPE_BUILD,
    "annotationProcessor": SCOPE_BUILD,
    "kapt": SCOPE_BUILD,
    "testImplementation": SCOPE_DEV,
    "testCompileOnly": SCOPE_DEV,
    "testRuntimeOnly": SCOPE_DEV,
    "androidTestImplementation": SCOPE_DEV,
}

_CONFIGURATIONS = "|".join(sorted(GRADLE_SCOPES, key=len, reverse=True))
# implementation 'g:a:v'  /  implementation("g:a:v")  /  implementation(platform("g:a:v"))
_GRADLE_STRING = re.compile(
    rf"^\s*({_CONFIGURATIONS})\s*\(?\s*(?:platform\s*\(\s*)?[\"']([^\"':\s]+):([^\"':\s]+)(?::([^\"'\s]+))?[\"']",
    re.MULTILINE,
)
# implementation group: 'g', name: 'a', version: 'v'
_GRADLE_MAP = re.compile(
    rf"^\s*({_CONFIGURATIONS})\s*\(?\s*group\s*[:=]\s*[\"']([^\"']+)[\"']\s*,\s*name\s*[:=]\s*[\"']([^\"']+)[\"']"
    rf"(?:\s*,\s*version\s*[:=]\s*[\"']([^\"']+)[\"'])?",
    re.MULTILINE,
)


def parse_gradle(text: str, source: str = "build.gradle") -> List[Dependency]:
    dependencies: List[Dependency] = []
    seen = set()
    matches = sorted(
        list(_GRADLE_STRING.finditer(text)) + list(_GRADLE_MAP.finditer(text)),
        key=lambda m: m.start(),
    )
    for match in matches:
        configuration, group_id, artifact_id, version = match.groups()
        name = f"{group_id}:{artifact_id}"
        if name in seen:
            continue
        seen.add(name)
        dependencies.append(Dependency(
            ecosystem=GRADLE,
            name=name,
            version=version or "",
            scope=GRADLE_SCOPES.get(configuration, SCOPE_PROD),
            direct=True,
            metadata={"source": source},
        ))
    return dependencies


_ROOT_PROJECT = re.compile(r"rootProject\.name\s*=\s*[\"']([^\"']+)[\"']")


def parse_gradle_settings(text: str) -> str:
    """rootProject.name from settings.gradle(.kts), or ''."""
    match = _ROOT_PROJECT.search(text)
    return match.group(1) if match else ""
