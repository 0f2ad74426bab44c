"""Component node model: one node of the output tree and its dependency records."""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from core.errors import NodeClosedError

# Reason key for explanations that do not belong to a technology
RESERVED_REASON_KEY = "_"
VIRTUAL_NAME = "virtual"

SCOPE_PROD = "prod"
SCOPE_DEV = "dev"
SCOPE_PEER = "peer"
SCOPE_OPTIONAL = "optional"
SCOPE_BUILD = "build"

PropertyValue = Union[None, bool, int, float, str, List["PropertyValue"], Dict[str, "PropertyValue"]]

# Fields owned by the engine; enrichment may never overwrite them
CORE_FIELDS = frozenset({
    "id", "name", "path", "type", "tech", "techs", "languages", "reason",
    "dependencies", "componentDependencies", "properties", "children",
})


@dataclass
class Dependency:
    """A package-level dependency extracted from a manifest or lock file."""
    ecosystem: str
    name: str
    version: str = ""
    scope: str = SCOPE_PROD
    direct: bool = True
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return self.metadata.get("source", "")

    def key(self) -> Tuple[str, str, str]:
        return (self.ecosystem, self.name, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.ecosystem,
            "name": self.name,
            "version": self.version,
            "scope": self.scope,
            "direct": self.direct,
            "metadata": dict(self.metadata),
        }


@dataclass
class ComponentDependency:
    """A structural dependency (base image, provider, action) without a directness flag."""
    ecosystem: str
    name: str
    version: str = ""
    scope: str = SCOPE_PROD
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return self.metadata.get("source", "")

    def key(self) -> Tuple[str, str, str]:
        return (self.ecosystem, self.name, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.ecosystem,
            "name": self.name,
            "version": self.version,
            "scope": self.scope,
            "metadata": dict(self.metadata),
        }


def merge_property(current: PropertyValue, incoming: PropertyValue) -> PropertyValue:
    """Lists are concatenated (without duplicates), mappings merged key by key, scalars replaced."""
    if isinstance(current, list) and isinstance(incoming, list):
        merged = list(current)
        for item in incoming:
            if item not in merged:
                merged.append(item)
        return merged
    if isinstance(current, dict) and isinstance(incoming, dict):
        merged = dict(current)
        for key, value in incoming.items():
            merged[key] = merge_property(merged[key], value) if key in merged else value
        return merged
    return incoming


@dataclass(eq=False)
class Payload:
    """One component node of the output tree.

    `tech` holds the primary technologies and is always a subset of `techs`.
    Once `close()` has been called the node only accepts new leaf fields via
    `attach_field`.
    """
    name: str
    path: str = "/"
    type: str = ""
    id: str = ""
    tech: List[str] = field(default_factory=list)
    techs: List[str] = field(default_factory=list)
    languages: Dict[str, int] = field(default_factory=dict)
    reason: Dict[str, List[str]] = field(default_factory=dict)
    dependencies: List[Dependency] = field(default_factory=list)
    component_dependencies: List[ComponentDependency] = field(default_factory=list)
    properties: Dict[str, PropertyValue] = field(default_factory=dict)
    children: List["Payload"] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    closed: bool = False
    fold_into_parent: bool = False

    @classmethod
    def virtual(cls, path: str = "/") -> "Payload":
        return cls(name=VIRTUAL_NAME, path=path, fold_into_parent=True)

    @property
    def is_virtual(self) -> bool:
        return self.fold_into_parent

    def _ensure_open(self) -> None:
        if self.closed:
            raise NodeClosedError(f"component '{self.name}' at {self.path} is closed")

    def add_tech(self, tech: str, reason: Optional[str] = None) -> None:
        self._ensure_open()
        if tech not in self.techs:
            self.techs.append(tech)
        if reason:
            self._add_reason(tech, reason)

    def add_primary_tech(self, tech: str) -> None:
        self._ensure_open()
        if tech not in self.tech:
            self.tech.append(tech)
        if tech not in self.techs:
            self.techs.append(tech)

    def add_note(self, reason: str) -> None:
        """Record a reason that is not tied to a technology."""
        self._ensure_open()
        self._add_reason(RESERVED_REASON_KEY, reason)

    def _add_reason(self, key: str, reason: str) -> None:
        reasons = self.reason.setdefault(key, [])
        if reason not in reasons:
            reasons.append(reason)

    def add_language(self, language: str, count: int = 1) -> None:
        self._ensure_open()
        self.languages[language] = self.languages.get(language, 0) + count

    def add_dependency(self, dependency: Dependency) -> None:
        self._ensure_open()
        key = dependency.key()
        if any(existing.key() == key for existing in self.dependencies):
            return
        self.dependencies.append(dependency)

    def add_component_dependency(self, dependency: ComponentDependency) -> None:
        self._ensure_open()
        key = dependency.key()
        if any(existing.key() == key for existing in self.component_dependencies):
            return
        self.component_dependencies.append(dependency)

    def set_property(self, key: str, value: PropertyValue) -> None:
        self._ensure_open()
        if key in self.properties:
            self.properties[key] = merge_property(self.properties[key], value)
        else:
            self.properties[key] = value

    def find_child(self, name: str, path: str) -> Optional["Payload"]:
        for child in self.children:
            if child.name == name and child.path == path:
                return child
        return None

    def add_child(self, child: "Payload") -> "Payload":
        """Attach a child, merging it into an existing child with the same name and path."""
        self._ensure_open()
        existing = self.find_child(child.name, child.path)
        if existing is not None:
            existing.combine(child)
            return existing
        self.children.append(child)
        return child

    def combine(self, other: "Payload") -> None:
        """Fold another node's detections into this one (identity fields are kept)."""
        self._ensure_open()
        if not self.type and other.type:
            self.type = other.type
        for tech in other.tech:
            self.add_primary_tech(tech)
        for tech in other.techs:
            self.add_tech(tech)
        for key, reasons in other.reason.items():
            for reason in reasons:
                self._add_reason(key, reason)
        for language, count in other.languages.items():
            self.add_language(language, count)
        for dependency in other.dependencies:
            self.add_dependency(dependency)
        for dependency in other.component_dependencies:
            self.add_component_dependency(dependency)
        for key, value in other.properties.items():
            self.set_property(key, value)
        for child in other.children:
            self.add_child(child)

    def close(self) -> None:
        for child in self.children:
            child.close()
        self.closed = True

    def attach_field(self, name: str, value: Any) -> None:
        """Add a new leaf field; allowed on closed nodes."""
        if name in CORE_FIELDS or name in self.extra:
            raise NodeClosedError(f"field '{name}' already exists on component '{self.name}'")
        self.extra[name] = value

    def walk(self) -> Iterator["Payload"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "path": self.path,
        }
        if self.type:
            data["type"] = self.type
        data.update({
            "tech": list(self.tech),
            "techs": list(self.techs),
            "languages": dict(self.languages),
            "reason": {key: list(values) for key, values in self.reason.items()},
            "dependencies": [d.to_dict() for d in self.dependencies],
            "componentDependencies": [d.to_dict() for d in self.component_dependencies],
            "properties": dict(self.properties),
            "children": [child.to_dict() for child in self.children],
        })
        data.update(self.extra)
        return data
