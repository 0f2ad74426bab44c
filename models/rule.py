from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

CONTENT_DIALECTS = ("regex", "json-path", "yaml-path", "xml-path")


class TriState(Enum):
    """Explicit override value for is_component / is_primary_tech."""
    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_value(cls, value: Any) -> "TriState":
        if value is None:
            return cls.UNSET
        if isinstance(value, TriState):
            return value
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        raise ValueError(f"expected a boolean, got {value!r}")

    def resolve(self, default: bool) -> bool:
        if self is TriState.UNSET:
            return default
        return self is TriState.TRUE


@dataclass(frozen=True)
class ContentPattern:
    """One leaf condition of a rule, evaluated only against files in its own scope."""
    dialect: str  # regex, json-path, yaml-path, xml-path
    pattern: str  # regex source, or the path selector for the structured dialects
    value: Optional[str] = None  # literal, or /regex/
    files: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)

    @property
    def has_scope(self) -> bool:
        return bool(self.files or self.extensions)


@dataclass(frozen=True)
class DependencyPattern:
    ecosystem: str  # e.g. npm, python, maven
    name: str  # exact package name or /regex/


@dataclass(frozen=True)
class Category:
    name: str
    description: str = ""
    is_component: bool = False


@dataclass(frozen=True)
class Rule:
    """A technology and the criteria used to detect it."""
    tech: str
    name: str
    category: str
    description: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    files: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)
    content: List[ContentPattern] = field(default_factory=list)
    dependencies: List[DependencyPattern] = field(default_factory=list)
    dotenv: List[str] = field(default_factory=list)
    is_component: TriState = TriState.UNSET
    is_primary_tech: TriState = TriState.UNSET

    def can_match(self) -> bool:
        return bool(self.files or self.extensions or self.content or self.dependencies or self.dotenv)
