"""Dependency helper handed to every ecosystem detector.

It resolves a manifest and lock-file pair into one dependency list and maps
dependency names (and .env variable names) to technologies via the rules.
"""
import logging
from typing import Dict, Iterable, List, Optional

from core.component_refs import normalize_python_name
from core.matcher_index import MatcherIndex
from models.payload import Dependency, Payload

logger = logging.getLogger(__name__)

# Ecosystems whose names are also checked against another ecosystem's patterns
ECOSYSTEM_ALIASES = {
    "gradle": ["gradle", "maven"],
}


class DependencyDetector:
    def __init__(self, index: MatcherIndex, use_lock_files: bool = True, include_transitive: bool = False):
        self.index = index
        self.use_lock_files = use_lock_files
        self.include_transitive = include_transitive

    def resolve(self, manifest: List[Dependency], lock: Optional[List[Dependency]] = None) -> List[Dependency]:
        """Lock-file entries win outright; the manifest only fills names the lock does not know.

        `lock=None` means there is no usable lock file.
        """
        if lock is None or not self.use_lock_files:
            return list(manifest)
        resolved = [dep for dep in lock if dep.direct or self.include_transitive]
        locked = {(dep.ecosystem, dep.name) for dep in lock}
        for dep in manifest:
            if (dep.ecosystem, dep.name) not in locked:
                resolved.append(dep)
        return resolved

    def match_dependencies(self, names: Iterable[str], ecosystem: str) -> Dict[str, List[str]]:
        """Map tech -> reasons for every rule dependency pattern matching one of the names."""
        matched: Dict[str, List[str]] = {}
        names = list(names)
        if ecosystem == "python":
            # PyPI names are case-insensitive
            names.extend(normalize_python_name(n) for n in list(names))
        for pattern_ecosystem in ECOSYSTEM_ALIASES.get(ecosystem, [ecosystem]):
            for pattern in self.index.dependency_patterns(pattern_ecosystem):
                if any(pattern.matches(name) for name in names):
                    reason = f"{pattern.tech} matched: {pattern.expression.pattern}"
                    reasons = matched.setdefault(pattern.tech, [])
                    if reason not in reasons:
                        reasons.append(reason)
        return matched

    def match_dotenv(self, variables: Iterable[str]) -> Dict[str, List[str]]:
        matched: Dict[str, List[str]] = {}
        variables = list(variables)
        for tech, prefix in self.index.dotenv_prefixes():
            for variable in variables:
                if prefix.lower() in variable.lower():
                    matched.setdefault(tech, []).append(f"{tech} matched env: {variable}")
                    break
        return matched

    def apply(self, payload: Payload, dependencies: List[Dependency]) -> None:
        """Attach dependencies to a candidate and record the techs they reveal."""
        by_ecosystem: Dict[str, List[str]] = {}
        for dep in dependencies:
            payload.add_dependency(dep)
            by_ecosystem.setdefault(dep.ecosystem, []).append(dep.name)
        for ecosystem, names in by_ecosystem.items():
            self.add_matches(payload, self.match_dependencies(names, ecosystem))

    @staticmethod
    def add_matches(payload: Payload, matches: Dict[str, List[str]]) -> None:
        for tech, reasons in matches.items():
            for reason in reasons:
                payload.add_tech(tech, reason)
