"""Compiled lookup structure over the loaded rule set.

The index answers, for one file name, which rules match by file name, by
extension, and which content patterns are in scope. Content patterns are
grouped by their own scope so that a file only ever sees the patterns that
declare it.
"""
import os
import fnmatch
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import regex

from core.errors import ConfigurationError
from models.rule import Category, ContentPattern, Rule

logger = logging.getLogger(__name__)

GLOB_CHARS = set("*?[")


def is_regex_literal(value: str) -> bool:
    return len(value) >= 2 and value.startswith("/") and value.endswith("/")


def compile_regex(source: str, where: str) -> "regex.Pattern":
    try:
        return regex.compile(source)
    except regex.error as e:
        raise ConfigurationError(f"{where}: invalid regular expression {source!r}: {e}") from e


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1]


@dataclass(frozen=True)
class CompiledContentPattern:
    """A content pattern with its regular expressions compiled once."""
    tech: str
    pattern: ContentPattern
    expression: Optional["regex.Pattern"] = None  # regex dialect only
    value_expression: Optional["regex.Pattern"] = None  # when value is /.../

    @property
    def dialect(self) -> str:
        return self.pattern.dialect


@dataclass(frozen=True)
class CompiledDependencyPattern:
    tech: str
    expression: "regex.Pattern"

    def matches(self, name: str) -> bool:
        return self.expression.search(name) is not None


def _is_glob(pattern: str) -> bool:
    return any(c in GLOB_CHARS for c in pattern)


class MatcherIndex:
    """Read-only index built once per rule set; rebuild it to change the rules."""

    def __init__(self, rules: Iterable[Rule], categories: Optional[Dict[str, Category]] = None):
        self.categories: Dict[str, Category] = dict(categories or {})
        self.rules: Dict[str, Rule] = {}
        self.excluded: List[str] = []

        self._by_filename: Dict[str, List[str]] = defaultdict(list)
        self._filename_globs: List[Tuple[str, str]] = []
        self._by_extension: Dict[str, List[str]] = defaultdict(list)

        self._content_by_filename: Dict[str, List[CompiledContentPattern]] = defaultdict(list)
        self._content_globs: List[Tuple[str, CompiledContentPattern]] = []
        self._content_by_extension: Dict[str, List[CompiledContentPattern]] = defaultdict(list)

        self._dependencies: Dict[str, List[CompiledDependencyPattern]] = defaultdict(list)
        self._dotenv: List[Tuple[str, str]] = []

        for rule in rules:
            self._add_rule(rule)

        logger.debug(
            f"Compiled matcher index: {len(self.rules)} rules, "
            f"{len(self._by_filename) + len(self._filename_globs)} file matchers, "
            f"{len(self._by_extension)} extension matchers, "
            f"{self.content_pattern_count()} content patterns"
        )

    @classmethod
    def compile(cls, rules: Iterable[Rule], categories: Optional[Dict[str, Category]] = None) -> "MatcherIndex":
        return cls(rules, categories)

    def _add_rule(self, rule: Rule) -> None:
        where = f"rule '{rule.tech}'"
        if rule.tech in self.rules:
            raise ConfigurationError(f"{where}: duplicate tech id")
        if self.categories and rule.category not in self.categories:
            raise ConfigurationError(f"{where}: unknown category '{rule.category}'")
        if not rule.can_match():
            logger.warning(f"Rule '{rule.tech}' has no files, extensions, content or dependency patterns; it can never match and is excluded")
            self.excluded.append(rule.tech)
            return

        # Compile everything first so a bad pattern leaves the index untouched
        compiled_content = [self._compile_content(rule.tech, p, where) for p in rule.content]
        compiled_deps = []
        for dep in rule.dependencies:
            source = dep.name[1:-1] if is_regex_literal(dep.name) else f"^{regex.escape(dep.name)}$"
            compiled_deps.append((dep.ecosystem, CompiledDependencyPattern(rule.tech, compile_regex(source, where))))

        self.rules[rule.tech] = rule
        for pattern in rule.files:
            if _is_glob(pattern):
                self._filename_globs.append((pattern, rule.tech))
            else:
                self._by_filename[pattern].append(rule.tech)
        for ext in rule.extensions:
            self._by_extension[ext].append(rule.tech)
        for compiled in compiled_content:
            for pattern in compiled.pattern.files:
                if _is_glob(pattern):
                    self._content_globs.append((pattern, compiled))
                else:
                    self._content_by_filename[pattern].append(compiled)
            for ext in compiled.pattern.extensions:
                self._content_by_extension[ext].append(compiled)
        for ecosystem, compiled in compiled_deps:
            self._dependencies[ecosystem].append(compiled)
        for prefix in rule.dotenv:
            self._dotenv.append((rule.tech, prefix))

    def _compile_content(self, tech: str, pattern: ContentPattern, where: str) -> CompiledContentPattern:
        if not pattern.has_scope:
            raise ConfigurationError(f"{where}: content pattern '{pattern.pattern}' has no files or extensions")
        expression = compile_regex(pattern.pattern, where) if pattern.dialect == "regex" else None
        value_expression = None
        if pattern.value is not None and is_regex_literal(pattern.value):
            value_expression = compile_regex(pattern.value[1:-1], where)
        return CompiledContentPattern(tech, pattern, expression, value_expression)

    # Lookups

    def rule(self, tech: str) -> Optional[Rule]:
        return self.rules.get(tech)

    def category(self, rule: Rule) -> Optional[Category]:
        return self.categories.get(rule.category)

    def match_file(self, filename: str) -> List[Tuple[str, str]]:
        """Returns (tech, reason) pairs for file name and extension matches."""
        matches: List[Tuple[str, str]] = []
        seen = set()
        for tech in self._by_filename.get(filename, ()):
            if tech not in seen:
                seen.add(tech)
                matches.append((tech, f"matched file: {filename}"))
        for pattern, tech in self._filename_globs:
            if tech not in seen and fnmatch.fnmatchcase(filename, pattern):
                seen.add(tech)
                matches.append((tech, f"matched file: {filename}"))
        ext = file_extension(filename)
        if ext:
            for tech in self._by_extension.get(ext, ()):
                if tech not in seen:
                    seen.add(tech)
                    matches.append((tech, f"matched extension: {ext}"))
        return matches

    def content_patterns_for(self, filename: str) -> List[CompiledContentPattern]:
        """Only the patterns whose own scope includes this file."""
        patterns: List[CompiledContentPattern] = list(self._content_by_filename.get(filename, ()))
        for glob, compiled in self._content_globs:
            if fnmatch.fnmatchcase(filename, glob) and compiled not in patterns:
                patterns.append(compiled)
        ext = file_extension(filename)
        if ext:
            for compiled in self._content_by_extension.get(ext, ()):
                if compiled not in patterns:
                    patterns.append(compiled)
        return patterns

    def dependency_patterns(self, ecosystem: str) -> List[CompiledDependencyPattern]:
        return self._dependencies.get(ecosystem, [])

    def dotenv_prefixes(self) -> List[Tuple[str, str]]:
        return list(self._dotenv)

    def content_pattern_count(self) -> int:
        return sum(len(r.content) for r in self.rules.values())

    def candidate_sets(self) -> Dict[str, FrozenSet[str]]:
        """Membership view of every lookup table, for comparing two builds."""
        sets: Dict[str, FrozenSet[str]] = {}
        for name, techs in self._by_filename.items():
            sets[f"file:{name}"] = frozenset(techs)
        for pattern, tech in self._filename_globs:
            key = f"glob:{pattern}"
            sets[key] = sets.get(key, frozenset()) | {tech}
        for ext, techs in self._by_extension.items():
            sets[f"ext:{ext}"] = frozenset(techs)
        scopes: Dict[str, set] = defaultdict(set)
        for name, patterns in self._content_by_filename.items():
            scopes[f"content-file:{name}"].update(p.tech for p in patterns)
        for glob, compiled in self._content_globs:
            scopes[f"content-glob:{glob}"].add(compiled.tech)
        for ext, patterns in self._content_by_extension.items():
            scopes[f"content-ext:{ext}"].update(p.tech for p in patterns)
        for ecosystem, patterns in self._dependencies.items():
            scopes[f"dependency:{ecosystem}"].update(p.tech for p in patterns)
        for key, techs in scopes.items():
            sets[key] = frozenset(techs)
        return sets
