"""Content evaluators for the four content dialects.

regex runs against the raw file text. json-path, yaml-path and xml-path parse
the file once into a generic tree (kept in a ParseCache for the current
directory) and probe it with a dotted `$.a.b.c` selector.
"""
import json
import time
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Tuple

import yaml

from core.matcher_index import CompiledContentPattern

logger = logging.getLogger(__name__)

# Hard timeout to prevent catastrophic regex backtracking on large files
REGEX_TIMEOUT_SECONDS = 1.0
PATTERN_SLOW_THRESHOLD_SECONDS = 0.5
# Cap text scanned by regex patterns
MAX_CONTENT_SCAN_LENGTH = 2_000_000

_MISSING = object()


class ParseCache:
    """Parsed trees for the files of one directory.

    Owned by the orchestrator and dropped once the directory is processed.
    A failed parse is cached too, so a broken file is only parsed once.
    """

    def __init__(self):
        self._trees: Dict[Tuple[str, str], Tuple[bool, Any]] = {}

    def get(self, path: str, dialect: str, content: bytes, parser) -> Tuple[bool, Any]:
        key = (path, dialect)
        if key not in self._trees:
            try:
                self._trees[key] = (True, parser(content))
            except (ValueError, TypeError, RecursionError, yaml.YAMLError, ET.ParseError) as e:
                logger.debug(f"Could not parse {path} as {dialect}: {e}")
                self._trees[key] = (False, None)
        return self._trees[key]

    def clear(self) -> None:
        self._trees.clear()

    def __len__(self) -> int:
        return len(self._trees)


def stringify(value: Any) -> Optional[str]:
    """Scalar to comparison string; containers have no string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def split_path(path: str) -> List[str]:
    if path in ("$", ""):
        return []
    if path.startswith("$."):
        path = path[2:]
    return [segment for segment in path.split(".") if segment]


def value_matches(compiled: CompiledContentPattern, candidates: List[Any]) -> bool:
    expected = compiled.pattern.value
    if expected is None:
        return bool(candidates)
    for candidate in candidates:
        text = stringify(candidate)
        if text is None:
            continue
        if compiled.value_expression is not None:
            if compiled.value_expression.search(text):
                return True
        elif text == expected:
            return True
    return False


def _navigate(tree: Any, segments: List[str]) -> Any:
    node = tree
    for segment in segments:
        if isinstance(node, dict):
            if segment in node:
                node = node[segment]
                continue
            # YAML keys are not always strings
            for key, value in node.items():
                if str(key) == segment:
                    node = value
                    break
            else:
                return _MISSING
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return _MISSING
    return node


def _resolved_values(node: Any) -> List[Any]:
    if node is _MISSING:
        return []
    if isinstance(node, list):
        # Existence of an empty list still counts; values are its elements
        return node if node else [node]
    return [node]


class RegexEvaluator:
    dialect = "regex"

    def evaluate(self, compiled: CompiledContentPattern, content: bytes, path: str, cache: ParseCache) -> bool:
        text = content[:MAX_CONTENT_SCAN_LENGTH].decode("utf-8", errors="replace")
        start = time.perf_counter()
        try:
            match = compiled.expression.search(text, timeout=REGEX_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning(f"Pattern for {compiled.tech} timed out on {path}: {compiled.pattern.pattern[:50]}")
            return False
        duration = time.perf_counter() - start
        if duration > PATTERN_SLOW_THRESHOLD_SECONDS:
            logger.warning(f"Slow pattern for {compiled.tech} on {path} took {duration:.2f}s")
        return match is not None

    def describe(self, compiled: CompiledContentPattern, filename: str) -> str:
        return f"content matched: {compiled.pattern.pattern} in {filename}"


class TreeEvaluator:
    """Shared logic of the path-probing dialects."""
    dialect = ""
    label = ""

    def parse(self, content: bytes) -> Any:
        raise NotImplementedError

    def resolve(self, tree: Any, segments: List[str]) -> List[Any]:
        return _resolved_values(_navigate(tree, segments))

    def evaluate(self, compiled: CompiledContentPattern, content: bytes, path: str, cache: ParseCache) -> bool:
        ok, tree = cache.get(path, self.dialect, content, self.parse)
        if not ok:
            return False
        return value_matches(compiled, self.resolve(tree, split_path(compiled.pattern.pattern)))

    def describe(self, compiled: CompiledContentPattern, filename: str) -> str:
        selector = compiled.pattern.pattern
        if compiled.pattern.value is None:
            return f"{self.label} exists: {selector} in {filename}"
        if compiled.value_expression is not None:
            return f"{self.label} {selector} matches {compiled.pattern.value} in {filename}"
        return f"{self.label} {selector} equals {compiled.pattern.value} in {filename}"


class JsonPathEvaluator(TreeEvaluator):
    dialect = "json-path"
    label = "json path"

    def parse(self, content: bytes) -> Any:
        return json.loads(content)


class YamlPathEvaluator(TreeEvaluator):
    dialect = "yaml-path"
    label = "yaml path"

    def parse(self, content: bytes) -> Any:
        # Multi-document files: a pattern matches if any document satisfies it
        return [doc for doc in yaml.safe_load_all(content) if doc is not None]

    def resolve(self, tree: Any, segments: List[str]) -> List[Any]:
        values: List[Any] = []
        for document in tree:
            values.extend(_resolved_values(_navigate(document, segments)))
        return values


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


class XmlPathEvaluator(TreeEvaluator):
    dialect = "xml-path"
    label = "xml path"

    def parse(self, content: bytes) -> Any:
        return ET.fromstring(content)

    def resolve(self, tree: Any, segments: List[str]) -> List[Any]:
        if not segments or _local_name(tree.tag) != segments[0]:
            return []
        elements = [tree]
        for segment in segments[1:]:
            elements = [child for element in elements for child in element if _local_name(child.tag) == segment]
            if not elements:
                return []
        return [(element.text or "").strip() for element in elements]


EVALUATORS = {
    evaluator.dialect: evaluator
    for evaluator in (RegexEvaluator(), JsonPathEvaluator(), YamlPathEvaluator(), XmlPathEvaluator())
}


def evaluate(compiled: CompiledContentPattern, content: bytes, path: str, cache: ParseCache) -> bool:
    """Does this file satisfy the pattern. Never raises for bad file content."""
    return EVALUATORS[compiled.dialect].evaluate(compiled, content, path, cache)


def describe(compiled: CompiledContentPattern, filename: str) -> str:
    return EVALUATORS[compiled.dialect].describe(compiled, filename)
