import os
import logging
import yaml
from typing import Any, Dict, List, Optional
from core.errors import ConfigurationError
from models.rule import CONTENT_DIALECTS, Category, ContentPattern, DependencyPattern, Rule, TriState

logger = logging.getLogger(__name__)

RULES_HOME = os.path.dirname(os.path.abspath(__file__))
DEFAULT_TECHS_DIR = os.path.join(RULES_HOME, "techs")
DEFAULT_CATEGORIES_FILE = os.path.join(RULES_HOME, "categories.yaml")


def _read_yaml(filepath: str) -> Any:
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{filepath}: invalid YAML: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"{filepath}: cannot be read: {e}") from e


def _as_list(value: Any, field_name: str, where: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"{where}: '{field_name}' must be a list")
    return value


def _tristate(value: Any, field_name: str, where: str) -> TriState:
    try:
        return TriState.from_value(value)
    except ValueError as e:
        raise ConfigurationError(f"{where}: '{field_name}' {e}") from e


def load_categories(path: str = DEFAULT_CATEGORIES_FILE) -> Dict[str, Category]:
    """
    Loads the category map: name -> Category with its default is_component flag.
    """
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping of category names")

    categories: Dict[str, Category] = {}
    for name, entry in data.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{path}: category '{name}' must be a mapping")
        is_component = entry.get("is_component", False)
        if not isinstance(is_component, bool):
            raise ConfigurationError(f"{path}: category '{name}' is_component must be a boolean")
        categories[name] = Category(
            name=name,
            description=entry.get("description", ""),
            is_component=is_component,
        )
    return categories


def _parse_content(items: Any, where: str) -> List[ContentPattern]:
    patterns: List[ContentPattern] = []
    for item in _as_list(items, "content", where):
        if not isinstance(item, dict):
            raise ConfigurationError(f"{where}: content entries must be mappings")
        dialect = item.get("type", "regex")
        if dialect not in CONTENT_DIALECTS:
            raise ConfigurationError(f"{where}: unknown content type '{dialect}'")
        selector = item.get("pattern") if dialect == "regex" else item.get("path")
        if not selector:
            key = "pattern" if dialect == "regex" else "path"
            raise ConfigurationError(f"{where}: {dialect} content entry requires '{key}'")
        value = item.get("value")
        pattern = ContentPattern(
            dialect=dialect,
            pattern=str(selector),
            value=None if value is None else str(value),
            files=[str(f) for f in _as_list(item.get("files"), "files", where)],
            extensions=[str(e) for e in _as_list(item.get("extensions"), "extensions", where)],
        )
        if not pattern.has_scope:
            raise ConfigurationError(f"{where}: content pattern '{pattern.pattern}' has no files or extensions")
        patterns.append(pattern)
    return patterns


def _parse_dependencies(items: Any, where: str) -> List[DependencyPattern]:
    patterns: List[DependencyPattern] = []
    for item in _as_list(items, "dependencies", where):
        if not isinstance(item, dict) or not item.get("type") or not item.get("name"):
            raise ConfigurationError(f"{where}: dependency entries require 'type' and 'name'")
        patterns.append(DependencyPattern(ecosystem=str(item["type"]), name=str(item["name"])))
    return patterns


def parse_rule(rule_data: Any, default_category: str, where: str) -> Rule:
    """Builds a Rule from one YAML mapping, raising ConfigurationError on malformed input."""
    if not isinstance(rule_data, dict):
        raise ConfigurationError(f"{where}: each rule must be a mapping")
    tech = rule_data.get("tech")
    if not tech:
        raise ConfigurationError(f"{where}: rule is missing 'tech'")
    where = f"{where} [{tech}]"

    properties = rule_data.get("properties") or {}
    if not isinstance(properties, dict):
        raise ConfigurationError(f"{where}: 'properties' must be a mapping")

    return Rule(
        tech=str(tech),
        name=str(rule_data.get("name") or tech),
        category=str(rule_data.get("category") or default_category),
        description=rule_data.get("description", ""),
        properties=properties,
        files=[str(f) for f in _as_list(rule_data.get("files"), "files", where)],
        extensions=[str(e) for e in _as_list(rule_data.get("extensions"), "extensions", where)],
        content=_parse_content(rule_data.get("content"), where),
        dependencies=_parse_dependencies(rule_data.get("dependencies"), where),
        dotenv=[str(d) for d in _as_list(rule_data.get("dotenv"), "dotenv", where)],
        is_component=_tristate(rule_data.get("is_component"), "is_component", where),
        is_primary_tech=_tristate(rule_data.get("is_primary_tech"), "is_primary_tech", where),
    )


def load_rules(
    rules_dir: str = DEFAULT_TECHS_DIR,
    categories: Optional[Dict[str, Category]] = None,
) -> List[Rule]:
    """
    Loads technology rules from all .yaml files in a directory.

    Every file holds a list of rules; a rule without 'category' belongs to the
    category named after its file. Files are read in name order so the rule
    list is the same on every run.
    """
    rules: List[Rule] = []
    seen: Dict[str, str] = {}
    for filename in sorted(os.listdir(rules_dir)):
        if not (filename.endswith(".yaml") or filename.endswith(".yml")):
            continue
        filepath = os.path.join(rules_dir, filename)
        rules_data = _read_yaml(filepath)
        if not rules_data:
            continue
        if not isinstance(rules_data, list):
            raise ConfigurationError(f"{filename}: expected a list of rules")

        default_category = os.path.splitext(filename)[0]
        for rule_data in rules_data:
            rule = parse_rule(rule_data, default_category, filename)
            if rule.tech in seen:
                raise ConfigurationError(f"{filename}: duplicate tech '{rule.tech}' (first defined in {seen[rule.tech]})")
            if categories is not None and rule.category not in categories:
                raise ConfigurationError(f"{filename}: rule '{rule.tech}' has unknown category '{rule.category}'")
            seen[rule.tech] = filename
            rules.append(rule)

    logger.debug(f"Loaded {len(rules)} rules from {rules_dir}")
    return rules


def filter_rules(rules: List[Rule], techs: List[str]) -> List[Rule]:
    """Keeps only the named techs; an empty selection keeps everything."""
    if not techs:
        return list(rules)
    wanted = set(techs)
    unknown = wanted - {r.tech for r in rules}
    if unknown:
        raise ConfigurationError(f"Unknown rules in filter: {', '.join(sorted(unknown))}")
    return [r for r in rules if r.tech in wanted]


if __name__ == "__main__":
    loaded_categories = load_categories()
    loaded_rules = load_rules(categories=loaded_categories)
    print(f"Loaded {len(loaded_rules)} rules in {len(loaded_categories)} categories.")
    for rule in loaded_rules:
        print(f"  - {rule.tech} ({rule.category}): {rule.name}")
