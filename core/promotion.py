"""Decides whether a matched technology becomes its own component, a primary tech, or only a tag.

| is_component               | is_primary_tech | component | primary |
|----------------------------|-----------------|-----------|---------|
| true (or category default) | unset           | yes       | yes     |
| true                       | false           | yes       | no      |
| false (or default), unset  | true            | no        | yes     |
| false, unset               | unset           | no        | no      |
"""
import logging
from typing import Dict, Optional

from models.payload import Payload
from models.rule import Category, Rule

logger = logging.getLogger(__name__)


def should_create_component(rule: Rule, categories: Dict[str, Category]) -> bool:
    category = categories.get(rule.category)
    return rule.is_component.resolve(category.is_component if category else False)


def should_add_primary_tech(rule: Rule, categories: Dict[str, Category]) -> bool:
    return rule.is_primary_tech.resolve(should_create_component(rule, categories))


class Promoter:
    """Applies the promotion table to one match on the enclosing node."""

    def __init__(self, rules: Dict[str, Rule], categories: Dict[str, Category]):
        self.rules = rules
        self.categories = categories

    def apply(self, node: Payload, tech: str, path: str) -> Optional[Payload]:
        """Returns the child component when one is created (or merged), else None.

        The tech is already in node.techs; only `tech` membership and child
        creation are decided here.
        """
        rule = self.rules.get(tech)
        if rule is None:
            return None
        primary = should_add_primary_tech(rule, self.categories)
        if not should_create_component(rule, self.categories):
            if primary:
                node.add_primary_tech(tech)
            return None

        child = Payload(name=rule.name, path=path, type=rule.category)
        child.add_tech(tech)
        for reason in node.reason.get(tech, []):
            child.add_tech(tech, reason)
        if primary:
            child.add_primary_tech(tech)
        logger.debug(f"Component '{rule.name}' created at {path} under '{node.name}'")
        return node.add_child(child)
