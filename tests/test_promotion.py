"""Tests for the is_component / is_primary_tech decision table."""
import pytest

from core.promotion import Promoter, should_add_primary_tech, should_create_component
from models.payload import Payload
from models.rule import Category, Rule, TriState

CATEGORIES = {
    "database": Category(name="database", is_component=True),
    "tool": Category(name="tool", is_component=False),
}


def _rule(category, is_component=TriState.UNSET, is_primary_tech=TriState.UNSET):
    return Rule(tech="t", name="T", category=category, files=["t"],
                is_component=is_component, is_primary_tech=is_primary_tech)


@pytest.mark.parametrize("rule, component, primary", [
    # is_component true (explicit or by category), is_primary_tech unset
    (_rule("database"), True, True),
    (_rule("tool", is_component=TriState.TRUE), True, True),
    # is_component true, is_primary_tech false
    (_rule("database", is_primary_tech=TriState.FALSE), True, False),
    # is_component false or default false, is_primary_tech true
    (_rule("tool", is_primary_tech=TriState.TRUE), False, True),
    (_rule("database", is_component=TriState.FALSE, is_primary_tech=TriState.TRUE), False, True),
    # is_component false or default false, is_primary_tech unset
    (_rule("tool"), False, False),
    (_rule("database", is_component=TriState.FALSE), False, False),
])
def test_decision_table(rule, component, primary):
    assert should_create_component(rule, CATEGORIES) is component
    assert should_add_primary_tech(rule, CATEGORIES) is primary


def _promoter(rule):
    return Promoter({rule.tech: rule}, CATEGORIES)


def test_component_rule_creates_child_with_reasons():
    rule = Rule(tech="postgresql", name="PostgreSQL", category="database", files=["pg.conf"])
    node = Payload(name="api", path="/api")
    node.add_tech("postgresql", "postgresql matched: ^pg$")
    child = _promoter(rule).apply(node, "postgresql", "/api")
    assert node.children == [child]
    assert (child.name, child.path, child.type) == ("PostgreSQL", "/api", "database")
    assert child.tech == ["postgresql"]
    assert child.reason == {"postgresql": ["postgresql matched: ^pg$"]}
    # The enclosing node keeps the tag but not as a primary tech
    assert node.techs == ["postgresql"]
    assert node.tech == []


def test_component_without_primary_tech():
    rule = Rule(tech="redis", name="Redis", category="database", files=["redis.conf"],
                is_primary_tech=TriState.FALSE)
    node = Payload(name="api")
    node.add_tech("redis")
    child = _promoter(rule).apply(node, "redis", "/")
    assert child.tech == []
    assert child.techs == ["redis"]


def test_primary_tag_never_creates_child():
    rule = Rule(tech="mfc", name="MFC", category="tool", extensions=[".cpp"], is_primary_tech=TriState.TRUE)
    node = Payload(name="main")
    node.add_tech("mfc", "content matched: afx in a.cpp")
    assert _promoter(rule).apply(node, "mfc", "/") is None
    assert node.children == []
    assert node.tech == ["mfc"]


def test_plain_tag_changes_nothing():
    rule = Rule(tech="prettier", name="Prettier", category="tool", files=[".prettierrc"])
    node = Payload(name="main")
    node.add_tech("prettier")
    assert _promoter(rule).apply(node, "prettier", "/") is None
    assert node.tech == [] and node.children == []


def test_repeated_promotion_merges_into_one_child():
    rule = Rule(tech="postgresql", name="PostgreSQL", category="database", files=["pg.conf"])
    node = Payload(name="main")
    node.add_tech("postgresql")
    promoter = _promoter(rule)
    first = promoter.apply(node, "postgresql", "/")
    second = promoter.apply(node, "postgresql", "/")
    assert first is second
    assert len(node.children) == 1


def test_unknown_tech_is_ignored():
    node = Payload(name="main")
    node.add_tech("custom")
    assert Promoter({}, CATEGORIES).apply(node, "custom", "/") is None
