"""Tests for the compiled matcher index."""
import logging

import pytest

from core.errors import ConfigurationError
from core.matcher_index import MatcherIndex, file_extension, is_regex_literal
from models.rule import Category, ContentPattern, DependencyPattern, Rule

CATEGORIES = {
    "tool": Category(name="tool"),
    "database": Category(name="database", is_component=True),
}


def _rule(tech, category="tool", **kwargs):
    return Rule(tech=tech, name=tech.title(), category=category, **kwargs)


def test_match_file_by_name_glob_and_extension():
    index = MatcherIndex.compile([
        _rule("docker", files=["Dockerfile"]),
        _rule("qt", files=["*.pro"], extensions=[".ui"]),
        _rule("typescript", extensions=[".ts"]),
    ], CATEGORIES)
    assert index.match_file("Dockerfile") == [("docker", "matched file: Dockerfile")]
    assert index.match_file("app.pro") == [("qt", "matched file: app.pro")]
    assert index.match_file("main.ui") == [("qt", "matched extension: .ui")]
    assert index.match_file("index.ts") == [("typescript", "matched extension: .ts")]
    assert index.match_file("README.md") == []


def test_match_file_reports_each_tech_once():
    index = MatcherIndex.compile([_rule("qt", files=["*.ui"], extensions=[".ui"])], CATEGORIES)
    assert index.match_file("form.ui") == [("qt", "matched file: form.ui")]


def test_content_patterns_are_scoped_to_their_own_files():
    cmake = ContentPattern(dialect="regex", pattern="Qt6::", files=["CMakeLists.txt"])
    cpp = ContentPattern(dialect="regex", pattern="#include <afx", extensions=[".cpp"])
    index = MatcherIndex.compile([
        _rule("qt", extensions=[".ui"], content=[cmake]),
        _rule("mfc", content=[cpp]),
    ], CATEGORIES)
    assert [p.tech for p in index.content_patterns_for("CMakeLists.txt")] == ["qt"]
    assert [p.tech for p in index.content_patterns_for("main.cpp")] == ["mfc"]
    # The rule-level extension scope is never inherited by a content pattern
    assert index.content_patterns_for("form.ui") == []


def test_rule_that_can_never_match_is_excluded_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="core.matcher_index"):
        index = MatcherIndex.compile([_rule("ghost"), _rule("docker", files=["Dockerfile"])], CATEGORIES)
    assert index.rule("ghost") is None
    assert index.excluded == ["ghost"]
    assert "ghost" in caplog.text


def test_duplicate_tech_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="duplicate"):
        MatcherIndex.compile([_rule("a", files=["a"]), _rule("a", files=["b"])], CATEGORIES)


def test_unknown_category_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="unknown category"):
        MatcherIndex.compile([_rule("a", category="nope", files=["a"])], CATEGORIES)


def test_invalid_regex_is_a_configuration_error():
    bad = ContentPattern(dialect="regex", pattern="([unclosed", files=["a.txt"])
    with pytest.raises(ConfigurationError, match="invalid regular expression"):
        MatcherIndex.compile([_rule("a", content=[bad])], CATEGORIES)


def test_dependency_patterns_exact_and_regex():
    index = MatcherIndex.compile([
        _rule("react", dependencies=[DependencyPattern("npm", "react")]),
        _rule("aws", dependencies=[DependencyPattern("npm", "/^@aws-sdk\\//")]),
    ], CATEGORIES)
    patterns = {p.tech: p for p in index.dependency_patterns("npm")}
    assert patterns["react"].matches("react")
    assert not patterns["react"].matches("react-dom")
    assert patterns["aws"].matches("@aws-sdk/client-s3")
    assert index.dependency_patterns("cargo") == []


def test_rebuild_is_deterministic_regardless_of_rule_order(default_rules, categories):
    forward = MatcherIndex.compile(default_rules, categories)
    backward = MatcherIndex.compile(list(reversed(default_rules)), categories)
    assert forward.candidate_sets() == backward.candidate_sets()
    assert set(forward.rules) == set(backward.rules)


def test_helpers():
    assert is_regex_literal("/^react$/")
    assert not is_regex_literal("react")
    assert not is_regex_literal("/")
    assert file_extension("archive.tar.gz") == ".gz"
    assert file_extension("Makefile") == ""
