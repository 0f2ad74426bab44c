import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.matcher_index import MatcherIndex  # noqa: E402
from core.scanner import Scanner  # noqa: E402
from core.settings import Settings  # noqa: E402
from rules.rules_loader import load_categories, load_rules  # noqa: E402


@pytest.fixture(scope="session")
def categories():
    return load_categories()


@pytest.fixture(scope="session")
def default_rules(categories):
    return load_rules(categories=categories)


@pytest.fixture(scope="session")
def default_index(default_rules, categories):
    return MatcherIndex.compile(default_rules, categories)


@pytest.fixture
def write_tree(tmp_path):
    """Create files from a {relative path: content} mapping and return the root."""
    def _write(files):
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return tmp_path
    return _write


@pytest.fixture
def scan(default_index):
    """Scan a directory with the bundled rules and every registered detector."""
    def _scan(path, **settings):
        return Scanner(default_index, settings=Settings(**settings), scan_config=None).scan(str(path))
    return _scan
