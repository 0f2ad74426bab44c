"""go.mod parser."""
import re
import logging
from dataclasses import dataclass, field
from typing import List

from models.payload import Dependency, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "golang"

_REQUIRE_LINE = re.compile(r"^([^\s]+)\s+([^\s]+)(.*)$")


@dataclass
class GoModule:
    module_path: str = ""
    go_version: str = ""
    dependencies: List[Dependency] = field(default_factory=list)


def _strip_comment(line: str) -> str:
    return line.split("//", 1)[0].strip()


def parse_go_mod(text: str, source: str = "go.mod") -> GoModule:
    """Requirements marked `// indirect` are reported as non-direct."""
    module = GoModule()
    in_require = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("//"):
            continue
        if in_require:
            if line.startswith(")"):
                in_require = False
                continue
            _add_requirement(module, line, source)
            continue
        if line.startswith("module "):
            module.module_path = _strip_comment(line[len("module "):]).strip('"')
        elif line.startswith("go "):
            module.go_version = _strip_comment(line[len("go "):])
        elif line.startswith("require"):
            rest = line[len("require"):].strip()
            if rest.startswith("("):
                in_require = True
            elif rest:
                _add_requirement(module, rest, source)
    return module


def _add_requirement(module: GoModule, line: str, source: str) -> None:
    match = _REQUIRE_LINE.match(line)
    if not match:
        return
    name, version, rest = match.groups()
    module.dependencies.append(Dependency(
        ecosystem=ECOSYSTEM,
        name=name,
        version=version,
        scope=SCOPE_PROD,
        direct="indirect" not in rest,
        metadata={"source": source},
    ))
