"""Variable names from .env style files."""
import re
from typing import List

EXAMPLE_FILES = (".env.example", ".env.sample", ".env.template", ".env.dist")

_ASSIGNMENT = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_.]*)\s*=")


def parse_dotenv(text: str) -> List[str]:
    names: List[str] = []
    for line in text.splitlines():
        match = _ASSIGNMENT.match(line)
        if match and match.group(1) not in names:
            names.append(match.group(1))
    return names
