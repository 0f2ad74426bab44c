from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_files
from models.payload import Payload
from parsers.dotenv import EXAMPLE_FILES, parse_dotenv


@DetectorRegistry.register("dotenv")
class DotenvDetector:
    """Variable names in committed .env templates hint at backing services. Values are never read."""
    name = "dotenv"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        names: List[str] = []
        for entry in find_files(files, *EXAMPLE_FILES):
            text = provider.read_text(entry.path)
            if not text:
                continue
            names.extend(n for n in parse_dotenv(text) if n not in names)
        if not names:
            return []
        matches = deps.match_dotenv(names)
        if not matches:
            return []
        payload = Payload.virtual(relative_path)
        deps.add_matches(payload, matches)
        return [payload]
