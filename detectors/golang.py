from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component
from models.payload import Payload
from parsers.golang import ECOSYSTEM, parse_go_mod


@DetectorRegistry.register("golang")
class GolangDetector:
    """go.mod modules. `// indirect` requirements count as transitive."""
    name = "golang"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "go.mod")
        if entry is None:
            return []
        text = provider.read_text(entry.path) or ""
        module = parse_go_mod(text)
        payload = new_component(module.module_path or directory_name(current_path), relative_path, "go-module", "golang", "go.mod")
        payload.add_tech("gomod", "matched file: go.mod")
        if module.module_path:
            payload.set_property("package_names", {ECOSYSTEM: module.module_path})
            payload.set_property("module_path", module.module_path)
        if module.go_version:
            payload.set_property("go_version", module.go_version)
        deps.apply(payload, [d for d in module.dependencies if d.direct or deps.include_transitive])
        return [payload]
