from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.php import ECOSYSTEM, parse_composer_json, parse_composer_lock


@DetectorRegistry.register("php")
class PhpDetector:
    name = "php"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "composer.json")
        if entry is None:
            return []
        text = provider.read_text(entry.path)
        project = parse_composer_json(text) if text is not None else None
        name = project.name if project and project.name else directory_name(current_path)
        payload = new_component(name, relative_path, "composer-package", "php", "composer.json")
        payload.add_tech("composer", "matched file: composer.json")
        if project is None:
            payload.add_note("composer.json could not be parsed")
            return [payload]

        if project.name:
            payload.set_property("package_names", {ECOSYSTEM: project.name})
        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("composer.lock", lambda t: parse_composer_lock(t, project.dependencies)),
            ])
        deps.apply(payload, deps.resolve(project.dependencies, lock))
        return [payload]
