import logging
from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.nodejs import (
    package_json_dependencies,
    parse_package_json,
    parse_package_lock,
    parse_pnpm_lock,
    parse_yarn_lock,
)

logger = logging.getLogger(__name__)


@DetectorRegistry.register("nodejs")
class NodejsDetector:
    """package.json components; lock precedence package-lock > npm-shrinkwrap > pnpm-lock > yarn.lock."""
    name = "nodejs"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        manifest = find_file(files, "package.json")
        if manifest is None:
            return []

        text = provider.read_text(manifest.path)
        package = parse_package_json(text) if text is not None else None
        name = package.name if package and package.name else directory_name(current_path)
        payload = new_component(name, relative_path, "npm-package", "nodejs", "package.json")
        if package is None:
            logger.debug(f"package.json at {relative_path} could not be parsed, no dependencies extracted")
            payload.add_note("package.json could not be parsed")
            return [payload]

        if package.name:
            payload.set_property("package_names", {"npm": package.name})
        if package.workspaces:
            payload.set_property("workspaces", list(package.workspaces))

        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("package-lock.json", lambda t: parse_package_lock(t, package, "package-lock.json")),
                ("npm-shrinkwrap.json", lambda t: parse_package_lock(t, package, "npm-shrinkwrap.json")),
                ("pnpm-lock.yaml", lambda t: parse_pnpm_lock(t, package)),
                ("yarn.lock", lambda t: parse_yarn_lock(t, package)),
            ])
        deps.apply(payload, deps.resolve(package_json_dependencies(package), lock))
        return [payload]
