import logging
from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, find_files, new_component, read_lock
from models.payload import Payload
from parsers.python import parse_poetry_lock, parse_pyproject, parse_requirements_txt, parse_uv_lock

logger = logging.getLogger(__name__)


@DetectorRegistry.register("python")
class PythonDetector:
    """pyproject.toml components (uv.lock > poetry.lock); requirements files tag the enclosing node."""
    name = "python"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        results: List[Payload] = []
        pyproject = find_file(files, "pyproject.toml")
        if pyproject is not None:
            results.append(self._pyproject(files, pyproject, current_path, relative_path, provider, deps))

        requirements = find_files(files, "requirements*.txt")
        if requirements:
            virtual = Payload.virtual(relative_path)
            for entry in requirements:
                virtual.add_tech("python", f"matched file: {entry.name}")
                text = provider.read_text(entry.path)
                if text is None:
                    continue
                deps.apply(virtual, parse_requirements_txt(text, source=entry.name))
            results.append(virtual)
        return results

    def _pyproject(self, files, entry, current_path, relative_path, provider, deps) -> Payload:
        text = provider.read_text(entry.path)
        project = parse_pyproject(text) if text is not None else None
        name = project.name if project and project.name else directory_name(current_path)
        payload = new_component(name, relative_path, "python-package", "python", "pyproject.toml")
        if project is None:
            payload.add_note("pyproject.toml could not be parsed")
            return payload

        if project.name:
            payload.set_property("package_names", {"python": project.name})
        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("uv.lock", lambda t: parse_uv_lock(t, project.dependencies, project.name)),
                ("poetry.lock", lambda t: parse_poetry_lock(t, project.dependencies)),
            ])
        deps.apply(payload, deps.resolve(project.dependencies, lock))
        return payload
