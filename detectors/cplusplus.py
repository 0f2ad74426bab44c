from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.conan import ECOSYSTEM, parse_conan_lock, parse_conanfile_py, parse_conanfile_txt


@DetectorRegistry.register("cplusplus")
class CplusplusDetector:
    """C and C++ packages managed with Conan. conanfile.py wins over conanfile.txt."""
    name = "cplusplus"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "conanfile.py", "conanfile.txt")
        if entry is None:
            return []
        text = provider.read_text(entry.path)
        if text is None:
            recipe = None
        elif entry.name == "conanfile.py":
            recipe = parse_conanfile_py(text, source=entry.name)
        else:
            recipe = parse_conanfile_txt(text, source=entry.name)

        name = recipe.name if recipe and recipe.name else directory_name(current_path)
        payload = new_component(name, relative_path, "conan-package", "cplusplus", entry.name)
        payload.add_tech("conan", f"matched file: {entry.name}")
        if recipe is None:
            payload.add_note(f"{entry.name} could not be read")
            return [payload]
        if recipe.name:
            payload.set_property("package_names", {ECOSYSTEM: recipe.name})

        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("conan.lock", lambda t: parse_conan_lock(t, recipe.dependencies)),
            ])
        deps.apply(payload, deps.resolve(recipe.dependencies, lock))
        return [payload]
