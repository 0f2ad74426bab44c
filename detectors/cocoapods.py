from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.cocoapods import parse_podfile, parse_podfile_lock


@DetectorRegistry.register("cocoapods")
class CocoapodsDetector:
    """iOS and macOS apps managed with CocoaPods, named after the first Podfile target."""
    name = "cocoapods"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "Podfile")
        if entry is None:
            return []
        text = provider.read_text(entry.path)
        podfile = parse_podfile(text) if text is not None else None
        name = podfile.targets[0] if podfile and podfile.targets else directory_name(current_path)
        payload = new_component(name, relative_path, "cocoapods-project", "cocoapods", "Podfile")
        if podfile is None:
            payload.add_note("Podfile could not be read")
            return [payload]
        if podfile.platform:
            payload.set_property("platform", f"{podfile.platform} {podfile.platform_version}".strip())

        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("Podfile.lock", lambda t: parse_podfile_lock(t, podfile.dependencies)),
            ])
        deps.apply(payload, deps.resolve(podfile.dependencies, lock))
        return [payload]
