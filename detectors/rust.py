from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.rust import ECOSYSTEM, parse_cargo_lock, parse_cargo_toml


@DetectorRegistry.register("rust")
class RustDetector:
    """Cargo crates. A workspace-only manifest tags the enclosing node instead of creating one."""
    name = "rust"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "Cargo.toml")
        if entry is None:
            return []
        text = provider.read_text(entry.path)
        manifest = parse_cargo_toml(text) if text is not None else None

        if manifest is not None and manifest.is_workspace and not manifest.package_name:
            payload = Payload.virtual(relative_path)
            payload.add_tech("rust", "matched file: Cargo.toml")
            payload.set_property("cargo_workspace_members", list(manifest.members))
        else:
            name = manifest.package_name if manifest and manifest.package_name else directory_name(current_path)
            payload = new_component(name, relative_path, "cargo-crate", "rust", "Cargo.toml")
            if manifest is not None and manifest.package_name:
                payload.set_property("package_names", {ECOSYSTEM: manifest.package_name})
        payload.add_tech("cargo", "matched file: Cargo.toml")
        if manifest is None:
            payload.add_note("Cargo.toml could not be parsed")
            return [payload]

        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("Cargo.lock", lambda t: parse_cargo_lock(t, manifest.dependencies, manifest.package_name)),
            ])
        deps.apply(payload, deps.resolve(manifest.dependencies, lock))
        return [payload]
