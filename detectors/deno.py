from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_file, new_component, read_lock
from models.payload import Payload
from parsers.deno import ECOSYSTEM, parse_deno_json, parse_deno_lock

CONFIG_FILES = ("deno.json", "deno.jsonc")


@DetectorRegistry.register("deno")
class DenoDetector:
    """Deno modules. Only a config with a `name` (a publishable JSR package) creates a component."""
    name = "deno"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        config_entry = find_file(files, *CONFIG_FILES)
        lock_entry = find_file(files, "deno.lock")
        if config_entry is None and lock_entry is None:
            return []

        config = None
        if config_entry is not None:
            text = provider.read_text(config_entry.path)
            config = parse_deno_json(text, source=config_entry.name) if text is not None else None

        if config is not None and config.name:
            payload = new_component(config.name, relative_path, "deno-module", "deno", config_entry.name)
            payload.set_property("package_names", {ECOSYSTEM: config.name})
        else:
            payload = Payload.virtual(relative_path)
            payload.add_tech("deno", f"matched file: {(config_entry or lock_entry).name}")
            if config_entry is not None and config is None:
                payload.add_note(f"{config_entry.name} could not be parsed")

        manifest = config.dependencies if config is not None else []
        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [("deno.lock", parse_deno_lock)])
        deps.apply(payload, deps.resolve(manifest, lock))
        return [payload]
