from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, find_files, new_component, read_lock
from models.payload import Payload
from parsers.ruby import parse_gemfile, parse_gemfile_lock


@DetectorRegistry.register("ruby")
class RubyDetector:
    name = "ruby"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        entry = find_file(files, "Gemfile")
        if entry is None:
            return []
        gemspecs = find_files(files, "*.gemspec")
        name = gemspecs[0].name[:-len(".gemspec")] if gemspecs else directory_name(current_path)
        payload = new_component(name, relative_path, "ruby-project", "ruby", "Gemfile")
        payload.add_tech("bundler", "matched file: Gemfile")

        text = provider.read_text(entry.path)
        if text is None:
            return [payload]
        manifest = parse_gemfile(text)
        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                ("Gemfile.lock", lambda t: parse_gemfile_lock(t, manifest)),
            ])
        deps.apply(payload, deps.resolve(manifest, lock))
        return [payload]
