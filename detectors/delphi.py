from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_files, new_component
from models.payload import Payload
from parsers.delphi import parse_dproj

FRAMEWORK_TECHS = {"VCL": "vcl", "FMX": "fmx"}


@DetectorRegistry.register("delphi")
class DelphiDetector:
    """One component per .dproj. Runtime packages are the only dependencies; there is no lock file."""
    name = "delphi"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        results: List[Payload] = []
        for entry in find_files(files, "*.dproj", "*.DPROJ"):
            text = provider.read_text(entry.path)
            project = parse_dproj(text, entry.name) if text is not None else None
            if project is None:
                continue
            payload = new_component(project.name, relative_path, "delphi-project", "delphi", entry.name)
            tech = FRAMEWORK_TECHS.get(project.framework.upper())
            if tech:
                payload.add_tech(tech, f"xml path $.Project.PropertyGroup.FrameworkType equals {project.framework} in {entry.name}")
            if project.main_source:
                payload.set_property("main_source", project.main_source)
            deps.apply(payload, project.dependencies)
            results.append(payload)
        return results
