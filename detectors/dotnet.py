import os
from typing import Dict, List, Optional

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_file, find_files, new_component
from models.payload import Payload
from parsers.dotnet import (
    CENTRAL_VERSIONS_FILE,
    ECOSYSTEM,
    parse_central_versions,
    parse_packages_config,
    parse_project_file,
)

PROJECT_PATTERNS = ("*.csproj", "*.fsproj", "*.vbproj")


@DetectorRegistry.register("dotnet")
class DotnetDetector:
    """SDK-style project files plus legacy packages.config."""
    name = "dotnet"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        results: List[Payload] = []
        projects = find_files(files, *PROJECT_PATTERNS)
        central_versions = self._central_versions(current_path, provider) if projects else None
        for entry in projects:
            text = provider.read_text(entry.path)
            project = parse_project_file(text, entry.name, central_versions) if text is not None else None
            name = project.assembly_name if project and project.assembly_name else os.path.splitext(entry.name)[0]
            payload = new_component(name, relative_path, "dotnet-project", "dotnet", entry.name)
            payload.add_tech("nuget", f"matched file: {entry.name}")
            payload.set_property("package_names", {ECOSYSTEM: name})
            if project is None:
                payload.add_note(f"{entry.name} could not be parsed")
            else:
                if project.target_frameworks:
                    payload.set_property("target_frameworks", list(project.target_frameworks))
                if project.sdk:
                    payload.set_property("sdk", project.sdk)
                deps.apply(payload, project.dependencies)
            results.append(payload)

        config = find_file(files, "packages.config")
        if config is not None:
            text = provider.read_text(config.path)
            dependencies = parse_packages_config(text) if text is not None else None
            target = results[0] if results else Payload.virtual(relative_path)
            target.add_tech("nuget", "matched file: packages.config")
            if dependencies:
                deps.apply(target, dependencies)
            if not results:
                results.append(target)
        return results

    def _central_versions(self, current_path, provider) -> Optional[Dict[str, str]]:
        """The nearest Directory.Packages.props at or above the project, within the scan root."""
        directory = os.path.abspath(current_path)
        while True:
            path = os.path.join(directory, CENTRAL_VERSIONS_FILE)
            if provider.exists(path):
                text = provider.read_text(path)
                return parse_central_versions(text) if text is not None else None
            if directory == provider.base_path:
                return None
            parent = os.path.dirname(directory)
            if parent == directory or not parent.startswith(provider.base_path):
                return None
            directory = parent
