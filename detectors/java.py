import os
import logging
from typing import List, Optional

from core.detector_registry import DetectorRegistry
from core.detector_utils import directory_name, find_file, new_component, read_lock
from models.payload import Payload
from parsers.java import MAVEN, MavenProject, parse_dependency_list, parse_gradle, parse_gradle_settings, parse_pom

logger = logging.getLogger(__name__)

GRADLE_BUILD_FILES = ("build.gradle.kts", "build.gradle")
GRADLE_SETTINGS_FILES = ("settings.gradle.kts", "settings.gradle")
DEPENDENCY_LIST = "dependency-list.txt"
MAX_PARENT_DEPTH = 10


@DetectorRegistry.register("java")
class JavaDetector:
    """Maven and Gradle projects. A directory with both yields one component."""
    name = "java"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        pom = find_file(files, "pom.xml")
        gradle = find_file(files, *GRADLE_BUILD_FILES)
        if pom is None and gradle is None:
            return []

        payload = None
        if pom is not None:
            payload = self._maven(files, pom, current_path, relative_path, provider, deps)
        if gradle is not None:
            if payload is None:
                payload = new_component(
                    self._gradle_name(files, current_path, provider),
                    relative_path, "gradle-project", "java", gradle.name,
                )
            payload.add_tech("gradle", f"matched file: {gradle.name}")
            text = provider.read_text(gradle.path)
            if text is not None:
                deps.apply(payload, parse_gradle(text, source=gradle.name))
        return [payload]

    def _maven(self, files, entry, current_path, relative_path, provider, deps) -> Payload:
        text = provider.read_text(entry.path)
        project = parse_pom(text) if text is not None else None
        if project is not None and project.parent_path:
            parent = self._parent(current_path, project, provider, 1)
            if parent is not None:
                project = parse_pom(text, parent=parent)

        name = project.artifact_id if project and project.artifact_id else directory_name(current_path)
        payload = new_component(name, relative_path, "maven-project", "java", "pom.xml")
        payload.add_tech("maven", "matched file: pom.xml")
        if project is None:
            payload.add_note("pom.xml could not be parsed")
            return payload
        if project.artifact_id:
            payload.set_property("package_names", {MAVEN: project.coordinates})
        if project.modules:
            payload.set_property("modules", list(project.modules))
        if project.profiles:
            payload.set_property("maven_profiles", list(project.profiles))

        lock = None
        if deps.use_lock_files:
            lock = read_lock(files, provider, [
                (DEPENDENCY_LIST, lambda t: parse_dependency_list(t, project.dependencies)),
            ])
        deps.apply(payload, deps.resolve(project.dependencies, lock))
        return payload

    def _parent(self, pom_dir: str, child: MavenProject, provider, depth: int) -> Optional[MavenProject]:
        """The child's parent pom, itself resolved against its own parents, when it is inside the scan root."""
        if depth > MAX_PARENT_DEPTH:
            logger.debug(f"Parent pom chain too deep below {pom_dir}")
            return None
        path = os.path.abspath(os.path.join(pom_dir, child.parent_path))
        if os.path.commonpath([path, provider.base_path]) != provider.base_path or not provider.exists(path):
            return None
        text = provider.read_text(path)
        parent = parse_pom(text, source=os.path.basename(path)) if text is not None else None
        if parent is None or parent.artifact_id != child.parent_artifact_id:
            logger.debug(f"{path} is not the parent of {child.artifact_id}")
            return None
        if parent.parent_path:
            grandparent = self._parent(os.path.dirname(path), parent, provider, depth + 1)
            if grandparent is not None:
                parent = parse_pom(text, source=os.path.basename(path), parent=grandparent)
        return parent

    def _gradle_name(self, files, current_path, provider) -> str:
        settings = find_file(files, *GRADLE_SETTINGS_FILES)
        if settings is not None:
            text = provider.read_text(settings.path)
            if text:
                name = parse_gradle_settings(text)
                if name:
                    return name
        return directory_name(current_path)
