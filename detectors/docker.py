import logging
from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_files
from models.payload import ComponentDependency, Payload, SCOPE_BUILD, SCOPE_PROD
from parsers.docker import parse_compose, parse_dockerfile

logger = logging.getLogger(__name__)

ECOSYSTEM = "docker"
DOCKERFILE_PATTERNS = ("Dockerfile", "Dockerfile.*", "*.Dockerfile", "Containerfile")
COMPOSE_PATTERNS = ("docker-compose.yml", "docker-compose.yaml", "docker-compose.*.yml", "docker-compose.*.yaml",
                    "compose.yml", "compose.yaml")


@DetectorRegistry.register("docker")
class DockerDetector:
    """Dockerfiles tag the enclosing component; compose services with an image become components."""
    name = "docker"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        results: List[Payload] = []
        dockerfiles = find_files(files, *DOCKERFILE_PATTERNS)
        if dockerfiles:
            results.append(self._dockerfiles(dockerfiles, relative_path, provider, deps))
        for entry in find_files(files, *COMPOSE_PATTERNS):
            results.extend(self._compose(entry, relative_path, provider, deps))
        return results

    def _dockerfiles(self, entries, relative_path, provider, deps) -> Payload:
        payload = Payload.virtual(relative_path)
        images = []
        for entry in entries:
            payload.add_tech("docker", f"matched file: {entry.name}")
            text = provider.read_text(entry.path)
            if text is None:
                continue
            info = parse_dockerfile(text)
            payload.set_property("docker", [{
                "file": entry.name,
                "base_images": [f"{image.name}:{image.tag}" if image.tag else image.name for image in info.base_images],
                "stages": list(info.stages),
                "exposed_ports": list(info.exposed_ports),
            }])
            for image in info.base_images:
                images.append(image.name)
                payload.add_component_dependency(ComponentDependency(
                    ecosystem=ECOSYSTEM, name=image.name, version=image.tag, scope=SCOPE_BUILD,
                    metadata={"source": entry.name},
                ))
        deps.add_matches(payload, deps.match_dependencies(images, ECOSYSTEM))
        return payload

    def _compose(self, entry, relative_path, provider, deps) -> List[Payload]:
        text = provider.read_text(entry.path)
        services = parse_compose(text) if text is not None else None
        holder = Payload.virtual(relative_path)
        holder.add_tech("dockercompose", f"matched file: {entry.name}")
        if services is None:
            logger.debug(f"No services found in {relative_path} {entry.name}")
            return [holder]

        results = [holder]
        for service in services:
            if not service.image:
                # Built from local sources; the code component is found on its own
                continue
            holder.add_component_dependency(ComponentDependency(
                ecosystem=ECOSYSTEM, name=service.image, version=service.tag, scope=SCOPE_PROD,
                metadata={"source": entry.name, "service": service.name},
            ))
            component = Payload(name=service.name, path=relative_path, type="service")
            component.add_component_dependency(ComponentDependency(
                ecosystem=ECOSYSTEM, name=service.image, version=service.tag, scope=SCOPE_PROD,
                metadata={"source": entry.name},
            ))
            if service.ports:
                component.set_property("ports", list(service.ports))
            if service.depends_on:
                component.set_property("depends_on", list(service.depends_on))
            for tech, reasons in deps.match_dependencies([service.image], ECOSYSTEM).items():
                component.add_primary_tech(tech)
                for reason in reasons:
                    component.add_tech(tech, reason)
            holder.add_child(component)
        return results
