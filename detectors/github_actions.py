import logging
from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_files
from models.payload import ComponentDependency, Payload, SCOPE_BUILD
from parsers.docker import split_image
from parsers.github_actions import parse_workflow

logger = logging.getLogger(__name__)

ECOSYSTEM = "githubAction"
WORKFLOWS_DIR = "/.github/workflows"


@DetectorRegistry.register("githubactions")
class GithubActionsDetector:
    """Workflow files under .github/workflows tag the component that owns the .github directory."""
    name = "githubactions"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        if not relative_path.endswith(WORKFLOWS_DIR):
            return []
        workflows = find_files(files, "*.yml", "*.yaml")
        if not workflows:
            return []

        payload = Payload.virtual(relative_path)
        actions: List[str] = []
        images: List[str] = []
        for entry in workflows:
            source = f".github/workflows/{entry.name}"
            text = provider.read_text(entry.path)
            workflow = parse_workflow(text) if text is not None else None
            if workflow is None:
                logger.debug(f"{relative_path}/{entry.name} is not a workflow")
                continue
            payload.add_tech("githubactions", f"matched file: {source}")
            if workflow.name:
                payload.set_property("workflows", [workflow.name])
            for name, ref in workflow.actions:
                actions.append(name)
                payload.add_component_dependency(ComponentDependency(
                    ecosystem=ECOSYSTEM, name=name, version=ref, scope=SCOPE_BUILD,
                    metadata={"source": source},
                ))
            for image in workflow.images:
                name, tag = split_image(image)
                images.append(name)
                payload.add_component_dependency(ComponentDependency(
                    ecosystem="docker", name=name, version=tag, scope=SCOPE_BUILD,
                    metadata={"source": source},
                ))

        deps.add_matches(payload, deps.match_dependencies(actions, ECOSYSTEM))
        deps.add_matches(payload, deps.match_dependencies(images, "docker"))
        return [payload] if payload.techs else []
