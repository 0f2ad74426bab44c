"""GitHub Actions workflow parser."""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


@dataclass
class Workflow:
    name: str = ""
    actions: List[Tuple[str, str]] = field(default_factory=list)  # (owner/repo[/path], ref)
    images: List[str] = field(default_factory=list)


def split_action(uses: str) -> Optional[Tuple[str, str]]:
    """'actions/checkout@v4' -> ('actions/checkout', 'v4'); local and docker references -> None."""
    uses = uses.strip()
    if not uses or uses.startswith(("./", "docker://")) or "@" not in uses:
        return None
    name, ref = uses.rsplit("@", 1)
    return name, ref


def _image(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("image")
    return str(value) if isinstance(value, str) else ""


def parse_workflow(text: str) -> Optional[Workflow]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug(f"Invalid workflow: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("jobs"), dict):
        return None

    workflow = Workflow(name=str(data.get("name") or ""))
    for job in data["jobs"].values():
        if not isinstance(job, dict):
            continue
        uses = job.get("uses")
        if isinstance(uses, str):
            # Reusable workflow call
            action = split_action(uses)
            if action and action not in workflow.actions:
                workflow.actions.append(action)
        container = _image(job.get("container"))
        if container and container not in workflow.images:
            workflow.images.append(container)
        services = job.get("services")
        if isinstance(services, dict):
            for service in services.values():
                image = _image(service)
                if image and image not in workflow.images:
                    workflow.images.append(image)
        for step in job.get("steps") or []:
            if not isinstance(step, dict) or not isinstance(step.get("uses"), str):
                continue
            if step["uses"].startswith("docker://"):
                image = step["uses"][len("docker://"):]
                if image not in workflow.images:
                    workflow.images.append(image)
                continue
            action = split_action(step["uses"])
            if action and action not in workflow.actions:
                workflow.actions.append(action)
    return workflow
