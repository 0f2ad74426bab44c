from typing import List

from core.detector_registry import DetectorRegistry
from core.detector_utils import find_file, find_files
from models.payload import ComponentDependency, Payload, SCOPE_PROD
from parsers.terraform import parse_terraform, parse_terraform_lock

ECOSYSTEM = "terraform"
LOCK_FILE = ".terraform.lock.hcl"


@DetectorRegistry.register("terraform")
class TerraformDetector:
    """Terraform modules tag the enclosing component; locked providers become component dependencies."""
    name = "terraform"

    def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
        sources = find_files(files, "*.tf")
        lock = find_file(files, LOCK_FILE)
        if not sources and lock is None:
            return []

        payload = Payload.virtual(relative_path)
        providers: List[str] = []
        resources: List[str] = []
        modules: List[str] = []
        for entry in sources:
            payload.add_tech("terraform", f"matched file: {entry.name}")
            text = provider.read_text(entry.path)
            if text is None:
                continue
            module = parse_terraform(text)
            resources.extend(r for r in module.resources if r not in resources)
            modules.extend(f"{name}={source}" if source else name for name, source in module.modules)
            # Unqualified provider names live in the default hashicorp namespace
            providers.extend(p if "/" in p else f"hashicorp/{p}" for p in module.providers)

        if lock is not None:
            payload.add_tech("terraform", f"matched file: {LOCK_FILE}")
            text = provider.read_text(lock.path) or ""
            for name, version in parse_terraform_lock(text):
                payload.add_component_dependency(ComponentDependency(
                    ecosystem=ECOSYSTEM, name=name, version=version, scope=SCOPE_PROD,
                    metadata={"source": LOCK_FILE},
                ))
                providers.append(name)

        properties = {}
        if resources:
            properties["resources"] = resources
        if modules:
            properties["modules"] = modules
        if properties:
            payload.set_property("terraform", properties)
        deps.add_matches(payload, deps.match_dependencies(providers, ECOSYSTEM))
        return [payload]
