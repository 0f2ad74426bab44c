"""Terraform configuration and .terraform.lock.hcl parsers (line based, no full HCL)."""
import re
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

logger = logging.getLogger(__name__)

_LOCK_PROVIDER = re.compile(r'^\s*provider\s+"([^"]+)"\s*\{')
_LOCK_VERSION = re.compile(r'^\s*version\s*=\s*"([^"]+)"')
_RESOURCE = re.compile(r'^\s*(resource|data)\s+"([^"]+)"\s+"([^"]+)"')
_MODULE = re.compile(r'^\s*module\s+"([^"]+)"')
_SOURCE = re.compile(r'^\s*source\s*=\s*"([^"]+)"')
_PROVIDER = re.compile(r'^\s*provider\s+"([^"]+)"')


def provider_name(address: str) -> str:
    """'registry.terraform.io/hashicorp/aws' -> 'hashicorp/aws'."""
    parts = address.split("/")
    return "/".join(parts[-2:]) if len(parts) >= 2 else address


def parse_terraform_lock(text: str) -> List[Tuple[str, str]]:
    """(provider, version) pairs in file order."""
    providers: List[Tuple[str, str]] = []
    current = ""
    for line in text.splitlines():
        match = _LOCK_PROVIDER.match(line)
        if match:
            current = provider_name(match.group(1))
            continue
        if current:
            version = _LOCK_VERSION.match(line)
            if version:
                providers.append((current, version.group(1)))
                current = ""
    return providers


@dataclass
class TerraformModule:
    resources: List[str] = field(default_factory=list)  # "aws_s3_bucket.assets"
    data_sources: List[str] = field(default_factory=list)
    modules: List[Tuple[str, str]] = field(default_factory=list)  # (name, source)
    providers: List[str] = field(default_factory=list)


def parse_terraform(text: str) -> TerraformModule:
    module = TerraformModule()
    pending_module = ""
    depth = 0
    for line in text.splitlines():
        stripped = line.split("#", 1)[0]
        if depth == 0:
            resource = _RESOURCE.match(stripped)
            if resource:
                target = module.resources if resource.group(1) == "resource" else module.data_sources
                target.append(f"{resource.group(2)}.{resource.group(3)}")
            named_module = _MODULE.match(stripped)
            if named_module:
                pending_module = named_module.group(1)
            provider = _PROVIDER.match(stripped)
            if provider and provider.group(1) not in module.providers:
                module.providers.append(provider.group(1))
        elif depth == 1 and pending_module:
            source = _SOURCE.match(stripped)
            if source:
                module.modules.append((pending_module, source.group(1)))
                pending_module = ""
        depth += stripped.count("{") - stripped.count("}")
        if depth <= 0:
            depth = 0
            if pending_module and "}" in stripped:
                module.modules.append((pending_module, ""))
                pending_module = ""
    return module
