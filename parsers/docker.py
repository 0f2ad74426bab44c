"""Dockerfile and docker-compose parsers."""
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_ARG = re.compile(r"^\s*ARG\s+([A-Za-z_][A-Za-z0-9_]*)(?:=(.*))?$", re.IGNORECASE)
_FROM = re.compile(r"^\s*FROM\s+(?:--platform=\S+\s+)?(\S+)(?:\s+AS\s+(\S+))?", re.IGNORECASE)
_EXPOSE = re.compile(r"^\s*EXPOSE\s+(.+)$", re.IGNORECASE)
_VARIABLE = re.compile(r"\$\{?([A-Za-z_][A-Za-z0-9_]*)(?::?-([^}]*))?\}?")


def split_image(reference: str) -> Tuple[str, str]:
    """'registry:5000/team/app:1.2@sha256:..' -> ('registry:5000/team/app', '1.2')."""
    reference = reference.split("@", 1)[0]
    name, tag = reference, ""
    last = reference.rsplit("/", 1)[-1]
    if ":" in last:
        name, tag = reference.rsplit(":", 1)
    if name.startswith("docker.io/"):
        name = name[len("docker.io/"):]
    if name.startswith("library/"):
        name = name[len("library/"):]
    return name, tag


@dataclass
class BaseImage:
    name: str
    tag: str
    stage: str = ""


@dataclass
class DockerfileInfo:
    base_images: List[BaseImage] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)
    exposed_ports: List[str] = field(default_factory=list)


def _logical_lines(text: str) -> List[str]:
    lines: List[str] = []
    current = ""
    for raw in text.splitlines():
        stripped = raw.strip()
        if stripped.startswith("#") and not current:
            continue
        if stripped.endswith("\\"):
            current += stripped[:-1] + " "
            continue
        lines.append(current + stripped)
        current = ""
    if current:
        lines.append(current)
    return lines


def _expand(value: str, args: Dict[str, str]) -> str:
    return _VARIABLE.sub(lambda m: args.get(m.group(1)) or (m.group(2) or ""), value)


def parse_dockerfile(text: str) -> DockerfileInfo:
    info = DockerfileInfo()
    args: Dict[str, str] = {}
    for line in _logical_lines(text):
        arg = _ARG.match(line)
        if arg:
            args.setdefault(arg.group(1), (arg.group(2) or "").strip().strip('"'))
            continue
        match = _FROM.match(line)
        if match:
            image = _expand(match.group(1), args)
            stage = match.group(2) or ""
            if stage:
                info.stages.append(stage)
            # scratch and references to earlier stages are not images
            if image.lower() != "scratch" and image not in info.stages[:-1 if stage else None]:
                name, tag = split_image(image)
                if name:
                    info.base_images.append(BaseImage(name=name, tag=tag, stage=stage))
            continue
        expose = _EXPOSE.match(line)
        if expose:
            for port in expose.group(1).split():
                port = _expand(port, args)
                if port and port not in info.exposed_ports:
                    info.exposed_ports.append(port)
    return info


@dataclass
class ComposeService:
    name: str
    image: str = ""
    tag: str = ""
    build: str = ""
    ports: List[str] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)


def _string_list(value: Any) -> List[str]:
    if isinstance(value, dict):
        return [str(k) for k in value]
    if isinstance(value, list):
        return [str(v) if not isinstance(v, dict) else str(v.get("published") or v.get("target") or "") for v in value]
    return []


def parse_compose(text: str) -> Optional[List[ComposeService]]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug(f"Invalid compose file: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("services"), dict):
        return None
    services: List[ComposeService] = []
    for name, spec in data["services"].items():
        spec = spec if isinstance(spec, dict) else {}
        image, tag = split_image(str(spec["image"])) if spec.get("image") else ("", "")
        build = spec.get("build")
        if isinstance(build, dict):
            build = build.get("context", ".")
        services.append(ComposeService(
            name=str(name),
            image=image,
            tag=tag,
            build=str(build) if build else "",
            ports=[p for p in _string_list(spec.get("ports")) if p],
            depends_on=_string_list(spec.get("depends_on")),
        ))
    return services
