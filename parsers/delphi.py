"""Delphi .dproj project files."""
import os
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

from models.payload import Dependency, SCOPE_PROD

logger = logging.getLogger(__name__)

ECOSYSTEM = "delphi"


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


@dataclass
class DelphiProject:
    name: str = ""
    framework: str = ""  # VCL, FMX or empty for console projects
    main_source: str = ""
    packages: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)


def parse_dproj(text: str, filename: str) -> Optional[DelphiProject]:
    """FrameworkType, MainSource and the runtime packages of every DCC_UsePackage group."""
    try:
        root = ET.fromstring(text.encode("utf-8"))
    except ET.ParseError as e:
        logger.debug(f"Invalid {filename}: {e}")
        return None
    if _local(root.tag) != "Project":
        return None

    project = DelphiProject(name=os.path.splitext(filename)[0])
    for element in root.iter():
        name = _local(element.tag)
        value = (element.text or "").strip()
        if not value:
            continue
        if name == "FrameworkType" and not project.framework:
            project.framework = value
        elif name == "MainSource" and not project.main_source:
            project.main_source = value
        elif name == "DCC_UsePackage":
            for package in value.split(";"):
                package = package.strip()
                # $(DCC_UsePackage) inherits from the base configuration
                if package and not package.startswith("$") and package not in project.packages:
                    project.packages.append(package)

    project.dependencies = [
        Dependency(ecosystem=ECOSYSTEM, name=package, version="", scope=SCOPE_PROD,
                   direct=True, metadata={"source": filename})
        for package in project.packages
    ]
    return project
