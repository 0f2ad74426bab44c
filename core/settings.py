"""Scanner settings and the optional per-project scan configuration file."""
import os
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import yaml

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "STACK_ANALYSER_"
SCAN_CONFIG_FILENAME = ".stack-analyser.yml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    exclude_patterns: List[str] = field(default_factory=list)
    filter_rules: List[str] = field(default_factory=list)  # tech ids; empty means all rules
    include_transitive: bool = False
    use_lock_files: bool = True
    default_excludes: bool = True  # skip VCS metadata and tool caches
    root_id: str = ""
    rules_dir: Optional[str] = None
    pretty: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Defaults overridden by STACK_ANALYSER_* variables."""
        environ = os.environ if environ is None else environ
        settings = cls()
        if f"{ENV_PREFIX}EXCLUDE" in environ:
            settings.exclude_patterns = _env_list(environ[f"{ENV_PREFIX}EXCLUDE"])
        if f"{ENV_PREFIX}FILTER_RULES" in environ:
            settings.filter_rules = _env_list(environ[f"{ENV_PREFIX}FILTER_RULES"])
        if f"{ENV_PREFIX}INCLUDE_TRANSITIVE" in environ:
            settings.include_transitive = _env_bool(environ[f"{ENV_PREFIX}INCLUDE_TRANSITIVE"])
        if f"{ENV_PREFIX}USE_LOCK_FILES" in environ:
            settings.use_lock_files = _env_bool(environ[f"{ENV_PREFIX}USE_LOCK_FILES"])
        if f"{ENV_PREFIX}DEFAULT_EXCLUDES" in environ:
            settings.default_excludes = _env_bool(environ[f"{ENV_PREFIX}DEFAULT_EXCLUDES"])
        if f"{ENV_PREFIX}PRETTY" in environ:
            settings.pretty = _env_bool(environ[f"{ENV_PREFIX}PRETTY"])
        if f"{ENV_PREFIX}ROOT_ID" in environ:
            settings.root_id = environ[f"{ENV_PREFIX}ROOT_ID"].strip()
        if f"{ENV_PREFIX}RULES_DIR" in environ:
            settings.rules_dir = environ[f"{ENV_PREFIX}RULES_DIR"]
        level = environ.get(f"{ENV_PREFIX}LOG_LEVEL", "").upper()
        if level:
            if level not in LOG_LEVELS:
                raise ConfigurationError(f"{ENV_PREFIX}LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
            settings.log_level = level
        return settings


@dataclass(frozen=True)
class ConfigTech:
    tech: str
    reason: str = "added by configuration"


@dataclass
class ScanConfig:
    """Contents of .stack-analyser.yml at the scan root."""
    properties: Dict[str, Any] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)
    techs: List[ConfigTech] = field(default_factory=list)
    root_id: str = ""


_SCAN_CONFIG_KEYS = {"properties", "exclude", "techs", "root_id"}


def parse_scan_config(data: Any, source: str = SCAN_CONFIG_FILENAME) -> ScanConfig:
    if data is None:
        return ScanConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: expected a mapping")
    unknown = set(data) - _SCAN_CONFIG_KEYS
    if unknown:
        raise ConfigurationError(f"{source}: unknown keys {', '.join(sorted(unknown))}")

    properties = data.get("properties") or {}
    if not isinstance(properties, dict):
        raise ConfigurationError(f"{source}: 'properties' must be a mapping")
    exclude = data.get("exclude") or []
    if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
        raise ConfigurationError(f"{source}: 'exclude' must be a list of glob patterns")

    techs: List[ConfigTech] = []
    for entry in data.get("techs") or []:
        if isinstance(entry, str):
            techs.append(ConfigTech(tech=entry))
        elif isinstance(entry, dict) and isinstance(entry.get("tech"), str):
            techs.append(ConfigTech(tech=entry["tech"], reason=entry.get("reason") or ConfigTech.reason))
        else:
            raise ConfigurationError(f"{source}: each 'techs' entry needs a 'tech' name")

    root_id = data.get("root_id") or ""
    if not isinstance(root_id, str):
        raise ConfigurationError(f"{source}: 'root_id' must be a string")
    return ScanConfig(properties=properties, exclude=exclude, techs=techs, root_id=root_id)


def load_scan_config(base_path: str) -> Optional[ScanConfig]:
    """Reads .stack-analyser.yml from the scan root; None when the file does not exist."""
    path = os.path.join(base_path, SCAN_CONFIG_FILENAME)
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path}: invalid YAML: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"{path}: cannot be read: {e}") from e
    config = parse_scan_config(data, path)
    logger.info(f"Loaded scan configuration from {path}")
    return config


def apply_scan_config(settings: Settings, config: Optional[ScanConfig]) -> Settings:
    """Project configuration only fills what flags and environment left unset; excludes add up."""
    if config is None:
        return settings
    return replace(
        settings,
        exclude_patterns=list(settings.exclude_patterns) + [p for p in config.exclude if p not in settings.exclude_patterns],
        root_id=settings.root_id or config.root_id,
    )
