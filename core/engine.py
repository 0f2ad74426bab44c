import os
import logging
from typing import Callable, Optional, Set

from core.detector_registry import DetectorRegistry
from core.matcher_index import MatcherIndex
from core.scanner import Scanner
from core.settings import Settings, apply_scan_config, load_scan_config
from models.payload import Payload
from rules.rules_loader import DEFAULT_TECHS_DIR, filter_rules, load_categories, load_rules


def build_index(settings: Settings) -> MatcherIndex:
    """Load categories and rules, apply the rule filter and compile the index.

    Raises ConfigurationError before any traversal starts.
    """
    categories = load_categories()
    rules = load_rules(settings.rules_dir or DEFAULT_TECHS_DIR, categories)
    rules = filter_rules(rules, settings.filter_rules)
    return MatcherIndex.compile(rules, categories)


class Engine:
    def __init__(self, settings: Optional[Settings] = None, exclude_detectors: Set[str] = None):
        """Initialize the engine with the rule index and the registered detectors.

        Args:
            settings: Scan settings; defaults when omitted
            exclude_detectors: Set of detector names to leave out (e.g., {'dotenv'})
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or Settings()
        self.index = build_index(self.settings)
        self.logger.info(f"Loaded {len(self.index.rules)} technology rules")
        if self.index.excluded:
            self.logger.info(f"Rules that can never match: {', '.join(self.index.excluded)}")

        self.detectors = DetectorRegistry.instantiate_all(exclude=exclude_detectors)
        self.logger.info(f"Initialized {len(self.detectors)} detectors")

    def analyse(self, path: str, cancel: Optional[Callable[[], bool]] = None) -> Payload:
        """Scan one source tree, honouring its .stack-analyser.yml when present."""
        base_path = os.path.abspath(path)
        scan_config = load_scan_config(base_path) if os.path.isdir(base_path) else None
        settings = apply_scan_config(self.settings, scan_config)
        scanner = Scanner(
            self.index,
            settings=settings,
            detectors=self.detectors,
            cancel=cancel,
            scan_config=scan_config,
        )
        return scanner.scan(base_path)
