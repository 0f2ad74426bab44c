"""Ordered registration of ecosystem detectors."""
import logging
from typing import Dict, List, Set, Type

logger = logging.getLogger(__name__)


class DetectorRegistry:
    """Registry for discovering and instantiating component detectors.

    Registration order is significant: it is the tie-break order used when
    several detectors' candidates for one directory are merged.
    """

    _detectors: Dict[str, Type] = {}
    _order: List[str] = []  # Preserve registration order

    @classmethod
    def register(cls, name: str):
        """Decorator to register a detector class.

        Args:
            name: Unique identifier for the detector (e.g., "nodejs", "docker")

        Example:
            @DetectorRegistry.register("nodejs")
            class NodejsDetector:
                name = "nodejs"

                def detect(self, files, current_path, relative_path, provider, deps) -> List[Payload]:
                    ...
        """
        def decorator(detector_class: Type):
            if name in cls._detectors:
                logger.warning(f"Detector '{name}' already registered, overwriting")
            else:
                cls._order.append(name)

            cls._detectors[name] = detector_class
            logger.debug(f"Registered detector: {name} -> {detector_class.__name__}")
            return detector_class
        return decorator

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get names of all registered detectors in registration order."""
        return cls._order.copy()

    @classmethod
    def get_detector_class(cls, name: str) -> Type:
        return cls._detectors.get(name)

    @classmethod
    def instantiate_all(cls, exclude: Set[str] = None) -> Dict[str, object]:
        """Instantiate registered detectors, keeping registration order.

        Args:
            exclude: Set of detector names to leave out

        Returns:
            Dictionary mapping detector name to detector instance
        """
        exclude = exclude or set()
        instances = {}

        for name in cls._order:
            if name in exclude:
                logger.info(f"Skipping excluded detector: {name}")
                continue
            instances[name] = cls._detectors[name]()
            logger.debug(f"Instantiated detector: {name}")

        return instances

    @classmethod
    def clear(cls):
        """Clear all registered detectors (useful for testing)."""
        cls._detectors.clear()
        cls._order.clear()
