"""Merges the candidates detectors produce for one directory into a single node."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from models.payload import Payload

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A detector's node for the current directory, tagged with the detector's registration rank."""
    detector: str
    rank: int
    node: Payload


def in_registration_order(candidates: List[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda c: c.rank)


class PayloadAssembler:
    """
    Named candidates of one directory become one node: techs are unioned in
    detector-registration order, languages summed, dependencies and reasons
    de-duplicated. Identity (name, path, id) comes from the first-registered
    candidate; `type` too, unless it left it empty.
    """

    @staticmethod
    def assemble(candidates: List[Candidate], existing_siblings: Optional[List[Payload]] = None) -> Payload:
        if not candidates:
            raise ValueError("assemble() needs at least one candidate")
        ordered = in_registration_order(candidates)
        merged = ordered[0].node
        for candidate in ordered[1:]:
            logger.debug(f"Merging '{candidate.detector}' candidate into '{merged.name}' at {merged.path}")
            merged.combine(candidate.node)

        for sibling in existing_siblings or []:
            if sibling is not merged and sibling.name == merged.name and sibling.path == merged.path:
                sibling.combine(merged)
                return sibling
        return merged

    @staticmethod
    def fold_virtual(target: Payload, candidates: List[Candidate]) -> None:
        """Virtual candidates tag the enclosing node instead of creating one."""
        for candidate in in_registration_order(candidates):
            target.combine(candidate.node)
