"""Deterministic fusion of the three detector families into one candidate set."""
import logging

from .geometry import dedupe, intersections
from .types import BoundingBox, CandidateSet, FusionTier

log = logging.getLogger(__name__)


def fuse(
    vision: list[BoundingBox],
    feature: list[BoundingBox],
    template: list[BoundingBox],
) -> CandidateSet:
    """Combine detector outputs, preferring regions that more detectors agree on.

    Tiers are tried strictly in order and the first non-empty one wins:
    1. all three families overlap,
    2. vision overlaps feature or template,
    3. union of every raw box,
    4. (no vision boxes) feature/template overlap, else their union,
    5. nothing.
    """
    if vision:
        if feature and template:
            best = intersections(intersections(vision, feature), intersections(vision, template))
            if best:
                return _result(best, FusionTier.ALL_SIGNALS_AGREE)

        partial = dedupe(intersections(vision, feature) + intersections(vision, template))
        if partial:
            return _result(partial, FusionTier.VISION_AND_ONE_ALGORITHM)

        return _result(dedupe(vision + feature + template), FusionTier.UNION_OF_SIGNALS)

    if feature or template:
        algorithmic = intersections(feature, template)
        if not algorithmic:
            algorithmic = dedupe(feature + template)
        return _result(algorithmic, FusionTier.ALGORITHMIC_ONLY)

    return _result([], FusionTier.NO_CANDIDATES)


def _result(boxes: list[BoundingBox], tier: FusionTier) -> CandidateSet:
    log.debug(f"Fusion tier {tier.value} ({tier.name}): {len(boxes)} candidates")
    return CandidateSet(tuple(boxes), tier)
