"""UI element location engine: re-exports the locator and its result types."""
from .engine import ElementLocator
from .types import (
    BoundingBox,
    CandidateSet,
    DetectionSignal,
    Found,
    FusionTier,
    LocationResult,
    NotFound,
    SignalKind,
    UiElement,
)

__all__ = [
    "BoundingBox",
    "CandidateSet",
    "DetectionSignal",
    "ElementLocator",
    "Found",
    "FusionTier",
    "LocationResult",
    "NotFound",
    "SignalKind",
    "UiElement",
]
