"""Data types for element location."""
from dataclasses import dataclass, field, replace
from enum import Enum


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned integer rectangle, physical screen pixels unless stated otherwise."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Bounding box dimensions must be non-negative, got {self.width}x{self.height}")

    @classmethod
    def from_corners(cls, x1: int, y1: int, x2: int, y2: int) -> "BoundingBox":
        left, right = sorted((int(x1), int(x2)))
        top, bottom = sorted((int(y1), int(y2)))
        return cls(left, top, right - left, bottom - top)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def center(self) -> tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def intersection(self, other: "BoundingBox") -> "BoundingBox | None":
        """Overlapping rectangle, or None when the boxes do not overlap with positive area."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return BoundingBox(left, top, right - left, bottom - top)

    def intersects(self, other: "BoundingBox") -> bool:
        return self.intersection(other) is not None

    def union(self, other: "BoundingBox") -> "BoundingBox":
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        return BoundingBox(left, top, max(self.right, other.right) - left, max(self.bottom, other.bottom) - top)

    def translated(self, dx: int, dy: int) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)

    def scaled(self, factor: float) -> "BoundingBox":
        return BoundingBox(int(self.x * factor), int(self.y * factor),
                           int(self.width * factor), int(self.height * factor))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class UiElement:
    """Stored reference record of a UI element. Never modified by the locator."""
    id: str
    name: str
    description: str
    location_details: str = ""
    page_summary: str = ""
    screenshot: bytes | None = field(default=None, repr=False)
    zoom_in_required: bool = False
    data_dependent_attributes: tuple[str, ...] = ()

    @property
    def is_data_dependent(self) -> bool:
        return any(attr and attr.strip() for attr in self.data_dependent_attributes)

    def with_changes(self, **changes) -> "UiElement":
        """Return a refined copy. Persist it with ElementStore.replace_element()."""
        return replace(self, **changes)


class SignalKind(str, Enum):
    VISION_GROUNDING = "vision_grounding"
    FEATURE_MATCH = "feature_match"
    TEMPLATE_MATCH = "template_match"


@dataclass(frozen=True)
class DetectionSignal:
    """Raw output of one detector family."""
    kind: SignalKind
    boxes: tuple[BoundingBox, ...] = ()
    scores: tuple[float, ...] | None = None

    def is_empty(self) -> bool:
        return not self.boxes


class FusionTier(int, Enum):
    """Which fusion rule produced a candidate set. Lower is stronger agreement."""
    ALL_SIGNALS_AGREE = 1
    VISION_AND_ONE_ALGORITHM = 2
    UNION_OF_SIGNALS = 3
    ALGORITHMIC_ONLY = 4
    NO_CANDIDATES = 5


@dataclass(frozen=True)
class CandidateSet:
    boxes: tuple[BoundingBox, ...]
    tier: FusionTier

    def __len__(self) -> int:
        return len(self.boxes)

    def is_empty(self) -> bool:
        return not self.boxes


@dataclass(frozen=True)
class Found:
    box: BoundingBox
    element: UiElement
    source: str = ""


@dataclass(frozen=True)
class NotFound:
    algorithmic_attempted: bool
    visual_attempted: bool
    element: UiElement | None = None


LocationResult = Found | NotFound
