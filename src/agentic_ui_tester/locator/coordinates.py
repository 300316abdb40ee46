"""Physical ↔ logical screen coordinate conversion."""
from dataclasses import dataclass

from .types import BoundingBox


@dataclass(frozen=True)
class CoordinateMapper:
    """Screenshots are in physical pixels; input actions take logical ones."""
    scale_x: float = 1.0
    scale_y: float = 1.0

    @classmethod
    def for_display(cls, display_str: str | None = None) -> "CoordinateMapper":
        from ..display.manager import get_display_scale
        return cls(*get_display_scale(display_str))

    @property
    def is_identity(self) -> bool:
        return self.scale_x == 1 and self.scale_y == 1

    def point_to_logical(self, x: int, y: int) -> tuple[int, int]:
        if self.is_identity:
            return x, y
        return round(x / self.scale_x), round(y / self.scale_y)

    def point_to_physical(self, x: int, y: int) -> tuple[int, int]:
        if self.is_identity:
            return x, y
        return round(x * self.scale_x), round(y * self.scale_y)

    def to_logical(self, box: BoundingBox) -> BoundingBox:
        if self.is_identity:
            return box
        return BoundingBox(round(box.x / self.scale_x), round(box.y / self.scale_y),
                           round(box.width / self.scale_x), round(box.height / self.scale_y))

    def to_physical(self, box: BoundingBox) -> BoundingBox:
        if self.is_identity:
            return box
        return BoundingBox(round(box.x * self.scale_x), round(box.y * self.scale_y),
                           round(box.width * self.scale_x), round(box.height * self.scale_y))
