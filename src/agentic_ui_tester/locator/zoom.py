"""Zoom-and-retry helpers: grow a coarse region, crop it, upscale it, map boxes back."""
import logging

from PIL import Image

from .. import config
from .types import BoundingBox

log = logging.getLogger(__name__)


def extend_region(
    region: BoundingBox,
    reference_size: tuple[int, int],
    whole_size: tuple[int, int],
    extension_ratio: float = None,
) -> BoundingBox:
    """Grow *region* so the crop keeps enough context around a small element.

    ratio = reference_width * extension_ratio / region_width. When ratio >= 1
    the region grows by that ratio around its centre, each side capped at half
    the screen and the result clamped to the image.
    """
    extension_ratio = config.ZOOM_IN_EXTENSION_RATIO if extension_ratio is None else extension_ratio
    whole_w, whole_h = whole_size
    ref_w = reference_size[0] or region.width

    region = _clamp(region, whole_w, whole_h)
    if region.width == 0 or region.height == 0:
        return region

    ratio = ref_w * extension_ratio / region.width
    if ratio < 1:
        return region

    new_w = min(int(region.width * ratio), whole_w // 2)
    new_h = min(int(region.height * ratio), whole_h // 2)
    new_w = max(new_w, region.width)
    new_h = max(new_h, region.height)
    x = region.x - (new_w - region.width) // 2
    y = region.y - (new_h - region.height) // 2
    extended = _clamp(BoundingBox.from_corners(x, y, x + new_w, y + new_h), whole_w, whole_h)
    log.debug(f"Extended zoom region {region} → {extended} (ratio {ratio:.2f})")
    return extended


def _clamp(box: BoundingBox, width: int, height: int) -> BoundingBox:
    """Clip to the image; right and bottom are exclusive, as in to_pixel_box."""
    x1 = min(max(box.x, 0), width)
    y1 = min(max(box.y, 0), height)
    x2 = min(max(box.right, x1), width)
    y2 = min(max(box.bottom, y1), height)
    return BoundingBox(x1, y1, x2 - x1, y2 - y1)


def zoom_scale_factor(region: BoundingBox, whole_size: tuple[int, int], max_factor: float = None) -> float:
    max_factor = config.ELEMENT_LOCATOR_ZOOM_SCALE_FACTOR if max_factor is None else max_factor
    if region.width == 0:
        return 1.0
    return max(1.0, min(whole_size[0] / region.width, max_factor))


def crop_and_upscale(image: Image.Image, region: BoundingBox, factor: float) -> Image.Image:
    crop = image.crop((region.x, region.y, region.right, region.bottom))
    if factor == 1:
        return crop
    return crop.resize((int(region.width * factor), int(region.height * factor)), Image.BICUBIC)


def rescale_box(box: BoundingBox, factor: float, region: BoundingBox) -> BoundingBox:
    """Map a box found in the upscaled crop back to full-screen coordinates."""
    return BoundingBox(
        int(round(box.x / factor)) + region.x,
        int(round(box.y / factor)) + region.y,
        int(round(box.width / factor)),
        int(round(box.height / factor)),
    )
