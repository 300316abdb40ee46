"""Vision-model grounding: several independent votes for the element's boxes, clustered."""
import asyncio
import logging
import math

from PIL import Image

from .. import config, debug, vision
from ..capture.screen import image_to_png
from ..errors import ModelError
from ..vision.schemas import BoundingBoxesResult, RawBox
from . import prompts
from .concurrency import InterruptionScope
from .geometry import cluster_boxes, dedupe
from .types import BoundingBox, UiElement

log = logging.getLogger(__name__)


def downscale_ratio(width: int, height: int,
                    longest_allowed: int = None, max_megapixels: float = None) -> float:
    """Factor (<= 1) that brings an image within the model's size limits."""
    longest_allowed = longest_allowed or config.BBOX_SCREENSHOT_LONGEST_ALLOWED_DIMENSION_PIXELS
    max_megapixels = max_megapixels or config.BBOX_SCREENSHOT_MAX_SIZE_MEGAPIXELS
    if width <= 0 or height <= 0:
        return 1.0
    by_side = longest_allowed / max(width, height)
    by_area = math.sqrt(max_megapixels * 1_000_000 / (width * height))
    return min(1.0, by_side, by_area)


def prepare_for_model(image: Image.Image) -> tuple[float, bytes, tuple[int, int]]:
    """Downscale to the model limits and encode as PNG. Returns (ratio, png, sent size)."""
    ratio = downscale_ratio(image.width, image.height)
    sent = image
    if ratio < 1:
        sent = image.resize((int(image.width * ratio), int(image.height * ratio)), Image.LANCZOS)
        log.debug(f"Downscaled screenshot {image.width}x{image.height} → {sent.width}x{sent.height}")
    return ratio, image_to_png(sent.convert("RGB")), sent.size


def to_pixel_box(raw: RawBox, width: int, height: int, coordinate_scale: int) -> BoundingBox | None:
    """Convert model coordinates to a pixel box inside a width x height image."""
    coords = [raw.x1, raw.y1, raw.x2, raw.y2]
    if coordinate_scale > 0:
        coords = [
            c / coordinate_scale * (width if i % 2 == 0 else height)
            for i, c in enumerate(coords)
        ]
    x1, y1, x2, y2 = coords
    x1, x2 = (min(max(v, 0), width) for v in (x1, x2))
    y1, y2 = (min(max(v, 0), height) for v in (y1, y2))
    box = BoundingBox.from_corners(round(x1), round(y1), round(x2), round(y2))
    return None if box.is_empty() else box


class VisionGroundingDetector:
    """Asks the model for every occurrence of an element, vote_count times in parallel."""

    def __init__(self, model: str = None, coordinate_scale: int = None, min_iou: float = None):
        self.model = model or config.GROUNDING_MODEL
        self.coordinate_scale = config.BBOX_COORDINATE_SCALE if coordinate_scale is None else coordinate_scale
        self.min_iou = config.BBOX_CLUSTERING_MIN_IOU if min_iou is None else min_iou

    async def detect(
        self,
        element: UiElement,
        image: Image.Image,
        test_data: str | None = None,
        vote_count: int = None,
        scope: InterruptionScope = None,
    ) -> list[BoundingBox]:
        vote_count = vote_count or config.BBOX_IDENTIFICATION_VOTES
        owns_scope = scope is None
        scope = scope or InterruptionScope()

        if image.width == 0 or image.height == 0:
            log.warning(f"Empty {image.width}x{image.height} image for '{element.name}', skipping grounding")
            return []

        ratio, png, (sent_w, sent_h) = await asyncio.get_running_loop().run_in_executor(
            None, prepare_for_model, image)
        prompt = prompts.grounding_prompt(element, test_data, sent_w, sent_h, self.coordinate_scale)

        votes = await scope.gather(
            (self._vote(prompt, png, sent_w, sent_h, i) for i in range(vote_count)),
            "Bounding box identification",
        )

        boxes = []
        for vote in votes:
            for box in vote:
                if ratio < 1:
                    box = BoundingBox(int(box.x / ratio), int(box.y / ratio),
                                      int(box.width / ratio), int(box.height / ratio))
                boxes.append(box)

        if vote_count > 1 and boxes:
            min_samples = 3 if vote_count > 2 else 2
            result = cluster_boxes(boxes, self.min_iou, min_samples)
        else:
            result = dedupe(boxes)

        debug.log_locator(element.name, "Vision grounding",
                          f"{len(votes)}/{vote_count} votes, {len(boxes)} raw boxes → {len(result)} candidates")
        log.info(f"Vision grounding for '{element.name}': {len(boxes)} raw boxes → {len(result)} candidates")

        if owns_scope:
            scope.raise_if_interrupted()
        return result

    async def _vote(self, prompt: str, png: bytes, width: int, height: int, index: int) -> list[BoundingBox]:
        try:
            result = await vision.generate_object(
                prompt, [png], BoundingBoxesResult,
                model=self.model, system=prompts.GROUNDING_SYSTEM_PROMPT, tag=f"bbox-{index}",
            )
        except ModelError as e:
            log.warning(f"Bounding box vote {index} failed: {e}")
            return []
        boxes = [to_pixel_box(raw, width, height, self.coordinate_scale) for raw in result.boxes]
        return [b for b in boxes if b is not None]
