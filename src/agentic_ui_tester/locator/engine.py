"""Element locator: finds a stored UI element on the current screen.

One ``locate`` call runs the vision grounding votes and (when the element
allows it) the two algorithmic matchers concurrently, fuses their boxes, and
resolves any remaining ambiguity with majority-vote selection. Elements
flagged ``zoom_in_required`` are first located coarsely on the full screen,
then searched again in an upscaled crop around the coarse hits.

Interruptions (task cancellation or UserInterruptedError) never abort the
attempt halfway: whatever the detectors produced so far is fused without
further model calls, then the interruption is re-raised to the caller.
"""
import asyncio
import logging
from typing import Callable

from PIL import Image

from .. import config, debug, screenshots
from ..capture.screen import capture_screen_image, png_to_image
from ..errors import InvalidElementError
from .concurrency import InterruptionScope
from .fusion import fuse
from .geometry import common_area
from .grounding import VisionGroundingDetector
from .matching import AlgorithmicMatcher
from .quorum import QuorumSelector
from .types import BoundingBox, DetectionSignal, Found, LocationResult, NotFound, SignalKind, UiElement
from .zoom import crop_and_upscale, extend_region, rescale_box, zoom_scale_factor

log = logging.getLogger(__name__)


class ElementLocator:
    def __init__(
        self,
        grounding: VisionGroundingDetector = None,
        matcher: AlgorithmicMatcher = None,
        selector: QuorumSelector = None,
        capture: Callable[[], Image.Image] = None,
        algorithmic_search_enabled: bool = None,
        zoom_algorithmic_prepass: bool = None,
        grounding_votes: int = None,
        selection_votes: int = None,
    ):
        self.grounding = grounding or VisionGroundingDetector()
        self.matcher = matcher or AlgorithmicMatcher()
        self.selector = selector or QuorumSelector()
        self.capture = capture or capture_screen_image
        self.algorithmic_search_enabled = (config.ALGORITHMIC_SEARCH_ENABLED
                                           if algorithmic_search_enabled is None else algorithmic_search_enabled)
        self.zoom_algorithmic_prepass = (config.ZOOM_ALGORITHMIC_PREPASS
                                         if zoom_algorithmic_prepass is None else zoom_algorithmic_prepass)
        self.grounding_votes = grounding_votes or config.BBOX_IDENTIFICATION_VOTES
        self.selection_votes = selection_votes or config.VALIDATION_MODEL_VOTES

    async def locate(
        self,
        element: UiElement,
        test_data: str | None = None,
        screenshot: Image.Image = None,
    ) -> LocationResult:
        """Return Found(box) in physical screenshot pixels, or NotFound.

        Raises InvalidElementError for a missing element or blank description.
        """
        if element is None:
            raise InvalidElementError("Element must not be None")
        if not element.description or not element.description.strip():
            raise InvalidElementError(f"Element '{element.name}' has no description")

        if screenshot is None:
            screenshot = await asyncio.get_running_loop().run_in_executor(None, self.capture)

        scope = InterruptionScope()
        debug.log_locator(element.name, "Locating",
                          f"zoom={element.zoom_in_required}, data_dependent={element.is_data_dependent}")
        if element.zoom_in_required:
            result = await self._locate_zoomed(element, test_data, screenshot, scope)
        else:
            result = await self._locate_direct(element, test_data, screenshot,
                                               self._algorithmic_allowed(element), scope)

        debug.log_locator(element.name, "Result", repr(result.box) if isinstance(result, Found) else repr(result))
        scope.raise_if_interrupted()
        return result

    def _algorithmic_allowed(self, element: UiElement) -> bool:
        return (self.algorithmic_search_enabled
                and element.screenshot is not None
                and not element.is_data_dependent)

    async def _detect(
        self,
        element: UiElement,
        test_data: str | None,
        image: Image.Image,
        use_algorithmic: bool,
        scope: InterruptionScope,
    ) -> tuple[DetectionSignal, DetectionSignal, DetectionSignal]:
        loop = asyncio.get_running_loop()

        async def run_vision():
            boxes = await self.grounding.detect(element, image, test_data, self.grounding_votes, scope=scope)
            return "vision", DetectionSignal(SignalKind.VISION_GROUNDING, tuple(boxes))

        async def run_algorithmic():
            reference = await loop.run_in_executor(None, png_to_image, element.screenshot)
            return "algorithmic", await self.matcher.detect(image, reference, scope=scope)

        jobs = [run_vision()]
        if use_algorithmic:
            jobs.append(run_algorithmic())
        outcomes = dict(await scope.gather(jobs, f"Detection of '{element.name}'"))

        vision_signal = outcomes.get("vision", DetectionSignal(SignalKind.VISION_GROUNDING))
        feature_signal, template_signal = outcomes.get("algorithmic", (
            DetectionSignal(SignalKind.FEATURE_MATCH), DetectionSignal(SignalKind.TEMPLATE_MATCH)))
        screenshots.save_boxes(
            image,
            {"blue": list(vision_signal.boxes), "red": list(feature_signal.boxes),
             "orange": list(template_signal.boxes)},
            f"detections_{element.name}",
        )
        return vision_signal, feature_signal, template_signal

    async def _locate_direct(
        self,
        element: UiElement,
        test_data: str | None,
        image: Image.Image,
        use_algorithmic: bool,
        scope: InterruptionScope,
    ) -> LocationResult:
        vision_signal, feature_signal, template_signal = await self._detect(
            element, test_data, image, use_algorithmic, scope)
        algorithmic_attempted = not (feature_signal.is_empty() and template_signal.is_empty())
        visual_attempted = not vision_signal.is_empty()

        candidates = fuse(list(vision_signal.boxes), list(feature_signal.boxes), list(template_signal.boxes))
        debug.log_locator(element.name, f"Fusion tier {candidates.tier.value}", f"{len(candidates)} candidates")

        if candidates.is_empty():
            log.info(f"No candidates for '{element.name}' (vision={visual_attempted}, algorithmic={algorithmic_attempted})")
            return NotFound(algorithmic_attempted, visual_attempted, element)
        if len(candidates) == 1:
            return Found(candidates.boxes[0], element, source=f"fusion:{candidates.tier.name.lower()}")
        if scope.interrupted:
            log.info(f"Interrupted before selection among {len(candidates)} candidates for '{element.name}'")
            return NotFound(algorithmic_attempted, visual_attempted, element)

        return await self.selector.select(
            element, test_data, candidates, image, self.selection_votes,
            algorithmic_attempted=algorithmic_attempted,
            visual_attempted=visual_attempted,
            scope=scope,
        )

    async def _coarse_candidates(
        self,
        element: UiElement,
        test_data: str | None,
        image: Image.Image,
        scope: InterruptionScope,
    ) -> list[BoundingBox]:
        if self.zoom_algorithmic_prepass and self._algorithmic_allowed(element):
            vision_signal, feature_signal, template_signal = await self._detect(
                element, test_data, image, True, scope)
            return list(fuse(list(vision_signal.boxes), list(feature_signal.boxes),
                             list(template_signal.boxes)).boxes)
        return await self.grounding.detect(element, image, test_data, self.grounding_votes, scope=scope)

    async def _locate_zoomed(
        self,
        element: UiElement,
        test_data: str | None,
        image: Image.Image,
        scope: InterruptionScope,
    ) -> LocationResult:
        coarse = await self._coarse_candidates(element, test_data, image, scope)
        if not coarse:
            log.info(f"Coarse pass found nothing for '{element.name}'")
            return NotFound(False, False, element)
        if scope.interrupted:
            return NotFound(False, True, element)

        loop = asyncio.get_running_loop()
        reference_size = (0, 0)
        if element.screenshot is not None:
            reference_size = (await loop.run_in_executor(None, png_to_image, element.screenshot)).size

        region = extend_region(common_area(coarse), reference_size, image.size)
        if region.is_empty():
            log.warning(f"Zoom region for '{element.name}' is empty, keeping the coarse result")
            if len(coarse) == 1:
                return Found(coarse[0], element, source="zoom:coarse")
            return NotFound(False, True, element)

        factor = zoom_scale_factor(region, image.size)
        zoomed = await loop.run_in_executor(None, crop_and_upscale, image, region, factor)
        debug.log("ZOOM", f"[{element.name}] region {region}, factor {factor:.2f}, crop {zoomed.width}x{zoomed.height}")
        screenshots.save_debug_image(zoomed, f"zoom_{element.name}")

        result = await self._locate_direct(element, test_data, zoomed, False, scope)
        if isinstance(result, Found):
            return Found(rescale_box(result.box, factor, region), element, source=f"zoom:{result.source}")
        return result
