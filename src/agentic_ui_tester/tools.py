"""Agent-facing element tools: resolve a description to an on-screen location, click it."""
import asyncio
import logging
from dataclasses import dataclass

from . import config
from .desktop import control
from .elements import store
from .errors import ElementLocationError, ElementLocationStatus, InvalidElementError
from .locator import ElementLocator, Found
from .locator.coordinates import CoordinateMapper
from .locator.types import BoundingBox

log = logging.getLogger(__name__)

_locator: ElementLocator | None = None


def _get_locator() -> ElementLocator:
    global _locator
    if _locator is None:
        _locator = ElementLocator()
    return _locator


@dataclass(frozen=True)
class ElementLocation:
    """Centre point and box of a located element, in logical screen coordinates."""
    x: int
    y: int
    box: BoundingBox
    element_id: str
    element_name: str
    source: str = ""

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "bounding_box": self.box.to_dict(),
            "element_id": self.element_id,
            "element_name": self.element_name,
            "source": self.source,
        }


async def locate_element_on_screen(
    description: str,
    test_data: str | None = None,
    locator: ElementLocator = None,
    mapper: CoordinateMapper = None,
) -> ElementLocation:
    """Find the stored element best matching *description* and locate it on screen.

    Raises InvalidElementError for a blank description and ElementLocationError
    (with a status) when no element could be resolved.
    """
    if not description or not description.strip():
        raise InvalidElementError("Element description must not be blank")
    locator = locator or _get_locator()

    retrieved = await store.retrieve_candidates(
        description, config.RETRIEVER_TOP_N, config.ELEMENT_RETRIEVAL_MIN_GENERAL_SCORE)
    matching = sorted(
        (r for r in retrieved if r.score >= config.ELEMENT_RETRIEVAL_MIN_TARGET_SCORE),
        key=lambda r: r.score, reverse=True,
    )

    if not matching:
        if retrieved:
            names = ", ".join(f"'{r.element.name}' ({r.score:.2f})" for r in retrieved)
            raise ElementLocationError(
                f"Found elements similar to '{description}' but none scored high enough: {names}",
                ElementLocationStatus.SIMILAR_ELEMENTS_IN_DB_BUT_SCORE_TOO_LOW,
            )
        raise ElementLocationError(
            f"No elements matching '{description}' were found in the element store",
            ElementLocationStatus.NO_ELEMENTS_FOUND_IN_DB,
        )

    element = matching[0].element
    log.info(f"Locating '{element.name}' (score {matching[0].score:.2f}) for description '{description}'")
    result = await locator.locate(element, test_data)

    if isinstance(result, Found):
        if mapper is None:
            mapper = await asyncio.get_running_loop().run_in_executor(None, CoordinateMapper.for_display)
        logical_box = mapper.to_logical(result.box)
        x, y = mapper.point_to_logical(*result.box.center)
        return ElementLocation(x, y, logical_box, element.id, element.name, result.source)

    if not result.algorithmic_attempted and not result.visual_attempted:
        raise ElementLocationError(
            f"'{element.name}' is not visible on the screen: neither vision grounding nor "
            f"algorithmic matching produced any candidate",
            ElementLocationStatus.ELEMENT_NOT_FOUND_ON_SCREEN_VISUAL_AND_ALGORITHMIC_FAILED,
        )
    produced = [name for name, attempted in (("vision grounding", result.visual_attempted),
                                             ("algorithmic matching", result.algorithmic_attempted)) if attempted]
    raise ElementLocationError(
        f"'{element.name}' could not be confirmed on the screen: candidates from "
        f"{' and '.join(produced)} were rejected during validation",
        ElementLocationStatus.ELEMENT_NOT_FOUND_ON_SCREEN_VALIDATION_FAILED,
    )


async def click_element(description: str, test_data: str | None = None, button: int = 1,
                        locator: ElementLocator = None) -> ElementLocation:
    """Locate the element and click its centre."""
    location = await locate_element_on_screen(description, test_data, locator=locator)
    ok = await asyncio.get_running_loop().run_in_executor(
        None, control.mouse_click_at, location.x, location.y, button)
    if not ok:
        raise RuntimeError(f"Click at ({location.x}, {location.y}) on '{location.element_name}' failed")
    log.info(f"Clicked '{location.element_name}' at ({location.x}, {location.y})")
    return location
