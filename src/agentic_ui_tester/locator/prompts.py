"""Prompt text for the grounding and selection model calls."""
from .types import UiElement

GROUNDING_SYSTEM_PROMPT = (
    "You are a precise GUI grounding assistant used by an automated UI test agent. "
    "You receive a screenshot and a description of one target UI element. "
    "Find every element in the screenshot that visually matches the description, "
    "including near-duplicates, and return a tight bounding box for each of them. "
    "Use the anchor details to disambiguate, but do not skip a plausible candidate "
    "only because its surroundings differ slightly. If nothing matches, return an empty list."
)

SELECTION_SYSTEM_PROMPT = (
    "You are a careful GUI verification assistant used by an automated UI test agent. "
    "The screenshot contains several candidate regions, each outlined in green and tagged "
    "with a short ID. Decide which single candidate is the described target element, taking "
    "its own appearance and its surroundings into account. If none of them is the target, "
    "set success to false."
)


def _coordinate_hint(coordinate_scale: int, width: int, height: int) -> str:
    if coordinate_scale > 0:
        return (
            f"Report coordinates normalized to the range 0..{coordinate_scale} on both axes, "
            f"where (0, 0) is the top-left and ({coordinate_scale}, {coordinate_scale}) the bottom-right corner."
        )
    return f"Report absolute pixel coordinates in the {width}x{height} screenshot, (0, 0) being the top-left corner."


def target_element_text(element: UiElement, test_data: str | None, data_label: str = "specific data") -> str:
    text = f'The target element: "{element.name}. {element.description} {element.location_details}".'
    if test_data and test_data.strip() and element.is_data_dependent:
        attributes = ", ".join(a for a in element.data_dependent_attributes if a and a.strip())
        text += (
            "\n\nThis element is data-dependent."
            f"\nThe element attributes which depend on {data_label}: [{attributes}]."
            f'\nAvailable {data_label} for this element: "{test_data}"'
        )
    return text


def grounding_prompt(element: UiElement, test_data: str | None, width: int, height: int,
                     coordinate_scale: int) -> str:
    return (
        f"{target_element_text(element, test_data)}\n\n"
        f"{_coordinate_hint(coordinate_scale, width, height)} "
        "Each box is given by its top-left (x1, y1) and bottom-right (x2, y2) corners."
    )


def selection_prompt(element: UiElement, test_data: str | None, labels: list[str]) -> str:
    return (
        f"{target_element_text(element, test_data, data_label='the test data')}\n\n"
        f"Bounding box IDs: {', '.join(labels)}."
    )
