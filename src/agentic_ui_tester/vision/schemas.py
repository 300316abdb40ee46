"""Structured result types requested from the vision model.

Each type declares the JSON shape it expects (embedded verbatim into the
prompt) and a ``parse`` that validates the model's answer. Anything that does
not fit raises ModelResponseError, which callers treat as an empty vote.
"""
import json
import re
from dataclasses import dataclass

from ..errors import ModelResponseError

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", flags=re.DOTALL | re.IGNORECASE)


def extract_json(text: str):
    """Pull the first JSON object out of a model answer (bare, fenced, or surrounded by prose)."""
    text = (text or "").strip()
    if not text:
        raise ModelResponseError("Empty model response")

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ModelResponseError(f"No JSON object in model response: {text[:200]}")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"Malformed JSON in model response: {e}") from e


def _require_dict(payload, type_name: str) -> dict:
    if not isinstance(payload, dict):
        raise ModelResponseError(f"{type_name}: expected a JSON object, got {type(payload).__name__}")
    return payload


@dataclass(frozen=True)
class RawBox:
    """Corner coordinates exactly as the model reported them."""
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class BoundingBoxesResult:
    boxes: tuple[RawBox, ...]

    DESCRIPTION = "all bounding boxes of the target element visible in the screenshot"
    JSON_SCHEMA = (
        '{"boundingBoxes": [{"x1": <int>, "y1": <int>, "x2": <int>, "y2": <int>}, ...]}'
    )

    @classmethod
    def parse(cls, text: str) -> "BoundingBoxesResult":
        payload = _require_dict(extract_json(text), cls.__name__)
        raw_boxes = payload.get("boundingBoxes", payload.get("bounding_boxes"))
        if raw_boxes is None:
            raise ModelResponseError(f"{cls.__name__}: missing 'boundingBoxes'")
        if not isinstance(raw_boxes, list):
            raise ModelResponseError(f"{cls.__name__}: 'boundingBoxes' must be a list")

        boxes = []
        for item in raw_boxes:
            if isinstance(item, dict):
                try:
                    coords = [item[k] for k in ("x1", "y1", "x2", "y2")]
                except KeyError as e:
                    raise ModelResponseError(f"{cls.__name__}: box missing {e}") from e
            elif isinstance(item, (list, tuple)) and len(item) == 4:
                coords = list(item)
            else:
                raise ModelResponseError(f"{cls.__name__}: unsupported box entry {item!r}")
            try:
                boxes.append(RawBox(*(float(c) for c in coords)))
            except (TypeError, ValueError) as e:
                raise ModelResponseError(f"{cls.__name__}: non-numeric coordinate in {item!r}") from e
        return cls(tuple(boxes))


@dataclass(frozen=True)
class ElementSelectionResult:
    success: bool
    bounding_box_id: str
    message: str = ""

    DESCRIPTION = "the ID of the bounding box which best matches the target element"
    JSON_SCHEMA = (
        '{"success": <true|false>, "boundingBoxId": "<ID or empty>", "message": "<short reason>"}'
    )

    @classmethod
    def parse(cls, text: str) -> "ElementSelectionResult":
        payload = _require_dict(extract_json(text), cls.__name__)
        success = payload.get("success")
        if isinstance(success, str):
            success = success.strip().lower() in ("true", "yes")
        if not isinstance(success, bool):
            raise ModelResponseError(f"{cls.__name__}: 'success' must be a boolean")
        box_id = payload.get("boundingBoxId", payload.get("bounding_box_id", ""))
        if box_id is None:
            box_id = ""
        if not isinstance(box_id, str):
            raise ModelResponseError(f"{cls.__name__}: 'boundingBoxId' must be a string")
        return cls(success=success, bounding_box_id=box_id.strip(), message=str(payload.get("message", "")))
