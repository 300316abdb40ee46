"""Save annotated locator screenshots to disk when debug mode is on."""
import logging
import re
from datetime import datetime

from PIL import Image, ImageDraw

from . import config

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def save_debug_image(image: Image.Image, name: str) -> str | None:
    """Write *image* as a timestamped PNG under SCREENSHOTS_DIR. Returns the file name."""
    if not config.DEBUG_MODE:
        return None
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    file_name = f"{stamp}_{_UNSAFE.sub('_', name)[:80]}.png"
    path = config.SCREENSHOTS_DIR / file_name
    try:
        config.SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG")
    except OSError as e:
        log.error(f"Failed to save debug screenshot {file_name}: {e}")
        return None
    log.debug(f"Saved debug screenshot {file_name}")
    return file_name


def save_boxes(image: Image.Image, boxes_by_color: dict[str, list], name: str) -> str | None:
    """Outline each group of boxes in its color and save the result."""
    if not config.DEBUG_MODE:
        return None
    annotated = image.convert("RGB")
    draw = ImageDraw.Draw(annotated)
    for color, boxes in boxes_by_color.items():
        for box in boxes:
            draw.rectangle([box.x, box.y, box.right, box.bottom], outline=color, width=2)
    return save_debug_image(annotated, name)
