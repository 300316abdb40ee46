"""Screen capture via X11 and image encoding helpers."""
import io
import logging
import threading

import numpy as np
from PIL import Image

from .. import config
from ..display.manager import get_xlib_display

log = logging.getLogger(__name__)

# Xlib is not thread-safe; executor threads must serialize access per display.
_xlib_locks: dict[str, threading.Lock] = {}
_xlib_locks_mu = threading.Lock()


def _get_xlib_lock(display: str) -> threading.Lock:
    with _xlib_locks_mu:
        if display not in _xlib_locks:
            _xlib_locks[display] = threading.Lock()
        return _xlib_locks[display]


def _x11_capture(window) -> np.ndarray | None:
    """Capture an X11 window/root as numpy RGB array."""
    import Xlib.X
    geom = window.get_geometry()
    raw = window.get_image(0, 0, geom.width, geom.height, Xlib.X.ZPixmap, 0xffffffff)
    if geom.depth not in (24, 32):
        log.warning(f"Unsupported X11 color depth {geom.depth}")
        return None
    arr = np.frombuffer(raw.data, dtype=np.uint8).reshape(geom.height, geom.width, 4)
    # BGRA → RGB (fancy indexing already copies)
    return arr[:, :, [2, 1, 0]]


def capture_screen(display: str = None) -> np.ndarray | None:
    """Capture the full virtual desktop via X11, in physical pixels."""
    display = display or config.DISPLAY
    with _get_xlib_lock(display):
        try:
            xdisplay = get_xlib_display(display)
            return _x11_capture(xdisplay.screen().root)
        except Exception as e:
            log.error(f"Screen capture on {display} failed: {e}")
            return None


def capture_screen_image(display: str = None) -> Image.Image:
    """Capture the screen as a PIL image. Raises RuntimeError when capture fails."""
    frame = capture_screen(display)
    if frame is None:
        raise RuntimeError(f"Could not capture screen on display {display or config.DISPLAY}")
    return Image.fromarray(frame)


def image_to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def png_to_image(data: bytes) -> Image.Image:
    """Decode stored PNG/JPEG bytes into an RGB image."""
    with Image.open(io.BytesIO(data)) as img:
        return img.convert("RGB")
