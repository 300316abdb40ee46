"""X display access: cached Xlib connections and UI scale discovery."""
import logging
import os

from .. import config

log = logging.getLogger(__name__)

BASE_DPI = 96.0

# ─── State ───────────────────────────────────────────────────────

_xlib_cache: dict[str, object] = {}     # display_str -> Xlib.display.Display


# ─── Public API ──────────────────────────────────────────────────


def get_xlib_display(display_str: str | None = None):
    """Return a cached Xlib connection for *display_str*."""
    import Xlib.display

    display_str = display_str or config.DISPLAY
    cached = _xlib_cache.get(display_str)
    if cached is not None:
        return cached

    conn = Xlib.display.Display(display_str)
    _xlib_cache[display_str] = conn
    return conn


def release_xlib_display(display_str: str) -> None:
    """Close and remove the cached Xlib connection for *display_str*."""
    conn = _xlib_cache.pop(display_str, None)
    if conn is not None:
        try:
            conn.close()
        except Exception as e:
            log.debug(f"Closing Xlib connection {display_str} failed: {e}")


def cleanup_all() -> None:
    """Close every cached connection (called on daemon shutdown)."""
    for display_str in list(_xlib_cache):
        release_xlib_display(display_str)


def parse_xft_dpi(resources: str) -> float | None:
    """Extract Xft.dpi from an X resource database string."""
    for line in resources.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "Xft.dpi":
            try:
                return float(value.strip())
            except ValueError:
                return None
    return None


def _xft_dpi(display_str: str | None) -> float | None:
    import Xlib.X

    conn = get_xlib_display(display_str)
    root = conn.screen().root
    prop = root.get_full_property(conn.intern_atom("RESOURCE_MANAGER"), Xlib.X.AnyPropertyType)
    if prop is None:
        return None
    value = prop.value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return parse_xft_dpi(value)


def get_display_scale(display_str: str | None = None) -> tuple[float, float]:
    """Physical pixels per logical pixel, as (scale_x, scale_y).

    Order: UT_UI_SCALE, the X server's Xft.dpi, GDK_SCALE / QT_SCALE_FACTOR, 1.0.
    """
    if config.UI_SCALE:
        scale = float(config.UI_SCALE)
        return scale, scale

    try:
        dpi = _xft_dpi(display_str)
    except Exception as e:
        log.debug(f"Could not read Xft.dpi from {display_str or config.DISPLAY}: {e}")
        dpi = None
    if dpi:
        scale = dpi / BASE_DPI
        return scale, scale

    for var in ("GDK_SCALE", "QT_SCALE_FACTOR"):
        raw = os.environ.get(var)
        if raw:
            try:
                scale = float(raw)
                return scale, scale
            except ValueError:
                log.warning(f"Ignoring non-numeric {var}={raw!r}")
    return 1.0, 1.0
