"""Desktop input via xdotool: mouse clicks in logical screen coordinates."""
import subprocess
import os
import logging
from .. import config

log = logging.getLogger(__name__)


def _run_xdotool(*args: str, timeout: int = 5) -> tuple[bool, str]:
    """Run an xdotool command, return (success, output)."""
    env = {**os.environ, "DISPLAY": config.DISPLAY}
    try:
        result = subprocess.run(
            ["xdotool", *args],
            capture_output=True, text=True, timeout=timeout, env=env
        )
        if result.returncode != 0:
            log.warning(f"xdotool {' '.join(args)} failed: {result.stderr.strip()}")
        return result.returncode == 0, result.stdout.strip()
    except subprocess.TimeoutExpired:
        log.warning(f"xdotool {' '.join(args)} timed out after {timeout}s")
        return False, "timeout"
    except FileNotFoundError:
        log.error("xdotool not found; install it to click elements")
        return False, "xdotool not found"


def mouse_click_at(x: int, y: int, button: int = 1) -> bool:
    """Move and click: 1=left, 2=middle, 3=right."""
    ok, _ = _run_xdotool("mousemove", str(x), str(y), "click", str(button))
    return ok
