"""Rich debug logging with color-coded categories.

Enable: set UT_DEBUG=1 or pass --debug to the daemon.
Logs to both stderr (colored) and a rolling log file.

Categories & colors:
  🟦 BLUE    daemon lifecycle, config, startup
  🟩 GREEN   vision model input/output (prompts + responses)
  🟨 YELLOW  locator decisions (passes, fusion tiers, results)
  🟪 PURPLE  algorithmic matching (ORB features, templates)
  🩵 CYAN    quorum votes and zoom steps
  ⬜ WHITE   element store operations
  🟧 ORANGE  HTTP requests (MCP proxy ↔ daemon)
  🟥 RED     errors and warnings
"""
import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from . import config

# ANSI color codes
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

COLORS = {
    "DAEMON":  "\033[34m",       # Blue
    "VISION":  "\033[32m",       # Green
    "LOCATOR": "\033[33m",       # Yellow
    "MATCH":   "\033[35m",       # Purple/Magenta
    "QUORUM":  "\033[36m",       # Cyan
    "ZOOM":    "\033[36m",       # Cyan
    "STORE":   "\033[37m",       # White
    "HTTP":    "\033[38;5;208m", # Orange (256-color)
    "ERROR":   "\033[31m",       # Red
}

# Emoji prefixes for file logs (no ANSI)
EMOJI = {
    "DAEMON":  "🟦",
    "VISION":  "🟩",
    "LOCATOR": "🟨",
    "MATCH":   "🟪",
    "QUORUM":  "🩵",
    "ZOOM":    "🩵",
    "STORE":   "⬜",
    "HTTP":    "🟧",
    "ERROR":   "🟥",
}

_debug_enabled = False
_log_file = None
_log_path = None


def is_enabled() -> bool:
    return _debug_enabled


def init(enabled: bool = None, log_dir: Path = None):
    """Initialize debug logging. Call once at daemon startup."""
    global _debug_enabled, _log_file, _log_path

    if enabled is None:
        enabled = config.DEBUG_MODE

    _debug_enabled = enabled

    if not enabled:
        return

    log_dir = log_dir or config.DATA_DIR / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    _log_path = log_dir / "debug.log"

    # Rotate if over 10MB
    if _log_path.exists() and _log_path.stat().st_size > 10 * 1024 * 1024:
        rotated = log_dir / f"debug.{int(time.time())}.log"
        _log_path.rename(rotated)

    _log_file = open(_log_path, "a", buffering=1)  # line-buffered

    log("DAEMON", f"Debug logging enabled. Log file: {_log_path}")
    log("DAEMON", f"Tail with: tail -f {_log_path}")


def log(category: str, message: str, data: dict = None):
    """Log a debug message with category color coding."""
    if not _debug_enabled:
        return

    ts = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
    cat = category.upper()

    # Terminal (colored)
    color = COLORS.get(cat, RESET)
    prefix = f"{DIM}{ts}{RESET} {color}{BOLD}[{cat:8s}]{RESET} {color}"
    line = f"{prefix}{message}{RESET}"
    if data:
        data_str = json.dumps(data, indent=2, default=str)
        indented = "\n".join(f"  {color}{l}{RESET}" for l in data_str.split("\n"))
        line += f"\n{indented}"
    print(line, file=sys.stderr, flush=True)

    # File (emoji, no ANSI)
    emoji = EMOJI.get(cat, "  ")
    file_line = f"{ts} {emoji} [{cat:8s}] {message}"
    if data:
        file_line += f"\n{json.dumps(data, indent=2, default=str)}"
    if _log_file:
        _log_file.write(file_line + "\n")


def log_vision_request(prompt: str, num_images: int, image_sizes: list[int] = None, tag: str = None):
    """Log a vision model request."""
    sizes = [f"{s//1024}KB" for s in (image_sizes or [])]
    label = f"[{tag}] " if tag else ""
    log("VISION", f"{label}→ Sending {num_images} image{'s' if num_images != 1 else ''} ({', '.join(sizes) if sizes else 'no images'})")
    for i, line in enumerate(prompt.strip().split("\n")):
        prefix = "  Prompt: " if i == 0 else "          "
        log("VISION", f"{label}{prefix}{line}")


def log_vision_response(response: str, duration_ms: float, tag: str = None):
    """Log a vision model response."""
    label = f"[{tag}] " if tag else ""
    lines = response.strip().split("\n")
    for i, line in enumerate(lines):
        prefix = f"← Response ({duration_ms:.0f}ms): " if i == 0 else "  " + " " * 20
        log("VISION", f"{label}{prefix}{line}")


def log_locator(element_name: str, event: str, detail: str = ""):
    """Log a locator decision for one element."""
    log("LOCATOR", f"[{element_name}] {event}" + (f" — {detail}" if detail else ""))


def log_match(kind: str, count: int, detail: str = ""):
    log("MATCH", f"{kind}: {count} region{'s' if count != 1 else ''}" + (f" — {detail}" if detail else ""))


def log_quorum(labels: list[str], votes: dict[str, int], winner: str | None):
    log("QUORUM", f"Candidates {labels} → votes {votes} → winner {winner or 'none'}")


def log_http(method: str, path: str, status: int, duration_ms: float):
    """Log HTTP request to daemon."""
    log("HTTP", f"{method} {path} → {status} ({duration_ms:.0f}ms)")


def close():
    """Flush and close log file."""
    global _log_file
    if _log_file:
        _log_file.close()
        _log_file = None
