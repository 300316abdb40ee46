"""Configuration for agentic-ui-tester."""
from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()  # loads .env from project root (or cwd) if present


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


# Paths
DATA_DIR = Path(os.environ.get("UT_DATA_DIR", Path.home() / ".agentic-ui-tester"))
DB_PATH = DATA_DIR / "elements.db"
SCREENSHOTS_DIR = DATA_DIR / "screenshots"

# Display
DISPLAY = os.environ.get("DISPLAY", ":0")
# Explicit UI scale (physical px per logical px). Empty = detect from the X server.
UI_SCALE = os.environ.get("UT_UI_SCALE", "")

# Vision backend selection
VISION_BACKEND = os.environ.get("UT_VISION_BACKEND", "openrouter")  # ollama|vllm|openrouter|claude

# Ollama
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
OLLAMA_VISION_MODEL = os.environ.get("UT_OLLAMA_VISION_MODEL", "qwen2.5vl:7b")
OLLAMA_KEEP_ALIVE = os.environ.get("OLLAMA_KEEP_ALIVE", "10m")

# vLLM (Qwen-VL, UI-TARS, etc.)
VLLM_URL = os.environ.get("UT_VLLM_URL", "http://localhost:8000")
VLLM_MODEL = os.environ.get("UT_VLLM_MODEL", "Qwen/Qwen2.5-VL-7B-Instruct")

# OpenRouter
OPENROUTER_API_KEY = os.environ.get("OPENROUTER_API_KEY", "")
OPENROUTER_VISION_MODEL = os.environ.get("UT_OPENROUTER_VISION_MODEL", "google/gemini-2.5-flash")

# Claude
CLAUDE_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
CLAUDE_VISION_MODEL = os.environ.get("UT_CLAUDE_VISION_MODEL", "claude-sonnet-4-20250514")

# Per-role model overrides. Empty = the backend's default model.
GROUNDING_MODEL = os.environ.get("UT_GROUNDING_MODEL", "") or None
SELECTION_MODEL = os.environ.get("UT_SELECTION_MODEL", "") or None
MODEL_MAX_TOKENS = int(os.environ.get("UT_MODEL_MAX_TOKENS", "1024"))
MODEL_TEMPERATURE = float(os.environ.get("UT_MODEL_TEMPERATURE", "0.1"))
MODEL_TIMEOUT = float(os.environ.get("UT_MODEL_TIMEOUT", "120"))

# Element locator
BBOX_IDENTIFICATION_VOTES = int(os.environ.get("UT_BBOX_IDENTIFICATION_VOTES", "5"))
VALIDATION_MODEL_VOTES = int(os.environ.get("UT_VALIDATION_MODEL_VOTES", "3"))
BBOX_CLUSTERING_MIN_IOU = float(os.environ.get("UT_BBOX_CLUSTERING_MIN_IOU", "0.7"))
ELEMENT_LOCATOR_ZOOM_SCALE_FACTOR = float(os.environ.get("UT_ZOOM_SCALE_FACTOR", "2"))
ZOOM_IN_EXTENSION_RATIO = float(os.environ.get("UT_ZOOM_IN_EXTENSION_RATIO", "15.0"))
ELEMENT_LOCATOR_TOP_VISUAL_MATCHES = int(os.environ.get("UT_TOP_VISUAL_MATCHES", "3"))
ELEMENT_LOCATOR_VISUAL_SIMILARITY_THRESHOLD = float(os.environ.get("UT_VISUAL_SIMILARITY_THRESHOLD", "0.8"))
FOUND_MATCHES_DIMENSION_DEVIATION_RATIO = float(os.environ.get("UT_DIMENSION_DEVIATION_RATIO", "0.3"))
BBOX_SCREENSHOT_LONGEST_ALLOWED_DIMENSION_PIXELS = int(os.environ.get("UT_BBOX_LONGEST_DIMENSION", "1568"))
BBOX_SCREENSHOT_MAX_SIZE_MEGAPIXELS = float(os.environ.get("UT_BBOX_MAX_MEGAPIXELS", "1.15"))
# Range of normalized model coordinates (0..N). 0 = model returns absolute pixels.
BBOX_COORDINATE_SCALE = int(os.environ.get("UT_BBOX_COORDINATE_SCALE", "1000"))
ALGORITHMIC_SEARCH_ENABLED = _flag("UT_ALGORITHMIC_SEARCH_ENABLED", "1")
# Fuse a full-resolution algorithmic pass into the coarse zoom stage.
ZOOM_ALGORITHMIC_PREPASS = _flag("UT_ZOOM_ALGORITHMIC_PREPASS", "0")
QUORUM_LABEL_LENGTH = 4
QUORUM_LABEL_MAX_ATTEMPTS = 100

# Element retrieval
RETRIEVER_TOP_N = int(os.environ.get("UT_RETRIEVER_TOP_N", "5"))
ELEMENT_RETRIEVAL_MIN_TARGET_SCORE = float(os.environ.get("UT_MIN_TARGET_SCORE", "0.85"))
ELEMENT_RETRIEVAL_MIN_GENERAL_SCORE = float(os.environ.get("UT_MIN_GENERAL_SCORE", "0.4"))
EMBEDDING_MODEL = os.environ.get("UT_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
EMBEDDING_DEVICE = os.environ.get("UT_EMBEDDING_DEVICE", "cpu")

# Daemon
DAEMON_HOST = os.environ.get("UT_DAEMON_HOST", "127.0.0.1")
DAEMON_PORT = int(os.environ.get("UT_DAEMON_PORT", "18791"))

# Debug artifacts
DEBUG_MODE = _flag("UT_DEBUG")


def ensure_data_dir():
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
