"""OpenRouter vision backend: cloud routing to Gemini, Claude, Qwen-VL, etc."""
import time
import httpx
import logging
from ... import config, debug
from ...errors import ModelError
from ..base import VisionBackend, chat_completion_text, openai_messages, response_json

log = logging.getLogger(__name__)

_OPENROUTER_BASE = "https://openrouter.ai/api/v1"

# Persistent client with auth headers baked in
_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=config.MODEL_TIMEOUT,
            headers={
                "Authorization": f"Bearer {config.OPENROUTER_API_KEY}",
                "X-Title": "agentic-ui-tester",
                "Content-Type": "application/json",
            },
        )
    return _client


class OpenRouterBackend(VisionBackend):
    name = "openrouter"

    async def generate(
        self,
        prompt: str,
        images: list[bytes],
        model: str = None,
        system: str = None,
        tag: str = None,
    ) -> str:
        model = model or config.OPENROUTER_VISION_MODEL
        if not config.OPENROUTER_API_KEY:
            raise ModelError("OPENROUTER_API_KEY not set, cannot use OpenRouter vision backend")

        debug.log_vision_request(prompt, len(images), [len(img) for img in images], tag=tag)

        payload = {
            "model": model,
            "messages": openai_messages(prompt, images, system),
            "max_tokens": config.MODEL_MAX_TOKENS,
            "temperature": config.MODEL_TEMPERATURE,
            "response_format": {"type": "json_object"},
        }

        start = time.time()
        client = _get_client()
        resp = await client.post(f"{_OPENROUTER_BASE}/chat/completions", json=payload)
        resp.raise_for_status()
        response_text = chat_completion_text(response_json(resp))
        elapsed_ms = (time.time() - start) * 1000

        debug.log_vision_response(response_text, elapsed_ms, tag=tag)
        return response_text

    async def check_health(self) -> dict:
        if not config.OPENROUTER_API_KEY:
            return {"ok": False, "backend": "openrouter", "error": "OPENROUTER_API_KEY not set"}
        try:
            client = _get_client()
            resp = await client.get(f"{_OPENROUTER_BASE}/models", timeout=5.0)
            resp.raise_for_status()
            return {"ok": True, "backend": "openrouter", "model": config.OPENROUTER_VISION_MODEL}
        except Exception as e:
            return {"ok": False, "backend": "openrouter", "error": str(e)}
