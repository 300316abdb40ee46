"""Claude vision backend: Anthropic messages API."""
import base64
import time
import httpx
import logging
from ... import config, debug
from ...errors import ModelError, ModelResponseError
from ..base import VisionBackend, media_type, response_json

log = logging.getLogger(__name__)

# Persistent client, reused across votes to avoid TLS handshake overhead
_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=config.MODEL_TIMEOUT,
            headers={
                "x-api-key": config.CLAUDE_API_KEY,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
        )
    return _client


class ClaudeBackend(VisionBackend):
    name = "claude"

    async def generate(
        self,
        prompt: str,
        images: list[bytes],
        model: str = None,
        system: str = None,
        tag: str = None,
    ) -> str:
        model = model or config.CLAUDE_VISION_MODEL
        if not config.CLAUDE_API_KEY:
            raise ModelError("ANTHROPIC_API_KEY not set, cannot use Claude vision backend")

        debug.log_vision_request(prompt, len(images), [len(img) for img in images], tag=tag)

        content = []
        for img in images:
            content.append({
                "type": "image",
                "source": {"type": "base64", "media_type": media_type(img), "data": base64.b64encode(img).decode()}
            })
        content.append({"type": "text", "text": prompt})

        payload = {
            "model": model,
            "max_tokens": config.MODEL_MAX_TOKENS,
            "temperature": config.MODEL_TEMPERATURE,
            "messages": [{"role": "user", "content": content}],
        }
        if system:
            payload["system"] = system

        start = time.time()
        client = _get_client()
        resp = await client.post("https://api.anthropic.com/v1/messages", json=payload)
        resp.raise_for_status()
        data = response_json(resp)
        try:
            response_text = "".join(
                block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
            ).strip()
        except (AttributeError, TypeError) as e:
            raise ModelResponseError(f"Malformed Claude messages payload: {str(data)[:200]}") from e
        elapsed_ms = (time.time() - start) * 1000

        debug.log_vision_response(response_text, elapsed_ms, tag=tag)
        return response_text

    async def check_health(self) -> dict:
        if not config.CLAUDE_API_KEY:
            return {"ok": False, "backend": "claude", "error": "ANTHROPIC_API_KEY not set"}
        return {"ok": True, "backend": "claude", "model": config.CLAUDE_VISION_MODEL}
