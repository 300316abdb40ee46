"""Ollama vision backend: local inference via Ollama API."""
import base64
import time
import httpx
import logging
from ... import config, debug
from ...errors import ModelResponseError
from ..base import VisionBackend, response_json

log = logging.getLogger(__name__)


class OllamaBackend(VisionBackend):
    name = "ollama"

    async def generate(
        self,
        prompt: str,
        images: list[bytes],
        model: str = None,
        system: str = None,
        tag: str = None,
    ) -> str:
        model = model or config.OLLAMA_VISION_MODEL
        encoded_images = [base64.b64encode(img).decode() for img in images]

        debug.log_vision_request(prompt, len(images), [len(img) for img in images], tag=tag)

        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "keep_alive": config.OLLAMA_KEEP_ALIVE,
            "options": {
                "num_predict": config.MODEL_MAX_TOKENS,
                "temperature": config.MODEL_TEMPERATURE,
            },
        }
        if system:
            payload["system"] = system
        if encoded_images:
            payload["images"] = encoded_images

        start = time.time()
        async with httpx.AsyncClient(timeout=config.MODEL_TIMEOUT) as client:
            resp = await client.post(f"{config.OLLAMA_URL}/api/generate", json=payload)
            resp.raise_for_status()
            data = response_json(resp)
            response_text = data.get("response")
            if not isinstance(response_text, str):
                raise ModelResponseError(f"Malformed Ollama payload: {str(data)[:200]}")
            response_text = response_text.strip()
            elapsed_ms = (time.time() - start) * 1000

            debug.log_vision_response(response_text, elapsed_ms, tag=tag)
            log.debug(f"Vision response ({data.get('total_duration', 0)/1e9:.1f}s): {response_text}")
            return response_text

    async def check_health(self) -> dict:
        model = config.OLLAMA_VISION_MODEL
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{config.OLLAMA_URL}/api/tags")
                resp.raise_for_status()
                models = [m["name"] for m in resp.json().get("models", [])]
                has_model = any(model in m for m in models)
                return {"ok": True, "backend": "ollama", "models": models, "has_model": has_model, "target_model": model}
        except Exception as e:
            return {"ok": False, "backend": "ollama", "error": str(e)}
