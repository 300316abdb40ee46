"""vLLM vision backend: OpenAI-compatible API for Qwen-VL, UI-TARS, etc."""
import time
import httpx
import logging
from ... import config, debug
from ..base import VisionBackend, chat_completion_text, openai_messages, response_json

log = logging.getLogger(__name__)


class VLLMBackend(VisionBackend):
    name = "vllm"

    async def generate(
        self,
        prompt: str,
        images: list[bytes],
        model: str = None,
        system: str = None,
        tag: str = None,
    ) -> str:
        model = model or config.VLLM_MODEL
        debug.log_vision_request(prompt, len(images), [len(img) for img in images], tag=tag)

        payload = {
            "model": model,
            "messages": openai_messages(prompt, images, system),
            "max_tokens": config.MODEL_MAX_TOKENS,
            "temperature": config.MODEL_TEMPERATURE,
        }

        start = time.time()
        async with httpx.AsyncClient(timeout=config.MODEL_TIMEOUT) as client:
            resp = await client.post(f"{config.VLLM_URL}/v1/chat/completions", json=payload)
            resp.raise_for_status()
            response_text = chat_completion_text(response_json(resp))
            elapsed_ms = (time.time() - start) * 1000

            debug.log_vision_response(response_text, elapsed_ms, tag=tag)
            return response_text

    async def check_health(self) -> dict:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{config.VLLM_URL}/v1/models")
                resp.raise_for_status()
                models = [m["id"] for m in resp.json().get("data", [])]
                return {"ok": True, "backend": "vllm", "models": models, "target_model": config.VLLM_MODEL}
        except Exception as e:
            return {"ok": False, "backend": "vllm", "error": str(e)}
