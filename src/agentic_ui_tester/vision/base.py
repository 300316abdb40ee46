"""Abstract base class for vision backends."""
import base64
from abc import ABC, abstractmethod

import httpx

from ..errors import ModelResponseError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def media_type(image: bytes) -> str:
    return "image/png" if image.startswith(PNG_SIGNATURE) else "image/jpeg"


def openai_messages(prompt: str, images: list[bytes], system: str = None) -> list[dict]:
    """Chat-completions message list with images inlined as data URLs."""
    content = []
    for img in images:
        b64 = base64.b64encode(img).decode()
        content.append({
            "type": "image_url",
            "image_url": {"url": f"data:{media_type(img)};base64,{b64}"}
        })
    content.append({"type": "text", "text": prompt})

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": content})
    return messages



def response_json(resp: httpx.Response) -> dict:
    """Decode a provider response body, which must be a JSON object."""
    try:
        data = resp.json()
    except ValueError as e:
        raise ModelResponseError(f"Provider returned non-JSON body: {resp.text[:200]}") from e
    if not isinstance(data, dict):
        raise ModelResponseError(f"Provider returned {type(data).__name__} instead of an object")
    return data


def chat_completion_text(data: dict) -> str:
    """Text of the first choice of an OpenAI-style chat completion."""
    try:
        return (data["choices"][0]["message"]["content"] or "").strip()
    except (KeyError, IndexError, TypeError) as e:
        raise ModelResponseError(f"Malformed chat completion payload: {str(data)[:200]}") from e

class VisionBackend(ABC):
    """Interface for all vision backends (ollama, vllm, openrouter, claude)."""

    name: str = "base"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        images: list[bytes],
        model: str = None,
        system: str = None,
        tag: str = None,
    ) -> str:
        """Send prompt + images to the vision model, return raw text response."""
        ...

    @abstractmethod
    async def check_health(self) -> dict:
        """Check if the backend is healthy and ready."""
        ...
