"""Pluggable vision backend: re-exports generate(), generate_object() and check_health().

Backend selected by UT_VISION_BACKEND env var: ollama|vllm|openrouter|claude
"""
import logging
from typing import Protocol, TypeVar

import httpx

from .. import config
from ..errors import ModelError
from .base import VisionBackend

log = logging.getLogger(__name__)

_backend: VisionBackend | None = None

T = TypeVar("T")


class ResultType(Protocol[T]):
    JSON_SCHEMA: str
    DESCRIPTION: str

    @classmethod
    def parse(cls, text: str) -> T: ...


def _get_backend() -> VisionBackend:
    global _backend
    if _backend is not None:
        return _backend

    name = config.VISION_BACKEND.lower()
    if name == "ollama":
        from .backends.ollama import OllamaBackend
        _backend = OllamaBackend()
    elif name == "vllm":
        from .backends.vllm import VLLMBackend
        _backend = VLLMBackend()
    elif name == "openrouter":
        from .backends.openrouter import OpenRouterBackend
        _backend = OpenRouterBackend()
    elif name == "claude":
        from .backends.claude import ClaudeBackend
        _backend = ClaudeBackend()
    else:
        raise ValueError(f"Unknown vision backend: {name}. Use ollama|vllm|openrouter|claude")

    return _backend


async def generate(
    prompt: str,
    images: list[bytes],
    model: str = None,
    system: str = None,
    tag: str = None,
) -> str:
    """Send prompt + images to the configured vision backend."""
    try:
        return await _get_backend().generate(prompt, images, model=model, system=system, tag=tag)
    except httpx.HTTPError as e:
        raise ModelError(f"Vision backend {config.VISION_BACKEND} request failed: {e}") from e


async def generate_object(
    prompt: str,
    images: list[bytes],
    result_type: type[ResultType[T]],
    model: str = None,
    system: str = None,
    tag: str = None,
) -> T:
    """Ask for a structured answer and parse it into *result_type*.

    The expected JSON shape is appended to the prompt. Raises ModelError on
    transport failure and ModelResponseError when the answer does not parse.
    """
    full_prompt = (
        f"{prompt.rstrip()}\n\n"
        f"Respond with {result_type.DESCRIPTION}, as a single JSON object and nothing else, "
        f"using exactly this format:\n{result_type.JSON_SCHEMA}"
    )
    text = await generate(full_prompt, images, model=model, system=system, tag=tag)
    return result_type.parse(text)


async def check_health() -> dict:
    """Check if the configured vision backend is healthy."""
    return await _get_backend().check_health()
