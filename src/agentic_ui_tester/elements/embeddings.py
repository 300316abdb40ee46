"""Sentence embeddings for element retrieval (sentence-transformers, CPU).

The model is loaded once on first use and reused. Vectors are L2-normalized,
so cosine similarity is a plain dot product.
"""
import asyncio
import logging

import numpy as np

from .. import config

log = logging.getLogger(__name__)

_model = None


def _get_model():
    global _model
    if _model is None:
        from sentence_transformers import SentenceTransformer
        log.info(f"Loading embedding model {config.EMBEDDING_MODEL} on {config.EMBEDDING_DEVICE}")
        _model = SentenceTransformer(config.EMBEDDING_MODEL, device=config.EMBEDDING_DEVICE)
    return _model


def encode(texts: list[str]) -> np.ndarray:
    """Embed *texts* into an (n, dim) float32 matrix of unit vectors."""
    vectors = _get_model().encode(texts, normalize_embeddings=True, convert_to_numpy=True)
    return np.asarray(vectors, dtype=np.float32)


async def embed(text: str) -> np.ndarray:
    """Embed a single text off the event loop."""
    vectors = await asyncio.get_running_loop().run_in_executor(None, encode, [text.strip()])
    return vectors[0]


def relevance_score(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity mapped from [-1, 1] onto [0, 1]."""
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0:
        return 0.0
    cosine = float(np.dot(a, b)) / denom
    return round((cosine + 1) / 2, 4)


def to_blob(vector: np.ndarray) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)
