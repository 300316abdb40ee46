"""Shared fixtures: isolated data dir, a deterministic embedder and a scripted vision model."""
import io
import json
import re
import zlib

import numpy as np
import pytest
from PIL import Image

EMBEDDING_DIM = 4096


class FakeEmbedder:
    """Signed hashed bag of words; texts registered in ``vectors`` get that vector instead."""

    def __init__(self):
        self.vectors: dict[str, np.ndarray] = {}
        self.calls: list[str] = []

    def __call__(self, texts):
        self.calls.extend(texts)
        return np.stack([self.vector(t) for t in texts])

    def vector(self, text: str) -> np.ndarray:
        key = text.strip().lower()
        if key in self.vectors:
            v = np.asarray(self.vectors[key], dtype=np.float32)
        else:
            v = np.zeros(EMBEDDING_DIM, dtype=np.float32)
            for word in re.findall(r"[a-z0-9]+", key):
                h = zlib.crc32(word.encode())
                v[h % EMBEDDING_DIM] += 1.0 if (h >> 16) & 1 else -1.0
        norm = np.linalg.norm(v)
        return v / norm if norm else v


@pytest.fixture(autouse=True)
def fake_embeddings(monkeypatch):
    """Keep the sentence-transformers model out of tests."""
    from agentic_ui_tester.elements import embeddings

    embedder = FakeEmbedder()
    monkeypatch.setattr(embeddings, "encode", embedder)
    return embedder


@pytest.fixture
def isolated_data(monkeypatch, tmp_path):
    """Point the element store and debug screenshots at a per-test directory."""
    from agentic_ui_tester import config

    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "test_elements.db")
    monkeypatch.setattr(config, "SCREENSHOTS_DIR", tmp_path / "screenshots")
    return tmp_path


def png_bytes(width: int = 40, height: int = 20, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def bbox_response(*boxes) -> str:
    return json.dumps({"boundingBoxes": [dict(zip(("x1", "y1", "x2", "y2"), b)) for b in boxes]})


def selection_response(label: str, success: bool = True) -> str:
    return json.dumps({"success": success, "boundingBoxId": label, "message": "scripted"})


class ScriptedVision:
    """Stands in for the vision backend; answers by prompt type, in call order."""

    def __init__(self, grounding=None, selection=None):
        self.grounding = list(grounding or [])
        self.selection = list(selection or [])
        self.grounding_calls = 0
        self.selection_calls = 0
        self.images = []

    async def __call__(self, prompt, images, model=None, system=None, tag=None):
        self.images.append(images)
        if "Bounding box IDs:" in prompt:
            answer = self.selection[self.selection_calls % len(self.selection)]
            self.selection_calls += 1
        else:
            answer = self.grounding[self.grounding_calls % len(self.grounding)]
            self.grounding_calls += 1
        if isinstance(answer, BaseException):
            raise answer
        if callable(answer):
            return await answer()
        return answer


@pytest.fixture
def scripted_vision(monkeypatch):
    """Install a ScriptedVision as vision.generate; configure it through the returned factory."""
    from agentic_ui_tester import vision

    def install(grounding=None, selection=None) -> ScriptedVision:
        fake = ScriptedVision(grounding, selection)
        monkeypatch.setattr(vision, "generate", fake)
        return fake

    return install
