"""OpenCV feature and template matching on synthetic screens."""
import numpy as np
import pytest
from PIL import Image


def _blocky_noise(seed: int = 0, rows: int = 30, cols: int = 40, block: int = 8) -> np.ndarray:
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 256, size=(rows, cols), dtype=np.uint8)
    return np.kron(cells, np.ones((block, block), dtype=np.uint8))


def test_template_match_finds_exact_crop():
    from agentic_ui_tester.locator.matching import find_template_matches
    from agentic_ui_tester.locator.types import BoundingBox

    screen = _blocky_noise()
    reference = screen[60:100, 100:164].copy()

    matches = find_template_matches(screen, reference, top_n=3, threshold=0.8)
    assert [box for box, _ in matches] == [BoundingBox(100, 60, 64, 40)]
    assert matches[0][1] == pytest.approx(1.0, abs=1e-3)


def test_template_match_nothing_above_threshold():
    from agentic_ui_tester.locator.matching import find_template_matches

    screen = _blocky_noise(seed=1)
    reference = _blocky_noise(seed=2, rows=5, cols=8)
    assert find_template_matches(screen, reference, top_n=3, threshold=0.8) == []


def test_template_larger_than_screen():
    from agentic_ui_tester.locator.matching import find_template_matches

    assert find_template_matches(np.zeros((10, 10), np.uint8), np.zeros((20, 20), np.uint8), 3, 0.8) == []


def test_feature_match_on_blank_screen_returns_nothing():
    from agentic_ui_tester.locator.matching import find_feature_matches

    screen = np.zeros((200, 300), dtype=np.uint8)
    reference = np.zeros((40, 60), dtype=np.uint8)
    assert find_feature_matches(screen, reference, top_n=3, deviation_ratio=0.3) == []


def _near(box, x, y, w, h, tolerance=4):
    return all(abs(got - want) <= tolerance for got, want in zip((box.x, box.y, box.width, box.height), (x, y, w, h)))


def test_feature_match_locates_crop_of_textured_screen():
    from agentic_ui_tester.locator.matching import MIN_POINTS_FOR_HOMOGRAPHY, find_feature_matches

    screen = _blocky_noise(seed=3, rows=60, cols=80)
    reference = screen[160:240, 200:320].copy()

    matches = find_feature_matches(screen, reference, top_n=3, deviation_ratio=0.3)
    assert matches
    best, inliers = matches[0]
    assert _near(best, 200, 160, 120, 80)
    assert inliers >= MIN_POINTS_FOR_HOMOGRAPHY


def test_feature_match_drops_regions_larger_than_allowed_deviation():
    from agentic_ui_tester.locator.matching import find_feature_matches

    screen = _blocky_noise(seed=3, rows=60, cols=80)
    reference = screen[160:240, 200:320].copy()

    # Allowed size is below the reference itself, so even the exact crop is too large
    assert find_feature_matches(screen, reference, top_n=3, deviation_ratio=-0.05) == []


@pytest.mark.asyncio
async def test_matcher_runs_both_algorithms():
    from agentic_ui_tester.locator.matching import AlgorithmicMatcher
    from agentic_ui_tester.locator.types import BoundingBox, SignalKind

    screen = _blocky_noise()
    whole = Image.fromarray(screen).convert("RGB")
    reference = Image.fromarray(screen[60:100, 100:164].copy()).convert("RGB")

    feature, template = await AlgorithmicMatcher(top_n=3, similarity_threshold=0.8).detect(whole, reference)
    assert template.kind == SignalKind.TEMPLATE_MATCH
    assert template.boxes == (BoundingBox(100, 60, 64, 40),)
    assert template.scores[0] == pytest.approx(1.0, abs=1e-3)
    assert feature.kind == SignalKind.FEATURE_MATCH
    assert len(feature.scores) == len(feature.boxes)
    for box in feature.boxes:
        assert box.width <= 64 * 1.3 and box.height <= 40 * 1.3
