"""Fusion tiers are tried strictly in order."""


def _box(x, y, w, h):
    from agentic_ui_tester.locator.types import BoundingBox
    return BoundingBox(x, y, w, h)


def test_triple_agreement_wins_over_everything_else():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    vision = [_box(0, 0, 100, 100), _box(500, 500, 50, 50)]
    feature = [_box(10, 10, 100, 100), _box(510, 510, 50, 50)]
    template = [_box(20, 20, 100, 100)]

    result = fuse(vision, feature, template)
    assert result.tier == FusionTier.ALL_SIGNALS_AGREE
    # The second vision/feature overlap would appear in tier 2, but must not leak in.
    assert result.boxes == (_box(20, 20, 80, 80),)


def test_vision_with_one_algorithm():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    result = fuse([_box(0, 0, 50, 50)], [_box(25, 25, 50, 50)], [])
    assert result.tier == FusionTier.VISION_AND_ONE_ALGORITHM
    assert result.boxes == (_box(25, 25, 25, 25),)


def test_union_when_nothing_overlaps():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    vision = [_box(0, 0, 10, 10)]
    feature = [_box(100, 100, 10, 10)]
    template = [_box(200, 200, 10, 10)]
    result = fuse(vision, feature, template)
    assert result.tier == FusionTier.UNION_OF_SIGNALS
    assert result.boxes == tuple(vision + feature + template)


def test_vision_only_is_a_union_of_vision_boxes():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    result = fuse([_box(0, 0, 10, 10), _box(0, 0, 10, 10)], [], [])
    assert result.tier == FusionTier.UNION_OF_SIGNALS
    assert result.boxes == (_box(0, 0, 10, 10),)


def test_algorithmic_only_prefers_intersection_then_union():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    overlapping = fuse([], [_box(10, 10, 50, 50)], [_box(20, 20, 50, 50)])
    assert overlapping.tier == FusionTier.ALGORITHMIC_ONLY
    assert overlapping.boxes == (_box(20, 20, 40, 40),)

    disjoint = fuse([], [_box(0, 0, 5, 5)], [_box(50, 50, 5, 5)])
    assert disjoint.tier == FusionTier.ALGORITHMIC_ONLY
    assert disjoint.boxes == (_box(0, 0, 5, 5), _box(50, 50, 5, 5))


def test_nothing_in_nothing_out():
    from agentic_ui_tester.locator.fusion import fuse
    from agentic_ui_tester.locator.types import FusionTier

    result = fuse([], [], [])
    assert result.tier == FusionTier.NO_CANDIDATES
    assert result.is_empty()
