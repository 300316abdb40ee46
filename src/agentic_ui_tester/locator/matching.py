"""Algorithmic region proposals: ORB feature matching and normalized template matching.

OpenCV calls are blocking, so both matchers run side by side in the default
executor and are joined before fusion.
"""
import asyncio
import logging

import cv2
import numpy as np
from PIL import Image
from sklearn.cluster import DBSCAN

from .. import config, debug
from .concurrency import InterruptionScope
from .geometry import merge_overlapping
from .types import BoundingBox, DetectionSignal, SignalKind

log = logging.getLogger(__name__)

# ORB tuned for small, low-texture UI widgets
ORB_PARAMS = dict(
    nfeatures=150000,
    scaleFactor=1.02,
    nlevels=12,
    edgeThreshold=8,
    firstLevel=0,
    WTA_K=2,
    scoreType=cv2.ORB_HARRIS_SCORE,
    patchSize=31,
    fastThreshold=6,
)
LOWE_RATIO = 0.75
MIN_GOOD_FEATURE_MATCHES = 10
MIN_KEYPOINTS_PER_CLUSTER = 5
MIN_POINTS_FOR_HOMOGRAPHY = 6
RANSAC_REPROJECTION_THRESHOLD = 5.0


def to_gray(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("L"), dtype=np.uint8)


def find_feature_matches(
    whole: np.ndarray,
    reference: np.ndarray,
    top_n: int,
    deviation_ratio: float,
) -> list[tuple[BoundingBox, int]]:
    """Regions of *whole* that match *reference* by keypoints, best (most inliers) first."""
    ref_h, ref_w = reference.shape[:2]
    img_h, img_w = whole.shape[:2]

    orb = cv2.ORB_create(**ORB_PARAMS)
    ref_kp, ref_des = orb.detectAndCompute(reference, None)
    img_kp, img_des = orb.detectAndCompute(whole, None)
    if ref_des is None or img_des is None or len(ref_kp) < 2 or len(img_kp) < 2:
        log.debug("Feature matching: not enough keypoints")
        return []

    matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
    good = []
    for pair in matcher.knnMatch(ref_des, img_des, k=2):
        if len(pair) == 2 and pair[0].distance < LOWE_RATIO * pair[1].distance:
            good.append(pair[0])
    if len(good) < MIN_GOOD_FEATURE_MATCHES:
        log.debug(f"Feature matching: only {len(good)} good matches")
        return []

    ref_pts = np.float32([ref_kp[m.queryIdx].pt for m in good])
    img_pts = np.float32([img_kp[m.trainIdx].pt for m in good])

    labels = DBSCAN(eps=max(ref_w, ref_h), min_samples=MIN_KEYPOINTS_PER_CLUSTER).fit(img_pts).labels_

    corners = np.float32([[0, 0], [ref_w, 0], [ref_w, ref_h], [0, ref_h]]).reshape(-1, 1, 2)
    max_w = ref_w * (1 + deviation_ratio)
    max_h = ref_h * (1 + deviation_ratio)

    regions = []
    for label in set(labels.tolist()):
        if label == -1:
            continue
        idx = np.where(labels == label)[0]
        if len(idx) < MIN_POINTS_FOR_HOMOGRAPHY:
            continue
        homography, mask = cv2.findHomography(
            ref_pts[idx].reshape(-1, 1, 2), img_pts[idx].reshape(-1, 1, 2),
            cv2.RANSAC, RANSAC_REPROJECTION_THRESHOLD,
        )
        if homography is None:
            continue
        projected = cv2.perspectiveTransform(corners, homography)
        x, y, w, h = cv2.boundingRect(projected)
        x1, y1 = max(x, 0), max(y, 0)
        x2, y2 = min(x + w, img_w), min(y + h, img_h)
        if x2 <= x1 or y2 <= y1:
            continue
        box = BoundingBox(x1, y1, x2 - x1, y2 - y1)
        if box.width > max_w or box.height > max_h:
            log.debug(f"Feature matching: discarded {box}, exceeds reference size {ref_w}x{ref_h}")
            continue
        regions.append((box, int(mask.sum()) if mask is not None else 0))

    regions.sort(key=lambda r: r[1], reverse=True)
    return regions[:top_n]


def find_template_matches(
    whole: np.ndarray,
    reference: np.ndarray,
    top_n: int,
    threshold: float,
) -> list[tuple[BoundingBox, float]]:
    """Locations where *reference* correlates with *whole* above *threshold*, with their best score.

    Overlapping hits are merged; a merged region keeps the highest score among its hits.
    """
    ref_h, ref_w = reference.shape[:2]
    img_h, img_w = whole.shape[:2]
    if ref_h > img_h or ref_w > img_w or ref_h == 0 or ref_w == 0:
        return []

    scores = cv2.matchTemplate(whole, reference, cv2.TM_CCOEFF_NORMED)
    scores = np.nan_to_num(scores, nan=-1.0, posinf=-1.0, neginf=-1.0)

    hits = []
    while len(hits) < top_n:
        _, max_val, _, (x, y) = cv2.minMaxLoc(scores)
        if max_val < threshold:
            break
        hits.append((BoundingBox(x, y, ref_w, ref_h), float(max_val)))
        # Suppress the neighbourhood so the same spot is not reported twice
        scores[max(0, y - ref_h // 2):y + ref_h // 2 + 1, max(0, x - ref_w // 2):x + ref_w // 2 + 1] = -1.0

    return [
        (region, max(score for box, score in hits if region.intersects(box)))
        for region in merge_overlapping(box for box, _ in hits)
    ]


class AlgorithmicMatcher:
    def __init__(self, top_n: int = None, similarity_threshold: float = None, deviation_ratio: float = None):
        self.top_n = top_n or config.ELEMENT_LOCATOR_TOP_VISUAL_MATCHES
        self.similarity_threshold = (config.ELEMENT_LOCATOR_VISUAL_SIMILARITY_THRESHOLD
                                     if similarity_threshold is None else similarity_threshold)
        self.deviation_ratio = (config.FOUND_MATCHES_DIMENSION_DEVIATION_RATIO
                                if deviation_ratio is None else deviation_ratio)

    async def detect(
        self,
        whole: Image.Image,
        reference: Image.Image,
        scope: InterruptionScope = None,
    ) -> tuple[DetectionSignal, DetectionSignal]:
        """Return the feature-match and template-match signals. Either may be empty.

        Feature scores are RANSAC inlier counts, template scores are normalized correlations.
        """
        owns_scope = scope is None
        scope = scope or InterruptionScope()
        loop = asyncio.get_running_loop()
        whole_gray, ref_gray = await loop.run_in_executor(None, lambda: (to_gray(whole), to_gray(reference)))

        async def run(kind: SignalKind, fn, *args):
            return kind, await loop.run_in_executor(None, fn, *args)

        outcomes = dict(await scope.gather(
            [
                run(SignalKind.FEATURE_MATCH, find_feature_matches,
                    whole_gray, ref_gray, self.top_n, self.deviation_ratio),
                run(SignalKind.TEMPLATE_MATCH, find_template_matches,
                    whole_gray, ref_gray, self.top_n, self.similarity_threshold),
            ],
            "Algorithmic matching",
        ))

        feature = _signal(SignalKind.FEATURE_MATCH, outcomes.get(SignalKind.FEATURE_MATCH, []))
        template = _signal(SignalKind.TEMPLATE_MATCH, outcomes.get(SignalKind.TEMPLATE_MATCH, []))
        debug.log_match("Feature matching", len(feature.boxes), _format_scores(feature.scores, "{:.0f} inliers"))
        debug.log_match("Template matching", len(template.boxes), _format_scores(template.scores, "{:.3f}"))
        log.info(f"Algorithmic matching: {len(feature.boxes)} feature regions, {len(template.boxes)} template regions")

        if owns_scope:
            scope.raise_if_interrupted()
        return feature, template


def _signal(kind: SignalKind, scored: list[tuple[BoundingBox, float]]) -> DetectionSignal:
    return DetectionSignal(kind, tuple(box for box, _ in scored), tuple(float(s) for _, s in scored))


def _format_scores(scores: tuple[float, ...], fmt: str) -> str:
    return ", ".join(fmt.format(s) for s in scores)
