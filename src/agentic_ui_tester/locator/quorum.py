"""Majority-vote selection among several candidate boxes."""
import asyncio
import logging
import uuid
from collections import Counter
from typing import Callable

from PIL import Image, ImageDraw

from .. import config, debug, screenshots, vision
from ..capture.screen import image_to_png
from ..errors import ModelError
from ..vision.schemas import ElementSelectionResult
from . import prompts
from .concurrency import InterruptionScope
from .types import BoundingBox, CandidateSet, Found, LocationResult, NotFound, UiElement

log = logging.getLogger(__name__)

BOX_COLOR = (0, 200, 0)
LABEL_TEXT_COLOR = "white"


def random_label(length: int = None) -> str:
    return uuid.uuid4().hex[:length or config.QUORUM_LABEL_LENGTH]


def assign_labels(boxes: list[BoundingBox], label_factory: Callable[[], str] = random_label,
                  max_attempts: int = None) -> dict[str, BoundingBox]:
    """Give every box a distinct short label. Collisions are retried a bounded number of times."""
    max_attempts = max_attempts or config.QUORUM_LABEL_MAX_ATTEMPTS
    labelled: dict[str, BoundingBox] = {}
    for box in boxes:
        for _ in range(max_attempts):
            label = label_factory()
            if label.lower() not in labelled:
                labelled[label.lower()] = box
                break
        else:
            raise RuntimeError(f"Could not generate a unique label after {max_attempts} attempts")
    return labelled


def draw_labelled_boxes(image: Image.Image, labelled: dict[str, BoundingBox]) -> Image.Image:
    """Copy of *image* with every candidate outlined and tagged with its label."""
    annotated = image.convert("RGB")
    draw = ImageDraw.Draw(annotated)
    for label, box in labelled.items():
        draw.rectangle([box.x, box.y, box.right, box.bottom], outline=BOX_COLOR, width=2)
        tag_top = box.y - 18 if box.y >= 18 else box.bottom
        draw.rectangle([box.x, tag_top, box.x + len(label) * 9 + 6, tag_top + 18], fill=BOX_COLOR)
        draw.text((box.x + 3, tag_top + 3), label, fill=LABEL_TEXT_COLOR)
    return annotated


def pick_winner(votes: list[str], labelled: dict[str, BoundingBox]) -> str | None:
    """Label with most votes; ties go to the larger box, then the earlier label."""
    counts = Counter(votes)
    if not counts:
        return None
    top = max(counts.values())
    tied = [label for label in labelled if counts.get(label) == top]
    return max(tied, key=lambda label: labelled[label].area)


class QuorumSelector:
    """Asks the model which labelled candidate is the element, several times, and takes the majority."""

    def __init__(self, model: str = None, label_factory: Callable[[], str] = random_label):
        self.model = model or config.SELECTION_MODEL
        self.label_factory = label_factory

    async def select(
        self,
        element: UiElement,
        test_data: str | None,
        candidates: CandidateSet,
        image: Image.Image,
        vote_count: int = None,
        *,
        algorithmic_attempted: bool,
        visual_attempted: bool,
        scope: InterruptionScope = None,
    ) -> LocationResult:
        vote_count = vote_count or config.VALIDATION_MODEL_VOTES
        owns_scope = scope is None
        scope = scope or InterruptionScope()

        labelled = assign_labels(list(candidates.boxes), self.label_factory)
        annotated = await asyncio.get_running_loop().run_in_executor(None, draw_labelled_boxes, image, labelled)
        png = await asyncio.get_running_loop().run_in_executor(None, image_to_png, annotated)
        screenshots.save_debug_image(annotated, f"quorum_{element.name}")
        prompt = prompts.selection_prompt(element, test_data, list(labelled))

        answers = await scope.gather(
            (self._vote(prompt, png, i) for i in range(vote_count)),
            "Best element selection",
        )

        valid_votes = []
        for answer in answers:
            if answer is None or not answer.success:
                continue
            label = answer.bounding_box_id.lower()
            if label in labelled:
                valid_votes.append(label)
            else:
                log.warning(f"Selection vote named unknown candidate '{answer.bounding_box_id}'")

        winner = pick_winner(valid_votes, labelled)
        debug.log_quorum(list(labelled), dict(Counter(valid_votes)), winner)

        if owns_scope:
            scope.raise_if_interrupted()

        if winner is None:
            log.info(f"No valid selection votes for '{element.name}' among {len(labelled)} candidates")
            return NotFound(algorithmic_attempted, visual_attempted, element)
        log.info(f"Selected candidate '{winner}' for '{element.name}' ({valid_votes.count(winner)}/{vote_count} votes)")
        return Found(labelled[winner], element, source=f"quorum:{candidates.tier.name.lower()}")

    async def _vote(self, prompt: str, png: bytes, index: int) -> ElementSelectionResult | None:
        try:
            return await vision.generate_object(
                prompt, [png], ElementSelectionResult,
                model=self.model, system=prompts.SELECTION_SYSTEM_PROMPT, tag=f"select-{index}",
            )
        except ModelError as e:
            log.warning(f"Selection vote {index} failed: {e}")
            return None
