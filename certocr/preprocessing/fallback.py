"""Fallback combinator for image processing steps.

Each step either produces a new image or a failure reason. A failed step
leaves the last good image in place and the chain carries on, so a
preprocessing problem never blocks recognition.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import numpy as np

from certocr.utils.logger import get_logger

logger = get_logger(__name__)

ImageStep = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class StepResult:
    """Outcome of one processing step: an image or the reason it failed."""

    image: np.ndarray | None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.image is not None


@dataclass
class ChainResult:
    """Final image of a step chain plus the steps that degraded."""

    image: np.ndarray
    degraded: list[str] = field(default_factory=list)


def attempt(name: str, step: ImageStep, image: np.ndarray) -> StepResult:
    """Run one step, converting any failure into a :class:`StepResult`."""
    try:
        result = step(image)
    except Exception as exc:
        return StepResult(None, f"{name}: {exc}")
    if result is None or result.size == 0:
        return StepResult(None, f"{name}: produced an empty image")
    return StepResult(result)


def run_with_fallback(
    image: np.ndarray, steps: Sequence[tuple[str, ImageStep]]
) -> ChainResult:
    """Apply ``steps`` in order, keeping the last good image on failure.

    Args:
        image: Starting image.
        steps: ``(name, step)`` pairs.

    Returns:
        The final image and the reasons of every step that failed.
    """
    chain = ChainResult(image)
    for name, step in steps:
        outcome = attempt(name, step, chain.image)
        if outcome.ok:
            chain.image = outcome.image
        else:
            logger.warning("Preprocessing degraded, keeping previous image (%s)", outcome.reason)
            chain.degraded.append(outcome.reason)
    return chain
