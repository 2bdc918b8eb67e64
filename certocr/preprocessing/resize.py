"""Resolution normalization for page images.

Oversized scans are downscaled so recognition stays within memory and
time limits; small images are never enlarged beyond a 100px floor.
"""

import math

import cv2
import numpy as np

from certocr.utils.logger import get_logger

logger = get_logger(__name__)


def target_size(
    width: int, height: int, max_dimension: int = 2000, min_dimension: int = 100
) -> tuple[int, int]:
    """Compute the output size for a page.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        max_dimension: Upper bound for both dimensions.
        min_dimension: Lower bound applied to the final dimensions.

    Returns:
        ``(width, height)`` after downscaling and clamping.
    """
    if width < min_dimension or height < min_dimension:
        logger.warning(
            "Image is very small (%dx%d); keeping original scale", width, height
        )

    if width > max_dimension or height > max_dimension:
        ratio = min(max_dimension / width, max_dimension / height)
        width = math.floor(width * ratio)
        height = math.floor(height * ratio)

    return max(width, min_dimension), max(height, min_dimension)


def resize_for_ocr(
    image: np.ndarray, max_dimension: int = 2000, min_dimension: int = 100
) -> np.ndarray:
    """Resize an image to the dimensions given by :func:`target_size`.

    Args:
        image: Input image.
        max_dimension: Upper bound for both dimensions.
        min_dimension: Lower bound for both dimensions.

    Returns:
        Resized image, or the input itself when no change is needed.
    """
    h, w = image.shape[:2]
    new_w, new_h = target_size(w, h, max_dimension, min_dimension)
    if (new_w, new_h) == (w, h):
        return image

    result = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_NEAREST)
    logger.info("Resized image %dx%d -> %dx%d", w, h, new_w, new_h)
    return result
