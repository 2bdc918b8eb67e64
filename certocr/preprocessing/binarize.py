"""Greyscale conversion, contrast stretching and binarization.

Turns a colour page into a pure black/white image with a fixed global
threshold, which is what Tesseract reads best on printed receipts.
"""

import cv2
import numpy as np

from certocr.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to greyscale.

    Uses the ITU-R BT.601 luma weights (0.299R + 0.587G + 0.114B).

    Args:
        image: Input image (RGB, RGBA or already greyscale).

    Returns:
        Single-channel ``uint8`` image.
    """
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def contrast_factor(contrast: float) -> float:
    """Photographic contrast-correction factor for a contrast level.

    Args:
        contrast: Contrast level; 1.0 maps to 100 on the usual -255..255 scale.

    Returns:
        Multiplier applied around mid-grey.
    """
    c = contrast * 100
    return (259 * (c + 255)) / (255 * (259 - c))


def stretch_contrast(gray: np.ndarray, contrast: float = 1.5) -> np.ndarray:
    """Stretch contrast around mid-grey (128).

    Args:
        gray: Greyscale image.
        contrast: Contrast level passed to :func:`contrast_factor`.

    Returns:
        Contrast-enhanced greyscale image clamped to [0, 255].
    """
    factor = contrast_factor(contrast)
    enhanced = factor * (gray.astype(np.float32) - 128.0) + 128.0
    result = np.clip(enhanced, 0, 255).astype(np.uint8)
    logger.debug("Applied contrast stretch (contrast=%.2f, factor=%.3f)", contrast, factor)
    return result


def binarize_threshold(gray: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Binarize at a fixed threshold.

    Args:
        gray: Greyscale image.
        threshold: Pixels at or above this value become white.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    result = np.where(gray >= threshold, 255, 0).astype(np.uint8)
    logger.debug("Applied fixed-threshold binarization (threshold=%d)", threshold)
    return result
