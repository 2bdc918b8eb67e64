"""Image preprocessing pipeline for certificate and receipt OCR.

Decodes a page, normalizes its resolution, converts it to greyscale,
stretches contrast, binarizes it and re-encodes it losslessly. Every step
falls back to the best image produced so far; the original bytes are used
when nothing better is available.
"""

import io
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from functools import partial

import cv2
import numpy as np
from PIL import Image

from certocr.utils.config import PreprocessingConfig
from certocr.utils.logger import get_logger

from .binarize import binarize_threshold, stretch_contrast, to_gray
from .fallback import ImageStep, run_with_fallback
from .resize import resize_for_ocr

logger = get_logger(__name__)


@dataclass
class PreprocessedImage:
    """Encoded page image ready for recognition."""

    data: bytes
    width: int
    height: int
    degraded: list[str] = field(default_factory=list)

    @property
    def is_original(self) -> bool:
        return "decode" in self.degraded or "encode" in self.degraded


def _decode(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as img:
        return np.array(img.convert("RGB"))


def decode_image(data: bytes, timeout_s: float = 10.0) -> np.ndarray:
    """Decode encoded image bytes into an RGB array within a time limit.

    Args:
        data: Encoded image (JPEG, PNG, GIF, WebP, BMP).
        timeout_s: Seconds to wait for the decoder.

    Returns:
        RGB image array.

    Raises:
        TimeoutError: If decoding does not finish in time.
        OSError: If the bytes are not a decodable image.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(_decode, data)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeoutError as exc:
            raise TimeoutError(f"image decode exceeded {timeout_s:.0f}s") from exc
    finally:
        executor.shutdown(wait=False)


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGB or greyscale image as PNG bytes."""
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


class PreprocessingPipeline:
    """Recognition-oriented page cleanup.

    Args:
        config: Preprocessing configuration with size limits, contrast
            level, threshold and decode timeout.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def steps(self) -> list[tuple[str, ImageStep]]:
        cfg = self.config
        return [
            (
                "resize",
                partial(
                    resize_for_ocr,
                    max_dimension=cfg.max_dimension,
                    min_dimension=cfg.min_dimension,
                ),
            ),
            ("grayscale", to_gray),
            ("contrast", partial(stretch_contrast, contrast=cfg.contrast)),
            ("binarize", partial(binarize_threshold, threshold=cfg.threshold)),
        ]

    def process(self, data: bytes) -> PreprocessedImage:
        """Run the full preprocessing pipeline on an encoded image.

        Never raises: any failure falls back to the best prior image.

        Args:
            data: Encoded source image.

        Returns:
            The processed encoding, or the original bytes with
            ``degraded`` explaining why.
        """
        try:
            image = decode_image(data, self.config.decode_timeout_s)
        except Exception as exc:
            logger.warning("Could not decode image, using original: %s", exc)
            return PreprocessedImage(data, 0, 0, ["decode"])

        h, w = image.shape[:2]
        if w == 0 or h == 0:
            logger.warning("Image has zero size, using original")
            return PreprocessedImage(data, 0, 0, ["decode"])

        if not self.config.enabled:
            return PreprocessedImage(data, w, h)

        chain = run_with_fallback(image, self.steps())

        try:
            encoded = encode_png(chain.image)
        except Exception as exc:
            logger.warning("Could not encode processed image, using original: %s", exc)
            return PreprocessedImage(data, w, h, chain.degraded + ["encode"])

        out_h, out_w = chain.image.shape[:2]
        logger.info(
            "Preprocessing complete: %dx%d -> %dx%d (%d degraded steps)",
            w,
            h,
            out_w,
            out_h,
            len(chain.degraded),
        )
        return PreprocessedImage(encoded, out_w, out_h, chain.degraded)
