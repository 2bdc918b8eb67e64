"""Tesseract OCR driver for Korean/English certificates and receipts.

Runs Tesseract on one preprocessed page with a hard per-page deadline,
relays progress to an observer and translates engine failures into the
pipeline's recognition error classes.
"""

import io
import time
from dataclasses import dataclass
from typing import Protocol

import pytesseract
from PIL import Image
from pytesseract import TesseractError, TesseractNotFoundError

from certocr.errors import (
    EngineInitFailure,
    NetworkFailure,
    RecognitionError,
    RecognitionTimeout,
    ResourceExhaustion,
    UnknownRecognitionError,
)
from certocr.utils.logger import get_logger

logger = get_logger(__name__)

RECOGNIZING_TEXT = "recognizing text"

_NETWORK_MARKERS = (
    "network",
    "fetch",
    "failed loading language",
    "error opening data file",
    "traineddata",
)
_MEMORY_MARKERS = ("memory", "allocation", "bad_alloc")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_INIT_MARKERS = ("worker", "initiali")


@dataclass(frozen=True)
class RecognitionResult:
    """Recognized text and mean word confidence (0-100) for one page."""

    text: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class EngineEvent:
    """Status update emitted while a page is being recognized."""

    status: str
    progress: float | None = None


class ProgressObserver(Protocol):
    """Receives integer recognition progress for the current page."""

    def on_progress(self, percent: int) -> None: ...


class _PageProgress:
    """Forwards text-recognition events as monotonic percentages."""

    def __init__(self, observer: ProgressObserver | None) -> None:
        self.observer = observer
        self.last = -1

    def __call__(self, event: EngineEvent) -> None:
        logger.debug("OCR status: %s (%s)", event.status, event.progress)
        if self.observer is None or event.status != RECOGNIZING_TEXT:
            return
        if event.progress is None:
            return
        percent = max(0, min(100, round(event.progress * 100)))
        if percent < self.last:
            return
        self.last = percent
        self.observer.on_progress(percent)


def classify_engine_error(exc: BaseException) -> RecognitionError:
    """Map an engine exception onto a recognition error class.

    Args:
        exc: Exception raised while running Tesseract.

    Returns:
        The matching :class:`RecognitionError` subclass instance.
    """
    if isinstance(exc, RecognitionError):
        return exc
    if isinstance(exc, TesseractNotFoundError):
        return EngineInitFailure()
    if isinstance(exc, MemoryError):
        return ResourceExhaustion()
    if isinstance(exc, TimeoutError):
        return RecognitionTimeout()

    message = str(exc)
    if isinstance(exc, TesseractError):
        message = f"{exc.status} {exc.message}"
    lowered = message.lower()

    if any(m in lowered for m in _NETWORK_MARKERS):
        return NetworkFailure()
    if any(m in lowered for m in _MEMORY_MARKERS):
        return ResourceExhaustion()
    if any(m in lowered for m in _TIMEOUT_MARKERS):
        return RecognitionTimeout()
    if any(m in lowered for m in _INIT_MARKERS):
        return EngineInitFailure()
    return UnknownRecognitionError(message)


def mean_confidence(data: dict) -> float:
    """Average word confidence from ``image_to_data`` output, clamped to [0, 100]."""
    confs = []
    for conf, word in zip(data.get("conf", []), data.get("text", [])):
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if value > 0 and str(word).strip():
            confs.append(value)
    if not confs:
        return 0.0
    return max(0.0, min(100.0, sum(confs) / len(confs)))


class TesseractEngine:
    """Wrapper around Tesseract for bilingual page recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: Tesseract language profile.
        psm: Tesseract page segmentation mode.
        timeout_s: Hard ceiling on recognition time per page.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "kor+eng",
        psm: int = 3,
        timeout_s: float = 300.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.timeout_s = timeout_s

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise RecognitionTimeout()
        return remaining

    def recognize(
        self, image_data: bytes, progress: ProgressObserver | None = None
    ) -> RecognitionResult:
        """Recognize text on one encoded page image.

        Args:
            image_data: Encoded page image; left untouched.
            progress: Optional observer for 0-100 progress on this page.

        Returns:
            Recognized text and confidence.

        Raises:
            RecognitionError: One of its subclasses, classified from the
                underlying engine failure.
        """
        emit = _PageProgress(progress)
        deadline = time.monotonic() + self.timeout_s
        config = f"--psm {self.psm}"

        try:
            emit(EngineEvent("loading image"))
            with Image.open(io.BytesIO(image_data)) as source:
                pil_image = source.convert("RGB")

            emit(EngineEvent(RECOGNIZING_TEXT, 0.0))
            data = pytesseract.image_to_data(
                pil_image,
                lang=self.lang,
                config=config,
                output_type=pytesseract.Output.DICT,
                timeout=self._remaining(deadline),
            )
            emit(EngineEvent(RECOGNIZING_TEXT, 0.5))
            text = pytesseract.image_to_string(
                pil_image,
                lang=self.lang,
                config=config,
                timeout=self._remaining(deadline),
            )
            emit(EngineEvent(RECOGNIZING_TEXT, 1.0))
        except RecognitionError as exc:
            logger.error("Tesseract recognition failed (%s)", exc.error_code)
            raise
        except Exception as exc:
            error = classify_engine_error(exc)
            logger.error("Tesseract recognition failed (%s): %s", error.error_code, exc)
            raise error from exc

        result = RecognitionResult(text=text or "", confidence=mean_confidence(data or {}))
        logger.info(
            "OCR extracted %d characters with confidence %.1f",
            len(result.text),
            result.confidence,
        )
        return result
