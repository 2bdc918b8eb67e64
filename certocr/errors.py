"""Exception hierarchy for the certification OCR pipeline.

Every error carries a human-readable message suitable for display to the
person who uploaded the document, plus a stable ``error_code``.
"""


class DocumentOCRError(Exception):
    """Base class for all pipeline errors.

    Args:
        message: User-facing description of the failure.
    """

    error_code = "ocr_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error_code": self.error_code, "message": self.message}


class UnsupportedFormat(DocumentOCRError):
    """The declared media type is not an accepted image or PDF type."""

    error_code = "unsupported_format"

    def __init__(self, media_type: str | None) -> None:
        super().__init__(
            f"Unsupported file type ({media_type}). "
            "Supported types: JPEG, PNG, GIF, WebP, BMP, PDF."
        )
        self.media_type = media_type


class FileTooLarge(DocumentOCRError):
    """The uploaded file exceeds the size limit."""

    error_code = "file_too_large"

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        super().__init__(
            f"File is too large (max: {max_bytes / 1024 / 1024:.0f}MB, "
            f"current: {size_bytes / 1024 / 1024:.2f}MB)."
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class DecodeError(DocumentOCRError):
    """A paginated document could not be converted into page images."""

    error_code = "decode_error"

    def __init__(self, detail: str = "") -> None:
        message = "Could not convert the document to recognizable pages."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RecognitionError(DocumentOCRError):
    """Base class for failures of the OCR engine call."""

    error_code = "recognition_error"
    default_message = "OCR processing failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NetworkFailure(RecognitionError):
    error_code = "network_failure"
    default_message = (
        "Network error: the OCR language model could not be loaded. "
        "Check the connection and the installed language data."
    )


class ResourceExhaustion(RecognitionError):
    error_code = "resource_exhaustion"
    default_message = (
        "Out of memory: the file is too large to recognize. "
        "Try again with a smaller image."
    )


class RecognitionTimeout(RecognitionError):
    error_code = "recognition_timeout"
    default_message = (
        "Processing timed out: the file is too large or too complex. "
        "Try again with a smaller image."
    )


class EngineInitFailure(RecognitionError):
    error_code = "engine_init_failure"
    default_message = (
        "The OCR engine could not be started. Check the Tesseract "
        "installation and try again."
    )


class UnknownRecognitionError(RecognitionError):
    error_code = "unknown_recognition_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(f"OCR processing failed: {detail}" if detail else None)
