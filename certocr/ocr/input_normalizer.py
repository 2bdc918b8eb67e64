"""Upload validation and conversion of input files into page images.

Accepts raster images and PDFs and produces one ordered list of
:class:`RawPage` objects, one per document page.
"""

import mimetypes
from collections.abc import Iterator
from dataclasses import dataclass

from certocr.errors import DecodeError, FileTooLarge, UnsupportedFormat
from certocr.utils.config import IntakeConfig, PDFConfig
from certocr.utils.logger import get_logger

from .pdf_handler import PDFHandler

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
GENERIC_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class RawPage:
    """One page's encoded raster image and where it came from."""

    file_name: str
    page_number: int
    data: bytes
    media_type: str


def guess_media_type(file_name: str, declared: str | None = None) -> str | None:
    """Media type of an upload, falling back to its file extension.

    A missing or generic declared type is replaced by the type guessed
    from ``file_name``.
    """
    if declared and declared != GENERIC_MEDIA_TYPE:
        return declared
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or declared


def validate_upload(
    file_name: str,
    media_type: str | None,
    size: int,
    config: IntakeConfig | None = None,
) -> None:
    """Reject files that must not enter the pipeline.

    Args:
        file_name: Display name of the upload.
        media_type: Declared MIME type.
        size: File size in bytes.
        config: Intake limits; defaults apply when omitted.

    Raises:
        FileTooLarge: If the file exceeds the configured maximum size.
        UnsupportedFormat: If the media type is not accepted.
    """
    config = config or IntakeConfig()
    if size > config.max_file_size_bytes:
        logger.warning("Rejected %s: %d bytes exceeds limit", file_name, size)
        raise FileTooLarge(size, config.max_file_size_bytes)
    if media_type not in config.allowed_media_types:
        logger.warning("Rejected %s: unsupported media type %s", file_name, media_type)
        raise UnsupportedFormat(media_type)


class InputNormalizer:
    """Turns an uploaded file into an ordered sequence of page images.

    Args:
        pdf_handler: Shared PDF rasterizer.
        pdf_config: Page cap and degenerate-page threshold.
        intake_config: Accepted media types.
    """

    def __init__(
        self,
        pdf_handler: PDFHandler,
        pdf_config: PDFConfig | None = None,
        intake_config: IntakeConfig | None = None,
    ) -> None:
        self.pdf_handler = pdf_handler
        self.pdf_config = pdf_config or PDFConfig()
        self.intake_config = intake_config or IntakeConfig()

    def iter_pages(
        self,
        data: bytes,
        media_type: str,
        file_name: str = "document",
        max_pages: int | None = None,
    ) -> Iterator[RawPage]:
        """Lazily convert a file into page images.

        Raster images pass through as a single page. PDF pages are rendered
        only as they are consumed and degenerate renders are dropped.

        Args:
            data: Raw file content.
            media_type: Declared MIME type of ``data``.
            file_name: Display name used to tag each page.
            max_pages: Optional cap on rendered PDF pages. Falls back to
                the configured cap.

        Yields:
            Pages in document order.

        Raises:
            UnsupportedFormat: If ``media_type`` is not accepted.
            DecodeError: If the PDF cannot be parsed or a page fails to render.
        """
        if media_type not in self.intake_config.allowed_media_types:
            raise UnsupportedFormat(media_type)

        if media_type != PDF_MEDIA_TYPE:
            yield RawPage(file_name, 1, data, media_type)
            return

        cap = max_pages if max_pages is not None else self.pdf_config.max_pages
        for page_number, png in self.pdf_handler.render_pages(data, cap):
            if len(png) <= self.pdf_config.min_page_bytes:
                logger.warning(
                    "Skipping degenerate page %d of %s (%d bytes)",
                    page_number,
                    file_name,
                    len(png),
                )
                continue
            yield RawPage(file_name, page_number, png, "image/png")

    def to_pages(
        self,
        data: bytes,
        media_type: str,
        file_name: str = "document",
        max_pages: int | None = None,
    ) -> list[RawPage]:
        """Convert a file into a list of page images.

        Same as :meth:`iter_pages`, except that a PDF that cannot be
        decoded yields an empty list.

        Raises:
            UnsupportedFormat: If ``media_type`` is not accepted.
        """
        try:
            pages = list(self.iter_pages(data, media_type, file_name, max_pages))
        except DecodeError as exc:
            logger.error("Failed to convert %s to page images: %s", file_name, exc)
            return []

        logger.info("Normalized %s into %d page images", file_name, len(pages))
        return pages
