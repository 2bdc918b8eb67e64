"""PDF to image conversion for multi-page document processing.

Renders PDF pages into lossless PNG encodings so every page can flow
through the same preprocessing and OCR stages as an uploaded photo.
"""

import io
from collections.abc import Iterator

from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from pdf2image.pdf2image import pdfinfo_from_bytes
from PIL import Image

from certocr.errors import DecodeError
from certocr.utils.logger import get_logger

logger = get_logger(__name__)

_PDF2IMAGE_ERRORS = (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError)


def encode_png(image: Image.Image) -> bytes:
    """Encode a PIL image as PNG bytes."""
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


class PDFHandler:
    """Rasterizes PDF pages for OCR processing.

    One instance is created by the document processor and shared for the
    lifetime of the process.

    Args:
        dpi: Resolution for PDF rendering. The default of 144 DPI is a 2x
            upscale of PDF user space.
    """

    def __init__(self, dpi: int = 144) -> None:
        self.dpi = dpi

    def get_page_count(self, pdf_bytes: bytes) -> int:
        """Get the number of pages in a PDF without rendering it.

        Raises:
            DecodeError: If the PDF cannot be parsed.
        """
        try:
            info = pdfinfo_from_bytes(pdf_bytes)
        except _PDF2IMAGE_ERRORS as exc:
            raise DecodeError(str(exc)) from exc
        except Exception as exc:
            raise DecodeError(f"PDF inspection failed: {exc}") from exc
        count = int(info["Pages"])
        logger.debug("PDF has %d pages", count)
        return count

    def render_page(self, pdf_bytes: bytes, page_number: int) -> bytes:
        """Render a single 1-based PDF page as PNG bytes.

        Raises:
            DecodeError: If the page cannot be rendered.
        """
        try:
            pil_images = convert_from_bytes(
                pdf_bytes,
                dpi=self.dpi,
                first_page=page_number,
                last_page=page_number,
            )
        except _PDF2IMAGE_ERRORS as exc:
            raise DecodeError(str(exc)) from exc
        except Exception as exc:
            raise DecodeError(f"PDF conversion failed: {exc}") from exc

        if not pil_images:
            raise DecodeError(f"page {page_number}: nothing rendered")
        pil_image = pil_images[0]
        try:
            return encode_png(pil_image.convert("RGB"))
        except (OSError, ValueError) as exc:
            raise DecodeError(f"page {page_number}: {exc}") from exc
        finally:
            pil_image.close()

    def render_pages(
        self, pdf_bytes: bytes, max_pages: int | None = None
    ) -> Iterator[tuple[int, bytes]]:
        """Render PDF pages one at a time as PNG bytes.

        Each page is rasterized only when the caller asks for it, so a
        page's buffer can be released before the next page is rendered.

        Args:
            pdf_bytes: Raw PDF file content.
            max_pages: Render at most this many leading pages.

        Yields:
            ``(page_number, png_bytes)`` tuples, page numbers starting at 1.

        Raises:
            DecodeError: If the PDF cannot be parsed or rendered.
        """
        page_count = self.get_page_count(pdf_bytes)
        if max_pages is not None:
            page_count = min(page_count, max_pages)

        logger.info("Rendering %d PDF pages at %d DPI", page_count, self.dpi)
        for page_number in range(1, page_count + 1):
            yield page_number, self.render_page(pdf_bytes, page_number)
