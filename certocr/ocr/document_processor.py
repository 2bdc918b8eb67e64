"""Document processing pipelines for certificates and receipts.

Wires input normalization, preprocessing, OCR and extraction together.
Two entry points exist: a single-document path that returns the fields a
reviewer confirms, and a submission path that processes every page of
every file and aggregates the results.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from certocr.aggregation.aggregator import (
    FileFailure,
    PageExtraction,
    SubmissionExtraction,
    aggregate,
    extract_page,
)
from certocr.errors import DecodeError, DocumentOCRError
from certocr.extraction.certificate_extractor import (
    extract_certificate_fields,
    extract_certification_name,
    extract_grade,
)
from certocr.extraction.classifier import CoarseDocumentType, classify_coarse
from certocr.extraction.rule_extractor import (
    extract_dates,
    extract_final_payment_amount,
    parse_amount,
    pick_payment_date,
)
from certocr.preprocessing.pipeline import PreprocessingPipeline
from certocr.utils.config import AppConfig
from certocr.utils.logger import get_logger, page_logger

from .input_normalizer import InputNormalizer, RawPage, validate_upload
from .pdf_handler import PDFHandler
from .tesseract_engine import ProgressObserver, RecognitionResult, TesseractEngine

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """A file handed to the pipeline."""

    name: str
    media_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DocumentOCRResult:
    """Fields extracted from a single document for review.

    ``extracted_amount`` and ``extracted_cert_name`` mirror
    ``final_payment_amount`` and ``certification_name`` for older consumers.
    """

    document_type: CoarseDocumentType
    confidence: float
    raw_text: str
    certification_name: str | None = None
    grade: str | None = None
    final_payment_amount: str | None = None
    extracted_date: str | None = None
    is_verified: bool = False
    extracted_amount: int | None = None
    extracted_cert_name: str | None = None


class SubmissionProgress(Protocol):
    """Receives per-page progress during a submission run."""

    def on_page_progress(self, file_index: int, page_number: int, percent: int) -> None: ...


class _PageObserver:
    def __init__(self, sink: SubmissionProgress, file_index: int, page_number: int) -> None:
        self.sink = sink
        self.file_index = file_index
        self.page_number = page_number

    def on_progress(self, percent: int) -> None:
        self.sink.on_page_progress(self.file_index, self.page_number, percent)


def build_document_result(recognition: RecognitionResult) -> DocumentOCRResult:
    """Classify recognized text and extract the fields for its type.

    Certificates (type A) yield name, grade and acquisition date; receipts
    (type B) yield the final payment amount and payment date.
    """
    text = recognition.text
    document_type = classify_coarse(text)

    certification_name = grade = final_amount = extracted_date = None
    if document_type == CoarseDocumentType.CERTIFICATE:
        certification_name = extract_certification_name(text)
        grade = extract_grade(text)
        extracted_date = extract_certificate_fields(text).date
    elif document_type == CoarseDocumentType.RECEIPT:
        final_amount = extract_final_payment_amount(text)
        extracted_date = pick_payment_date(extract_dates(text))

    logger.info(
        "Document type %s: name=%s grade=%s final_amount=%s",
        document_type,
        certification_name,
        grade,
        final_amount,
    )
    return DocumentOCRResult(
        document_type=document_type,
        confidence=recognition.confidence,
        raw_text=text,
        certification_name=certification_name,
        grade=grade,
        final_payment_amount=final_amount,
        extracted_date=extracted_date,
        extracted_amount=parse_amount(final_amount) if final_amount else None,
        extracted_cert_name=certification_name,
    )


class DocumentProcessor:
    """End-to-end document processing pipeline.

    Owns the single shared PDF rasterizer and the OCR engine; pages are
    processed one at a time in submission order.

    Args:
        config: Application configuration object.
        engine: OCR engine; built from ``config.ocr`` when omitted.
    """

    def __init__(self, config: AppConfig | None = None, engine: TesseractEngine | None = None) -> None:
        self.config = config or AppConfig()
        self.pdf_handler = PDFHandler(dpi=self.config.pdf.dpi)
        self.normalizer = InputNormalizer(
            self.pdf_handler, self.config.pdf, self.config.intake
        )
        self.preprocessing = PreprocessingPipeline(self.config.preprocessing)
        self.ocr_engine = engine or TesseractEngine(
            tesseract_cmd=self.config.ocr.tesseract_cmd,
            lang=self.config.ocr.lang,
            psm=self.config.ocr.psm,
            timeout_s=self.config.ocr.timeout_s,
        )

    def _recognize(self, page: RawPage, progress: ProgressObserver | None) -> RecognitionResult:
        log = page_logger(logger, page.file_name, page.page_number)
        processed = self.preprocessing.process(page.data)
        if processed.degraded:
            log.warning("Preprocessing degraded: %s", "; ".join(processed.degraded))
        log.info("Recognizing %dx%d page image", processed.width, processed.height)
        return self.ocr_engine.recognize(processed.data, progress)

    def process_document(
        self, upload: UploadedFile, progress: ProgressObserver | None = None
    ) -> DocumentOCRResult:
        """Recognize one document and extract its reviewable fields.

        Only the first usable page of a PDF is recognized; degenerate
        leading pages are skipped.

        Args:
            upload: The uploaded file.
            progress: Optional observer for 0-100 recognition progress.

        Returns:
            The extracted fields.

        Raises:
            UnsupportedFormat: If the media type is not accepted.
            FileTooLarge: If the file exceeds the size limit.
            DecodeError: If no page image could be produced.
            RecognitionError: If the OCR engine fails.
        """
        validate_upload(upload.name, upload.media_type, upload.size, self.config.intake)
        logger.info("Processing document: %s (%d bytes)", upload.name, upload.size)

        pages = self.normalizer.iter_pages(upload.data, upload.media_type, upload.name)
        page = next(pages, None)
        if page is None:
            raise DecodeError(upload.name)

        recognition = self._recognize(page, progress)
        return build_document_result(recognition)

    def _process_file(
        self,
        file_index: int,
        upload: UploadedFile,
        progress: SubmissionProgress | None,
        extractions: list[PageExtraction],
    ) -> None:
        validate_upload(upload.name, upload.media_type, upload.size, self.config.intake)
        recognized = 0
        for page in self.normalizer.iter_pages(upload.data, upload.media_type, upload.name):
            observer = _PageObserver(progress, file_index, page.page_number) if progress else None
            recognition = self._recognize(page, observer)
            extractions.append(extract_page(page.file_name, page.page_number, recognition.text))
            recognized += 1
        if not recognized:
            raise DecodeError(upload.name)

    def process_submission(
        self,
        uploads: Iterable[UploadedFile],
        progress: SubmissionProgress | None = None,
    ) -> SubmissionExtraction:
        """Process every page of every file and aggregate the results.

        Files are processed strictly in order. A file that fails
        validation, decoding or recognition is recorded in ``failures``; its
        pages recognized before the failure are kept and the remaining files
        are still processed.

        Args:
            uploads: Files of the submission, in submission order.
            progress: Optional per-page progress sink.

        Returns:
            The aggregated submission extraction.
        """
        extractions: list[PageExtraction] = []
        failures: list[FileFailure] = []

        for file_index, upload in enumerate(uploads):
            try:
                self._process_file(file_index, upload, progress, extractions)
            except DocumentOCRError as exc:
                logger.error("Failed to process %s: %s", upload.name, exc.message)
                failures.append(FileFailure(upload.name, exc.error_code, exc.message))

        return aggregate(extractions, failures)
