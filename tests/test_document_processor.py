"""Tests for the document processing pipelines."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from pdf2image.exceptions import PDFPageCountError
from PIL import Image

from certocr.errors import DecodeError, FileTooLarge, RecognitionTimeout, UnsupportedFormat
from certocr.extraction.classifier import CoarseDocumentType
from certocr.ocr.document_processor import (
    DocumentOCRResult,
    DocumentProcessor,
    UploadedFile,
    build_document_result,
)
from certocr.ocr.tesseract_engine import RecognitionResult, TesseractEngine
from certocr.utils.config import AppConfig, IntakeConfig


def _noisy_page(seed: int) -> Image.Image:
    """Create a PIL page that does not compress to a degenerate PNG."""
    rng = np.random.default_rng(seed)
    return Image.fromarray(rng.integers(0, 256, (120, 160, 3), dtype=np.uint8))


def _blank_page() -> Image.Image:
    """Create a PIL page whose PNG encoding is degenerate."""
    return Image.new("RGB", (1, 1))


def _render_from(mock_info: MagicMock, mock_convert: MagicMock, *pages: Image.Image) -> None:
    """Make the patched pdf2image calls serve ``pages`` one page per call."""
    mock_info.return_value = {"Pages": len(pages)}
    mock_convert.side_effect = lambda data, dpi, first_page, last_page: [pages[first_page - 1]]


def _mock_engine(*results: RecognitionResult | Exception) -> MagicMock:
    engine = MagicMock(spec=TesseractEngine)
    engine.recognize.side_effect = list(results)
    return engine


class RecordingProgress:
    """Collects submission progress events."""

    def __init__(self) -> None:
        self.events: list[tuple[int, int, int]] = []

    def on_page_progress(self, file_index: int, page_number: int, percent: int) -> None:
        self.events.append((file_index, page_number, percent))


class TestBuildDocumentResult:
    """Tests for single-document field extraction."""

    def test_certificate(self) -> None:
        result = build_document_result(RecognitionResult("합격증 정보처리기사 1급", 88.0))
        assert result.document_type == CoarseDocumentType.CERTIFICATE
        assert result.certification_name == "정보처리기사"
        assert result.grade == "1급"
        assert result.final_payment_amount is None
        assert result.extracted_cert_name == "정보처리기사"
        assert result.confidence == 88.0

    def test_receipt(self) -> None:
        result = build_document_result(RecognitionResult("합계금액: 150,000원", 75.0))
        assert result.document_type == CoarseDocumentType.RECEIPT
        assert result.final_payment_amount == "150,000"
        assert result.extracted_amount == 150000
        assert result.certification_name is None

    def test_receipt_payment_date(self) -> None:
        text = "영수증\n결제금액 12,000원\n결제일 2024.03.05"
        assert build_document_result(RecognitionResult(text, 90.0)).extracted_date == "2024-03-05"

    def test_other(self) -> None:
        result = build_document_result(RecognitionResult("", 0.0))
        assert result == DocumentOCRResult(CoarseDocumentType.OTHER, 0.0, "")


class TestProcessDocument:
    """Tests for the single-document path."""

    def test_image_document(self, png_bytes: bytes) -> None:
        engine = _mock_engine(RecognitionResult("합격증 정보처리기사 1급", 91.0))
        processor = DocumentProcessor(AppConfig(), engine=engine)

        result = processor.process_document(UploadedFile("cert.png", "image/png", png_bytes))

        assert result.document_type == CoarseDocumentType.CERTIFICATE
        assert result.grade == "1급"
        image_data = engine.recognize.call_args.args[0]
        assert image_data.startswith(b"\x89PNG")

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_uses_first_page_only(
        self, mock_convert: MagicMock, mock_info: MagicMock
    ) -> None:
        _render_from(mock_info, mock_convert, _noisy_page(1), _noisy_page(2))
        engine = _mock_engine(RecognitionResult("합계금액: 150,000원", 80.0))
        processor = DocumentProcessor(engine=engine)

        result = processor.process_document(UploadedFile("r.pdf", "application/pdf", b"%PDF"))

        assert result.final_payment_amount == "150,000"
        assert mock_convert.call_count == 1
        assert mock_convert.call_args.kwargs["last_page"] == 1
        assert engine.recognize.call_count == 1

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_skips_degenerate_first_page(
        self, mock_convert: MagicMock, mock_info: MagicMock
    ) -> None:
        _render_from(mock_info, mock_convert, _blank_page(), _noisy_page(2))
        engine = _mock_engine(RecognitionResult("합계금액: 150,000원", 80.0))
        processor = DocumentProcessor(engine=engine)

        result = processor.process_document(UploadedFile("r.pdf", "application/pdf", b"%PDF"))

        assert result.final_payment_amount == "150,000"
        assert [c.kwargs["first_page"] for c in mock_convert.call_args_list] == [1, 2]
        assert engine.recognize.call_count == 1

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_pdf_without_usable_pages(
        self, mock_convert: MagicMock, mock_info: MagicMock
    ) -> None:
        _render_from(mock_info, mock_convert, _blank_page())
        processor = DocumentProcessor(engine=_mock_engine())

        with pytest.raises(DecodeError):
            processor.process_document(UploadedFile("empty.pdf", "application/pdf", b"%PDF"))

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    def test_pdf_without_pages(self, mock_info: MagicMock) -> None:
        mock_info.return_value = {"Pages": 0}
        processor = DocumentProcessor(engine=_mock_engine())

        with pytest.raises(DecodeError):
            processor.process_document(UploadedFile("empty.pdf", "application/pdf", b"%PDF"))

    def test_unsupported_format(self) -> None:
        processor = DocumentProcessor(engine=_mock_engine())
        with pytest.raises(UnsupportedFormat):
            processor.process_document(UploadedFile("notes.txt", "text/plain", b"hello"))

    def test_file_too_large(self, png_bytes: bytes) -> None:
        config = AppConfig(intake=IntakeConfig(max_file_size_mb=0))
        processor = DocumentProcessor(config, engine=_mock_engine())
        with pytest.raises(FileTooLarge):
            processor.process_document(UploadedFile("big.png", "image/png", png_bytes))

    def test_recognition_error_propagates(self, png_bytes: bytes) -> None:
        processor = DocumentProcessor(engine=_mock_engine(RecognitionTimeout()))
        with pytest.raises(RecognitionTimeout):
            processor.process_document(UploadedFile("cert.png", "image/png", png_bytes))


class TestProcessSubmission:
    """Tests for the multi-file submission path."""

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_three_page_pdf(
        self,
        mock_convert: MagicMock,
        mock_info: MagicMock,
        receipt_text: str,
        certificate_text: str,
        other_text: str,
    ) -> None:
        _render_from(mock_info, mock_convert, _noisy_page(1), _noisy_page(2), _noisy_page(3))
        engine = _mock_engine(
            RecognitionResult(receipt_text, 90.0),
            RecognitionResult(certificate_text, 85.0),
            RecognitionResult(other_text, 60.0),
        )
        processor = DocumentProcessor(engine=engine)

        result = processor.process_submission(
            [UploadedFile("bundle.pdf", "application/pdf", b"%PDF")]
        )

        assert len(result.receipts) == 1
        assert result.receipts[0].final_amount == 45000
        assert len(result.certificates) == 1
        assert result.certificates[0].page == 2
        assert result.total_final_amount == 45000
        assert result.failures == ()

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_each_page_recognized_before_next_render(
        self, mock_convert: MagicMock, mock_info: MagicMock, other_text: str
    ) -> None:
        _render_from(mock_info, mock_convert, _noisy_page(1), _noisy_page(2))
        renders_at_recognition: list[int] = []

        def recognize(data: bytes, progress=None) -> RecognitionResult:
            renders_at_recognition.append(mock_convert.call_count)
            return RecognitionResult(other_text, 70.0)

        engine = MagicMock(spec=TesseractEngine)
        engine.recognize.side_effect = recognize

        DocumentProcessor(engine=engine).process_submission(
            [UploadedFile("bundle.pdf", "application/pdf", b"%PDF")]
        )

        assert renders_at_recognition == [1, 2]

    def test_files_processed_in_order(
        self, png_bytes: bytes, receipt_text: str, certificate_text: str
    ) -> None:
        engine = _mock_engine(
            RecognitionResult(certificate_text, 85.0),
            RecognitionResult(receipt_text, 90.0),
        )
        processor = DocumentProcessor(engine=engine)

        result = processor.process_submission(
            [
                UploadedFile("cert.png", "image/png", png_bytes),
                UploadedFile("receipt.png", "image/png", png_bytes),
            ]
        )

        assert [(p.file, p.page) for p in result.pages] == [("cert.png", 1), ("receipt.png", 1)]

    def test_failed_file_does_not_abort_others(
        self, png_bytes: bytes, receipt_text: str
    ) -> None:
        engine = _mock_engine(RecognitionTimeout(), RecognitionResult(receipt_text, 90.0))
        processor = DocumentProcessor(engine=engine)

        result = processor.process_submission(
            [
                UploadedFile("notes.txt", "text/plain", b"hello"),
                UploadedFile("slow.png", "image/png", png_bytes),
                UploadedFile("receipt.png", "image/png", png_bytes),
            ]
        )

        assert [(f.file, f.error_code) for f in result.failures] == [
            ("notes.txt", "unsupported_format"),
            ("slow.png", "recognition_timeout"),
        ]
        assert result.total_final_amount == 45000

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    def test_undecodable_pdf_reported(self, mock_info: MagicMock) -> None:
        mock_info.side_effect = PDFPageCountError("Unable to get page count.")
        processor = DocumentProcessor(engine=_mock_engine())

        result = processor.process_submission(
            [UploadedFile("broken.pdf", "application/pdf", b"garbage")]
        )

        assert result.failures[0].error_code == "decode_error"
        assert result.pages == ()

    @patch("certocr.ocr.pdf_handler.pdfinfo_from_bytes")
    @patch("certocr.ocr.pdf_handler.convert_from_bytes")
    def test_pages_before_failure_kept(
        self, mock_convert: MagicMock, mock_info: MagicMock, receipt_text: str
    ) -> None:
        _render_from(mock_info, mock_convert, _noisy_page(1), _noisy_page(2))
        engine = _mock_engine(RecognitionResult(receipt_text, 90.0), RecognitionTimeout())
        processor = DocumentProcessor(engine=engine)

        result = processor.process_submission(
            [UploadedFile("bundle.pdf", "application/pdf", b"%PDF")]
        )

        assert result.total_final_amount == 45000
        assert len(result.failures) == 1

    def test_progress_tagged_with_file_and_page(self, png_bytes: bytes, other_text: str) -> None:
        def recognize(data: bytes, progress=None) -> RecognitionResult:
            progress.on_progress(0)
            progress.on_progress(100)
            return RecognitionResult(other_text, 70.0)

        engine = MagicMock(spec=TesseractEngine)
        engine.recognize.side_effect = recognize
        recorder = RecordingProgress()

        DocumentProcessor(engine=engine).process_submission(
            [
                UploadedFile("a.png", "image/png", png_bytes),
                UploadedFile("b.png", "image/png", png_bytes),
            ],
            recorder,
        )

        assert recorder.events == [(0, 1, 0), (0, 1, 100), (1, 1, 0), (1, 1, 100)]
