"""FastAPI application for the certification document OCR API.

Provides REST endpoints for single-document extraction, multi-file
submission processing, catalog matching, and health checks.
"""

import shutil
import time
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from certocr import __version__
from certocr.aggregation.aggregator import CertificateEntry, SubmissionExtraction
from certocr.catalog.matcher import CatalogMatcher, load_catalog
from certocr.errors import (
    DecodeError,
    DocumentOCRError,
    FileTooLarge,
    RecognitionError,
    RecognitionTimeout,
    UnsupportedFormat,
)
from certocr.ocr.document_processor import DocumentProcessor, UploadedFile
from certocr.ocr.input_normalizer import guess_media_type
from certocr.review.editable import EditableOcrData, needs_review
from certocr.utils.config import AppConfig, load_config
from certocr.utils.logger import get_logger

from .schemas import (
    CatalogMatchRequest,
    CatalogMatchResponse,
    CertificateResponse,
    DocumentExtractionResponse,
    FailureResponse,
    HealthResponse,
    PageResponse,
    ReceiptResponse,
    SubmissionResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Certification Document OCR API",
    description="Extract reimbursement fields from certificates and receipts",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_components() -> tuple[AppConfig, DocumentProcessor, CatalogMatcher]:
    """Initialize and return shared processing components.

    Returns:
        Tuple of (config, document_processor, catalog_matcher).
    """
    config = load_config()
    doc_processor = DocumentProcessor(config)
    matcher = CatalogMatcher(load_catalog(Path(config.catalog.path)))
    return config, doc_processor, matcher


def _status_code_for(exc: DocumentOCRError) -> int:
    if isinstance(exc, UnsupportedFormat):
        return 400
    if isinstance(exc, FileTooLarge):
        return 413
    if isinstance(exc, DecodeError):
        return 422
    if isinstance(exc, RecognitionTimeout):
        return 504
    if isinstance(exc, RecognitionError):
        return 502
    return 500


async def _read_upload(file: UploadFile) -> UploadedFile:
    name = file.filename or "document"
    content = await file.read()
    return UploadedFile(name, guess_media_type(name, file.content_type) or "", content)


def _certificate_response(entry: CertificateEntry) -> CertificateResponse:
    return CertificateResponse(
        file=entry.file,
        page=entry.page,
        name=entry.name,
        date=entry.date,
        issuer=entry.issuer,
    )


def _submission_response(
    submission: SubmissionExtraction,
    matched: list[str],
    resolved: list[CertificateEntry],
    total_files: int,
    processing_time_ms: float,
) -> SubmissionResponse:
    return SubmissionResponse(
        success=len(submission.failures) < total_files,
        total_files=total_files,
        pages=[
            PageResponse(
                file=p.file,
                page=p.page,
                doc_type=p.doc_type,
                final_amount=p.final_amount,
                payment_date=p.payment_date,
                cert_name_candidates=list(p.cert_name_candidates),
            )
            for p in submission.pages
        ],
        receipts=[
            ReceiptResponse(
                file=r.file,
                page=r.page,
                payment_date=r.payment_date,
                final_amount=r.final_amount,
            )
            for r in submission.receipts
        ],
        certificates=[_certificate_response(c) for c in submission.certificates],
        resolved_certificates=[_certificate_response(c) for c in resolved],
        cert_name_candidates=list(submission.cert_name_candidates),
        matched_cert_names=matched,
        total_final_amount=submission.total_final_amount,
        failures=[
            FailureResponse(file=f.file, error_code=f.error_code, message=f.message)
            for f in submission.failures
        ],
        processing_time_ms=processing_time_ms,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    config = load_config()
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which(config.ocr.tesseract_cmd or "tesseract") is not None,
        catalog_entries=len(load_catalog(Path(config.catalog.path))),
    )


@app.post("/extract", response_model=DocumentExtractionResponse)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
) -> DocumentExtractionResponse:
    """Recognize one certificate or receipt and extract its fields.

    Args:
        file: Uploaded document (JPEG, PNG, GIF, WebP, BMP or PDF).

    Returns:
        The document type, confidence, raw text and extracted fields.
    """
    start_time = time.time()
    upload = await _read_upload(file)

    try:
        config, doc_processor, _ = _get_components()
        result = doc_processor.process_document(upload)
    except DocumentOCRError as exc:
        logger.error("Extraction failed for %s: %s", upload.name, exc.message)
        raise HTTPException(status_code=_status_code_for(exc), detail=exc.to_dict()) from exc
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    editable = EditableOcrData.from_result(result)
    processing_time = (time.time() - start_time) * 1000

    return DocumentExtractionResponse(
        success=True,
        document_id=str(uuid.uuid4()),
        file_name=upload.name,
        document_type=result.document_type,
        confidence=result.confidence,
        needs_review=needs_review(result.confidence, config.review.confidence_threshold),
        raw_text=result.raw_text,
        certification_name=result.certification_name,
        grade=result.grade,
        final_payment_amount=result.final_payment_amount,
        extracted_date=editable.extracted_date or None,
        extracted_amount=result.extracted_amount,
        extracted_cert_name=result.extracted_cert_name,
        editable_amount=editable.extracted_amount,
        editable_cert_name=editable.extracted_cert_name,
        is_verified=result.is_verified,
        processing_time_ms=processing_time,
    )


@app.post("/extract/submission", response_model=SubmissionResponse)
async def extract_submission(
    files: Annotated[list[UploadFile], File(...)],
) -> SubmissionResponse:
    """Process every page of a multi-file reimbursement submission.

    Files that cannot be processed are reported in ``failures``; the others
    still contribute receipts, certificates and the total amount.

    Args:
        files: Uploaded receipts and certificates, in submission order.

    Returns:
        Aggregated receipts, certificates, catalog matches and total.
    """
    start_time = time.time()
    uploads = [await _read_upload(f) for f in files]

    try:
        _, doc_processor, matcher = _get_components()
        submission = doc_processor.process_submission(uploads)
        matched = matcher.match(submission.cert_name_candidates)
        resolved = matcher.resolve_certificates(submission, matched)
    except Exception as exc:
        logger.error("Submission processing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    processing_time = (time.time() - start_time) * 1000
    return _submission_response(
        submission, matched, resolved, len(uploads), processing_time
    )


@app.post("/catalog/match", response_model=CatalogMatchResponse)
async def match_catalog(request: CatalogMatchRequest) -> CatalogMatchResponse:
    """Return catalog names related to the given name candidates."""
    _, _, matcher = _get_components()
    return CatalogMatchResponse(matched=matcher.match(request.candidates))
