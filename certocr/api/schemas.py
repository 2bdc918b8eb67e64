"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field

from certocr.extraction.classifier import CoarseDocumentType, PageDocumentType


class DocumentExtractionResponse(BaseModel):
    """Response schema for a single-document extraction request."""

    success: bool
    document_id: str
    file_name: str
    document_type: CoarseDocumentType
    confidence: float
    needs_review: bool
    raw_text: str
    certification_name: str | None = None
    grade: str | None = None
    final_payment_amount: str | None = None
    extracted_date: str | None = None
    extracted_amount: int | None = None
    extracted_cert_name: str | None = None
    editable_amount: str = ""
    editable_cert_name: str = ""
    is_verified: bool = False
    processing_time_ms: float


class ReceiptResponse(BaseModel):
    """A receipt or sales page of a submission."""

    file: str
    page: int
    payment_date: str | None = None
    final_amount: int | None = None


class CertificateResponse(BaseModel):
    """A certificate page of a submission."""

    file: str
    page: int
    name: str | None = None
    date: str | None = None
    issuer: str | None = None


class PageResponse(BaseModel):
    """Classification and chosen fields of one submission page."""

    file: str
    page: int
    doc_type: PageDocumentType
    final_amount: int | None = None
    payment_date: str | None = None
    cert_name_candidates: list[str] = Field(default_factory=list)


class FailureResponse(BaseModel):
    """A file of a submission that could not be processed."""

    file: str
    error_code: str
    message: str


class SubmissionResponse(BaseModel):
    """Response schema for a multi-file submission."""

    success: bool
    total_files: int
    pages: list[PageResponse]
    receipts: list[ReceiptResponse]
    certificates: list[CertificateResponse]
    resolved_certificates: list[CertificateResponse]
    cert_name_candidates: list[str]
    matched_cert_names: list[str]
    total_final_amount: int
    failures: list[FailureResponse]
    processing_time_ms: float


class CatalogMatchRequest(BaseModel):
    """Request schema for matching name candidates against the catalog."""

    candidates: list[str]


class CatalogMatchResponse(BaseModel):
    """Catalog names related to the submitted candidates."""

    matched: list[str]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    catalog_entries: int
