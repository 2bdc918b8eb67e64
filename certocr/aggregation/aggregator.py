"""Per-page extraction and submission-level aggregation.

Each recognized page becomes one immutable :class:`PageExtraction`; a
submission's pages are then reduced into receipts, certificates, a total
payable amount and the union of certification name candidates.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from certocr.extraction.certificate_extractor import (
    CertificateFields,
    extract_certificate_fields,
    extract_cert_name_candidates,
)
from certocr.extraction.classifier import Classifier, PageDocumentType, classify_detailed
from certocr.extraction.rule_extractor import (
    FieldCandidate,
    extract_amounts,
    extract_dates,
    pick_final_amount,
    pick_payment_date,
)
from certocr.utils.logger import get_logger

logger = get_logger(__name__)

RECEIPT_TYPES = frozenset({PageDocumentType.RECEIPT, PageDocumentType.SALES})


@dataclass(frozen=True)
class PageExtraction:
    """Everything extracted from one page of one file."""

    file: str
    page: int
    doc_type: PageDocumentType
    date_candidates: tuple[FieldCandidate[str], ...] = ()
    amount_candidates: tuple[FieldCandidate[int], ...] = ()
    certificate_fields: CertificateFields = field(default_factory=CertificateFields)
    cert_name_candidates: tuple[str, ...] = ()
    final_amount: int | None = None
    payment_date: str | None = None


@dataclass(frozen=True)
class ReceiptEntry:
    file: str
    page: int
    payment_date: str | None
    final_amount: int | None


@dataclass(frozen=True)
class CertificateEntry:
    file: str
    page: int
    name: str | None
    date: str | None
    issuer: str | None


@dataclass(frozen=True)
class FileFailure:
    """A file whose pages could not be recognized."""

    file: str
    error_code: str
    message: str


@dataclass(frozen=True)
class SubmissionExtraction:
    """Aggregated extraction over every page of a submission."""

    pages: tuple[PageExtraction, ...]
    receipts: tuple[ReceiptEntry, ...]
    certificates: tuple[CertificateEntry, ...]
    cert_name_candidates: tuple[str, ...]
    total_final_amount: int
    failures: tuple[FileFailure, ...] = ()


def extract_page(
    file: str,
    page: int,
    text: str,
    classifier: Classifier[PageDocumentType] = classify_detailed,
) -> PageExtraction:
    """Classify a page and run every extractor over its text.

    Final amount and payment date are only chosen for receipt and sales
    pages.

    Args:
        file: Source file name.
        page: 1-based page number within the file.
        text: Recognized page text.
        classifier: Page classifier; the detailed keyword classifier by
            default.

    Returns:
        The page's extraction.
    """
    doc_type = classifier(text)
    amounts = extract_amounts(text)
    dates = extract_dates(text)
    is_receipt = doc_type in RECEIPT_TYPES

    extraction = PageExtraction(
        file=file,
        page=page,
        doc_type=doc_type,
        date_candidates=tuple(dates),
        amount_candidates=tuple(amounts),
        certificate_fields=extract_certificate_fields(text),
        cert_name_candidates=tuple(extract_cert_name_candidates(text)),
        final_amount=pick_final_amount(amounts) if is_receipt else None,
        payment_date=pick_payment_date(dates) if is_receipt else None,
    )
    logger.info(
        "Page %s p.%d classified as %s (%d amounts, %d dates)",
        file,
        page,
        doc_type,
        len(amounts),
        len(dates),
    )
    return extraction


def aggregate(
    pages: Iterable[PageExtraction], failures: Iterable[FileFailure] = ()
) -> SubmissionExtraction:
    """Reduce page extractions into one submission result.

    Page order is preserved in every list.

    Args:
        pages: Page extractions in (file, page) order.
        failures: Files that produced no pages.

    Returns:
        The submission-level extraction.
    """
    pages = tuple(pages)

    receipts = tuple(
        ReceiptEntry(p.file, p.page, p.payment_date, p.final_amount)
        for p in pages
        if p.doc_type in RECEIPT_TYPES
    )
    certificates = tuple(
        CertificateEntry(
            p.file,
            p.page,
            p.certificate_fields.name,
            p.certificate_fields.date,
            p.certificate_fields.issuer,
        )
        for p in pages
        if p.doc_type == PageDocumentType.CERTIFICATE
    )
    total = sum(r.final_amount or 0 for r in receipts)
    candidates = tuple(dict.fromkeys(c for p in pages for c in p.cert_name_candidates))

    logger.info(
        "Aggregated %d pages: %d receipts, %d certificates, total %d",
        len(pages),
        len(receipts),
        len(certificates),
        total,
    )
    return SubmissionExtraction(
        pages=pages,
        receipts=receipts,
        certificates=certificates,
        cert_name_candidates=candidates,
        total_final_amount=total,
        failures=tuple(failures),
    )
