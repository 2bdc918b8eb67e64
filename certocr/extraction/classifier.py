"""Keyword-based document type classification.

Two independent vocabularies are used on purpose. The coarse scheme
decides which fields the single-document path extracts; the detailed
scheme drives per-page aggregation of receipts, certificates and mixed
sales slips in a multi-page submission.
"""

from enum import StrEnum
from typing import Protocol, TypeVar

from certocr.utils.logger import get_logger

logger = get_logger(__name__)

LabelT = TypeVar("LabelT", covariant=True)


class CoarseDocumentType(StrEnum):
    """Single-document classification."""

    CERTIFICATE = "A"
    RECEIPT = "B"
    OTHER = "OTHER"


class PageDocumentType(StrEnum):
    """Per-page classification used when aggregating a submission."""

    RECEIPT = "receipt"
    SALES = "sales"
    CERTIFICATE = "certificate"
    OTHER = "other"


# Type A: pass certificates and certificates of qualification.
CERTIFICATE_KEYWORDS: tuple[str, ...] = (
    "합격증",
    "합격",
    "자격증명서",
    "자격증",
    "자격시험",
    "기사",
    "산업기사",
    "급수",
    "등급",
    "1급",
    "2급",
    "3급",
    "기능사",
    "CERTIFICATE",
    "PASS",
    "QUALIFICATION",
    "LICENSE",
)

# Type B: sales slips, receipts and invoices.
RECEIPT_KEYWORDS: tuple[str, ...] = (
    "매출전표",
    "영수증",
    "거래명세서",
    "세금계산서",
    "계산서",
    "결제금액",
    "합계금액",
    "총액",
    "최종금액",
    "청구금액",
    "RECEIPT",
    "INVOICE",
    "BILL",
    "PAYMENT",
    "TOTAL",
)

PAGE_RECEIPT_KEYWORDS: tuple[str, ...] = (
    "영수증",
    "RECEIPT",
    "매출전표",
    "CREDIT",
    "승인",
    "결제",
    "거래",
)
PAGE_CERTIFICATE_KEYWORDS: tuple[str, ...] = (
    "자격증",
    "CERTIFICATE",
    "합격",
    "발급",
    "면허",
    "LICENSE",
)


class Classifier(Protocol[LabelT]):
    """Assigns a document type label to recognized text."""

    def __call__(self, text: object) -> LabelT: ...


def keyword_score(text: str, keywords: tuple[str, ...]) -> int:
    """Count how many keywords occur in ``text`` (case-insensitive)."""
    upper = text.upper()
    return sum(1 for keyword in keywords if keyword in upper)


def classify_coarse(text: object) -> CoarseDocumentType:
    """Classify a single document as certificate (A), receipt (B) or other.

    The vocabulary with strictly more keyword hits wins; ties and
    documents without hits are ``OTHER``.

    Args:
        text: Recognized text. Non-string input yields ``OTHER``.

    Returns:
        Coarse document type.
    """
    if not text or not isinstance(text, str):
        return CoarseDocumentType.OTHER

    cert_score = keyword_score(text, CERTIFICATE_KEYWORDS)
    receipt_score = keyword_score(text, RECEIPT_KEYWORDS)
    logger.debug("Coarse scores: certificate=%d receipt=%d", cert_score, receipt_score)

    if cert_score > receipt_score and cert_score > 0:
        return CoarseDocumentType.CERTIFICATE
    if receipt_score > cert_score and receipt_score > 0:
        return CoarseDocumentType.RECEIPT
    return CoarseDocumentType.OTHER


def classify_detailed(text: object) -> PageDocumentType:
    """Classify one page of a submission.

    A page with both receipt and certificate vocabulary is a ``sales``
    slip (for example a receipt for an exam fee).

    Args:
        text: Recognized page text. Non-string input yields ``other``.

    Returns:
        Detailed page type.
    """
    if not text or not isinstance(text, str):
        return PageDocumentType.OTHER

    has_receipt = keyword_score(text, PAGE_RECEIPT_KEYWORDS) > 0
    has_cert = keyword_score(text, PAGE_CERTIFICATE_KEYWORDS) > 0

    if has_receipt and has_cert:
        return PageDocumentType.SALES
    if has_cert:
        return PageDocumentType.CERTIFICATE
    if has_receipt:
        return PageDocumentType.RECEIPT
    return PageDocumentType.OTHER
