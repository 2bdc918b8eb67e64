"""Reviewer-facing projection of a single-document OCR result.

The reviewer sees the recognized text and the extracted amount, name and
date, may overwrite any of them, and confirms. Low-confidence results
must be reviewed before they are accepted.
"""

from pydantic import BaseModel

from certocr.extraction.classifier import CoarseDocumentType
from certocr.extraction.rule_extractor import normalize_date, parse_amount
from certocr.ocr.document_processor import DocumentOCRResult

REVIEW_CONFIDENCE_THRESHOLD = 80.0


def needs_review(confidence: float, threshold: float = REVIEW_CONFIDENCE_THRESHOLD) -> bool:
    """Whether a result must be checked by a person before acceptance.

    A confidence equal to the threshold is acceptable.
    """
    return confidence < threshold


class EditableOcrData(BaseModel):
    """Editable fields seeded from a recognized document."""

    raw_text: str = ""
    extracted_amount: str = ""
    extracted_cert_name: str = ""
    extracted_date: str = ""
    confidence: float = 0.0
    document_type: CoarseDocumentType = CoarseDocumentType.OTHER
    grade: str | None = None
    final_payment_amount: str | None = None
    is_verified: bool = False

    @classmethod
    def from_result(cls, result: DocumentOCRResult) -> "EditableOcrData":
        """Seed the editable fields from an OCR result.

        Certificates show ``"name (grade)"``; receipts show the final payment
        amount. Legacy fields fill whatever the typed fields left empty.
        """
        amount = ""
        cert_name = ""
        if result.document_type == CoarseDocumentType.CERTIFICATE:
            cert_name = result.certification_name or ""
            if result.grade:
                cert_name = f"{cert_name} ({result.grade})" if cert_name else result.grade
        elif result.document_type == CoarseDocumentType.RECEIPT:
            amount = result.final_payment_amount or ""

        if not cert_name and result.extracted_cert_name:
            cert_name = result.extracted_cert_name
        if not amount and result.extracted_amount:
            amount = str(result.extracted_amount)

        return cls(
            raw_text=result.raw_text,
            extracted_amount=amount,
            extracted_cert_name=cert_name,
            extracted_date=normalize_date(result.extracted_date) or "",
            confidence=result.confidence,
            document_type=result.document_type,
            grade=result.grade,
            final_payment_amount=result.final_payment_amount,
        )

    @property
    def amount_value(self) -> int | None:
        """The edited amount as an integer, commas removed."""
        return parse_amount(self.extracted_amount) if self.extracted_amount else None

    @property
    def requires_review(self) -> bool:
        return needs_review(self.confidence)

    def apply_edits(self, **changes: object) -> "EditableOcrData":
        """Return a copy with the reviewer's changes.

        An edited date is normalized to ``YYYY-MM-DD`` when it can be; text
        that is not a recognizable date is kept as typed.
        """
        if "extracted_date" in changes:
            typed = str(changes["extracted_date"] or "")
            changes["extracted_date"] = normalize_date(typed) or typed
        return self.model_copy(update=changes)

    def confirm(self) -> "EditableOcrData":
        """Mark the data as checked by the reviewer."""
        return self.model_copy(update={"is_verified": True})
