"""Extraction of certificate names, grades, issuers and dates.

Labeled fields ("자격증명:", "Certificate:") are tried before bare
well-known certification names. Name candidates for catalog matching are
collected with deliberately loose patterns.
"""

import re
from dataclasses import dataclass

from certocr.utils.logger import get_logger

from .rule_extractor import FieldCandidate, extract_dates, tolerant

logger = get_logger(__name__)

_CERT_NAME_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"(?:자격증명|자격명|시험명|자격종목)\s*[:\s]*([가-힣a-zA-Z0-9\s]+?)(?:\s|$|합격|급수|등급)",
        re.IGNORECASE,
    ),
    re.compile(
        r"(정보처리기사|정보처리산업기사|컴퓨터활용능력|네트워크관리사|SQLD|SQLP"
        r"|빅데이터분석기사|데이터분석전문가|AWS|Azure|GCP|PMP|CCNA|CCNP|CCIE"
        r"|토익|토플|JLPT|HSK)",
        re.IGNORECASE,
    ),
]

_GRADE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:급수|등급|자격등급)\s*[:\s]*([0-9]+급|산업기사|기사|기능사)"),
    re.compile(r"([0-9]+급)"),
    re.compile(r"(산업기사|기사|기능사)"),
]

_FIELD_NAME_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:자격증명|자격명|Certificate)[:\s]*([^\n\r]+)", re.IGNORECASE),
    re.compile(r"(정보처리기사|PMP|AWS|Azure|GCP|토익|토플|JLPT|HSK)", re.IGNORECASE),
]

_ISSUER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"발급기관[:\s]*([^\n\r]+)"),
    re.compile(r"주관기관[:\s]*([^\n\r]+)"),
    re.compile(r"시행기관[:\s]*([^\n\r]+)"),
]

_LABELED_CANDIDATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"자격증명[:\s]*([^\n\r]{2,60})"),
    re.compile(r"자격명[:\s]*([^\n\r]{2,60})"),
    re.compile(r"Certificate[:\s]*([^\n\r]{2,60})", re.IGNORECASE),
    re.compile(r"Certificat[e]?\s+([A-Za-z0-9\s\-&]{2,80})", re.IGNORECASE),
]
_QUALIFIER_CANDIDATE_PATTERN = re.compile(
    r"([A-Za-z0-9가-힣\s\-&]{3,80})(?:자격|시험|Cert|Certificate|Certification)",
    re.IGNORECASE,
)

CERT_DATE_PRIORITY: tuple[str, ...] = ("취득", "합격", "발급")


@dataclass(frozen=True)
class CertificateFields:
    """Name, acquisition date and issuer read from a certificate page."""

    name: str | None = None
    date: str | None = None
    issuer: str | None = None


def _first_group(patterns: list[re.Pattern[str]], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1) and match.group(1).strip():
            return match.group(1).strip()
    return None


@tolerant(lambda: None)
def extract_certification_name(text: str) -> str | None:
    """Extract the certification name from a pass certificate.

    Args:
        text: Recognized text.

    Returns:
        The first labeled or well-known name between 2 and 50 characters.
    """
    for pattern in _CERT_NAME_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            name = match.group(1).strip()
            if 2 <= len(name) <= 50:
                return name
    return None


@tolerant(lambda: None)
def extract_grade(text: str) -> str | None:
    """Extract the grade or level, e.g. ``"1급"`` or ``"기사"``.

    Numeric grades win over occupational titles because titles such as
    ``기사`` also appear inside certification names.
    """
    for pattern in _GRADE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            grade = match.group(1).strip()
            if 1 <= len(grade) <= 20:
                return grade
    return None


def pick_certificate_date(candidates: list[FieldCandidate[str]]) -> str | None:
    """Acquisition date first, then pass date, then issue date."""
    for key in CERT_DATE_PRIORITY:
        for candidate in candidates:
            if candidate.label and key in candidate.label:
                return candidate.value
    return None


@tolerant(CertificateFields)
def extract_certificate_fields(text: str) -> CertificateFields:
    """Read name, issuer and date from a certificate page.

    Args:
        text: Recognized page text.

    Returns:
        Extracted fields; any of them may be ``None``.
    """
    fields = CertificateFields(
        name=_first_group(_FIELD_NAME_PATTERNS, text),
        date=pick_certificate_date(extract_dates(text)),
        issuer=_first_group(_ISSUER_PATTERNS, text),
    )
    logger.debug("Certificate fields: %s", fields)
    return fields


@tolerant(list)
def extract_cert_name_candidates(text: str) -> list[str]:
    """Collect every name-like string that could be a certification.

    Over-inclusive on purpose; the catalog matcher filters the result.

    Args:
        text: Recognized page text.

    Returns:
        Unique candidates in order of first appearance.
    """
    found: dict[str, None] = {}
    for pattern in _LABELED_CANDIDATE_PATTERNS:
        for match in pattern.finditer(text):
            value = match.group(1).strip()
            if value:
                found.setdefault(value)
    for match in _QUALIFIER_CANDIDATE_PATTERN.finditer(text):
        value = match.group(1).strip()
        if value:
            found.setdefault(value)
    return list(found)
