"""Fuzzy matching of OCR name candidates against the certification catalog.

The catalog is the reference list of certifications the company supports
(name and organizer). OCR output is noisy, so names are compared after
normalization and by containment rather than equality.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import yaml

from certocr.aggregation.aggregator import CertificateEntry, SubmissionExtraction
from certocr.extraction.classifier import PageDocumentType
from certocr.utils.logger import get_logger

logger = get_logger(__name__)

GRADE_KEYWORDS: tuple[str, ...] = (
    "associate",
    "professional",
    "expert",
    "advanced",
    "foundation",
    "practitioner",
)

_NON_NAME_CHARS = re.compile(r"[^a-z0-9가-힣]")


@dataclass(frozen=True)
class CatalogEntry:
    """A recognized certification and the organization that issues it."""

    certification_name: str
    organizer: str = "N/A"


def normalize_name(value: str) -> str:
    """Lowercase and keep only ASCII letters, digits and Hangul syllables."""
    return _NON_NAME_CHARS.sub("", value.lower())


def has_grade_keyword(normalized: str) -> bool:
    return any(keyword in normalized for keyword in GRADE_KEYWORDS)


def names_related(a: str, b: str) -> bool:
    """Whether two normalized names contain one another."""
    if not a or not b:
        return False
    return a in b or b in a


def load_catalog(path: Path) -> list[CatalogEntry]:
    """Load catalog entries from a YAML list.

    Each item needs ``certification_name`` (or ``certificationName``) and
    may carry ``organizer``.

    Args:
        path: Path to the catalog YAML file.

    Returns:
        Catalog entries, empty if the file does not exist.
    """
    if not path.exists():
        logger.debug("No catalog file at %s, using empty catalog", path)
        return []

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    entries: list[CatalogEntry] = []
    for item in data:
        name = item.get("certification_name") or item.get("certificationName")
        if not name:
            continue
        entries.append(CatalogEntry(str(name), str(item.get("organizer") or "N/A")))
    logger.info("Loaded %d catalog entries from %s", len(entries), path)
    return entries


class CatalogMatcher:
    """Matches extracted certificate names to catalog entries.

    Args:
        entries: Catalog entries, read-only.
    """

    def __init__(self, entries: Iterable[CatalogEntry]) -> None:
        self.entries = list(entries)
        self._normalized = [
            (e.certification_name, normalize_name(e.certification_name))
            for e in self.entries
        ]

    def _eligible(self, candidate: str, name: str) -> bool:
        if has_grade_keyword(candidate) and not has_grade_keyword(name):
            return False
        return names_related(candidate, name)

    def match(self, candidates: Iterable[str]) -> list[str]:
        """Catalog names that match at least one candidate.

        A candidate carrying a grade keyword (e.g. "Professional") only
        matches catalog names that carry one too.

        Args:
            candidates: Raw name candidates from OCR.

        Returns:
            Unique matching catalog names, in catalog order.
        """
        normalized_candidates = [
            n for n in dict.fromkeys(normalize_name(c) for c in candidates) if n
        ]
        matched: dict[str, None] = {}
        for name, normalized_name in self._normalized:
            if any(self._eligible(c, normalized_name) for c in normalized_candidates):
                matched.setdefault(name)

        logger.info(
            "Matched %d catalog names from %d candidates",
            len(matched),
            len(normalized_candidates),
        )
        return list(matched)

    def organizer_for(self, name: str) -> str | None:
        for entry in self.entries:
            if entry.certification_name == name:
                return entry.organizer
        return None

    def resolve_certificates(
        self, submission: SubmissionExtraction, matched: list[str] | None = None
    ) -> list[CertificateEntry]:
        """Final name and issuer for every certificate page.

        The catalog name and organizer replace the OCR values when one of
        the matched names relates to the page's own candidates; the date
        always comes from OCR.

        Args:
            submission: Aggregated submission extraction.
            matched: Result of :meth:`match`; computed when omitted.

        Returns:
            One entry per certificate page, in page order.
        """
        if matched is None:
            matched = self.match(submission.cert_name_candidates)

        resolved: list[CertificateEntry] = []
        for page in submission.pages:
            if page.doc_type != PageDocumentType.CERTIFICATE:
                continue
            fields = page.certificate_fields
            page_candidates = [
                normalize_name(c)
                for c in (*page.cert_name_candidates, fields.name or "")
                if c
            ]
            catalog_name = next(
                (
                    m
                    for m in matched
                    if any(names_related(c, normalize_name(m)) for c in page_candidates)
                ),
                None,
            )
            issuer = fields.issuer
            if catalog_name is not None:
                issuer = self.organizer_for(catalog_name) or issuer
            resolved.append(
                CertificateEntry(
                    file=page.file,
                    page=page.page,
                    name=catalog_name or fields.name,
                    date=fields.date,
                    issuer=issuer,
                )
            )
        return resolved
