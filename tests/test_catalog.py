"""Tests for catalog loading and certificate name matching."""

from pathlib import Path

import pytest

from certocr.aggregation.aggregator import SubmissionExtraction, aggregate, extract_page
from certocr.catalog.matcher import (
    CatalogEntry,
    CatalogMatcher,
    has_grade_keyword,
    load_catalog,
    names_related,
    normalize_name,
)


def _matcher(*names: str) -> CatalogMatcher:
    return CatalogMatcher(CatalogEntry(name, f"{name} org") for name in names)


class TestNormalization:
    """Tests for name normalization helpers."""

    def test_normalize_name(self) -> None:
        assert normalize_name("AWS Certified - Solutions Architect!") == "awscertifiedsolutionsarchitect"
        assert normalize_name("정보처리 기사(필기)") == "정보처리기사필기"

    def test_grade_keyword(self) -> None:
        assert has_grade_keyword("pmpprofessional")
        assert not has_grade_keyword("pmp")

    def test_related_is_symmetric(self) -> None:
        assert names_related("pmp", "pmpprofessional")
        assert names_related("pmpprofessional", "pmp")
        assert not names_related("ccna", "sqld")

    def test_empty_names_never_related(self) -> None:
        assert not names_related("", "pmp")
        assert not names_related("pmp", "")


class TestLoadCatalog:
    """Tests for the load_catalog function."""

    def test_bundled_catalog(self, config_dir: Path) -> None:
        entries = load_catalog(config_dir / "catalog.yaml")
        assert CatalogEntry("정보처리기사", "한국산업인력공단") in entries

    def test_camel_case_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "- certificationName: SQLD\n  organizer: K-DATA\n- certificationName: CCNA\n",
            encoding="utf-8",
        )
        assert load_catalog(path) == [
            CatalogEntry("SQLD", "K-DATA"),
            CatalogEntry("CCNA", "N/A"),
        ]

    def test_entries_without_name_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.yaml"
        path.write_text("- organizer: nobody\n", encoding="utf-8")
        assert load_catalog(path) == []

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_catalog(tmp_path / "missing.yaml") == []


class TestCatalogMatcher:
    """Tests for the CatalogMatcher class."""

    def test_graded_candidate_needs_graded_name(self) -> None:
        matcher = _matcher("PMP", "PMP Professional")
        assert matcher.match(["PMP Professional"]) == ["PMP Professional"]

    def test_graded_candidate_does_not_match_bare_name(self) -> None:
        matcher = _matcher("AWS Solutions Architect", "AWS Solutions Architect Associate")
        assert matcher.match(["AWS Solutions Architect Associate"]) == [
            "AWS Solutions Architect Associate"
        ]

    def test_containment_either_way(self) -> None:
        matcher = _matcher("정보처리기사", "SQLD")
        assert matcher.match(["정보처리기사 실기"]) == ["정보처리기사"]
        assert matcher.match(["SQL"]) == ["SQLD"]

    def test_results_unique_in_catalog_order(self) -> None:
        matcher = _matcher("CCNA", "SQLD", "PMP")
        assert matcher.match(["pmp", "sqld", "SQLD!", "PMP"]) == ["SQLD", "PMP"]

    def test_unusable_candidates(self) -> None:
        assert _matcher("PMP").match(["", "!!!", "   "]) == []

    def test_short_candidate_matches_longer_name(self) -> None:
        assert _matcher("PMP").match(["PM"]) == ["PMP"]

    def test_organizer_for(self) -> None:
        matcher = _matcher("PMP")
        assert matcher.organizer_for("PMP") == "PMP org"
        assert matcher.organizer_for("CCNA") is None


class TestResolveCertificates:
    """Tests for combining OCR certificates with catalog data."""

    @pytest.fixture
    def submission(self, receipt_text: str, certificate_text: str) -> SubmissionExtraction:
        return aggregate(
            [
                extract_page("bundle.pdf", 1, receipt_text),
                extract_page("bundle.pdf", 2, certificate_text),
                extract_page("bundle.pdf", 3, "자격증\n발급번호 A-1"),
            ]
        )

    def test_catalog_values_replace_ocr_values(self, submission: SubmissionExtraction) -> None:
        matcher = CatalogMatcher([CatalogEntry("정보처리기사", "HRDK")])
        resolved = matcher.resolve_certificates(submission)

        assert len(resolved) == 2
        assert resolved[0].page == 2
        assert resolved[0].name == "정보처리기사"
        assert resolved[0].issuer == "HRDK"
        assert resolved[0].date == "2023-11-20"

    def test_unmatched_page_keeps_ocr_values(self, submission: SubmissionExtraction) -> None:
        matcher = CatalogMatcher([CatalogEntry("정보처리기사", "HRDK")])
        unmatched = matcher.resolve_certificates(submission)[1]
        assert unmatched.page == 3
        assert unmatched.name is None
        assert unmatched.issuer is None

    def test_empty_catalog(self, submission: SubmissionExtraction) -> None:
        resolved = CatalogMatcher([]).resolve_certificates(submission)
        assert resolved[0].issuer == "한국산업인력공단"
