"""Command-line interface for certificate and receipt extraction.

Provides subcommands for extracting the fields of a single document and
for processing a multi-file reimbursement submission, printing or
writing the results as JSON.
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from certocr.catalog.matcher import CatalogMatcher, load_catalog
from certocr.errors import DocumentOCRError
from certocr.ocr.document_processor import DocumentProcessor, UploadedFile
from certocr.ocr.input_normalizer import guess_media_type
from certocr.review.editable import EditableOcrData, needs_review
from certocr.utils.config import load_config
from certocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _read_file(file_path: Path) -> UploadedFile:
    return UploadedFile(
        name=file_path.name,
        media_type=guess_media_type(file_path.name) or "",
        data=file_path.read_bytes(),
    )


def extract_single(file_path: Path, config_path: Path | None = None) -> dict[str, object]:
    """Process a single document and return its reviewable fields.

    Args:
        file_path: Path to the document file.
        config_path: Optional YAML configuration file.

    Returns:
        Dictionary with the document type, confidence, review flag and fields.
    """
    config = load_config(config_path)
    processor = DocumentProcessor(config)

    result = processor.process_document(_read_file(file_path))
    editable = EditableOcrData.from_result(result)

    return {
        "filename": file_path.name,
        "document_type": result.document_type.value,
        "confidence": result.confidence,
        "needs_review": needs_review(result.confidence, config.review.confidence_threshold),
        "certification_name": result.certification_name,
        "grade": result.grade,
        "final_payment_amount": result.final_payment_amount,
        "extracted_date": editable.extracted_date or None,
        "editable_amount": editable.extracted_amount,
        "editable_cert_name": editable.extracted_cert_name,
        "is_verified": result.is_verified,
        "raw_text": result.raw_text,
    }


def process_submission(
    files: list[Path],
    config_path: Path | None = None,
    catalog_path: Path | None = None,
    verbose: bool = False,
) -> dict[str, object]:
    """Process a submission's files and match certificates to the catalog.

    Args:
        files: Document files in submission order.
        config_path: Optional YAML configuration file.
        catalog_path: Catalog YAML file; defaults to the configured path.
        verbose: Whether to print per-page progress.

    Returns:
        Dictionary with receipts, certificates, catalog matches, total and
        failures.
    """
    config = load_config(config_path)
    processor = DocumentProcessor(config)
    matcher = CatalogMatcher(load_catalog(catalog_path or Path(config.catalog.path)))

    progress = _PrintProgress(files) if verbose else None
    submission = processor.process_submission([_read_file(f) for f in files], progress)
    matched = matcher.match(submission.cert_name_candidates)

    return {
        "receipts": [asdict(r) for r in submission.receipts],
        "certificates": [
            asdict(c) for c in matcher.resolve_certificates(submission, matched)
        ],
        "cert_name_candidates": list(submission.cert_name_candidates),
        "matched_cert_names": matched,
        "total_final_amount": submission.total_final_amount,
        "failures": [asdict(f) for f in submission.failures],
    }


class _PrintProgress:
    def __init__(self, files: list[Path]) -> None:
        self.files = files

    def on_page_progress(self, file_index: int, page_number: int, percent: int) -> None:
        print(
            f"Processing [{file_index + 1}/{len(self.files)}] "
            f"{self.files[file_index].name} p.{page_number}: {percent}%",
            file=sys.stderr,
        )


def _emit(result: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(result, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Certification Document OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    submission_parser = subparsers.add_parser(
        "submission", help="Process the files of a reimbursement submission"
    )
    submission_parser.add_argument(
        "files", type=Path, nargs="+", help="Document files in submission order"
    )
    submission_parser.add_argument("--catalog", type=Path, help="Catalog YAML file")
    submission_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    submission_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print per-page progress"
    )

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.config)
        except DocumentOCRError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            sys.exit(1)
        _emit(result, args.output)
    elif args.command == "submission":
        missing = [f for f in args.files if not f.exists()]
        if missing:
            print(f"Error: {missing[0]} does not exist", file=sys.stderr)
            sys.exit(1)
        result = process_submission(args.files, args.config, args.catalog, args.verbose)
        _emit(result, args.output)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
