"""Command-line interface for document field extraction and CSV export.

Provides subcommands for extracting a single document to JSON, processing
a folder of documents into one CSV, and listing anchor suggestions for
rule authoring.
"""

import argparse
import csv
import json
import sys
import time
from dataclasses import asdict
from pathlib import Path

from findoc.extraction.pipeline import DocumentExtraction, DocumentExtractor
from findoc.geometry.loaders import SUPPORTED_SUFFIXES, load_document
from findoc.geometry.reconstructor import GeometryReconstructor
from findoc.utils.config import AppConfig, load_config
from findoc.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_DOC_TYPES = ["payslip", "statement", "other"]
_META_COLUMNS = [
    "filename",
    "status",
    "line_count",
    "processing_time_s",
    "pay_date",
    "period_start",
    "period_end",
    "date_confidence",
    "issue_count",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
    )


def _read_rules(rules_path: Path | None) -> str | None:
    if rules_path is None:
        return None
    return rules_path.read_text(encoding="utf-8")


def _build_extractor(
    config: AppConfig,
) -> tuple[DocumentExtractor, GeometryReconstructor]:
    reconstructor = GeometryReconstructor(config.geometry.line_tolerance)
    return DocumentExtractor(config), reconstructor


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: str = "payslip",
    rules_path: Path | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        document_type: Document type hint passed to the extractor.
        rules_path: Optional JSON rule file applied to every document.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = load_config()
    extractor, reconstructor = _build_extractor(config)
    rules = _read_rules(rules_path)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            content = load_document(file_path, reconstructor)
            extraction = extractor.extract(content, document_type, rules)
            result = _result_row(file_path, extraction)
            result["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(result)
            successful += 1
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _result_row(file_path: Path, extraction: DocumentExtraction) -> dict[str, object]:
    """Flatten one document's extraction into a CSV row.

    Args:
        file_path: Source document.
        extraction: Pipeline output for the document.

    Returns:
        Metadata columns followed by one column per extracted field.
    """
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "line_count": extraction.line_count,
        "pay_date": extraction.dates.pay_date,
        "period_start": extraction.dates.period_start,
        "period_end": extraction.dates.period_end,
        "date_confidence": round(extraction.dates.confidence, 3),
        "issue_count": len(extraction.warnings),
        "error": None,
    }
    row.update(extraction.field_values())
    return row


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    document_type: str = "payslip",
    rules_path: Path | None = None,
) -> dict[str, object]:
    """Extract a single document and return structured results.

    Args:
        file_path: Path to the document file.
        document_type: Document type hint passed to the extractor.
        rules_path: Optional JSON rule file.

    Returns:
        Dictionary with filename, lines, and every stage's output.
    """
    config = load_config()
    extractor, reconstructor = _build_extractor(config)

    content = load_document(file_path, reconstructor)
    extraction = extractor.extract(content, document_type, _read_rules(rules_path))

    return {
        "filename": file_path.name,
        "lines": content.lines,
        **asdict(extraction),
    }


def suggest_anchors(file_path: Path) -> list[str]:
    """Load a document and list anchor labels for rule authoring."""
    config = load_config()
    extractor, reconstructor = _build_extractor(config)
    content = load_document(file_path, reconstructor)
    return extractor.field_engine.suggest_anchors(content.text)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Financial document field extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t",
        "--type",
        choices=_DOC_TYPES,
        default="payslip",
        dest="doc_type",
        help="Document type (default: payslip)",
    )
    batch_parser.add_argument("--rules", type=Path, help="JSON extraction rules")
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "-t",
        "--type",
        choices=_DOC_TYPES,
        default="payslip",
        dest="doc_type",
        help="Document type (default: payslip)",
    )
    single_parser.add_argument("--rules", type=Path, help="JSON extraction rules")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    anchors_parser = subparsers.add_parser(
        "anchors", help="Suggest anchor labels for rule authoring"
    )
    anchors_parser.add_argument("file", type=Path, help="Document file to scan")

    args = parser.parse_args(argv)

    setup_logging(load_config().log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.doc_type,
            args.rules,
            args.verbose,
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.doc_type, args.rules)
        except (OSError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, default=str)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "anchors":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        for anchor in suggest_anchors(args.file):
            print(anchor)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
