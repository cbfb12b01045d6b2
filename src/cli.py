"""Command-line interface for credit report processing and CSV export.

Provides subcommands for processing a single report to JSON and for
processing a folder of reports with a CSV summary.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from src.extraction.models import CanonicalEntities
from src.pipeline.service import CreditReportPipeline, build_pipeline
from src.storage.models import ReportStatus
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.pdf")
_COLUMNS = [
    "filename",
    "report_id",
    "status",
    "confidence",
    "primary_method",
    "requires_human_review",
    "personal_information",
    "credit_accounts",
    "credit_inquiries",
    "negative_items",
    "processing_time_s",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported report files in a directory.

    Args:
        input_dir: Directory to scan for reports.

    Returns:
        Sorted list of report file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _process_file(pipeline: CreditReportPipeline, file_path: Path) -> dict[str, object]:
    """Upload one report file and run it through the pipeline.

    Args:
        pipeline: Pipeline to use.
        file_path: Path to the report file.

    Returns:
        Flat result row including entity counts.
    """
    start_time = time.time()
    report = pipeline.upload(file_path.read_bytes(), file_path.name)
    outcome = pipeline.run_pipeline(report.id)
    entities = pipeline.repository.get_canonical_entities(report.id)

    row: dict[str, object] = {
        "filename": file_path.name,
        "report_id": report.id,
        "status": outcome.status.value,
        "confidence": (
            round(outcome.confidence, 3) if outcome.confidence is not None else None
        ),
        "primary_method": outcome.primary_method,
        "requires_human_review": outcome.requires_human_review,
        "processing_time_s": round(time.time() - start_time, 2),
        "error": outcome.error,
    }
    row.update((entities or CanonicalEntities()).counts())
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    pipeline: CreditReportPipeline | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all reports in a folder and export results to CSV.

    Args:
        input_dir: Directory containing report files.
        output_csv: Path for the output CSV file.
        pipeline: Pipeline to use; built from the config file when omitted.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    pipeline = pipeline or build_pipeline(load_config())

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")
        try:
            results.append(_process_file(pipeline, file_path))
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": ReportStatus.FAILED.value,
                    "error": str(exc),
                }
            )

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    successful = sum(1 for r in results if r["status"] == ReportStatus.COMPLETED.value)
    summary = {
        "total": len(files),
        "successful": successful,
        "failed": len(files) - successful,
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write result rows to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed reports.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def process_single(
    file_path: Path,
    pipeline: CreditReportPipeline | None = None,
    strategy: str | None = None,
) -> dict[str, object]:
    """Process a single report and return its structured result.

    Args:
        file_path: Path to the report file.
        pipeline: Pipeline to use; built from the config file when omitted.
        strategy: Optional strategy for an explicit re-consolidation after
            a successful run.

    Returns:
        Dictionary with the outcome, canonical entities, and audit.
    """
    pipeline = pipeline or build_pipeline(load_config())

    report = pipeline.upload(file_path.read_bytes(), file_path.name)
    outcome = pipeline.run_pipeline(report.id)
    if strategy and outcome.status == ReportStatus.COMPLETED:
        pipeline.reconsolidate(report.id, strategy)

    metadata = pipeline.repository.get_consolidation(report.id)
    entities = pipeline.repository.get_canonical_entities(report.id)
    audit = pipeline.audit_report(report.id)

    return {
        "filename": file_path.name,
        "report_id": report.id,
        "status": outcome.status.value,
        "error": outcome.error,
        "consolidation": (
            {
                "strategy": metadata.consolidation_strategy.value,
                "primary_source": metadata.primary_source,
                "confidence": metadata.confidence_level,
                "conflict_count": metadata.conflict_count,
                "requires_human_review": metadata.requires_human_review,
                "notes": metadata.notes,
            }
            if metadata
            else None
        ),
        "entities": (entities or CanonicalEntities()).to_dict(),
        "audit": {
            "failure_point": audit.failure_point,
            "phases": [
                {"phase": p.phase, "success": p.success, "details": p.details}
                for p in audit.phases
            ],
        },
    }


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Credit Report Extraction and Consolidation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of reports")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with reports")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("process", help="Process a single report")
    single_parser.add_argument("file", type=Path, help="Report file to process")
    single_parser.add_argument(
        "-s",
        "--strategy",
        choices=["highest_confidence", "majority_vote", "manual_review", "single_source"],
        default=None,
        help="Re-consolidate with this strategy after processing",
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, build_pipeline(config), args.verbose)
    elif args.command == "process":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = process_single(args.file, build_pipeline(config), args.strategy)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
