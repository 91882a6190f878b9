"""Command-line interface for single and batch identity document validation.

Provides subcommands for validating one photograph to JSON and for
validating a folder of photographs into a CSV summary.
"""

import argparse
import csv
import sys
import time
from pathlib import Path

from id_ocr.errors import DocumentOCRError
from id_ocr.extraction.fields import FIELD_NAMES
from id_ocr.pipeline import ValidationPipeline
from id_ocr.schemas import ValidationResponse
from id_ocr.utils.config import load_config
from id_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = (
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.tiff",
    "*.tif",
    "*.webp",
    "*.bmp",
)
_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}
_TYPE_CHOICES = ["dni", "dni_back", "nie", "nie_back", "passport", "other"]
_META_COLUMNS = [
    "filename",
    "success",
    "document_type",
    "confidence_score",
    "processing_time_ms",
    "error",
]


def mime_type_for(path: Path) -> str:
    """Infer the MIME type of an image file from its suffix."""
    return _MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def validate_file(
    pipeline: ValidationPipeline,
    file_path: Path,
    document_type: str | None = None,
    side: str | None = None,
) -> ValidationResponse:
    """Validate one image file, turning fatal errors into failed responses.

    Args:
        pipeline: Pipeline to run.
        file_path: Image file to validate.
        document_type: Optional document type hint.
        side: Optional ``"front"``/``"back"`` hint.

    Returns:
        The response record for the file.
    """
    start = time.perf_counter()
    try:
        result = pipeline.validate(
            file_path.read_bytes(),
            mime_type=mime_type_for(file_path),
            document_type_hint=document_type,
            side_hint=side,
        )
    except DocumentOCRError as exc:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.error("Failed to process %s: %s", file_path.name, exc)
        return ValidationResponse.from_error(exc, processing_time_ms=elapsed_ms)
    return result.to_response()


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: str | None = None,
    verbose: bool = False,
    config_path: Path | None = None,
) -> dict[str, int]:
    """Validate all images in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document photographs.
        output_csv: Path for the output CSV file.
        document_type: Optional document type hint applied to every file.
        verbose: Whether to print per-file progress.
        config_path: Optional YAML configuration file.

    Returns:
        Summary dict with total, accepted, rejected and failed counts.
    """
    pipeline = ValidationPipeline(load_config(config_path))

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "accepted": 0, "rejected": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    rows: list[dict[str, object]] = []
    summary = {"total": len(files), "accepted": 0, "rejected": 0, "failed": 0}

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        response = validate_file(pipeline, file_path, document_type)
        if response.success:
            summary["accepted"] += 1
        elif response.data is None:
            summary["failed"] += 1
        else:
            summary["rejected"] += 1
        rows.append(_response_row(file_path, response))

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    _print_summary(summary, output_csv)
    return summary


def _response_row(file_path: Path, response: ValidationResponse) -> dict[str, object]:
    row: dict[str, object] = {
        "filename": file_path.name,
        "success": response.success,
        "document_type": response.document_type,
        "confidence_score": round(response.confidence_score, 3),
        "processing_time_ms": response.processing_time_ms,
        "error": response.error,
    }
    if response.data is not None:
        data = response.data.model_dump()
        row.update({name: data[name] for name in FIELD_NAMES})
        row["checksum_valid"] = response.data.validation.checksum_valid
    return row


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write validation results to a CSV file.

    Args:
        results: List of result rows.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = [name for name in FIELD_NAMES if name in all_keys]
    extra = sorted(all_keys - set(_META_COLUMNS) - set(field_columns))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns + extra

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Validation Complete")
    print(f"{'=' * 50}")
    print(f"Total:    {summary['total']}")
    print(f"Accepted: {summary['accepted']}")
    print(f"Rejected: {summary['rejected']}")
    print(f"Failed:   {summary['failed']}")
    print(f"Output:   {output_csv}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Spanish identity document OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Validate a single document")
    single_parser.add_argument("file", type=Path, help="Document photograph")
    single_parser.add_argument(
        "-t",
        "--type",
        choices=_TYPE_CHOICES,
        default=None,
        dest="doc_type",
        help="Document type hint (default: classify automatically)",
    )
    single_parser.add_argument(
        "--side", choices=["front", "back"], default=None, help="Document side hint"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Validate a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with photographs"
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
        choices=_TYPE_CHOICES,
        default=None,
        dest="doc_type",
        help="Document type hint applied to every file",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.doc_type,
            args.verbose,
            args.config,
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        pipeline = ValidationPipeline(config)
        response = validate_file(pipeline, args.file, args.doc_type, args.side)
        output_str = response.model_dump_json(indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)


if __name__ == "__main__":
    main()
