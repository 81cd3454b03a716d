"""Command-line interface for MRZ scanning of still images.

Provides subcommands for scanning a single image, scanning a folder of
images into a CSV report, and producing the upright (optionally cropped)
photo the capture flow would hand to a host application.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from mrzscan.camera.frames import DeviceOrientation, Frame, PixelFormat, StillCapture
from mrzscan.ocr.mrz_processor import MrzProcessor, ScanOutcome, encode_png, load_image
from mrzscan.utils.config import AppConfig, load_config
from mrzscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp")
_CSV_COLUMNS = [
    "filename",
    "status",
    "found",
    "line_count",
    "stage",
    "mrz",
    "processing_time_s",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory, sorted by path."""
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def outcome_to_dict(filename: str, outcome: ScanOutcome) -> dict[str, object]:
    """Flatten a scan outcome into a JSON-friendly dictionary."""
    return {
        "filename": filename,
        "document_type": outcome.document_type,
        "found": outcome.found,
        "lines": list(outcome.result.lines),
        "mrz": outcome.result.text,
        "strategy": outcome.result.strategy,
        "stage": outcome.stage.value,
        "error": outcome.error_message,
    }


def _scan_file(
    processor: MrzProcessor,
    file_path: Path,
    document_type: str | None,
    rotation: int | None,
    crop_to_mrz: bool,
) -> ScanOutcome:
    """Scan one image file.

    With a ``rotation`` the image is treated like a raw sensor frame and
    goes through orientation correction first.
    """
    image = load_image(file_path)
    if rotation is None:
        return processor.scan_image(image, document_type, crop_to_mrz=crop_to_mrz)

    height, width = image.shape[:2]
    frame = Frame(image, width, height, PixelFormat.RGB, rotation_degrees=rotation)
    return processor.scan_frame(frame, document_type)


def scan_single(
    file_path: Path,
    config: AppConfig,
    document_type: str | None = None,
    rotation: int | None = None,
    crop_to_mrz: bool = True,
) -> dict[str, object]:
    """Scan a single image and return the result as a dictionary."""
    with MrzProcessor(config) as processor:
        outcome = _scan_file(processor, file_path, document_type, rotation, crop_to_mrz)
    return outcome_to_dict(file_path.name, outcome)


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig,
    document_type: str | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Scan all images in a folder and export results to CSV.

    Args:
        input_dir: Directory containing image files.
        output_csv: Path for the output CSV file.
        config: Application configuration.
        document_type: Frame spec name, defaults to the configured one.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, found, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "found": 0, "failed": 0}

    logger.info("Found %d images to scan", len(files))

    rows: list[dict[str, object]] = []
    found = 0
    failed = 0

    with MrzProcessor(config) as processor:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Scanning [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                outcome = _scan_file(processor, file_path, document_type, None, True)
            except (OSError, ValueError) as exc:
                logger.error("Failed to scan %s: %s", file_path.name, exc)
                rows.append(
                    {"filename": file_path.name, "status": "failed", "error": str(exc)}
                )
                failed += 1
                continue

            if outcome.found:
                found += 1
            rows.append(
                {
                    "filename": file_path.name,
                    "status": "error" if outcome.error_kind else "success",
                    "found": outcome.found,
                    "line_count": len(outcome.result.lines),
                    "stage": outcome.stage.value,
                    "mrz": outcome.result.text,
                    "processing_time_s": round(time.time() - start_time, 2),
                    "error": outcome.error_message,
                }
            )

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "found": found, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write scan rows to a CSV file."""
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch summary to stdout."""
    print(f"\n{'=' * 50}")
    print("MRZ Batch Scan Complete")
    print(f"{'=' * 50}")
    print(f"Total:   {summary['total']}")
    print(f"Found:   {summary['found']}")
    print(f"Failed:  {summary['failed']}")
    print(f"Output:  {output_csv}")


def export_photo(
    file_path: Path,
    output_path: Path,
    config: AppConfig,
    orientation: DeviceOrientation | None = None,
    crop_document: bool = False,
    document_type: str | None = None,
) -> Path:
    """Write the upright, optionally cropped still photo as PNG."""
    capture = StillCapture(image=load_image(file_path), orientation=orientation)
    with MrzProcessor(config) as processor:
        photo = processor.capture_photo(capture, crop_document, document_type)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(encode_png(photo))
    return output_path


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        description="MRZ capture pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Scan a single image")
    scan_parser.add_argument("file", type=Path, help="Image file to scan")
    scan_parser.add_argument(
        "-t", "--type", dest="doc_type", default=None, help="Document frame spec"
    )
    scan_parser.add_argument(
        "-r",
        "--rotation",
        type=int,
        default=None,
        help="Treat the image as a sensor frame with this rotation",
    )
    scan_parser.add_argument(
        "--full-document",
        action="store_true",
        help="Run OCR on the whole document frame instead of the MRZ band",
    )
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Scan a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t", "--type", dest="doc_type", default=None, help="Document frame spec"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    photo_parser = subparsers.add_parser("photo", help="Export an upright photo")
    photo_parser.add_argument("file", type=Path, help="Captured still image")
    photo_parser.add_argument("-o", "--output", type=Path, required=True)
    photo_parser.add_argument(
        "--orientation",
        choices=[o.value for o in DeviceOrientation],
        default=None,
        help="Device orientation at capture time",
    )
    photo_parser.add_argument(
        "--crop", action="store_true", help="Crop to the document frame"
    )
    photo_parser.add_argument(
        "-t", "--type", dest="doc_type", default=None, help="Document frame spec"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "scan":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = scan_single(
            args.file, config, args.doc_type, args.rotation, not args.full_document
        )
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.doc_type, args.verbose)
    elif args.command == "photo":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        orientation = DeviceOrientation(args.orientation) if args.orientation else None
        path = export_photo(
            args.file, args.output, config, orientation, args.crop, args.doc_type
        )
        print(f"Photo written to {path}")


if __name__ == "__main__":
    main()
