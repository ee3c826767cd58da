"""
Image Manager command line.

Usage:
    python image_manager.py filters
    python image_manager.py formats
    python image_manager.py convert photo.jpg scan.png -f PDF -f TIFF -o out --filter sepia
"""

from pathlib import Path
from typing import List, Optional

import argparse
import logging
import sys

from IM_Libs.ConversionLib import (
    BatchConverter,
    BatchItem,
    BatchProgress,
    ConversionConfig,
    ConversionService,
    list_formats,
    parse_format,
)
from IM_Libs.errors import DecodeError, UnknownFilterError, UnsupportedFormatError
from IM_Libs.ImageEditingLib import create_filter, list_filters, load_raster

logger = logging.getLogger("image_manager")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply filters and convert images between formats")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("filters", help="List available filters")
    commands.add_parser("formats", help="List supported output formats")

    convert = commands.add_parser("convert", help="Convert images to one or more formats")
    convert.add_argument("sources", nargs="+", help="Image files to convert")
    convert.add_argument("-f", "--format", dest="formats", action="append", required=True,
                         help="Target format (repeatable)")
    convert.add_argument("-o", "--output-dir", required=True, help="Directory for converted files")
    convert.add_argument("--filter", dest="filter_name", help="Filter applied before converting")
    convert.add_argument("--workers", type=int, default=None, help="Worker threads")
    convert.add_argument("--jpeg-quality", type=int, default=ConversionConfig.jpeg_quality,
                         help="JPEG quality 1-100")
    return parser


def _print_progress(progress: BatchProgress) -> None:
    print(
        f"[{progress.completed}/{progress.total}] "
        f"{progress.succeeded} ok, {progress.failed} failed",
        file=sys.stderr,
    )


def _run_convert(args: argparse.Namespace) -> int:
    try:
        for token in args.formats:
            parse_format(token)
        image_filter = create_filter(args.filter_name) if args.filter_name else None
    except (UnknownFilterError, UnsupportedFormatError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.workers is not None and args.workers < 1:
        print(f"Error: --workers must be at least 1, got {args.workers}", file=sys.stderr)
        return EXIT_USAGE

    items: List[BatchItem] = []
    decode_failures = 0
    for source in args.sources:
        path = Path(source)
        try:
            raster = load_raster(path)
        except DecodeError as e:
            print(f"Error: {e}", file=sys.stderr)
            decode_failures += 1
            continue
        if image_filter is not None:
            raster = image_filter.apply(raster)
        items.append(BatchItem(raster=raster, base_name=path.stem, filtered=image_filter is not None))

    service = ConversionService(ConversionConfig(jpeg_quality=args.jpeg_quality))
    with BatchConverter(service=service, max_workers=args.workers) as batch:
        report = batch.convert_all(items, args.formats, args.output_dir, progress=_print_progress)

    printed = set()
    for result in report.results:
        if result.path in printed:
            continue
        printed.add(result.path)
        line = str(result.path)
        if result.notice:
            line += f"  ({result.notice})"
        print(line)
    for (name, token), error in report.failures.items():
        print(f"Failed: {name} -> {token}: {error}", file=sys.stderr)

    print(
        f"{report.succeeded} written ({len(report.fallbacks)} fallback), "
        f"{report.failed + decode_failures} failed",
        file=sys.stderr,
    )
    return EXIT_OK if report.failed == 0 and decode_failures == 0 else EXIT_FAILURES


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "filters":
        for name in list_filters():
            print(name)
        return EXIT_OK

    if args.command == "formats":
        for token in list_formats():
            print(token)
        return EXIT_OK

    return _run_convert(args)


if __name__ == "__main__":
    sys.exit(main())
