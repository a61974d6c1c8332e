#!/usr/bin/env python3
"""
Command-line interface for mpkg

Extracts MPKG archives (single files or every archive in a folder)
and lists archive contents.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from mpkg import constants
from mpkg.core import MPKGArchive, decode_and_extract, find_archives


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def prompt_path(message: str) -> Path:
    return Path(input(message).strip())


def collect_archives(inputs: List[Path], extension: str) -> List[Path]:
    """Expand directories into the archives they contain."""
    archives = []
    for path in inputs:
        if path.is_dir():
            archives.extend(find_archives(path, extension))
        else:
            archives.append(path)
    return archives


def cmd_extract(args):
    """Handle extract command."""
    if args.inputs:
        inputs = [Path(p) for p in args.inputs]
    else:
        folder = prompt_path("Folder containing MPKG files: ")
        if not folder.is_dir():
            print(f"✗ Invalid folder path: {folder}")
            return 1
        inputs = [folder]
    output = Path(args.output) if args.output else prompt_path("Output folder: ")

    archives = collect_archives(inputs, args.extension)
    if not archives:
        print(f"✗ No *{args.extension} archives found")
        return 1

    failures = 0
    for archive_path in archives:
        print(f"Processing {archive_path.name}...")
        result = decode_and_extract(archive_path, output, args.buffer_size)
        if result.ok:
            print(f"✓ {result.message}")
        else:
            failures += 1
            print(f"✗ {result.message}")

    print(f"\n{len(archives) - failures}/{len(archives)} archives extracted to {output}")
    return 1 if failures else 0


def cmd_list(args):
    """Handle list command to show an archive's index."""
    archive = MPKGArchive.load(args.archive)

    print(f"Format version: {archive.header.version}")
    print(f"Members: {len(archive.entries)} ({archive.payload_size:,} bytes)")
    for idx, entry in enumerate(archive.entries, 1):
        print(f"{idx:4}. {entry.name} ({entry.size:,} bytes at offset {entry.offset:,})")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpkg",
        description="MPKG archive extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  mpkg extract data/ -o unpacked/     # Extract every .mpkg in data/\n"
               "  mpkg extract game.mpkg -o out/      # Extract a single archive\n"
               "  mpkg list game.mpkg                 # Show archive contents"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Extract command
    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract archives",
        description="Extract MPKG archives into OUTPUT/<archive name>/.\n\n"
                    "Each INPUT may be an archive or a folder of archives.\n"
                    "Missing INPUT or OUTPUT values are asked for interactively.",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    extract_parser.add_argument("inputs", nargs="*", help="Archive files or folders")
    extract_parser.add_argument("--output", "-o", default=None, help="Output folder")
    extract_parser.add_argument(
        "--extension",
        default=constants.ARCHIVE_EXTENSION,
        help=f"Archive extension to look for in folders (default: {constants.ARCHIVE_EXTENSION})"
    )
    extract_parser.add_argument(
        "--buffer-size",
        type=positive_int,
        default=constants.BUFFER_SIZE,
        help=f"Copy buffer size in bytes (default: {constants.BUFFER_SIZE})"
    )
    extract_parser.set_defaults(func=cmd_extract)

    # List command
    list_parser = subparsers.add_parser("list", help="List archive contents")
    list_parser.add_argument("archive", help="MPKG archive")
    list_parser.set_defaults(func=cmd_list)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"\n✗ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
