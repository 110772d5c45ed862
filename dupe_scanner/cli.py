#!/usr/bin/env python3
"""
CLI interface for dupe scanner
"""

import os
import sys
import argparse

from .core import format_size
from .scanner import DEFAULT_WORKERS, DupeScanner, ScanStats


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="dupe-scanner",
        description="Find duplicate files, printing each one as it is found",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output:
  one line per duplicate, "<duplicate> = <original>"

Examples:
  dupe-scanner
  dupe-scanner /path/to/directory
  dupe-scanner /path/to/directory --ignore-symlinks
  dupe-scanner /path/to/directory -w 16 --quiet
        """
    )

    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory (or file) to recursively search (default: .)"
    )
    parser.add_argument(
        "-i", "--ignore-symlinks",
        action="store_true",
        help="Skip symlinked files and directories"
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of hashing threads (default: {DEFAULT_WORKERS})"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress scan banner and summary"
    )

    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> None:
    """Validate command line arguments"""
    if not os.path.lexists(args.directory):
        raise ValueError(f"'{args.directory}' does not exist")

    if args.workers < 1:
        raise ValueError("Worker count must be at least 1")


def format_summary(stats: ScanStats) -> str:
    """One-line summary of a finished scan"""
    errors = stats.failed + stats.enumeration_errors
    return (
        f"Scanned {stats.completed} files: {stats.duplicates} duplicates "
        f"({format_size(stats.reclaimable)} reclaimable), {errors} errors"
    )


def main(argv=None) -> None:
    """Main CLI entry point"""
    try:
        args = parse_args(argv)
        validate_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print(f"Scanning: {args.directory}", file=sys.stderr)

    try:
        scanner = DupeScanner(
            args.directory,
            workers=args.workers,
            ignore_symlinks=args.ignore_symlinks,
        )
        stats = scanner.find_dupes()

    except KeyboardInterrupt:
        if not args.quiet:
            print("\n\nOperation cancelled by user", file=sys.stderr)
        sys.exit(130)

    except OSError as e:
        print(f"Error: cannot read '{args.directory}': {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print(format_summary(stats), file=sys.stderr)


if __name__ == "__main__":
    main()
