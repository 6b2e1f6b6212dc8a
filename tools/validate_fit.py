#!/usr/bin/env python3
"""
Dive FIT File Validation Tool

Validates FIT files for integrity, checking:
- File header and signature
- Header and file CRC-16
- Record stream consistency
- Presence of dive records, session and dive summary

Usage:
    python validate_fit.py <dive.fit> [--no-crc] [--json]
    python validate_fit.py --batch <directory> [--json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from divelog_parser import validate_file

logger = logging.getLogger(__name__)


def collect_files(args):
    if args.batch:
        batch_dir = Path(args.batch)
        if not batch_dir.is_dir():
            print(f"Error: {args.batch} is not a directory", file=sys.stderr)
            sys.exit(1)
        files = sorted(p for p in batch_dir.iterdir() if p.suffix.lower() == '.fit')
        if not files:
            print(f"No .fit files found in {args.batch}", file=sys.stderr)
            sys.exit(1)
        return files
    return [Path(args.filepath)]


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Validate dive computer FIT files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Validate a single file
    python validate_fit.py dives/2024-03-12.fit

    # Validate all .fit files in a directory
    python validate_fit.py --batch dives/

    # Output as JSON
    python validate_fit.py dives/2024-03-12.fit --json

    # Skip CRC checks
    python validate_fit.py dives/2024-03-12.fit --no-crc
"""
    )

    parser.add_argument('filepath', nargs='?', help='Path to FIT file')
    parser.add_argument('--batch', '-b', metavar='DIR',
                        help='Validate all .fit files in directory')
    parser.add_argument('--no-crc', action='store_true',
                        help='Skip header and file CRC verification')
    parser.add_argument('--json', '-j', action='store_true',
                        help='Output results as JSON')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log each file as it is checked')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if not args.filepath and not args.batch:
        parser.print_help()
        sys.exit(1)

    files = collect_files(args)

    results = []
    all_valid = True

    for filepath in files:
        logger.debug("Validating %s", filepath)
        report = validate_file(filepath, check_crc=not args.no_crc)
        results.append(report)
        if not report.is_valid:
            logger.info("%s is invalid: %s", filepath, "; ".join(report.errors))
            all_valid = False

    if args.json:
        output = [r.to_dict() for r in results]
        print(json.dumps(output if len(output) > 1 else output[0], indent=2))
    else:
        for report in results:
            print(report.summary())
            print()

    sys.exit(0 if all_valid else 1)


if __name__ == '__main__':
    main()
