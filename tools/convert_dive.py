#!/usr/bin/env python3
"""
Dive FIT to CSV/JSON Converter

Extracts the dive profile from a dive computer FIT file and writes it as
CSV or JSON, optionally with a profile chart.

Usage:
    python convert_dive.py <input.fit> [output.csv]
    python convert_dive.py <input.fit> --json  # Output as JSON
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from divelog_parser import (
    FitDecoder, DiveExtractor, FitParseError, to_csv, to_json,
    find_ascent_violations, format_duration,
)
from divelog_parser.settings import Settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Convert dive computer FIT files to CSV/JSON',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Convert to CSV (auto-named)
    python convert_dive.py dives/2024-03-12.fit

    # Convert to specific output file
    python convert_dive.py dives/2024-03-12.fit output/dive.csv

    # Export as JSON with samples and analysis
    python convert_dive.py dives/2024-03-12.fit --json --include-samples --analysis

    # Also render the profile chart
    python convert_dive.py dives/2024-03-12.fit --plot dive.png

Environment:
    DIVELOG_OUTPUT_DIR                 default directory for auto-named output
    DIVELOG_PLOT_DPI                   chart resolution
    DIVELOG_ASCENT_LIMIT_M_PER_MIN     ascent speed reported as a violation
"""
    )

    parser.add_argument('input', help='Input FIT file')
    parser.add_argument('output', nargs='?', help='Output file path')
    parser.add_argument('--json', '-j', action='store_true',
                        help='Export as JSON instead of CSV')
    parser.add_argument('--include-samples', action='store_true',
                        help='Include the sample series in JSON output')
    parser.add_argument('--analysis', action='store_true',
                        help='Add depth statistics and ascent violations to JSON output')
    parser.add_argument('--plot', metavar='PNG',
                        help='Save a dive summary chart to this path')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on truncated streams instead of keeping partial data')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress progress output')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show decoder diagnostics')
    return parser


def output_path_for(input_path: Path, output: str, as_json: bool, settings: Settings) -> Path:
    if output:
        return Path(output)
    ext = '.json' if as_json else '.csv'
    if settings.output_dir:
        return Path(settings.output_dir) / input_path.with_suffix(ext).name
    return input_path.with_suffix(ext)


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    output_path = output_path_for(input_path, args.output, args.json, settings)

    if not args.quiet:
        print(f"Reading: {input_path}")

    try:
        with open(input_path, 'rb') as f:
            decoder = FitDecoder(f.read())
        result = decoder.decode(strict=args.strict)
        dive = DiveExtractor().extract(result.messages)
    except FitParseError as e:
        print(f"Error parsing file: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        sys.exit(1)

    logger.debug("Decoded %d messages, %d definitions, %d bytes", len(result.messages),
                 result.definition_count, result.bytes_consumed)
    if result.error is not None:
        logger.warning("Stream truncated at offset %d: %s", result.error.offset, result.error)
    if result.skipped_records:
        logger.warning("Skipped %d compressed timestamp records", result.skipped_records)

    if not args.quiet:
        print(f"  Duration: {format_duration(dive.total_time_s)}")
        print(f"  Max depth: {dive.max_depth_m:.1f} m")
        print(f"  Samples: {dive.sample_count:,}")
        violations = find_ascent_violations(dive, settings.ascent_limit_m_per_min)
        if violations:
            print(f"  Fast ascents (> {settings.ascent_limit_m_per_min:g} m/min): "
                  f"{len(violations)}")

    if not args.quiet:
        print(f"Writing: {output_path}")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if args.json:
            to_json(dive, output_path, include_samples=args.include_samples,
                    include_analysis=args.analysis)
        else:
            rows = to_csv(dive, output_path)
            if not args.quiet:
                print(f"  Wrote {rows:,} rows")

        if args.plot:
            from divelog_parser.plots import plot_summary
            plot_summary(dive, output_path=args.plot,
                         moderate=settings.ascent_warn_m_per_min,
                         fast=settings.ascent_limit_m_per_min,
                         critical=settings.ascent_critical_m_per_min,
                         dpi=settings.plot_dpi)
            if not args.quiet:
                print(f"  Chart: {args.plot}")
    except OSError as e:
        print(f"\nError writing output: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print("Done!")


if __name__ == '__main__':
    main()
