"""
Dive Computer FIT File Parser

A Python library for decoding FIT activity files written by dive computers
and extracting the dive profile: depth, temperature and ascent rate per
record, plus the dive summary.

Example usage:
    from divelog_parser import load_dive

    dive = load_dive('dive.fit')
    print(f"Duration: {dive.total_time_s:.0f}s")
    print(f"Max depth: {dive.max_depth_m:.1f} m")

    # Validate file integrity
    report = validate_file('dive.fit')
    if report.is_valid:
        print("File integrity verified!")

    # Export to CSV
    to_csv(dive, 'dive.csv')

    # Find fast ascents
    for event in find_ascent_violations(dive, threshold_m_per_min=9):
        print(f"{event.peak_m_per_min:.1f} m/min at {event.peak_time_s}s")
"""

from .parser import (
    FitDecoder, DecodeResult, FileHeader, MessageDefinition, RawMessage,
    FitParseError, FormatError, TruncatedStreamError,
    decode, read_fit_file, fit_timestamp_to_datetime,
)
from .dive import (
    Dive, DiveSample, DiveExtractor, NoRecordsError,
    extract_dive, dive_from_bytes, load_dive,
)
from .analysis import (
    SpeedZone, SegmentStats, AscentEvent, Statistics,
    ascent_speed_zone, segment_between, find_ascent_violations,
    depth_statistics, format_duration,
)
from .validator import ValidationReport, validate_file, validate_bytes
from .export import to_csv, to_json, from_json, to_dataframe

__version__ = '1.0.0'
__all__ = [
    'FitDecoder',
    'DecodeResult',
    'FileHeader',
    'MessageDefinition',
    'RawMessage',
    'FitParseError',
    'FormatError',
    'TruncatedStreamError',
    'decode',
    'read_fit_file',
    'fit_timestamp_to_datetime',
    'Dive',
    'DiveSample',
    'DiveExtractor',
    'NoRecordsError',
    'extract_dive',
    'dive_from_bytes',
    'load_dive',
    'SpeedZone',
    'SegmentStats',
    'AscentEvent',
    'Statistics',
    'ascent_speed_zone',
    'segment_between',
    'find_ascent_violations',
    'depth_statistics',
    'format_duration',
    'ValidationReport',
    'validate_file',
    'validate_bytes',
    'to_csv',
    'to_json',
    'from_json',
    'to_dataframe',
]
