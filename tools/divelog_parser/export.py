"""
Data Export Module

Export dives to CSV, JSON (with lossless reload), pandas DataFrame and
numpy arrays.
"""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .analysis import ascent_speed_zone, depth_statistics, find_ascent_violations
from .dive import Dive, DiveSample


CSV_COLUMNS = [
    'elapsed_s', 'depth_m', 'ascent_rate_mps', 'ascent_rate_m_per_min',
    'temperature_c', 'ndl_s', 'cns_percent',
]

SAMPLE_KEYS = [
    'elapsed_seconds', 'depth_m', 'ascent_rate_mps',
    'temperature_c', 'ndl_s', 'cns_percent',
]


def _fmt(value: Optional[float], spec: str) -> str:
    return '' if value is None else format(value, spec)


def to_csv(dive: Dive, output_path: Union[str, Path]) -> int:
    """
    Export dive samples to CSV format.

    Absent values are written as empty cells.

    Args:
        dive: Extracted dive
        output_path: Output CSV file path

    Returns:
        Number of rows written
    """
    rows_written = 0

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        for sample in dive.samples:
            writer.writerow([
                sample.elapsed_seconds,
                _fmt(sample.depth_m, '.3f'),
                _fmt(sample.ascent_rate_mps, '.4f'),
                _fmt(sample.ascent_rate_m_per_min, '.2f'),
                '' if sample.temperature_c is None else sample.temperature_c,
                '' if sample.ndl_s is None else sample.ndl_s,
                '' if sample.cns_percent is None else sample.cns_percent,
            ])
            rows_written += 1

    return rows_written


def sample_to_dict(sample: DiveSample) -> Dict[str, Any]:
    return {key: getattr(sample, key) for key in SAMPLE_KEYS}


def dive_to_dict(dive: Dive, include_samples: bool = True) -> Dict[str, Any]:
    """
    Convert a dive to plain JSON-compatible types.

    Absent values stay None so that dive_from_dict() restores them.
    """
    result = {
        'start_date': dive.start_date.isoformat() if dive.start_date else None,
        'total_time_s': dive.total_time_s,
        'max_depth_m': dive.max_depth_m,
        'avg_depth_m': dive.avg_depth_m,
        'min_temperature_c': dive.min_temperature_c,
        'max_temperature_c': dive.max_temperature_c,
    }
    if include_samples:
        result['samples'] = [sample_to_dict(s) for s in dive.samples]
    return result


def dive_from_dict(data: Dict[str, Any]) -> Dive:
    """Rebuild a dive saved with dive_to_dict()"""
    start = data.get('start_date')
    samples = tuple(
        DiveSample(**{key: s.get(key) for key in SAMPLE_KEYS})
        for s in data.get('samples', [])
    )
    return Dive(
        start_date=datetime.fromisoformat(start) if start else None,
        total_time_s=data['total_time_s'],
        max_depth_m=data['max_depth_m'],
        avg_depth_m=data.get('avg_depth_m'),
        min_temperature_c=data.get('min_temperature_c'),
        max_temperature_c=data.get('max_temperature_c'),
        samples=samples
    )


def to_json(dive: Dive, output_path: Union[str, Path],
            include_samples: bool = True,
            include_analysis: bool = False) -> None:
    """
    Export a dive to JSON.

    Args:
        dive: Extracted dive
        output_path: Output JSON file path
        include_samples: Whether to include the sample series
        include_analysis: Add depth statistics and ascent violations
                          (ignored by from_json)
    """
    result = dive_to_dict(dive, include_samples=include_samples)

    if include_analysis:
        stats = depth_statistics(dive)
        result['analysis'] = {
            'depth_mean_m': stats.mean,
            'depth_std_m': stats.std,
            'ascent_violations': [
                {
                    'start_s': e.start_s,
                    'end_s': e.end_s,
                    'peak_m_per_min': e.peak_m_per_min,
                    'peak_time_s': e.peak_time_s,
                }
                for e in find_ascent_violations(dive)
            ],
        }

    with open(output_path, 'w') as f:
        json.dump(result, f, indent=2)


def from_json(input_path: Union[str, Path]) -> Dive:
    """Load a dive written by to_json(include_samples=True)"""
    with open(input_path, 'r') as f:
        return dive_from_dict(json.load(f))


def to_dataframe(dive: Dive):
    """
    Convert dive samples to a pandas DataFrame.

    Returns:
        pandas DataFrame with one row per sample plus ascent_rate_m_per_min
        and speed_zone columns

    Raises:
        ImportError if pandas is not installed
    """
    try:
        import pandas as pd
    except ImportError:
        raise ImportError("pandas is required for DataFrame export. "
                          "Install with: pip install pandas")

    data = []
    for sample in dive.samples:
        row = sample_to_dict(sample)
        row['ascent_rate_m_per_min'] = sample.ascent_rate_m_per_min
        row['speed_zone'] = ascent_speed_zone(sample.ascent_rate_mps).name
        data.append(row)

    columns = SAMPLE_KEYS + ['ascent_rate_m_per_min', 'speed_zone']
    return pd.DataFrame(data, columns=columns)


def to_numpy(dive: Dive):
    """
    Convert dive samples to numpy arrays.

    Absent values become NaN.

    Returns:
        Dictionary of numpy arrays keyed like the sample fields

    Raises:
        ImportError if numpy is not installed
    """
    try:
        import numpy as np
    except ImportError:
        raise ImportError("numpy is required for numpy export. "
                          "Install with: pip install numpy")

    def column(key):
        return np.array(
            [np.nan if getattr(s, key) is None else getattr(s, key) for s in dive.samples],
            dtype=np.float64
        )

    result = {'elapsed_seconds': np.array([s.elapsed_seconds for s in dive.samples],
                                          dtype=np.int64)}
    for key in SAMPLE_KEYS[1:]:
        result[key] = column(key)
    return result
