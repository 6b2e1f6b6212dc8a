"""
Dive Analysis Module

Ascent speed classification, two-cursor segment measurements, statistics
and ascent violation detection for extracted dives.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .dive import Dive, DiveSample


# Ascent speed thresholds in m/min
DEFAULT_MODERATE_M_PER_MIN = 6.0
DEFAULT_FAST_M_PER_MIN = 9.0
DEFAULT_CRITICAL_M_PER_MIN = 12.0


@dataclass(frozen=True)
class SpeedZone:
    """Ascent speed band with its chart color"""
    name: str
    color: str


ZONE_UNKNOWN = SpeedZone('unknown', '#8899aa')
ZONE_SAFE = SpeedZone('safe', '#06d6a0')
ZONE_MODERATE = SpeedZone('moderate', '#ffd166')
ZONE_FAST = SpeedZone('fast', '#ff6b35')
ZONE_CRITICAL = SpeedZone('critical', '#ef476f')


@dataclass
class SegmentStats:
    """Measurement between two samples of a dive"""
    start_index: int
    end_index: int
    start: DiveSample
    end: DiveSample
    delta_time_s: int
    delta_depth_m: float
    avg_speed_m_per_min: float


@dataclass
class Statistics:
    """Statistical summary of data"""
    count: int = 0
    mean: float = 0.0
    std: float = 0.0
    min_val: float = 0.0
    max_val: float = 0.0
    rms: float = 0.0


@dataclass
class AscentEvent:
    """Period where the ascent rate stayed above a threshold"""
    start_s: int
    end_s: int
    peak_m_per_min: float
    peak_time_s: int
    sample_indices: List[int] = field(default_factory=list)

    @property
    def duration_s(self) -> int:
        return self.end_s - self.start_s


def ascent_speed_zone(rate_mps: Optional[float],
                      moderate: float = DEFAULT_MODERATE_M_PER_MIN,
                      fast: float = DEFAULT_FAST_M_PER_MIN,
                      critical: float = DEFAULT_CRITICAL_M_PER_MIN) -> SpeedZone:
    """
    Classify a vertical speed.

    Both directions are classified by magnitude.

    Args:
        rate_mps: Vertical speed in m/s, or None
        moderate, fast, critical: Lower bounds (exclusive) in m/min

    Returns:
        SpeedZone
    """
    if rate_mps is None:
        return ZONE_UNKNOWN
    speed = abs(rate_mps * 60)
    if speed > critical:
        return ZONE_CRITICAL
    if speed > fast:
        return ZONE_FAST
    if speed > moderate:
        return ZONE_MODERATE
    return ZONE_SAFE


def segment_between(dive: Dive, index_a: int, index_b: int) -> SegmentStats:
    """
    Measure time, depth change and average vertical speed between two samples.

    The indices may be given in either order. Missing depths count as 0.

    Raises:
        IndexError if either index is outside the sample range
    """
    count = len(dive.samples)
    for idx in (index_a, index_b):
        if idx < 0 or idx >= count:
            raise IndexError(f"sample index {idx} out of range (0..{count - 1})")

    i1, i2 = min(index_a, index_b), max(index_a, index_b)
    s1, s2 = dive.samples[i1], dive.samples[i2]

    dt = s2.elapsed_seconds - s1.elapsed_seconds
    dd = abs((s2.depth_m or 0.0) - (s1.depth_m or 0.0))
    speed = (dd / dt) * 60 if dt > 0 else 0.0

    return SegmentStats(
        start_index=i1,
        end_index=i2,
        start=s1,
        end=s2,
        delta_time_s=dt,
        delta_depth_m=dd,
        avg_speed_m_per_min=speed
    )


def compute_statistics(values: List[float]) -> Statistics:
    """
    Compute statistical summary of values.

    Args:
        values: List of numeric values

    Returns:
        Statistics dataclass
    """
    if not values:
        return Statistics()

    n = len(values)
    mean = sum(values) / n

    variance = sum((x - mean) ** 2 for x in values) / n
    std = variance ** 0.5

    rms = (sum(x ** 2 for x in values) / n) ** 0.5

    return Statistics(
        count=n,
        mean=mean,
        std=std,
        min_val=min(values),
        max_val=max(values),
        rms=rms
    )


def depth_statistics(dive: Dive) -> Statistics:
    """Statistics over the samples that carry a depth (meters)"""
    return compute_statistics([s.depth_m for s in dive.samples if s.depth_m is not None])


def temperature_statistics(dive: Dive) -> Statistics:
    """Statistics over the samples that carry a temperature (degC)"""
    return compute_statistics([float(s.temperature_c) for s in dive.samples
                               if s.temperature_c is not None])


def find_ascent_violations(dive: Dive,
                           threshold_m_per_min: float = DEFAULT_FAST_M_PER_MIN,
                           min_duration_s: int = 0) -> List[AscentEvent]:
    """
    Detect periods of ascent faster than a threshold.

    An event spans consecutive samples whose ascent rate (positive, i.e.
    going up) exceeds the threshold. Samples without a rate end the event.

    Args:
        dive: Extracted dive
        threshold_m_per_min: Ascent speed limit in m/min
        min_duration_s: Drop events shorter than this

    Returns:
        List of AscentEvent ordered by start time
    """
    events = []
    current: Optional[AscentEvent] = None

    for i, sample in enumerate(dive.samples):
        speed = sample.ascent_rate_m_per_min
        if speed is not None and speed > threshold_m_per_min:
            if current is None:
                current = AscentEvent(
                    start_s=sample.elapsed_seconds,
                    end_s=sample.elapsed_seconds,
                    peak_m_per_min=speed,
                    peak_time_s=sample.elapsed_seconds
                )
            current.end_s = sample.elapsed_seconds
            current.sample_indices.append(i)
            if speed > current.peak_m_per_min:
                current.peak_m_per_min = speed
                current.peak_time_s = sample.elapsed_seconds
        elif current is not None:
            if current.duration_s >= min_duration_s:
                events.append(current)
            current = None

    if current is not None and current.duration_s >= min_duration_s:
        events.append(current)

    return events


def format_elapsed(seconds: int) -> str:
    """Elapsed offset as m:ss"""
    m, s = divmod(int(seconds), 60)
    return f"{m}:{s:02d}"


def format_duration(seconds: float) -> str:
    """
    Format a duration as m:ss, rounding the seconds.

    Minutes are not folded into hours, a 75 minute dive reads 75:00.
    """
    minutes = int(seconds // 60)
    secs = int(round(seconds % 60))
    if secs == 60:
        minutes += 1
        secs = 0
    return f"{minutes}:{secs:02d}"


def format_date(value: Optional[datetime]) -> str:
    """Dive start as '12 Mar 2024 09:41', or an em dash when unknown"""
    if value is None:
        return '—'
    return value.strftime('%d %b %Y %H:%M')
