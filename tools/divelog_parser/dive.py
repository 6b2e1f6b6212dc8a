"""
Dive Extraction

Turns decoded FIT messages into an immutable dive profile: one sample per
record message, an ascent rate derived from depth where the device did not
record one, and summary statistics taken from the session and dive summary
messages when present.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .parser import (
    FitDecoder, FitParseError, RawMessage, fit_timestamp_to_datetime, read_fit_file
)


# Global message numbers
MESG_SESSION = 18
MESG_RECORD = 20
MESG_DIVE_SUMMARY = 268

# Record fields
RECORD_TIMESTAMP = 253
RECORD_DEPTH = 92           # uint32, mm
RECORD_ASCENT_RATE = 127    # sint32, mm/s
RECORD_TEMPERATURE = 13     # sint8, degC
RECORD_NDL = 96             # s
RECORD_CNS = 93             # %

# Session fields
SESSION_START_TIME = 2
SESSION_TOTAL_ELAPSED_TIME = 7  # ms

# Dive summary fields
SUMMARY_AVG_DEPTH = 2       # mm
SUMMARY_MAX_DEPTH = 3       # mm

SCALE_MILLI = 1000.0


class NoRecordsError(FitParseError):
    """The FIT file decoded but contains no record messages."""


@dataclass(frozen=True)
class DiveSample:
    """One record message of the dive profile"""
    elapsed_seconds: int
    depth_m: Optional[float] = None
    ascent_rate_mps: Optional[float] = None     # positive while ascending
    temperature_c: Optional[int] = None
    ndl_s: Optional[int] = None
    cns_percent: Optional[int] = None

    @property
    def ascent_rate_m_per_min(self) -> Optional[float]:
        if self.ascent_rate_mps is None:
            return None
        return self.ascent_rate_mps * 60


@dataclass(frozen=True)
class Dive:
    """Dive profile and summary extracted from one FIT file"""
    start_date: Optional[datetime]
    total_time_s: float
    max_depth_m: float
    avg_depth_m: Optional[float] = None
    min_temperature_c: Optional[int] = None
    max_temperature_c: Optional[int] = None
    samples: Tuple[DiveSample, ...] = ()

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def duration_minutes(self) -> float:
        return self.total_time_s / 60

    def __repr__(self) -> str:
        start = self.start_date.isoformat() if self.start_date else None
        return (f"Dive(start={start}, samples={self.sample_count}, "
                f"max_depth={self.max_depth_m:.1f}m, "
                f"duration={self.total_time_s:.0f}s)")


def _scaled(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value / SCALE_MILLI


def backfill_ascent_rates(elapsed: Sequence[int],
                          depths: Sequence[Optional[float]],
                          rates: Sequence[Optional[float]]) -> List[Optional[float]]:
    """
    Fill missing ascent rates from the depth change since the previous sample.

    A rate is only derived when both depths are known and time moved
    forward; recorded rates are left untouched.

    Returns:
        New list of rates in m/s, positive when depth decreases
    """
    filled = list(rates)
    for i in range(1, len(filled)):
        if filled[i] is not None:
            continue
        if depths[i] is None or depths[i - 1] is None:
            continue
        dt = elapsed[i] - elapsed[i - 1]
        if dt > 0:
            filled[i] = (depths[i - 1] - depths[i]) / dt
    return filled


class DiveExtractor:
    """
    Builds a Dive from decoded FIT messages.

    Example:
        dive = DiveExtractor().extract(decode(data))
        print(f"Max depth: {dive.max_depth_m:.1f} m")
    """

    def extract(self, messages: Sequence[RawMessage]) -> Dive:
        records = [m for m in messages if m.message_type == MESG_RECORD]
        sessions = [m for m in messages if m.message_type == MESG_SESSION]
        summaries = [m for m in messages if m.message_type == MESG_DIVE_SUMMARY]

        if not records:
            raise NoRecordsError("no dive data in file")

        # Time zero is the first record that carries a clock
        first_timestamp = next(
            (ts for ts in (r.get_int(RECORD_TIMESTAMP) for r in records) if ts is not None),
            None
        )
        samples = self._build_samples(records, first_timestamp)

        session = sessions[0] if sessions else RawMessage(MESG_SESSION)
        summary = summaries[0] if summaries else RawMessage(MESG_DIVE_SUMMARY)

        # Summary values win over anything derived from samples
        start_time = session.get_int(SESSION_START_TIME) or first_timestamp
        start_date = fit_timestamp_to_datetime(start_time)

        total_elapsed = session.get_int(SESSION_TOTAL_ELAPSED_TIME)
        if total_elapsed:
            total_time = total_elapsed / SCALE_MILLI
        else:
            total_time = float(samples[-1].elapsed_seconds)

        max_depth_raw = summary.get_int(SUMMARY_MAX_DEPTH)
        if max_depth_raw:
            max_depth = max_depth_raw / SCALE_MILLI
        else:
            max_depth = max(s.depth_m or 0.0 for s in samples)

        avg_depth_raw = summary.get_int(SUMMARY_AVG_DEPTH)
        avg_depth = avg_depth_raw / SCALE_MILLI if avg_depth_raw else None

        temps = [s.temperature_c for s in samples if s.temperature_c is not None]

        return Dive(
            start_date=start_date,
            total_time_s=total_time,
            max_depth_m=max_depth,
            avg_depth_m=avg_depth,
            min_temperature_c=min(temps) if temps else None,
            max_temperature_c=max(temps) if temps else None,
            samples=tuple(samples)
        )

    def _build_samples(self, records: Sequence[RawMessage],
                       first_timestamp: Optional[int]) -> List[DiveSample]:
        elapsed = []
        previous = 0
        for record in records:
            timestamp = record.get_int(RECORD_TIMESTAMP)
            if timestamp is None or first_timestamp is None:
                # No clock on this record; hold the previous offset
                elapsed.append(previous)
                continue
            previous = max(0, timestamp - first_timestamp)
            elapsed.append(previous)

        depths = [_scaled(r.get_float(RECORD_DEPTH)) for r in records]
        rates = [_scaled(r.get_float(RECORD_ASCENT_RATE)) for r in records]
        rates = backfill_ascent_rates(elapsed, depths, rates)

        return [
            DiveSample(
                elapsed_seconds=elapsed[i],
                depth_m=depths[i],
                ascent_rate_mps=rates[i],
                temperature_c=record.get_int(RECORD_TEMPERATURE),
                ndl_s=record.get_int(RECORD_NDL),
                cns_percent=record.get_int(RECORD_CNS)
            )
            for i, record in enumerate(records)
        ]


def extract_dive(messages: Sequence[RawMessage]) -> Dive:
    """Build a Dive from decoded messages"""
    return DiveExtractor().extract(messages)


def dive_from_bytes(data: bytes, strict: bool = False) -> Dive:
    """Decode a FIT buffer and extract its dive"""
    result = FitDecoder(data).decode(strict=strict)
    return DiveExtractor().extract(result.messages)


def load_dive(filepath: Union[str, Path], strict: bool = False) -> Dive:
    """Read a FIT file from disk and extract its dive"""
    return dive_from_bytes(read_fit_file(filepath), strict=strict)
