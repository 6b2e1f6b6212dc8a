"""
Dive Analysis Tests
"""

from datetime import datetime, timezone

import pytest

from divelog_parser.analysis import (
    ZONE_CRITICAL, ZONE_FAST, ZONE_MODERATE, ZONE_SAFE, ZONE_UNKNOWN,
    ascent_speed_zone, compute_statistics, depth_statistics, find_ascent_violations,
    format_date, format_duration, format_elapsed, segment_between,
    temperature_statistics,
)
from divelog_parser.dive import Dive, DiveSample, dive_from_bytes


def make_dive(points):
    """points: (elapsed, depth, rate_mps) tuples"""
    samples = tuple(DiveSample(elapsed_seconds=t, depth_m=d, ascent_rate_mps=r)
                    for t, d, r in points)
    return Dive(start_date=None, total_time_s=float(points[-1][0]),
                max_depth_m=max(d or 0.0 for _, d, _ in points), samples=samples)


class TestSpeedZones:
    """Ascent speed classification in m/min."""

    @pytest.mark.parametrize("rate_mps,zone", [
        (None, ZONE_UNKNOWN),
        (0.0, ZONE_SAFE),
        (0.05, ZONE_SAFE),
        (0.12, ZONE_MODERATE),
        (0.16, ZONE_FAST),
        (0.21, ZONE_CRITICAL),
        (0.25, ZONE_CRITICAL),
        (-0.25, ZONE_CRITICAL),
    ])
    def test_zone(self, rate_mps, zone):
        assert ascent_speed_zone(rate_mps) == zone

    def test_colors(self):
        assert ZONE_SAFE.color == '#06d6a0'
        assert ZONE_CRITICAL.color == '#ef476f'

    def test_custom_thresholds(self):
        assert ascent_speed_zone(0.1, moderate=3, fast=5, critical=8) == ZONE_FAST


class TestSegmentBetween:
    """Two-cursor measurements."""

    @pytest.fixture
    def dive(self):
        return make_dive([(0, 0.0, None), (60, 12.0, None), (120, None, None), (180, 3.0, None)])

    def test_descent_segment(self, dive):
        seg = segment_between(dive, 0, 1)
        assert seg.delta_time_s == 60
        assert seg.delta_depth_m == 12.0
        assert seg.avg_speed_m_per_min == pytest.approx(12.0)

    def test_order_independent(self, dive):
        a = segment_between(dive, 3, 1)
        assert a.start_index == 1
        assert a.end_index == 3
        assert a.delta_time_s == 120
        assert a.delta_depth_m == 9.0
        assert a.avg_speed_m_per_min == pytest.approx(4.5)

    def test_missing_depth_counts_as_zero(self, dive):
        seg = segment_between(dive, 1, 2)
        assert seg.delta_depth_m == 12.0

    def test_same_index_has_zero_speed(self, dive):
        seg = segment_between(dive, 2, 2)
        assert seg.delta_time_s == 0
        assert seg.avg_speed_m_per_min == 0.0

    def test_out_of_range(self, dive):
        with pytest.raises(IndexError):
            segment_between(dive, 0, 4)
        with pytest.raises(IndexError):
            segment_between(dive, -1, 2)


class TestStatistics:

    def test_empty(self):
        stats = compute_statistics([])
        assert stats.count == 0
        assert stats.mean == 0.0

    def test_values(self):
        stats = compute_statistics([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
        assert stats.count == 8
        assert stats.mean == 5.0
        assert stats.std == 2.0
        assert stats.min_val == 2.0
        assert stats.max_val == 9.0

    def test_depth_statistics_skips_missing(self):
        dive = make_dive([(0, 2.0, None), (1, None, None), (2, 4.0, None)])
        stats = depth_statistics(dive)
        assert stats.count == 2
        assert stats.mean == 3.0

    def test_temperature_statistics(self, full_dive):
        stats = temperature_statistics(dive_from_bytes(full_dive))
        assert stats.count == 6
        assert stats.min_val == 21.0
        assert stats.max_val == 24.0


class TestAscentViolations:
    """Fast ascent detection."""

    def test_single_event(self):
        dive = make_dive([
            (0, 20.0, None), (10, 18.0, 0.1), (20, 15.0, 0.2),
            (30, 12.0, 0.25), (40, 11.0, 0.1), (50, 10.0, 0.05),
        ])
        events = find_ascent_violations(dive, threshold_m_per_min=9)
        assert len(events) == 1
        event = events[0]
        assert event.start_s == 20
        assert event.end_s == 30
        assert event.duration_s == 10
        assert event.peak_m_per_min == pytest.approx(15.0)
        assert event.peak_time_s == 30
        assert event.sample_indices == [2, 3]

    def test_descent_is_not_a_violation(self):
        dive = make_dive([(0, 0.0, None), (10, 5.0, -0.5)])
        assert find_ascent_violations(dive, threshold_m_per_min=9) == []

    def test_missing_rate_ends_event(self):
        dive = make_dive([(0, 9.0, 0.3), (1, None, None), (2, 8.0, 0.3)])
        events = find_ascent_violations(dive, threshold_m_per_min=9)
        assert [e.start_s for e in events] == [0, 2]

    def test_event_running_to_end(self):
        dive = make_dive([(0, 9.0, 0.0), (5, 6.0, 0.6), (10, 3.0, 0.6)])
        events = find_ascent_violations(dive)
        assert len(events) == 1
        assert events[0].end_s == 10

    def test_min_duration_filters_short_events(self):
        dive = make_dive([(0, 9.0, 0.3), (1, 8.0, 0.0), (10, 7.0, 0.3), (20, 4.0, 0.3)])
        events = find_ascent_violations(dive, threshold_m_per_min=9, min_duration_s=5)
        assert [e.start_s for e in events] == [10]


class TestFormatting:

    @pytest.mark.parametrize("seconds,text", [
        (0, '0:00'),
        (59, '0:59'),
        (61, '1:01'),
        (3600, '60:00'),
        (125.4, '2:05'),
        (59.6, '1:00'),
    ])
    def test_format_duration(self, seconds, text):
        assert format_duration(seconds) == text

    def test_format_elapsed(self):
        assert format_elapsed(754) == '12:34'

    def test_format_date(self):
        dt = datetime(2024, 3, 12, 9, 41, tzinfo=timezone.utc)
        assert format_date(dt) == '12 Mar 2024 09:41'
        assert format_date(None) == '—'
