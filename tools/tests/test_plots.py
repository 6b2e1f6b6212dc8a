"""
Plot Tests

Charts are rendered with the Agg backend and saved to disk.
"""

import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use('Agg')

from divelog_parser.dive import dive_from_bytes
from divelog_parser.plots import plot_ascent_rate, plot_profile, plot_summary


@pytest.fixture
def dive(full_dive):
    return dive_from_bytes(full_dive)


class TestPlots:

    def test_profile(self, dive, tmp_path):
        path = tmp_path / "profile.png"
        plot_profile(dive, output_path=str(path), dpi=50)
        assert path.stat().st_size > 0

    def test_profile_single_color(self, dive, tmp_path):
        path = tmp_path / "profile.png"
        plot_profile(dive, output_path=str(path), color_by_speed=False, dpi=50)
        assert path.exists()

    def test_ascent_rate(self, dive, tmp_path):
        path = tmp_path / "rate.png"
        plot_ascent_rate(dive, output_path=str(path), dpi=50)
        assert path.exists()

    def test_summary(self, dive, tmp_path):
        path = tmp_path / "summary.png"
        plot_summary(dive, output_path=str(path), dpi=50)
        assert path.exists()

    def test_summary_without_optional_values(self, scenario_a, tmp_path):
        path = tmp_path / "summary.png"
        plot_summary(dive_from_bytes(scenario_a), output_path=str(path), dpi=50)
        assert path.exists()


class TestSegmentColors:
    """Profile segments take the speed zone of their first sample."""

    def test_segment_color_from_start_sample(self):
        import matplotlib.pyplot as plt
        from matplotlib.colors import to_hex

        from divelog_parser.analysis import ZONE_CRITICAL, ZONE_SAFE
        from divelog_parser.dive import Dive, DiveSample
        from divelog_parser.plots import _draw_profile

        samples = (
            DiveSample(elapsed_seconds=0, depth_m=9.0, ascent_rate_mps=0.25),
            DiveSample(elapsed_seconds=10, depth_m=6.5, ascent_rate_mps=0.0),
            DiveSample(elapsed_seconds=20, depth_m=6.5, ascent_rate_mps=0.0),
        )
        dive = Dive(start_date=None, total_time_s=20.0, max_depth_m=9.0, samples=samples)

        fig, ax = plt.subplots()
        try:
            _draw_profile(ax, dive, color_by_speed=True)
            colors = [to_hex(line.get_color()) for line in ax.get_lines()]
        finally:
            plt.close(fig)

        assert colors == [ZONE_CRITICAL.color, ZONE_SAFE.color]
