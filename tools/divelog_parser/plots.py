"""
Visualization Module

Generate dive profile and ascent rate plots using matplotlib.
"""

from typing import Optional, Tuple

from .analysis import (
    ascent_speed_zone, format_date, format_duration,
    DEFAULT_MODERATE_M_PER_MIN, DEFAULT_FAST_M_PER_MIN, DEFAULT_CRITICAL_M_PER_MIN,
    ZONE_MODERATE, ZONE_FAST, ZONE_CRITICAL,
)
from .dive import Dive


def _check_matplotlib():
    """Check if matplotlib is available"""
    try:
        import matplotlib.pyplot as plt
        return plt
    except ImportError:
        raise ImportError("matplotlib is required for plotting. "
                          "Install with: pip install matplotlib")


def _finish(plt, fig, output_path: Optional[str], dpi: int):
    if output_path:
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight')
        plt.close(fig)
    else:
        plt.show()


def _draw_profile(ax, dive: Dive, color_by_speed: bool):
    minutes = [s.elapsed_seconds / 60 for s in dive.samples]
    depths = [s.depth_m for s in dive.samples]

    if color_by_speed:
        # One segment per sample pair, colored by the rate at its start
        for i in range(len(dive.samples) - 1):
            if depths[i] is None or depths[i + 1] is None:
                continue
            zone = ascent_speed_zone(dive.samples[i].ascent_rate_mps)
            ax.plot(minutes[i:i + 2], depths[i:i + 2], color=zone.color, linewidth=1.5)
    else:
        ax.plot(minutes, [d if d is not None else float('nan') for d in depths],
                color='#00b4d8', linewidth=1.5)

    ax.invert_yaxis()
    ax.set_ylabel('Depth (m)')
    ax.grid(True, alpha=0.3)


def _draw_ascent_rate(ax, dive: Dive, moderate: float, fast: float, critical: float):
    minutes = [s.elapsed_seconds / 60 for s in dive.samples]
    rates = [s.ascent_rate_m_per_min for s in dive.samples]

    ax.plot(minutes, [r if r is not None else float('nan') for r in rates],
            linewidth=0.8, color='#8899aa')
    for limit, zone in ((moderate, ZONE_MODERATE), (fast, ZONE_FAST), (critical, ZONE_CRITICAL)):
        ax.axhline(y=limit, color=zone.color, linestyle='--', alpha=0.6,
                   label=f'{zone.name} > {limit:g} m/min')
    ax.axhline(y=0, color='black', linewidth=0.5, alpha=0.4)
    ax.set_ylabel('Ascent rate (m/min)')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper right', fontsize=8)


def plot_profile(dive: Dive,
                 output_path: Optional[str] = None,
                 title: str = "Dive Profile",
                 figsize: Tuple[int, int] = (12, 6),
                 color_by_speed: bool = True,
                 dpi: int = 150) -> None:
    """
    Plot depth over time with the surface at the top.

    Args:
        dive: Extracted dive
        output_path: Optional path to save figure (shows if None)
        title: Plot title
        figsize: Figure size (width, height)
        color_by_speed: Color each segment by its ascent speed zone
        dpi: Resolution of the saved image
    """
    plt = _check_matplotlib()

    fig, ax = plt.subplots(figsize=figsize)
    _draw_profile(ax, dive, color_by_speed)
    ax.set_xlabel('Time (min)')
    ax.set_title(title)

    if dive.max_depth_m > 0:
        ax.axhline(y=dive.max_depth_m, color='r', linestyle='--', alpha=0.5,
                   label=f'Max: {dive.max_depth_m:.1f} m')
        ax.legend(loc='lower right')

    plt.tight_layout()
    _finish(plt, fig, output_path, dpi)


def plot_ascent_rate(dive: Dive,
                     output_path: Optional[str] = None,
                     title: str = "Ascent Rate",
                     figsize: Tuple[int, int] = (12, 4),
                     moderate: float = DEFAULT_MODERATE_M_PER_MIN,
                     fast: float = DEFAULT_FAST_M_PER_MIN,
                     critical: float = DEFAULT_CRITICAL_M_PER_MIN,
                     dpi: int = 150) -> None:
    """
    Plot vertical speed in m/min with the speed zone limits.

    Args:
        dive: Extracted dive
        output_path: Optional path to save figure
        title: Plot title
        figsize: Figure size
        moderate, fast, critical: Zone limits in m/min
        dpi: Resolution of the saved image
    """
    plt = _check_matplotlib()

    fig, ax = plt.subplots(figsize=figsize)
    _draw_ascent_rate(ax, dive, moderate, fast, critical)
    ax.set_xlabel('Time (min)')
    ax.set_title(title)

    plt.tight_layout()
    _finish(plt, fig, output_path, dpi)


def plot_summary(dive: Dive,
                 output_path: Optional[str] = None,
                 figsize: Tuple[int, int] = (12, 10),
                 moderate: float = DEFAULT_MODERATE_M_PER_MIN,
                 fast: float = DEFAULT_FAST_M_PER_MIN,
                 critical: float = DEFAULT_CRITICAL_M_PER_MIN,
                 dpi: int = 150) -> None:
    """
    Generate summary plot with depth profile, ascent rate and statistics.
    """
    plt = _check_matplotlib()

    fig = plt.figure(figsize=figsize)
    gs = fig.add_gridspec(3, 1, height_ratios=[3, 2, 1], hspace=0.35)

    ax_depth = fig.add_subplot(gs[0])
    _draw_profile(ax_depth, dive, color_by_speed=True)
    ax_depth.set_title('Depth')

    ax_rate = fig.add_subplot(gs[1], sharex=ax_depth)
    _draw_ascent_rate(ax_rate, dive, moderate, fast, critical)
    ax_rate.set_xlabel('Time (min)')
    ax_rate.set_title('Ascent Rate')

    ax_stats = fig.add_subplot(gs[2])
    ax_stats.axis('off')

    avg = f"{dive.avg_depth_m:.1f} m" if dive.avg_depth_m is not None else '—'
    if dive.min_temperature_c is not None:
        temp = f"{dive.min_temperature_c} to {dive.max_temperature_c} °C"
    else:
        temp = '—'

    stats_text = (
        f"Start: {format_date(dive.start_date)} | "
        f"Duration: {format_duration(dive.total_time_s)} | "
        f"Samples: {dive.sample_count:,}\n\n"
        f"Max depth: {dive.max_depth_m:.1f} m | Avg depth: {avg} | Temperature: {temp}"
    )

    ax_stats.text(0.5, 0.5, stats_text, transform=ax_stats.transAxes,
                  fontsize=11, verticalalignment='center', horizontalalignment='center',
                  fontfamily='monospace',
                  bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))

    fig.suptitle(f"Dive {format_date(dive.start_date)}", fontsize=14)

    _finish(plt, fig, output_path, dpi)
