"""
Visualization tools for classified tracks.

Provides plotting functions for:
- One classified day (movement, disruptions, stops, km posts, speed runs)
- A whole run (one panel per day)
- Speed profile of a day's fixes against the speed threshold
"""

import numpy as np
from typing import Optional, Sequence, Tuple
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.lines import Line2D

from .models import DayResult, Fix, RunResult


# Color scheme for event kinds
EVENT_COLORS = {
    'movement': '#3498db',    # Blue
    'speed': '#e74c3c',       # Red
    'disruption': '#95a5a6',  # Grey
    'stop': '#f39c12',        # Orange
    'km_post': '#2c3e50',     # Dark
}


def plot_day(
    day: DayResult,
    ax: Optional[plt.Axes] = None,
    linewidth: float = 2,
    marker_size: float = 30,
    show_km_posts: bool = True,
    show_speed_runs: bool = True,
    title: Optional[str] = None,
    show_legend: bool = True,
) -> plt.Axes:
    """
    Plot one classified day on a lon/lat map.

    Args:
        day: DayResult from TrackPipeline.process_day()
        ax: Matplotlib axes (creates new figure if None)
        linewidth: Width of movement lines
        marker_size: Size of start/end/stop markers
        show_km_posts: Draw kilometer posts
        show_speed_runs: Overlay speed runs on the movement lines
        title: Plot title (defaults to the day's group name)
        show_legend: If True, show legend

    Returns:
        Matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 8))

    for seg in day.segments:
        lon = [p.longitude for p in seg.points]
        lat = [p.latitude for p in seg.points]
        if seg.is_degenerate:
            ax.scatter(lon, lat, c=EVENT_COLORS['movement'], s=marker_size / 2, zorder=2)
        else:
            ax.plot(lon, lat, color=EVENT_COLORS['movement'], linewidth=linewidth,
                    zorder=2, solid_capstyle='round')

    # Signal loss drawn as a dashed jump between the two fixes
    for gap in day.disruptions:
        ax.plot([gap.from_fix.longitude, gap.to_fix.longitude],
                [gap.from_fix.latitude, gap.to_fix.latitude],
                color=EVENT_COLORS['disruption'], linestyle='--', linewidth=1, zorder=1)

    for stop in day.stops:
        ax.scatter(stop.from_fix.longitude, stop.from_fix.latitude, c=EVENT_COLORS['stop'],
                   s=marker_size * 2, marker='P', zorder=4, edgecolors='white', linewidth=1)

    if show_speed_runs:
        for run in day.speed_runs:
            ax.plot([p.longitude for p in run.segment.points],
                    [p.latitude for p in run.segment.points],
                    color=EVENT_COLORS['speed'], linewidth=linewidth * 1.5, alpha=0.7, zorder=3)

    if show_km_posts:
        for post in day.km_posts:
            ax.scatter(post.fix.longitude, post.fix.latitude, c=EVENT_COLORS['km_post'],
                       s=marker_size, marker='^', zorder=5)
            ax.annotate(f'{post.cumulative_distance_km:g}', (post.fix.longitude, post.fix.latitude),
                        textcoords='offset points', xytext=(4, 4), fontsize=7)

    if day.first_fix is not None:
        ax.scatter(day.first_fix.longitude, day.first_fix.latitude, c='green', s=marker_size * 2,
                   marker='o', label='Start', zorder=6, edgecolors='white', linewidth=1)
        ax.scatter(day.last_fix.longitude, day.last_fix.latitude, c='red', s=marker_size * 2,
                   marker='s', label='End', zorder=6, edgecolors='white', linewidth=1)

    ax.set_xlabel('Longitude')
    ax.set_ylabel('Latitude')
    ax.grid(True, alpha=0.3)

    if show_legend:
        handles = [
            mpatches.Patch(color=EVENT_COLORS['movement'], label='Movement'),
            mpatches.Patch(color=EVENT_COLORS['speed'], label='Speed run'),
            Line2D([0], [0], color=EVENT_COLORS['disruption'], linestyle='--', label='Disruption'),
            Line2D([0], [0], color=EVENT_COLORS['stop'], marker='P', linestyle='', label='Parking'),
        ]
        ax.legend(handles=handles, loc='best', fontsize=8)

    ax.set_title(title or f'{day.group_name}: {len(day.segments)} segments, '
                          f'{len(day.stops)} stops, {len(day.disruptions)} disruptions')
    return ax


def plot_run(
    run: RunResult,
    save_path: Optional[str] = None,
    max_cols: int = 3,
    panel_size: Tuple[float, float] = (6, 5),
) -> plt.Figure:
    """
    Plot every day of a run, one panel per day, in run order.

    Args:
        run: RunResult from TrackPipeline.process()
        save_path: If provided, save figure to this path
        max_cols: Panels per row
        panel_size: Size of one panel (inches)

    Returns:
        Matplotlib figure
    """
    n = max(1, run.num_days)
    cols = min(max_cols, n)
    rows = int(np.ceil(n / cols))
    fig, axes = plt.subplots(rows, cols, figsize=(panel_size[0] * cols, panel_size[1] * rows),
                             squeeze=False)

    for i, ax in enumerate(axes.flat):
        if i < run.num_days:
            plot_day(run.days[i], ax=ax, show_legend=(i == 0))
        else:
            ax.axis('off')

    fig.suptitle(f'Track Report ({run.num_days} days)', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_speed_profile(
    fixes: Sequence[Fix],
    speed_threshold_kmh: Optional[float] = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """
    Plot speed over elapsed time for one day of fixes.

    Args:
        fixes: Fixes of a single day, sorted by timestamp
        speed_threshold_kmh: Draw the speed-run threshold as a horizontal line
        ax: Matplotlib axes

    Returns:
        Matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 4))

    if fixes:
        t0 = fixes[0].timestamp
        minutes = np.array([(f.timestamp - t0).total_seconds() / 60 for f in fixes])
        speeds = np.array([f.speed for f in fixes])
        ax.plot(minutes, speeds, color=EVENT_COLORS['movement'], linewidth=1)
        if speed_threshold_kmh is not None:
            ax.axhline(y=speed_threshold_kmh, color=EVENT_COLORS['speed'], linestyle='--', alpha=0.7)
            ax.fill_between(minutes, speeds, speed_threshold_kmh, where=speeds >= speed_threshold_kmh,
                            color=EVENT_COLORS['speed'], alpha=0.3)

    ax.set_xlabel('Time (min)')
    ax.set_ylabel('Speed (km/h)')
    ax.set_title('Speed')
    ax.grid(True, alpha=0.3)
    return ax
