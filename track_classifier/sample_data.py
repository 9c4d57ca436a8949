"""
Sample GPS data generation for testing and development.

Generates a synthetic driving day with the situations the classifier
separates:
- Drive legs (straight roads at a steady speed with GPS noise)
- A parking stop (no fixes for ten minutes)
- A signal loss (the position jumps several kilometres between two fixes)
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple
from datetime import datetime, timedelta, timezone

from .frames import fixes_from_dataframe
from .models import Fix


# Reference location: Tartu, Estonia
DEFAULT_START_LAT = 58.3780
DEFAULT_START_LON = 26.7290

SAMPLE_INTERVAL_S = 5.0
STOP_DURATION = timedelta(minutes=10)
JUMP_DISTANCE_M = 5000.0


def _meters_to_degrees_lat(meters):
    """Convert meters to degrees latitude (approximate)."""
    return meters / 111320.0


def _meters_to_degrees_lon(meters, lat: float):
    """Convert meters to degrees longitude at given latitude."""
    return meters / (111320.0 * np.cos(np.radians(lat)))


def generate_drive_leg(
    start_lat: float,
    start_lon: float,
    heading: float,  # degrees, 0 = North
    distance: float,  # meters
    speed_kmh: float,
    rng: np.random.Generator,
    sample_interval: float = SAMPLE_INTERVAL_S,  # seconds
    noise_std: float = 2.0,  # meters
    speed_noise_std: float = 3.0,  # km/h
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Generate a straight drive leg.

    Returns:
        Tuple of (latitudes, longitudes, speeds km/h, seconds from leg start)
    """
    speed_ms = speed_kmh / 3.6
    duration = distance / speed_ms
    num_points = max(2, int(duration / sample_interval) + 1)

    times = np.arange(num_points) * sample_interval

    heading_rad = np.radians(heading)
    x = speed_ms * np.sin(heading_rad) * times + rng.normal(0, noise_std, num_points)  # East
    y = speed_ms * np.cos(heading_rad) * times + rng.normal(0, noise_std, num_points)  # North

    lats = start_lat + _meters_to_degrees_lat(y)
    lons = start_lon + _meters_to_degrees_lon(x, start_lat)
    speeds = np.clip(speed_kmh + rng.normal(0, speed_noise_std, num_points), 0, None)

    return lats, lons, speeds, times


def generate_sample_day(
    day: str = '2024-05-02',
    start_lat: float = DEFAULT_START_LAT,
    start_lon: float = DEFAULT_START_LON,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Generate one synthetic driving day.

    Layout: a 20 km leg at 90 km/h north, a ten minute parking stop, an
    8 km leg at 50 km/h east, a 5 km jump north (signal loss) and a 5 km
    leg at 70 km/h south.

    Args:
        day: Date of the day (YYYY-MM-DD), also used as ``day_key``
        start_lat, start_lon: Starting position
        seed: Random seed for reproducibility

    Returns:
        DataFrame with columns: timestamp (UTC), latitude, longitude, speed,
        day_key, group_name
    """
    rng = np.random.default_rng(seed)
    start_time = datetime.fromisoformat(day).replace(hour=8, tzinfo=timezone.utc)

    all_lats: List[float] = []
    all_lons: List[float] = []
    all_speeds: List[float] = []
    all_times: List[float] = []

    current_lat = start_lat
    current_lon = start_lon
    current_time = 0.0

    legs = [
        # (gap before the leg in seconds, northward jump in meters, leg parameters)
        (0.0, 0.0, {'heading': 0, 'distance': 20000, 'speed_kmh': 90}),
        (STOP_DURATION.total_seconds(), 0.0, {'heading': 90, 'distance': 8000, 'speed_kmh': 50}),
        (SAMPLE_INTERVAL_S, JUMP_DISTANCE_M, {'heading': 180, 'distance': 5000, 'speed_kmh': 70}),
    ]

    for gap, jump, params in legs:
        current_lat += _meters_to_degrees_lat(jump)
        lats, lons, speeds, times = generate_drive_leg(current_lat, current_lon, rng=rng, **params)

        offset = current_time + gap if all_times else 0.0
        all_lats.extend(lats)
        all_lons.extend(lons)
        all_speeds.extend(speeds)
        all_times.extend(times + offset)

        current_lat = lats[-1]
        current_lon = lons[-1]
        current_time = all_times[-1]

    timestamps = [start_time + timedelta(seconds=float(t)) for t in all_times]

    return pd.DataFrame({
        'timestamp': timestamps,
        'latitude': all_lats,
        'longitude': all_lons,
        'speed': all_speeds,
        'day_key': day,
        'group_name': day,
    })


def generate_sample_fixes(day: str = '2024-05-02', seed: Optional[int] = None) -> List[Fix]:
    """Generate one synthetic day as a list of Fix."""
    return fixes_from_dataframe(generate_sample_day(day=day, seed=seed))


def generate_sample_run(
    num_days: int = 3,
    first_day: str = '2024-05-02',
    seed: Optional[int] = None,
) -> Dict[str, List[Fix]]:
    """
    Generate several synthetic days.

    Args:
        num_days: Number of consecutive days
        first_day: Date of the first day (YYYY-MM-DD)
        seed: Random seed for reproducibility

    Returns:
        Ordered mapping of day key -> fixes
    """
    rng = np.random.default_rng(seed)
    start = datetime.fromisoformat(first_day)

    run = {}
    for i in range(num_days):
        day = (start + timedelta(days=i)).date().isoformat()
        # Vary starting location slightly
        df = generate_sample_day(
            day=day,
            start_lat=DEFAULT_START_LAT + rng.uniform(-0.05, 0.05),
            start_lon=DEFAULT_START_LON + rng.uniform(-0.05, 0.05),
            seed=seed + i if seed is not None else None,
        )
        run[day] = fixes_from_dataframe(df)
    return run
