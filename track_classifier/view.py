"""
Initial camera framing for a whole run.

Reduces every point of every day to one centre and one zoom distance, so
a map viewer opens with the full track in view.
"""

import numpy as np
import pandas as pd
from typing import Sequence

from .errors import InvalidInputError
from .models import ViewFrame


EARTH_CIRCUMFERENCE_M = 40_075_000


def _frame(lats: np.ndarray, lons: np.ndarray) -> ViewFrame:
    if lats.size == 0:
        raise InvalidInputError("Cannot frame an empty point set")

    # Plain arithmetic mean, not a geodesic centroid
    center_lat = float(np.mean(lats))
    center_lon = float(np.mean(lons))

    lat_span = float(np.max(lats) - np.min(lats))
    lon_span = float(np.max(lons) - np.min(lons))
    max_span = max(lat_span, lon_span)

    altitude = (max_span / 360) * EARTH_CIRCUMFERENCE_M
    return ViewFrame(
        center_latitude=center_lat,
        center_longitude=center_lon,
        altitude_meters=altitude,
        range_meters=altitude,
    )


def compute_view_frame(points: Sequence) -> ViewFrame:
    """
    Compute the view frame for a set of points.

    Args:
        points: Objects exposing ``latitude`` and ``longitude`` (Fix, Coordinate, ...)

    Returns:
        ViewFrame with centroid and altitude = range = (max span / 360) * earth circumference

    Raises:
        InvalidInputError: If ``points`` is empty
    """
    lats = np.array([p.latitude for p in points], dtype=float)
    lons = np.array([p.longitude for p in points], dtype=float)
    return _frame(lats, lons)


def view_frame_from_dataframe(
    df: pd.DataFrame,
    lat_col: str = 'latitude',
    lon_col: str = 'longitude',
) -> ViewFrame:
    """Compute the view frame for the rows of a DataFrame."""
    return _frame(df[lat_col].to_numpy(dtype=float), df[lon_col].to_numpy(dtype=float))
