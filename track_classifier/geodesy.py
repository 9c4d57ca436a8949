"""
Geodesy helpers for GPS track analysis.

Pure functions on latitude/longitude pairs (decimal degrees):
- Great-circle distance (spherical law of cosines), in kilometres
- Initial compass bearing, in degrees [0, 360)
- Vectorised path length for a sequence of points
"""

import numpy as np
from typing import Sequence


# One degree of arc in statute miles is 60 nautical miles * 1.1515
MILES_PER_DEGREE = 60 * 1.1515
KM_PER_MILE = 1.609344


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points using the spherical law of cosines.

    The arccosine argument is clamped to [-1, 1] so that floating-point
    overshoot for (nearly) identical or antipodal points cannot produce NaN.

    Args:
        lat1, lon1: First point (degrees)
        lat2, lon2: Second point (degrees)

    Returns:
        Distance in kilometres (always >= 0)
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    theta_rad = np.radians(lon1 - lon2)

    cos_angle = (np.sin(lat1_rad) * np.sin(lat2_rad)
                 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.cos(theta_rad))
    angle = np.degrees(np.arccos(np.clip(cos_angle, -1.0, 1.0)))

    dist = angle * MILES_PER_DEGREE * KM_PER_MILE
    return float(max(dist, 0.0))


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute initial bearing from point 1 to point 2.

    Args:
        lat1, lon1: First point (degrees)
        lat2, lon2: Second point (degrees)

    Returns:
        Bearing in degrees (0-360, where 0 is North). Coincident points give 0.
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlon_rad = np.radians(lon2 - lon1)

    x = np.sin(dlon_rad) * np.cos(lat2_rad)
    y = np.cos(lat1_rad) * np.sin(lat2_rad) - np.sin(lat1_rad) * np.cos(lat2_rad) * np.cos(dlon_rad)

    return float((np.degrees(np.arctan2(x, y)) + 360) % 360)


def fix_distance_km(a, b) -> float:
    """Distance between two objects exposing ``latitude``/``longitude``."""
    return distance_km(a.latitude, a.longitude, b.latitude, b.longitude)


def fix_bearing(a, b) -> float:
    """Bearing from ``a`` to ``b`` (objects exposing ``latitude``/``longitude``)."""
    return bearing_degrees(a.latitude, a.longitude, b.latitude, b.longitude)


def path_length_km(lats: Sequence[float], lons: Sequence[float]) -> float:
    """
    Total length of a polyline as the sum of its pairwise distances.

    Args:
        lats: Latitudes in degrees
        lons: Longitudes in degrees

    Returns:
        Length in kilometres (0 for fewer than two points)
    """
    lat = np.radians(np.asarray(lats, dtype=float))
    lon = np.asarray(lons, dtype=float)
    if len(lat) < 2:
        return 0.0

    theta = np.radians(lon[:-1] - lon[1:])
    cos_angle = (np.sin(lat[:-1]) * np.sin(lat[1:])
                 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.cos(theta))
    angles = np.degrees(np.arccos(np.clip(cos_angle, -1.0, 1.0)))

    return float(np.sum(angles) * MILES_PER_DEGREE * KM_PER_MILE)
