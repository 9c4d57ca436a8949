"""Shared pytest fixtures: fix factories laid out along a meridian.

Along a meridian the law-of-cosines distance is exactly the latitude
difference times KM_PER_DEGREE, so tests can place fixes at known
kilometre offsets.
"""

from datetime import datetime, timedelta, timezone

import pytest

from track_classifier.geodesy import KM_PER_MILE, MILES_PER_DEGREE
from track_classifier.models import Fix


KM_PER_DEGREE = MILES_PER_DEGREE * KM_PER_MILE
BASE_LAT = 58.0
BASE_LON = 25.0


@pytest.fixture
def t0():
    return datetime(2024, 5, 2, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_fix(t0):
    """Factory: a fix ``km_north`` km north of the base point, ``minutes`` after t0."""
    def _make(km_north=0.0, minutes=0.0, speed=50.0, lon=BASE_LON, **tags):
        return Fix(
            latitude=BASE_LAT + km_north / KM_PER_DEGREE,
            longitude=lon,
            timestamp=t0 + timedelta(minutes=minutes),
            speed=speed,
            **tags,
        )
    return _make


@pytest.fixture
def straight_track(make_fix):
    """Factory: ``n`` fixes spaced ``spacing_km`` apart, one every ``interval_min`` minutes."""
    def _track(n, spacing_km=0.3, interval_min=0.5, speeds=None, **tags):
        return [
            make_fix(km_north=i * spacing_km, minutes=i * interval_min,
                     speed=speeds[i] if speeds is not None else 50.0, **tags)
            for i in range(n)
        ]
    return _track
