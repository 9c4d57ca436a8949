"""
Sustained-speed segment extraction.

An independent pass over a day's fixes (it does not consume classifier
output) that finds the stretches where the vehicle kept at or above a speed
threshold. Each stretch becomes a speed Segment, optionally with start, end
and direction markers for rendering.
"""

import logging
from typing import List, Sequence

from .geodesy import fix_bearing, path_length_km
from .models import Coordinate, Fix, LINE_STYLE_SPEED, SPEED_LABEL, Segment, SpeedMarkers, SpeedRun

logger = logging.getLogger(__name__)


# Runs shorter than this (km) get no markers; they would sit on top of each other
MIN_MARKER_LENGTH_KM = 0.01


class SpeedSegmentExtractor:
    """
    Extracts runs of adjacent fix pairs where both fixes are fast enough.

    Each qualifying pair contributes its first fix; when the run ends (a pair
    fails the threshold or the day ends) the last qualifying fix closes it.
    """

    def __init__(
        self,
        speed_threshold_kmh: float = 90.0,
        markers_enabled: bool = False,
        min_marker_length_km: float = MIN_MARKER_LENGTH_KM,
    ):
        """
        Initialize the extractor.

        Args:
            speed_threshold_kmh: Minimum speed (km/h) for both fixes of a pair
            markers_enabled: Derive start/end/direction markers for each run
            min_marker_length_km: Minimum run length (km) for markers
        """
        self.speed_threshold_kmh = speed_threshold_kmh
        self.markers_enabled = markers_enabled
        self.min_marker_length_km = min_marker_length_km

    def _is_fast(self, fix: Fix) -> bool:
        return fix.speed >= self.speed_threshold_kmh

    def _close_run(self, points: List[Coordinate]) -> List[SpeedRun]:
        if len(points) < 2:
            return []

        segment = Segment(tuple(points), SPEED_LABEL, LINE_STYLE_SPEED)
        length = path_length_km([p.latitude for p in points], [p.longitude for p in points])

        markers = None
        if self.markers_enabled and length >= self.min_marker_length_km:
            markers = SpeedMarkers(
                start=points[0],
                end=points[-1],
                heading_degrees=fix_bearing(points[0], points[1]),
            )
        return [SpeedRun(segment=segment, length_km=length, markers=markers)]

    def extract(self, fixes: Sequence[Fix]) -> List[SpeedRun]:
        """
        Find all speed runs in one day of fixes.

        Args:
            fixes: Fixes of a single day, sorted ascending by timestamp

        Returns:
            List of SpeedRun in chronological order
        """
        runs: List[SpeedRun] = []
        current: List[Coordinate] = []

        for prev, curr in zip(fixes, fixes[1:]):
            if self._is_fast(prev) and self._is_fast(curr):
                current.append(prev.coordinate)
            elif current:
                # prev was the last fix of the qualifying run
                current.append(prev.coordinate)
                runs.extend(self._close_run(current))
                current = []

        if current:
            current.append(fixes[-1].coordinate)
            runs.extend(self._close_run(current))

        logger.debug("Extracted %d speed runs at >= %.1f km/h", len(runs), self.speed_threshold_kmh)
        return runs
