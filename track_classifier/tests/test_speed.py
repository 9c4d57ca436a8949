"""
Tests for speed-run extraction.
"""

import pytest

from track_classifier.models import LINE_STYLE_SPEED, SPEED_LABEL
from track_classifier.speed import SpeedSegmentExtractor


def _speeds(straight_track, speeds, spacing_km=0.5):
    return straight_track(len(speeds), spacing_km=spacing_km, speeds=speeds)


class TestSpeedSegmentExtractor:
    """Runs of adjacent fast fixes."""

    def test_worked_example(self, straight_track):
        """Speeds [40, 60, 70, 45] at 50 km/h give one run over the 2nd and 3rd fixes."""
        fixes = _speeds(straight_track, [40, 60, 70, 45])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=50).extract(fixes)

        assert len(runs) == 1
        segment = runs[0].segment
        assert segment.points == (fixes[1].coordinate, fixes[2].coordinate)
        assert segment.label == SPEED_LABEL
        assert segment.style_id == LINE_STYLE_SPEED
        assert runs[0].length_km == pytest.approx(0.5, rel=1e-6)

    def test_run_reaching_end_of_day(self, straight_track):
        """A run still open at the last fix is closed with that fix."""
        fixes = _speeds(straight_track, [40, 60, 70, 80])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=50).extract(fixes)

        assert len(runs) == 1
        assert runs[0].segment.points == tuple(f.coordinate for f in fixes[1:])

    def test_two_runs(self, straight_track):
        """A slow fix between fast stretches splits them."""
        fixes = _speeds(straight_track, [90, 95, 40, 92, 99, 91])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=90).extract(fixes)

        assert len(runs) == 2
        assert runs[0].segment.points == (fixes[0].coordinate, fixes[1].coordinate)
        assert runs[1].segment.points == tuple(f.coordinate for f in fixes[3:])

    def test_threshold_is_inclusive(self, straight_track):
        """Speed equal to the threshold counts as fast."""
        fixes = _speeds(straight_track, [50, 50])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=50).extract(fixes)
        assert len(runs) == 1

    def test_isolated_fast_fix_is_not_a_run(self, straight_track):
        """A single fast fix has no fast pair."""
        fixes = _speeds(straight_track, [40, 120, 40])
        assert SpeedSegmentExtractor(speed_threshold_kmh=50).extract(fixes) == []

    @pytest.mark.parametrize("n", [0, 1])
    def test_too_few_fixes(self, straight_track, n):
        """Empty and single-fix days have no runs."""
        fixes = straight_track(n, speeds=[100] * n)
        assert SpeedSegmentExtractor().extract(fixes) == []


class TestSpeedMarkers:
    """Start, end and direction markers."""

    def test_markers_disabled_by_default(self, straight_track):
        """Without markers_enabled runs carry no markers."""
        fixes = _speeds(straight_track, [100, 100, 100])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=90).extract(fixes)
        assert runs[0].markers is None

    def test_markers_enabled(self, straight_track):
        """Markers sit at the run's ends and point along the first step."""
        fixes = _speeds(straight_track, [100, 100, 100])
        runs = SpeedSegmentExtractor(speed_threshold_kmh=90, markers_enabled=True).extract(fixes)

        markers = runs[0].markers
        assert markers.start == fixes[0].coordinate
        assert markers.end == fixes[-1].coordinate
        assert markers.heading_degrees == pytest.approx(0.0, abs=1e-6)  # due north

    def test_short_run_has_no_markers(self, straight_track):
        """Runs shorter than 10 m get no markers."""
        fixes = _speeds(straight_track, [100, 100], spacing_km=0.005)
        runs = SpeedSegmentExtractor(speed_threshold_kmh=90, markers_enabled=True).extract(fixes)

        assert len(runs) == 1
        assert runs[0].markers is None
