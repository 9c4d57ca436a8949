"""
Tests for the trajectory classifier.
"""

import pandas as pd
import pytest
from datetime import timedelta

from track_classifier import (
    classify_trajectory,
    generate_sample_fixes,
    TrajectoryClassifier,
)
from track_classifier.classifier import ClassifierState
from track_classifier.errors import UnorderedInputError
from track_classifier.geodesy import fix_distance_km
from track_classifier.km_posts import BOUNDARY_TOLERANCE_KM
from track_classifier.models import (
    Coordinate,
    DisruptionEvent,
    Fix,
    LINE_STYLE_ROAD,
    MOVEMENT_LABEL,
    Segment,
    StopEvent,
)


def _coords(*fixes):
    return tuple(f.coordinate for f in fixes)


def _kinds(events):
    return [type(e).__name__ for e in events]


class TestClassifierExamples:
    """Worked examples of splitting a day."""

    def test_stop_splits_segments(self, make_fix):
        """Ten minute pause after p2 gives Segment[p1,p2], Stop(p2,p3), Segment[p3]."""
        p1 = make_fix(km_north=0.0, minutes=0)
        p2 = make_fix(km_north=0.5, minutes=1)
        p3 = make_fix(km_north=0.8, minutes=10)

        result = TrajectoryClassifier(stop_threshold=timedelta(minutes=5)).classify([p1, p2, p3])

        assert _kinds(result.events) == ['Segment', 'StopEvent', 'Segment']
        assert result.events[0].points == _coords(p1, p2)
        assert result.events[1] == StopEvent(p2, p3)
        assert result.events[2].points == _coords(p3)
        assert result.num_segments == 2
        assert result.num_stops == 1

    def test_jump_is_disruption(self, make_fix):
        """A 5 km jump with max distance 2 km flushes the segment and emits a disruption."""
        p1 = make_fix(km_north=0.0, minutes=0)
        p2 = make_fix(km_north=0.3, minutes=1)
        p3 = make_fix(km_north=5.3, minutes=2)
        p4 = make_fix(km_north=5.6, minutes=3)

        result = TrajectoryClassifier(max_distance_km=2.0).classify([p1, p2, p3, p4])

        assert _kinds(result.events) == ['Segment', 'DisruptionEvent', 'Segment']
        assert result.events[0].points == _coords(p1, p2)
        assert result.events[1] == DisruptionEvent(p2, p3)
        assert result.events[1].distance_km == pytest.approx(5.0, rel=1e-6)
        assert result.events[2].points == _coords(p3, p4)
        assert result.num_disruptions == 1

    def test_jump_and_pause_emit_both_in_order(self, make_fix):
        """One pair that is both far and late emits segment, disruption, then stop."""
        p1 = make_fix(km_north=0.0, minutes=0)
        p2 = make_fix(km_north=5.0, minutes=10)

        result = TrajectoryClassifier().classify([p1, p2])

        assert _kinds(result.events) == ['Segment', 'DisruptionEvent', 'StopEvent', 'Segment']
        assert result.events[0].points == _coords(p1)
        assert result.events[3].points == _coords(p2)

    def test_gaps_excluded_from_moving_distance(self, make_fix):
        """Only movement steps add to the running distance."""
        fixes = [
            make_fix(km_north=0.0, minutes=0),
            make_fix(km_north=0.5, minutes=1),
            make_fix(km_north=10.5, minutes=2),   # disruption
            make_fix(km_north=11.0, minutes=3),
            make_fix(km_north=11.0, minutes=20),  # stop
            make_fix(km_north=11.5, minutes=21),
        ]
        result = TrajectoryClassifier().classify(fixes)
        assert result.moving_distance_km == pytest.approx(1.5, rel=1e-6)


class TestThresholdTies:
    """Boundary behaviour of the two gap conditions."""

    def test_exact_stop_threshold_is_a_stop(self, make_fix):
        """Elapsed time equal to the threshold counts as a stop."""
        fixes = [make_fix(0.0, minutes=0), make_fix(0.1, minutes=5)]
        result = TrajectoryClassifier(stop_threshold=5).classify(fixes)
        assert result.num_stops == 1

    def test_just_below_stop_threshold_is_movement(self, make_fix):
        """Elapsed time just under the threshold keeps moving."""
        fixes = [make_fix(0.0, minutes=0), make_fix(0.1, minutes=4.99)]
        result = TrajectoryClassifier(stop_threshold=5).classify(fixes)
        assert result.num_stops == 0
        assert result.num_segments == 1

    def test_exact_max_distance_is_movement(self, make_fix):
        """Distance equal to the maximum is not a disruption."""
        a, b = make_fix(0.0, minutes=0), make_fix(2.0, minutes=1)
        classifier = TrajectoryClassifier(max_distance_km=fix_distance_km(a, b))
        result = classifier.classify([a, b])
        assert result.num_disruptions == 0
        assert result.events[0].points == _coords(a, b)

    def test_float_minutes_threshold(self):
        """A float stop threshold is interpreted as minutes."""
        classifier = TrajectoryClassifier(stop_threshold=2.5)
        assert classifier.stop_threshold == timedelta(minutes=2.5)


class TestClassifierEdgeCases:
    """Empty, single and unordered input."""

    def test_empty_day(self):
        """No fixes, no events."""
        result = TrajectoryClassifier().classify([])
        assert result.events == []
        assert result.km_posts == []
        assert result.moving_distance_km == 0.0

    def test_single_fix(self, make_fix):
        """One fix gives one degenerate segment."""
        p = make_fix()
        result = TrajectoryClassifier().classify([p])
        assert len(result.events) == 1
        segment = result.events[0]
        assert segment.points == _coords(p)
        assert segment.is_degenerate
        assert segment.duration == timedelta(0)

    def test_unordered_input_rejected_when_validating(self, make_fix):
        """validate_order raises on a fix that goes back in time."""
        fixes = [make_fix(0.0, minutes=2), make_fix(0.1, minutes=1)]
        with pytest.raises(UnorderedInputError):
            TrajectoryClassifier(validate_order=True).classify(fixes)

    def test_unordered_input_not_checked_by_default(self, make_fix):
        """Without validation, negative elapsed time is simply not a stop."""
        fixes = [make_fix(0.0, minutes=2), make_fix(0.1, minutes=1)]
        result = TrajectoryClassifier().classify(fixes)
        assert result.num_segments == 1

    def test_segment_rejects_empty_points(self):
        """Segments are never empty."""
        with pytest.raises(ValueError):
            Segment(())


class TestClassifierProperties:
    """Properties that hold for any day."""

    def test_coverage(self):
        """Every fix lands in exactly one movement segment, in order."""
        fixes = generate_sample_fixes(seed=42)
        result = TrajectoryClassifier().classify(fixes)

        covered = [p for seg in result.segments for p in seg.points]
        assert covered == [f.coordinate for f in fixes]

    def test_sample_day_layout(self):
        """The synthetic day has one parking stop and one signal loss."""
        fixes = generate_sample_fixes(seed=42)
        result = TrajectoryClassifier().classify(fixes)

        assert result.num_stops == 1
        assert result.num_disruptions == 1
        assert result.num_segments == 3
        assert result.moving_distance_km > 30

    def test_idempotence(self):
        """Reclassifying a segment with non-triggering thresholds returns it unchanged."""
        fixes = generate_sample_fixes(seed=3)
        first = TrajectoryClassifier().classify(fixes).segments[0]

        replay = [Fix(p.latitude, p.longitude, p.timestamp, 0.0) for p in first.points]
        lenient = TrajectoryClassifier(max_distance_km=1e6, stop_threshold=timedelta(days=365))
        result = lenient.classify(replay)

        assert result.events == [first]

    def test_deterministic(self):
        """Same input, same output."""
        fixes = generate_sample_fixes(seed=5)
        classifier = TrajectoryClassifier(km_posts_enabled=True, km_step_km=1.0)
        assert classifier.classify(fixes) == classifier.classify(fixes)


class TestClassifierSteps:
    """The fold can be driven one fix at a time."""

    def test_first_step_seeds_buffer(self, make_fix):
        """The first fix only fills the buffer."""
        classifier = TrajectoryClassifier()
        p = make_fix()
        state, events, posts = classifier.step(classifier.initial_state(), p)

        assert events == [] and posts == []
        assert state.buffer_len == 1
        assert state.previous == p

    def test_state_is_not_mutated(self, make_fix):
        """Stepping returns a new state and leaves the old one intact."""
        classifier = TrajectoryClassifier()
        s0 = classifier.initial_state()
        s1, _, _ = classifier.step(s0, make_fix(0.0, minutes=0))
        s2, _, _ = classifier.step(s1, make_fix(0.4, minutes=1))

        assert s0 == ClassifierState()
        assert s1.buffer_len == 1
        assert s2.buffer_len == 2
        assert s2.total_km == pytest.approx(0.4, rel=1e-6)

    def test_finish_flushes_buffer(self, make_fix):
        """finish() emits the buffered movement as a segment."""
        classifier = TrajectoryClassifier()
        state = classifier.initial_state()
        a, b = make_fix(0.0, minutes=0), make_fix(0.2, minutes=1)
        for fix in (a, b):
            state, _, _ = classifier.step(state, fix)

        assert classifier.finish(state) == [Segment(_coords(a, b), MOVEMENT_LABEL, LINE_STYLE_ROAD)]
        assert classifier.finish(classifier.initial_state()) == []


class TestKmPostsFromClassifier:
    """Kilometer posts emitted along movement."""

    def test_posts_on_straight_run(self, straight_track):
        """A 2.7 km run with 1 km step gives floor(2.7 / 1) = 2 posts."""
        fixes = straight_track(10, spacing_km=0.3)
        result = TrajectoryClassifier(km_posts_enabled=True, km_step_km=1.0).classify(fixes)

        assert [p.cumulative_distance_km for p in result.km_posts] == pytest.approx([1.0, 2.0])
        # 0.3 * 4 = 1.2 km at index 4, 0.3 * 7 = 2.1 km at index 7
        assert result.km_posts[0].fix == fixes[4]
        assert result.km_posts[1].fix == fixes[7]
        assert result.km_posts[0].heading_degrees == pytest.approx(0.0, abs=1e-6)

    def test_posts_strictly_increasing(self):
        """Post distances increase strictly along the day."""
        fixes = generate_sample_fixes(seed=9)
        result = TrajectoryClassifier(km_posts_enabled=True, km_step_km=0.2).classify(fixes)

        distances = [p.cumulative_distance_km for p in result.km_posts]
        assert len(distances) > 10
        assert all(b > a for a, b in zip(distances, distances[1:]))
        assert all(p.travelled_km >= p.cumulative_distance_km - BOUNDARY_TOLERANCE_KM for p in result.km_posts)

    def test_total_carries_across_gaps(self, make_fix):
        """The running total continues after a disruption."""
        fixes = [
            make_fix(0.0, minutes=0),
            make_fix(0.6, minutes=1),
            make_fix(1.2, minutes=2),    # 1.2 km -> post 1
            make_fix(10.0, minutes=3),   # disruption, not counted
            make_fix(10.6, minutes=4),   # 1.8 km
            make_fix(11.2, minutes=5),   # 2.4 km -> post 2
        ]
        result = TrajectoryClassifier(km_posts_enabled=True, km_step_km=1.0).classify(fixes)

        assert [p.fix for p in result.km_posts] == [fixes[2], fixes[5]]

    def test_posts_disabled_by_default(self, straight_track):
        """No posts unless enabled."""
        result = TrajectoryClassifier().classify(straight_track(10, spacing_km=0.5))
        assert result.km_posts == []

    def test_non_positive_step_rejected(self):
        """Enabling posts with a zero step fails fast."""
        with pytest.raises(ValueError):
            TrajectoryClassifier(km_posts_enabled=True, km_step_km=0.0)


class TestClassifyTrajectory:
    """DataFrame convenience wrapper."""

    def test_dataframe_input(self, t0):
        """Naive timestamps are treated as UTC and classified like fixes."""
        df = pd.DataFrame({
            'timestamp': [t0.replace(tzinfo=None) + timedelta(minutes=m) for m in (0, 1, 10)],
            'latitude': [58.0, 58.004, 58.007],
            'longitude': [25.0, 25.0, 25.0],
            'speed': [40.0, 45.0, 0.0],
        })
        result = classify_trajectory(df, stop_minutes=5)

        assert _kinds(result.events) == ['Segment', 'StopEvent', 'Segment']
        first = result.events[0].points[0]
        assert isinstance(first, Coordinate)
        assert first.timestamp == t0
