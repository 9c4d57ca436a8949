"""
Trajectory classifier.

Walks one day's fixes in time order and splits them into:
- Movement segments: consecutive fixes that are close in space and time
- Disruptions: a jump larger than the maximum distance (GPS signal lost)
- Stops: a pause at least as long as the stop threshold (parking)

Kilometer posts are emitted along the movement as the running distance
crosses each step boundary.

The walk is a fold: ``step(state, fix)`` maps an immutable ClassifierState
to the next one and reports what the step emitted, so each transition can
be exercised on its own.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple, Union

import pandas as pd

from .errors import UnorderedInputError
from .frames import fixes_from_dataframe
from .geodesy import fix_bearing, fix_distance_km
from .km_posts import KmPostCounter
from .models import (
    Coordinate,
    DisruptionEvent,
    Event,
    Fix,
    KmPost,
    MOVEMENT_LABEL,
    LINE_STYLE_ROAD,
    Segment,
    StopEvent,
)

logger = logging.getLogger(__name__)


# Buffered points are kept as a chain of (point, rest) pairs so that appending
# is O(1) while the state stays immutable. None is the empty chain.
_Chain = Optional[Tuple[Coordinate, '_Chain']]


def _push(chain: _Chain, point: Coordinate) -> _Chain:
    return (point, chain)


def _unwind(chain: _Chain) -> Tuple[Coordinate, ...]:
    """Return the chained points oldest first."""
    points = []
    while chain is not None:
        point, chain = chain
        points.append(point)
    points.reverse()
    return tuple(points)


def _as_coordinate(point) -> Coordinate:
    if isinstance(point, Coordinate):
        return point
    return Coordinate(point.longitude, point.latitude, point.timestamp)


@dataclass(frozen=True)
class ClassifierState:
    """Accumulator carried between classification steps."""
    buffer: _Chain = None
    buffer_len: int = 0
    total_km: float = 0.0  # movement distance so far
    counter: Optional[KmPostCounter] = None
    previous: Optional[Fix] = None


@dataclass
class ClassificationResult:
    """Result of classifying one day."""
    # Segments, disruptions and stops in chronological order
    events: List[Event]
    km_posts: List[KmPost]
    # Distance covered by movement (gaps excluded), km
    moving_distance_km: float
    num_segments: int = field(init=False)
    num_disruptions: int = field(init=False)
    num_stops: int = field(init=False)

    def __post_init__(self):
        self.num_segments = sum(isinstance(e, Segment) for e in self.events)
        self.num_disruptions = sum(isinstance(e, DisruptionEvent) for e in self.events)
        self.num_stops = sum(isinstance(e, StopEvent) for e in self.events)

    @property
    def segments(self) -> List[Segment]:
        return [e for e in self.events if isinstance(e, Segment)]


class TrajectoryClassifier:
    """
    Classifies a day of GPS fixes into movement, disruptions and stops.

    For each adjacent pair (previous, current):
    - distance > max_distance_km: flush the movement buffer, emit a disruption
    - elapsed >= stop_threshold: flush the movement buffer, emit a stop
    - otherwise: extend the movement buffer and the running distance

    Both gap conditions are checked independently, so one pair can emit a
    disruption followed by a stop. After a gap the buffer restarts at the
    current fix, which keeps every fix in exactly one movement segment.

    Input must be sorted by timestamp. This is not checked unless
    ``validate_order`` is set.
    """

    def __init__(
        self,
        max_distance_km: float = 2.0,
        stop_threshold: Union[timedelta, float] = timedelta(minutes=5),  # float = minutes
        km_step_km: float = 10.0,
        km_posts_enabled: bool = False,
        validate_order: bool = False,
    ):
        """
        Initialize the classifier.

        Args:
            max_distance_km: Jump between fixes (km) above which the signal counts as lost
            stop_threshold: Pause between fixes that counts as a stop
            km_step_km: Distance between kilometer posts (km, may be fractional)
            km_posts_enabled: Emit kilometer posts
            validate_order: Raise UnorderedInputError on timestamps going backwards
        """
        if not isinstance(stop_threshold, timedelta):
            stop_threshold = timedelta(minutes=stop_threshold)

        self.max_distance_km = max_distance_km
        self.stop_threshold = stop_threshold
        self.km_step_km = km_step_km
        self.km_posts_enabled = km_posts_enabled
        self.validate_order = validate_order

        if km_posts_enabled:
            # Fails fast on a non-positive step
            KmPostCounter(km_step_km)

    def initial_state(self) -> ClassifierState:
        """State before the first fix of a day."""
        counter = KmPostCounter(self.km_step_km) if self.km_posts_enabled else None
        return ClassifierState(counter=counter)

    def _flush(self, state: ClassifierState) -> List[Segment]:
        if state.buffer is None:
            return []
        return [Segment(_unwind(state.buffer), MOVEMENT_LABEL, LINE_STYLE_ROAD)]

    def step(
        self,
        state: ClassifierState,
        fix: Fix,
    ) -> Tuple[ClassifierState, List[Event], List[KmPost]]:
        """
        Advance the classification by one fix.

        Args:
            state: State after the previous fix
            fix: Next fix of the day

        Returns:
            Tuple of (new state, events emitted by this step, km posts emitted by this step)
        """
        point = _as_coordinate(fix)
        previous = state.previous

        # First fix of the day seeds the buffer
        if previous is None:
            return replace(state, buffer=_push(None, point), buffer_len=1, previous=fix), [], []

        if self.validate_order and fix.timestamp < previous.timestamp:
            raise UnorderedInputError(
                f"Fix at {fix.timestamp.isoformat()} precedes {previous.timestamp.isoformat()}"
            )

        distance = fix_distance_km(previous, fix)
        elapsed = fix.timestamp - previous.timestamp

        disrupted = distance > self.max_distance_km
        stopped = elapsed >= self.stop_threshold

        if disrupted or stopped:
            events: List[Event] = self._flush(state)
            if disrupted:
                events.append(DisruptionEvent(previous, fix))
            if stopped:
                events.append(StopEvent(previous, fix))
            new_state = replace(state, buffer=_push(None, point), buffer_len=1, previous=fix)
            return new_state, events, []

        total_km = state.total_km + distance
        counter = state.counter
        posts: List[KmPost] = []
        if counter is not None:
            counter, posts = counter.advance(total_km, fix, fix_bearing(previous, fix))

        new_state = replace(
            state,
            buffer=_push(state.buffer, point),
            buffer_len=state.buffer_len + 1,
            total_km=total_km,
            counter=counter,
            previous=fix,
        )
        return new_state, [], posts

    def finish(self, state: ClassifierState) -> List[Event]:
        """Flush whatever movement is still buffered at the end of the day."""
        return list(self._flush(state))

    def classify(self, fixes: Sequence[Fix]) -> ClassificationResult:
        """
        Classify one day of fixes.

        Args:
            fixes: Fixes of a single day, sorted ascending by timestamp

        Returns:
            ClassificationResult with events in chronological order
        """
        state = self.initial_state()
        events: List[Event] = []
        km_posts: List[KmPost] = []

        for fix in fixes:
            state, step_events, step_posts = self.step(state, fix)
            events.extend(step_events)
            km_posts.extend(step_posts)

        events.extend(self.finish(state))

        result = ClassificationResult(
            events=events,
            km_posts=km_posts,
            moving_distance_km=state.total_km,
        )
        logger.debug(
            "Classified %d fixes: %d segments, %d disruptions, %d stops, %d km posts",
            len(fixes), result.num_segments, result.num_disruptions,
            result.num_stops, len(km_posts),
        )
        return result


def classify_trajectory(
    df: pd.DataFrame,
    time_col: str = 'timestamp',
    lat_col: str = 'latitude',
    lon_col: str = 'longitude',
    speed_col: str = 'speed',
    max_distance_km: float = 2.0,
    stop_minutes: float = 5.0,
    km_step_km: float = 10.0,
    km_posts_enabled: bool = False,
) -> ClassificationResult:
    """
    Convenience function to classify a single-day trajectory DataFrame.

    Args:
        df: DataFrame with one row per fix, sorted by time
        time_col: Name of timestamp column
        lat_col: Name of latitude column
        lon_col: Name of longitude column
        speed_col: Name of speed column (km/h)
        max_distance_km: Disruption distance threshold (km)
        stop_minutes: Stop threshold (minutes)
        km_step_km: Kilometer post spacing (km)
        km_posts_enabled: Emit kilometer posts

    Returns:
        ClassificationResult with events and km posts
    """
    classifier = TrajectoryClassifier(
        max_distance_km=max_distance_km,
        stop_threshold=timedelta(minutes=stop_minutes),
        km_step_km=km_step_km,
        km_posts_enabled=km_posts_enabled,
    )
    fixes = fixes_from_dataframe(df, time_col, lat_col, lon_col, speed_col)
    return classifier.classify(fixes)
