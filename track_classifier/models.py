"""
Data model for classified GPS tracks.

Inputs:
- Fix: one timestamped GPS reading with its file-derived tags
- Coordinate: positional identity of a fix (no tags)

Outputs of the engine:
- Segment: continuous run of coordinates (movement line or speed line)
- DisruptionEvent / StopEvent: gaps between two consecutive fixes
- KmPost: distance marker along movement
- SpeedRun: speed segment plus optional start/end/direction markers
- ViewFrame: camera centre and zoom for the whole run
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

from .errors import InvalidInputError
from .geodesy import fix_distance_km, path_length_km


# Labels and KML style ids used for rendering
MOVEMENT_LABEL = 'Normal Line'
SPEED_LABEL = 'Speed Line'
LINE_STYLE_ROAD = 'lineStyleRoad'
LINE_STYLE_SPEED = 'lineStyleSpeed'
LINE_STYLE_DISRUPTED = 'lineStyleDisrupted'


@dataclass(frozen=True)
class Coordinate:
    """A geographic position with the time it was recorded."""
    longitude: float
    latitude: float
    timestamp: datetime


@dataclass(frozen=True)
class Fix:
    """
    A single GPS reading.

    ``description_tag`` may be rewritten by the description merge step, which
    produces a new Fix via ``with_description`` rather than mutating this one.
    Classification never looks at the tags.
    """
    latitude: float
    longitude: float
    timestamp: datetime
    speed: float  # km/h
    day_key: str = ''  # YYYY-MM-DD, from the file name
    explanation_tag: str = ''
    description_tag: str = ''
    group_name: str = ''

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.longitude, self.latitude, self.timestamp)

    def with_description(self, description: str) -> 'Fix':
        """Return a copy of this fix carrying a new description tag."""
        return replace(self, description_tag=description)


@dataclass(frozen=True)
class Segment:
    """An ordered, non-empty run of coordinates sharing one rendering style."""
    points: Tuple[Coordinate, ...]
    label: str = MOVEMENT_LABEL
    style_id: str = LINE_STYLE_ROAD

    def __post_init__(self):
        # Accept any iterable but store an immutable tuple
        object.__setattr__(self, 'points', tuple(self.points))
        if not self.points:
            raise InvalidInputError("A segment needs at least one point")

    @property
    def start(self) -> Coordinate:
        return self.points[0]

    @property
    def end(self) -> Coordinate:
        return self.points[-1]

    @property
    def duration(self) -> timedelta:
        return self.end.timestamp - self.start.timestamp

    @property
    def length_km(self) -> float:
        return path_length_km([p.latitude for p in self.points],
                              [p.longitude for p in self.points])

    @property
    def is_degenerate(self) -> bool:
        """True for single-point segments, which render without a line."""
        return len(self.points) == 1


@dataclass(frozen=True)
class _GapEvent:
    from_fix: Fix
    to_fix: Fix

    @property
    def duration(self) -> timedelta:
        return self.to_fix.timestamp - self.from_fix.timestamp

    @property
    def distance_km(self) -> float:
        return fix_distance_km(self.from_fix, self.to_fix)


@dataclass(frozen=True)
class DisruptionEvent(_GapEvent):
    """Consecutive fixes further apart than the maximum distance (signal loss)."""


@dataclass(frozen=True)
class StopEvent(_GapEvent):
    """Consecutive fixes further apart in time than the stop threshold (parking)."""


Event = Union[Segment, DisruptionEvent, StopEvent]


@dataclass(frozen=True)
class KmPost:
    """
    Distance marker placed where cumulative movement crosses a step boundary.

    ``cumulative_distance_km`` is the boundary the post marks (k * step);
    ``travelled_km`` is the running total actually reached at ``fix``.
    """
    fix: Fix
    cumulative_distance_km: float
    heading_degrees: float
    travelled_km: float = 0.0


@dataclass(frozen=True)
class SpeedMarkers:
    """Start, end and direction markers for one speed run."""
    start: Coordinate
    end: Coordinate
    heading_degrees: float


@dataclass(frozen=True)
class SpeedRun:
    """A contiguous stretch where speed stayed at or above the threshold."""
    segment: Segment
    length_km: float
    markers: Optional[SpeedMarkers] = None


@dataclass(frozen=True)
class ViewFrame:
    """Camera placement that frames every point of a run."""
    center_latitude: float
    center_longitude: float
    altitude_meters: float
    range_meters: float


@dataclass
class DayResult:
    """Everything the engine derives from one day's fixes."""
    day_key: str
    group_name: str
    events: List[Event] = field(default_factory=list)
    km_posts: List[KmPost] = field(default_factory=list)
    speed_runs: List[SpeedRun] = field(default_factory=list)
    first_fix: Optional[Fix] = None
    last_fix: Optional[Fix] = None

    @property
    def segments(self) -> List[Segment]:
        return [e for e in self.events if isinstance(e, Segment)]

    @property
    def disruptions(self) -> List[DisruptionEvent]:
        return [e for e in self.events if isinstance(e, DisruptionEvent)]

    @property
    def stops(self) -> List[StopEvent]:
        return [e for e in self.events if isinstance(e, StopEvent)]

    @property
    def month(self) -> str:
        """YYYY-MM used for folder grouping."""
        return self.day_key[:7]


@dataclass
class RunResult:
    """Per-day results in input order plus a single view frame."""
    days: List[DayResult]
    view_frame: Optional[ViewFrame] = None

    @property
    def num_days(self) -> int:
        return len(self.days)
