"""
Track Classifier - Turn a day of GPS fixes into movement, stops, signal loss and speed runs.

This package provides tools for:
- Reading dashcam and GPS logger files into timestamped fixes
- Classifying each day into movement segments, disruptions and parking stops
- Placing kilometer posts and extracting sustained-speed runs
- Framing the whole run for a map viewer and exporting KML/KMZ
- Visualizing classified days

Example usage:
    from track_classifier import TrajectoryClassifier, generate_sample_fixes
    from track_classifier.visualization import plot_day

    # Generate sample data
    fixes = generate_sample_fixes(seed=42)

    # Classify one day
    result = TrajectoryClassifier(km_posts_enabled=True).classify(fixes)
"""

from .classifier import classify_trajectory, ClassificationResult, TrajectoryClassifier
from .config import Settings, load_settings
from .errors import TrackClassifierError, InvalidInputError, UnorderedInputError, ConfigError, FixParseError
from .geodesy import distance_km, bearing_degrees
from .models import Coordinate, Fix, Segment, DisruptionEvent, StopEvent, KmPost, SpeedRun, ViewFrame, DayResult, RunResult
from .pipeline import TrackPipeline
from .sample_data import generate_sample_day, generate_sample_fixes, generate_sample_run
from .speed import SpeedSegmentExtractor
from .view import compute_view_frame

__version__ = "0.1.0"
__all__ = [
    "classify_trajectory",
    "ClassificationResult",
    "TrajectoryClassifier",
    "Settings",
    "load_settings",
    "TrackClassifierError",
    "InvalidInputError",
    "UnorderedInputError",
    "ConfigError",
    "FixParseError",
    "distance_km",
    "bearing_degrees",
    "Coordinate",
    "Fix",
    "Segment",
    "DisruptionEvent",
    "StopEvent",
    "KmPost",
    "SpeedRun",
    "ViewFrame",
    "DayResult",
    "RunResult",
    "TrackPipeline",
    "generate_sample_day",
    "generate_sample_fixes",
    "generate_sample_run",
    "SpeedSegmentExtractor",
    "compute_view_frame",
]
