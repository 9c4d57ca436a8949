"""
Whole-run processing.

Each day is classified and scanned for speed runs independently, so days
can be fanned out to a thread pool. Results are reassembled in input day
order and one ViewFrame is computed over all fixes of the run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Mapping, Optional, Sequence

from .classifier import TrajectoryClassifier
from .config import Settings
from .models import DayResult, Fix, RunResult
from .speed import SpeedSegmentExtractor
from .view import compute_view_frame

logger = logging.getLogger(__name__)


class TrackPipeline:
    """Runs the classifier and the speed extractor over every day of a run."""

    def __init__(
        self,
        classifier: Optional[TrajectoryClassifier] = None,
        speed_extractor: Optional[SpeedSegmentExtractor] = None,
        file_merge: bool = False,
    ):
        """
        Initialize the pipeline.

        Args:
            classifier: Day classifier (defaults to TrajectoryClassifier())
            speed_extractor: Speed-run extractor (defaults to SpeedSegmentExtractor())
            file_merge: Day keys are merged descriptions; use them as display names
        """
        self.classifier = classifier or TrajectoryClassifier()
        self.speed_extractor = speed_extractor or SpeedSegmentExtractor()
        self.file_merge = file_merge

    @classmethod
    def from_settings(cls, settings: Settings) -> 'TrackPipeline':
        """Build a pipeline configured from loaded settings."""
        classifier = TrajectoryClassifier(
            max_distance_km=settings.max_distance,
            stop_threshold=settings.stop_threshold,
            km_step_km=settings.km_steps,
            km_posts_enabled=settings.km_sign,
        )
        extractor = SpeedSegmentExtractor(
            speed_threshold_kmh=settings.speed_map,
            markers_enabled=settings.km_sign,
        )
        return cls(classifier, extractor, file_merge=settings.file_merge)

    def process_day(self, day_key: str, fixes: Sequence[Fix]) -> DayResult:
        """
        Classify one day and extract its speed runs.

        Args:
            day_key: Grouping key of the day
            fixes: Fixes of the day, sorted ascending by timestamp

        Returns:
            DayResult (empty lists for a day without fixes)
        """
        if not fixes:
            return DayResult(day_key=day_key, group_name=day_key)

        classification = self.classifier.classify(fixes)
        speed_runs = self.speed_extractor.extract(fixes)

        group_name = day_key if self.file_merge else (fixes[0].group_name or day_key)
        result = DayResult(
            day_key=day_key,
            group_name=group_name,
            events=classification.events,
            km_posts=classification.km_posts,
            speed_runs=speed_runs,
            first_fix=fixes[0],
            last_fix=fixes[-1],
        )
        logger.debug(
            "Day %s: %d fixes, %d segments, %d disruptions, %d stops, %d km posts, %d speed runs",
            day_key, len(fixes), classification.num_segments, classification.num_disruptions,
            classification.num_stops, len(result.km_posts), len(speed_runs),
        )
        return result

    def process(
        self,
        fixes_by_day: Mapping[str, Sequence[Fix]],
        max_workers: Optional[int] = None,
    ) -> RunResult:
        """
        Process every day of a run.

        Args:
            fixes_by_day: Ordered mapping of day key -> fixes
            max_workers: Thread count; None or 1 processes days sequentially

        Returns:
            RunResult with days in the mapping's order and a view frame over
            all fixes (None when the run has no fixes)
        """
        keys = list(fixes_by_day)

        if max_workers is None or max_workers <= 1 or len(keys) <= 1:
            days = [self.process_day(key, fixes_by_day[key]) for key in keys]
        else:
            by_key: Dict[str, DayResult] = {}
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                future_map = {
                    executor.submit(self.process_day, key, fixes_by_day[key]): key for key in keys
                }
                for future in as_completed(future_map):
                    # result() re-raises a worker's exception here
                    by_key[future_map[future]] = future.result()
            days = [by_key[key] for key in keys]

        all_fixes: List[Fix] = [fix for key in keys for fix in fixes_by_day[key]]
        view_frame = compute_view_frame(all_fixes) if all_fixes else None

        logger.info(
            "Processed %d days: %d segments, %d stops, %d disruptions, %d speed runs",
            len(days),
            sum(len(d.segments) for d in days),
            sum(len(d.stops) for d in days),
            sum(len(d.disruptions) for d in days),
            sum(len(d.speed_runs) for d in days),
        )
        return RunResult(days=days, view_frame=view_frame)
