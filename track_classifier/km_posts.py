"""
Kilometer-post generation.

Tracks the next distance boundary (k * step) along a day's movement and
reports one post for every boundary the running total reaches. The counter
is an immutable value: ``advance`` returns a new counter, so the classifier
can carry it inside its fold state.
"""

from dataclasses import dataclass
from typing import List, Tuple

from .errors import InvalidInputError
from .models import Fix, KmPost


# Totals within this distance (km) of a boundary count as reaching it.
# Summed law-of-cosines steps drift below exact multiples by ~1e-8 km.
BOUNDARY_TOLERANCE_KM = 1e-6


@dataclass(frozen=True)
class KmPostCounter:
    """
    Boundary counter for kilometer posts.

    Boundaries are computed as ``(crossed + 1) * step_km`` instead of by
    repeated addition, so fractional steps such as 0.2 km do not drift.

    Attributes:
        step_km: Distance between posts in kilometres (may be < 1)
        crossed: Number of boundaries already reported
    """
    step_km: float
    crossed: int = 0

    def __post_init__(self):
        if not self.step_km > 0:
            raise InvalidInputError(f"Kilometer post step must be positive, got {self.step_km!r}")

    @property
    def next_boundary_km(self) -> float:
        return (self.crossed + 1) * self.step_km

    def advance(
        self,
        total_km: float,
        fix: Fix,
        heading: float,
    ) -> Tuple['KmPostCounter', List[KmPost]]:
        """
        Report every boundary reached by ``total_km``.

        A boundary counts once it is reached, allowing BOUNDARY_TOLERANCE_KM for
        rounding in the summed distance (``total_km >= boundary - tolerance``). A single
        long jump between fixes may cross several boundaries; each one yields a
        post at the same fix.

        Args:
            total_km: Running movement distance after the latest step
            fix: Fix at which the total was reached
            heading: Direction of travel into ``fix`` (degrees)

        Returns:
            Tuple of (advanced counter, posts emitted by this step)
        """
        posts = []
        crossed = self.crossed
        while total_km >= (crossed + 1) * self.step_km - BOUNDARY_TOLERANCE_KM:
            crossed += 1
            posts.append(KmPost(
                fix=fix,
                cumulative_distance_km=crossed * self.step_km,
                heading_degrees=heading,
                travelled_km=total_km,
            ))

        if crossed == self.crossed:
            return self, posts
        return KmPostCounter(self.step_km, crossed), posts
