"""
Tests for the kilometer-post counter.
"""

import pytest

from track_classifier.classifier import TrajectoryClassifier
from track_classifier.errors import InvalidInputError
from track_classifier.km_posts import KmPostCounter


class TestKmPostCounter:
    """Boundary crossing rules."""

    @pytest.mark.parametrize("step", [0.0, -1.0])
    def test_step_must_be_positive(self, step):
        """Zero or negative steps are rejected."""
        with pytest.raises(InvalidInputError):
            KmPostCounter(step)

    def test_below_boundary_emits_nothing(self, make_fix):
        """Below the first boundary the counter is returned unchanged."""
        counter = KmPostCounter(1.0)
        new_counter, posts = counter.advance(0.99, make_fix(), 0.0)
        assert posts == []
        assert new_counter is counter

    def test_exact_boundary_counts(self, make_fix):
        """Reaching a boundary exactly counts as crossing it."""
        counter, posts = KmPostCounter(1.0).advance(1.0, make_fix(), 45.0)
        assert len(posts) == 1
        assert posts[0].cumulative_distance_km == 1.0
        assert posts[0].heading_degrees == 45.0
        assert counter.crossed == 1
        assert counter.next_boundary_km == 2.0

    def test_boundary_counts_once(self, make_fix):
        """A boundary already reported is not reported again."""
        counter, _ = KmPostCounter(1.0).advance(1.2, make_fix(), 0.0)
        counter, posts = counter.advance(1.5, make_fix(), 0.0)
        assert posts == []
        assert counter.crossed == 1

    def test_multiple_boundaries_in_one_step(self, make_fix):
        """A long step crossing several boundaries yields one post per boundary."""
        fix = make_fix(km_north=0.5)
        counter, posts = KmPostCounter(0.2).advance(1.0, fix, 10.0)

        assert [p.cumulative_distance_km for p in posts] == pytest.approx([0.2, 0.4, 0.6, 0.8, 1.0])
        assert all(p.fix == fix for p in posts)
        assert all(p.travelled_km == 1.0 for p in posts)
        assert counter.crossed == 5

    def test_count_matches_floor(self, make_fix):
        """Advancing in small increments to L gives floor(L / step) posts."""
        counter = KmPostCounter(0.25)
        total = 0.0
        posts = []
        for _ in range(37):
            total += 0.07
            counter, new_posts = counter.advance(total, make_fix(), 0.0)
            posts.extend(new_posts)

        # 37 * 0.07 = 2.59 km -> 10 boundaries of 0.25 km
        assert len(posts) == 10
        distances = [p.cumulative_distance_km for p in posts]
        assert all(b > a for a, b in zip(distances, distances[1:]))

    def test_counter_is_immutable(self, make_fix):
        """advance() returns a new counter and leaves the original alone."""
        counter = KmPostCounter(1.0)
        counter.advance(3.5, make_fix(), 0.0)
        assert counter.crossed == 0

    def test_rounding_just_below_boundary_counts(self, make_fix):
        """A total a hair below a multiple of the step still reaches it."""
        counter, posts = KmPostCounter(0.1).advance(0.99999997, make_fix(), 0.0)
        assert len(posts) == 10
        assert posts[-1].cumulative_distance_km == pytest.approx(1.0)
        assert counter.crossed == 10

    def test_clearly_below_boundary_does_not_count(self, make_fix):
        """Only rounding noise is forgiven, not a real shortfall."""
        _, posts = KmPostCounter(0.1).advance(0.0999, make_fix(), 0.0)
        assert posts == []


class TestKmPostsAlongTrack:
    """Posts placed by the classifier on evenly spaced fixes."""

    def test_one_post_per_fix_at_step_spacing(self, straight_track):
        """Fixes exactly one step apart each carry the post for their distance."""
        fixes = straight_track(11, spacing_km=0.1)
        result = TrajectoryClassifier(km_posts_enabled=True, km_step_km=0.1).classify(fixes)

        assert len(result.km_posts) == 10
        for k, post in enumerate(result.km_posts, start=1):
            assert post.fix == fixes[k]
            assert post.cumulative_distance_km == pytest.approx(0.1 * k)
            assert post.travelled_km == pytest.approx(0.1 * k)
