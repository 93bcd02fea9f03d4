"""
Tests for grouping raw detections.
"""

import pytest

from detection.base import Rectangle
from detection.merge import merge_rectangles, rects_equivalent


class TestRectsEquivalent:
    """Tests for the near-duplicate test."""

    def test_identical(self):
        r = Rectangle(10, 10, 50, 50)
        assert rects_equivalent(r, r)

    def test_within_tolerance(self):
        # 20% of 50 is 10
        assert rects_equivalent(Rectangle(10, 10, 50, 50), Rectangle(20, 0, 50, 50))
        assert not rects_equivalent(Rectangle(10, 10, 50, 50), Rectangle(21, 10, 50, 50))

    def test_size_ratio(self):
        assert rects_equivalent(Rectangle(10, 10, 50, 50), Rectangle(10, 10, 60, 60))
        assert not rects_equivalent(Rectangle(10, 10, 50, 50), Rectangle(12, 12, 61, 61))
        assert not rects_equivalent(Rectangle(10, 10, 50, 50), Rectangle(10, 10, 41, 41))

    def test_containment_is_one_way(self):
        """A rectangle inside another is a duplicate, not the other way round."""
        inner = Rectangle(100, 100, 20, 20)
        outer = Rectangle(50, 50, 200, 200)

        assert rects_equivalent(inner, outer)
        assert not rects_equivalent(outer, inner)


class TestMergeRectangles:
    """Tests for merge_rectangles."""

    def test_empty(self):
        assert merge_rectangles([], 2) == []

    def test_pair_is_averaged(self):
        merged = merge_rectangles([Rectangle(8, 4, 48, 48), Rectangle(12, 4, 48, 48)], 2)

        assert merged == [Rectangle(10.5, 4.5, 48.5, 48.5)]
        assert merged[0].truncated() == Rectangle(10, 4, 48, 48)

    def test_lone_rectangles_are_dropped(self):
        rects = [
            Rectangle(0, 0, 48, 48),
            Rectangle(4, 0, 48, 48),
            Rectangle(300, 300, 48, 48),
        ]

        merged = merge_rectangles(rects, 2)

        assert len(merged) == 1
        assert merged[0].x == pytest.approx(2.5)

    def test_min_neighbours(self):
        rects = [Rectangle(0, 0, 48, 48)] * 3

        assert len(merge_rectangles(rects, 3)) == 1
        assert merge_rectangles(rects, 4) == []

    def test_clusters_in_order_of_first_appearance(self):
        rects = [
            Rectangle(200, 200, 40, 40),
            Rectangle(0, 0, 40, 40),
            Rectangle(202, 200, 40, 40),
            Rectangle(2, 0, 40, 40),
        ]

        merged = merge_rectangles(rects, 2)

        assert [int(r.x) for r in merged] == [201, 1]

    def test_chained_windows_form_one_cluster(self):
        """Each window only needs to match one earlier member of the cluster."""
        rects = [Rectangle(x, 0, 48, 48) for x in range(0, 120, 4)]

        merged = merge_rectangles(rects, 2)

        assert len(merged) == 1
        assert merged[0].width == pytest.approx(48.5)

    def test_last_matching_rectangle_wins(self):
        """When a window matches several clusters it joins the latest one."""
        rects = [
            Rectangle(0, 0, 50, 50),
            Rectangle(20, 0, 50, 50),
            # Within 10 pixels (20% of 50) of both
            Rectangle(10, 0, 50, 50),
        ]

        merged = merge_rectangles(rects, 1)

        assert len(merged) == 2
        assert merged[0] == Rectangle(0.5, 0.5, 50.5, 50.5)
        assert merged[1].x == pytest.approx((30 * 2 + 2) / 4)

    def test_separated_rectangles_are_kept(self):
        """With a threshold of one, well separated rectangles survive merging."""
        rects = [Rectangle(0, 0, 24, 24), Rectangle(100, 100, 24, 24)]

        merged = merge_rectangles(rects, 1)

        assert [r.truncated() for r in merged] == rects
        assert [r.truncated() for r in merge_rectangles([r.truncated() for r in merged], 1)] == rects
