"""Tests for the geometry kernel."""

from scene_layout_mcp.geom import (
    anchors,
    center_of,
    clamp_rect_to_stage,
    contains_point,
    inflate,
    overlaps,
    polyline_intersects_rect,
    segment_intersects_rect,
    segments_intersect,
    simplify_collinear,
    snap_to_grid,
    union,
)
from scene_layout_mcp.models import Point, Rect, Stage


def _pts(*coords: tuple[float, float]) -> list[Point]:
    return [Point(x, y) for x, y in coords]


# ===================================================================
# Rect primitives
# ===================================================================

class TestRectPrimitives:
    """Tests for inflate / union / overlap / containment / clamping."""

    def test_inflate(self) -> None:
        assert inflate(Rect(10, 10, 100, 50), 10) == Rect(0, 0, 120, 70)

    def test_union(self) -> None:
        assert union(Rect(0, 0, 10, 10), Rect(20, 5, 10, 20)) == Rect(0, 0, 30, 25)

    def test_overlap_detected(self) -> None:
        a = Rect(0, 0, 50, 50)
        assert overlaps(a, Rect(25, 25, 50, 50))
        assert not overlaps(a, Rect(60, 60, 10, 10))

    def test_touching_edges_do_not_overlap(self) -> None:
        a = Rect(0, 0, 50, 50)
        assert not overlaps(a, Rect(50, 0, 10, 10))
        assert not overlaps(a, Rect(0, 50, 10, 10))

    def test_contains_point_is_inclusive(self) -> None:
        r = Rect(0, 0, 50, 50)
        assert contains_point(r, Point(50, 50))
        assert contains_point(r, Point(0, 25))
        assert not contains_point(r, Point(51, 25))

    def test_clamp_translates_without_resizing(self) -> None:
        clamped = clamp_rect_to_stage(Rect(-10, 290, 50, 20), Stage(400, 300))
        assert clamped == Rect(0, 280, 50, 20)

    def test_clamp_oversized_axis_goes_to_zero(self) -> None:
        clamped = clamp_rect_to_stage(Rect(100, 100, 500, 20), Stage(400, 300))
        assert clamped == Rect(0, 100, 500, 20)

    def test_center_of(self) -> None:
        assert center_of(Rect(10, 20, 100, 40)) == Point(60, 40)

    def test_snap_to_grid_rounds_halves_up(self) -> None:
        assert snap_to_grid(50, 20) == 60
        assert snap_to_grid(49, 20) == 40
        assert snap_to_grid(70, 20) == 80
        assert snap_to_grid(-10, 20) == 0

    def test_anchor_order(self) -> None:
        pts = anchors(Rect(0, 0, 100, 50))
        assert pts == _pts(
            (50, 0), (100, 25), (50, 50), (0, 25),
            (100, 0), (100, 50), (0, 50), (0, 0),
        )


# ===================================================================
# Segment tests
# ===================================================================

class TestSegments:
    """Tests for segment / polyline intersection."""

    def test_crossing_segments(self) -> None:
        assert segments_intersect(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))

    def test_parallel_segments(self) -> None:
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(0, 5), Point(10, 5))

    def test_collinear_overlap(self) -> None:
        assert segments_intersect(Point(0, 0), Point(10, 0), Point(5, 0), Point(15, 0))

    def test_collinear_disjoint(self) -> None:
        assert not segments_intersect(Point(0, 0), Point(4, 0), Point(5, 0), Point(9, 0))

    def test_segment_rect_intersection(self) -> None:
        r = Rect(50, 50, 100, 100)
        assert segment_intersects_rect(Point(0, 0), Point(200, 200), r)
        assert not segment_intersects_rect(Point(0, 0), Point(40, 40), r)
        # Fully inside counts
        assert segment_intersects_rect(Point(60, 60), Point(80, 80), r)

    def test_segment_passing_beside_rect(self) -> None:
        r = Rect(50, 50, 100, 100)
        assert not segment_intersects_rect(Point(0, 40), Point(300, 40), r)

    def test_polyline_intersects_rect(self) -> None:
        r = Rect(50, 50, 100, 100)
        around = _pts((0, 0), (200, 0), (200, 200))
        through = _pts((0, 0), (0, 100), (200, 100))
        assert not polyline_intersects_rect(around, r)
        assert polyline_intersects_rect(through, r)

    def test_single_point_polyline_never_intersects(self) -> None:
        assert not polyline_intersects_rect(_pts((60, 60)), Rect(50, 50, 100, 100))


# ===================================================================
# Simplification
# ===================================================================

class TestSimplifyCollinear:
    """Tests for collinear point removal."""

    def test_drops_straight_through_points(self) -> None:
        poly = _pts((0, 0), (10, 0), (20, 0), (20, 10), (20, 20))
        assert simplify_collinear(poly) == _pts((0, 0), (20, 0), (20, 20))

    def test_keeps_reversals(self) -> None:
        poly = _pts((0, 0), (10, 0), (5, 0))
        assert simplify_collinear(poly) == poly

    def test_short_polylines_unchanged(self) -> None:
        assert simplify_collinear([]) == []
        assert simplify_collinear(_pts((1, 1), (2, 2))) == _pts((1, 1), (2, 2))

    def test_idempotent(self) -> None:
        poly = _pts(
            (0, 0), (10, 0), (20, 0), (20, 10), (20, 20),
            (30, 20), (25, 20), (25, 40), (25, 60),
        )
        once = simplify_collinear(poly)
        assert simplify_collinear(once) == once

    def test_diagonal_runs_collapse(self) -> None:
        poly = _pts((0, 0), (5, 5), (10, 10), (10, 20))
        assert simplify_collinear(poly) == _pts((0, 0), (10, 10), (10, 20))
