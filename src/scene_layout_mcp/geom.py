"""
Geometry kernel: rectangle/point primitives and intersection tests.

Pure functions, no shared state.  Rectangles are axis-aligned with a
top-left origin; overlap tests are half-open (touching edges do not count)
while point containment is inclusive.
"""

from __future__ import annotations

import math
from typing import Sequence

from scene_layout_mcp.models import Point, Rect, Stage


def snap_to_grid(value: float, grid_size: float = 32) -> float:
    """Snap a coordinate to the nearest grid point (halves round up)."""
    return math.floor(value / grid_size + 0.5) * grid_size


def inflate(rect: Rect, pad: float) -> Rect:
    """Expand *rect* by *pad* on every side."""
    return Rect(rect.x - pad, rect.y - pad, rect.w + pad * 2, rect.h + pad * 2)


def union(a: Rect, b: Rect) -> Rect:
    """Smallest rect covering both *a* and *b*."""
    x1 = min(a.x, b.x)
    y1 = min(a.y, b.y)
    x2 = max(a.right, b.right)
    y2 = max(a.bottom, b.bottom)
    return Rect(x1, y1, x2 - x1, y2 - y1)


def overlaps(a: Rect, b: Rect) -> bool:
    return a.intersects(b)


def contains_point(rect: Rect, point: Point) -> bool:
    return rect.contains_point(point.x, point.y)


def clamp_rect_to_stage(rect: Rect, stage: Stage) -> Rect:
    """Translate (never resize) *rect* so it fits on the stage.

    An axis on which the rect is larger than the stage clamps to 0.
    """
    x = max(0, min(stage.w - rect.w, rect.x))
    y = max(0, min(stage.h - rect.h, rect.y))
    return Rect(x, y, rect.w, rect.h)


def center_of(rect: Rect) -> Point:
    return Point(rect.cx, rect.cy)


def anchors(rect: Rect) -> list[Point]:
    """Connector anchor points: N, E, S, W midpoints then NE, SE, SW, NW corners."""
    return [
        Point(rect.cx, rect.y),
        Point(rect.right, rect.cy),
        Point(rect.cx, rect.bottom),
        Point(rect.x, rect.cy),
        Point(rect.right, rect.y),
        Point(rect.right, rect.bottom),
        Point(rect.x, rect.bottom),
        Point(rect.x, rect.y),
    ]


# ---------------------------------------------------------------------------
# Segment tests
# ---------------------------------------------------------------------------

def _orientation(a: Point, b: Point, c: Point) -> int:
    """0 = collinear, 1 = clockwise, 2 = counter-clockwise."""
    val = (b.y - a.y) * (c.x - b.x) - (b.x - a.x) * (c.y - b.y)
    if val == 0:
        return 0
    return 1 if val > 0 else 2


def _on_segment(a: Point, b: Point, c: Point) -> bool:
    """Whether collinear point *b* lies within the bounding box of a-c."""
    return (
        min(a.x, c.x) <= b.x <= max(a.x, c.x)
        and min(a.y, c.y) <= b.y <= max(a.y, c.y)
    )


def segments_intersect(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    """Orientation test for segments p1-p2 and q1-q2, collinear overlap included."""
    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)

    if o1 != o2 and o3 != o4:
        return True

    if o1 == 0 and _on_segment(p1, q1, p2):
        return True
    if o2 == 0 and _on_segment(p1, q2, p2):
        return True
    if o3 == 0 and _on_segment(q1, p1, q2):
        return True
    if o4 == 0 and _on_segment(q1, p2, q2):
        return True
    return False


def segment_intersects_rect(p1: Point, p2: Point, rect: Rect) -> bool:
    """True if either endpoint is inside *rect* or the segment crosses an edge."""
    if rect.contains_point(p1.x, p1.y) or rect.contains_point(p2.x, p2.y):
        return True
    corners = [
        Point(rect.x, rect.y),
        Point(rect.right, rect.y),
        Point(rect.right, rect.bottom),
        Point(rect.x, rect.bottom),
    ]
    for i in range(4):
        if segments_intersect(p1, p2, corners[i], corners[(i + 1) % 4]):
            return True
    return False


def polyline_intersects_rect(poly: Sequence[Point], rect: Rect) -> bool:
    for i in range(len(poly) - 1):
        if segment_intersects_rect(poly[i], poly[i + 1], rect):
            return True
    return False


def _sign(v: float) -> int:
    return (v > 0) - (v < 0)


def simplify_collinear(poly: Sequence[Point]) -> list[Point]:
    """Remove interior points where the path runs straight through.

    A point is dropped only when the incoming and outgoing vectors are
    parallel and point the same way; reversals are kept.  The first and
    last points are always kept.
    """
    if len(poly) <= 2:
        return list(poly)

    result: list[Point] = [poly[0]]
    for i in range(1, len(poly) - 1):
        a = result[-1]
        b = poly[i]
        c = poly[i + 1]
        abx, aby = b.x - a.x, b.y - a.y
        bcx, bcy = c.x - b.x, c.y - b.y
        if abx * bcy - aby * bcx == 0:
            if _sign(abx) == _sign(bcx) and _sign(aby) == _sign(bcy):
                continue
        result.append(b)
    result.append(poly[-1])
    return result
