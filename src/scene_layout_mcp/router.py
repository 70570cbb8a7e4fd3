"""
Connector routing between placed boxes.

Each connector is routed with three escalating strategies:

1. **Elbow**: every (source anchor, target anchor) pair with a
   horizontal-first and a vertical-first single-bend path, first clear
   candidate wins.
2. **Dogleg**: a four-point path whose middle run is offset one grid unit
   away from the nearest obstacle.
3. **Grid A***: shortest 4-connected path over ``cfg.grid``-sized cells,
   with cells touching any padded obstacle blocked.

Obstacles are every box except the connector's own endpoints, inflated by
``min_pad + stroke / 2``.  Every returned polyline is collinear-simplified.
"""

from __future__ import annotations

import heapq
import logging
import math
from typing import Optional, Sequence

from scene_layout_mcp.geom import (
    anchors,
    inflate,
    overlaps,
    polyline_intersects_rect,
    simplify_collinear,
)
from scene_layout_mcp.models import (
    BoxPlacement,
    LayerInput,
    LayoutConfig,
    Point,
    Rect,
    RoutedConnector,
    Stage,
)

logger = logging.getLogger(__name__)

Cell = tuple[int, int]

# A* expansion order; also the tie-break order for equal f-scores
_NEIGHBOURS = [(1, 0), (-1, 0), (0, 1), (0, -1)]


def route_connectors(
    boxes: Sequence[BoxPlacement],
    connectors: Sequence[LayerInput],
    stage: Stage,
    cfg: LayoutConfig,
) -> list[RoutedConnector]:
    """Route every connector over the final *boxes*.

    Connectors whose ``from_id`` or ``to_id`` does not name a box get an
    empty polyline.
    """
    rects = {b.id: b.rect for b in boxes}
    pad = cfg.base_pad
    inflated = [(b.id, inflate(b.rect, pad)) for b in boxes]

    routed: list[RoutedConnector] = []
    for conn in connectors:
        src = rects.get(conn.from_id) if conn.from_id else None
        tgt = rects.get(conn.to_id) if conn.to_id else None
        if src is None or tgt is None:
            logger.debug("Connector '%s' has an unresolved endpoint", conn.id)
            routed.append(RoutedConnector(conn.id, []))
            continue

        obstacles = [r for bid, r in inflated if bid != conn.from_id and bid != conn.to_id]
        path = route_between(src, tgt, obstacles, stage, cfg)
        routed.append(RoutedConnector(conn.id, simplify_collinear(path) if path else []))
    return routed


def route_between(
    src: Rect,
    tgt: Rect,
    obstacles: Sequence[Rect],
    stage: Stage,
    cfg: LayoutConfig,
) -> Optional[list[Point]]:
    """Find a path from *src* to *tgt* around already-inflated *obstacles*."""
    src_anchors = anchors(src)
    tgt_anchors = anchors(tgt)

    for start in src_anchors:
        for end in tgt_anchors:
            for orientation in ("H", "V"):
                poly = elbow_path(start, end, orientation)
                if _is_clear(poly, obstacles):
                    return poly

    start, end = src_anchors[0], tgt_anchors[0]
    dog = dogleg_around(start, end, obstacles, cfg.grid)
    if dog is not None and _is_clear(dog, obstacles):
        logger.debug("Routed with dogleg")
        return dog

    path = grid_astar(start, end, stage, cfg.grid, obstacles)
    if path is None:
        logger.debug("No grid path between %s and %s", start, end)
    else:
        logger.debug("Routed with grid A* (%d points)", len(path))
    return path


def _is_clear(poly: Sequence[Point], obstacles: Sequence[Rect]) -> bool:
    return not any(polyline_intersects_rect(poly, o) for o in obstacles)


# ---------------------------------------------------------------------------
# Elbow / dogleg
# ---------------------------------------------------------------------------

def elbow_path(a: Point, b: Point, orientation: str) -> list[Point]:
    """Single-bend path; ``'H'`` runs horizontally first, ``'V'`` vertically."""
    if orientation == "H":
        return [a, Point(b.x, a.y), b]
    return [a, Point(a.x, b.y), b]


def dogleg_around(
    a: Point,
    b: Point,
    obstacles: Sequence[Rect],
    grid: float,
) -> Optional[list[Point]]:
    """Offset the middle run one grid unit away from the nearest obstacle.

    Returns None when there is no obstacle to dodge.
    """
    if not obstacles:
        return None
    mid_x = (a.x + b.x) / 2
    mid_y = (a.y + b.y) / 2
    nearest = min(obstacles, key=lambda o: (o.cx - mid_x) ** 2 + (o.cy - mid_y) ** 2)
    dir_y = -1 if mid_y < nearest.y else 1
    run_y = mid_y + grid * dir_y
    return [a, Point(a.x, run_y), Point(b.x, run_y), b]


# ---------------------------------------------------------------------------
# Grid A*
# ---------------------------------------------------------------------------

def _blocked_cells(
    obstacles: Sequence[Rect],
    grid: float,
    cols: int,
    rows: int,
) -> set[Cell]:
    blocked: set[Cell] = set()
    for o in obstacles:
        x0 = max(0, math.floor(o.x / grid) - 1)
        x1 = min(cols, math.ceil(o.right / grid) + 1)
        y0 = max(0, math.floor(o.y / grid) - 1)
        y1 = min(rows, math.ceil(o.bottom / grid) + 1)
        for cy in range(y0, y1):
            for cx in range(x0, x1):
                if (cx, cy) in blocked:
                    continue
                if overlaps(o, Rect(cx * grid, cy * grid, grid, grid)):
                    blocked.add((cx, cy))
    return blocked


def grid_astar(
    start: Point,
    goal: Point,
    stage: Stage,
    grid: float,
    obstacles: Sequence[Rect],
) -> Optional[list[Point]]:
    """Shortest 4-connected path over grid cells avoiding *obstacles*.

    Uses a Manhattan heuristic with unit step cost.  Equal f-scores are
    resolved by push order, which follows the +x, -x, +y, -y expansion
    order, so routes are deterministic.  The returned path runs through
    cell centers with the exact *start*/*goal* points added at the ends,
    or is None when the goal cell is unreachable.
    """
    cols = math.ceil(stage.w / grid) + 1
    rows = math.ceil(stage.h / grid) + 1
    max_col = math.floor(stage.w / grid)
    max_row = math.floor(stage.h / grid)

    def _cell(p: Point) -> Cell:
        return (
            max(0, min(math.floor(p.x / grid), max_col)),
            max(0, min(math.floor(p.y / grid), max_row)),
        )

    blocked = _blocked_cells(obstacles, grid, cols, rows)
    start_c = _cell(start)
    goal_c = _cell(goal)

    def _h(c: Cell) -> int:
        return abs(c[0] - goal_c[0]) + abs(c[1] - goal_c[1])

    seq = 0
    open_set: list[tuple[int, int, Cell]] = [(_h(start_c), seq, start_c)]
    came_from: dict[Cell, Optional[Cell]] = {start_c: None}
    g_score: dict[Cell, int] = {start_c: 0}
    closed: set[Cell] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)
        if current in closed:
            continue
        if current == goal_c:
            return _reconstruct(current, came_from, start, goal, grid)
        closed.add(current)

        cx, cy = current
        for dx, dy in _NEIGHBOURS:
            nb = (cx + dx, cy + dy)
            if not (0 <= nb[0] < cols and 0 <= nb[1] < rows) or nb in blocked:
                continue
            tentative = g_score[current] + 1
            if tentative < g_score.get(nb, math.inf):
                came_from[nb] = current
                g_score[nb] = tentative
                seq += 1
                heapq.heappush(open_set, (tentative + _h(nb), seq, nb))

    return None


def _reconstruct(
    end: Cell,
    came_from: dict[Cell, Optional[Cell]],
    start: Point,
    goal: Point,
    grid: float,
) -> list[Point]:
    path: list[Point] = []
    node: Optional[Cell] = end
    while node is not None:
        path.append(Point(node[0] * grid + grid / 2, node[1] * grid + grid / 2))
        node = came_from[node]
    path.reverse()

    if path[0] != start:
        path.insert(0, start)
    if path[-1] != goal:
        path.append(goal)
    return simplify_collinear(path)
