"""
Box packing: initial placement plus overlap resolution.

Placement works in two stages:

1. ``initial_placement`` gives every non-connector layer a start rect, either
   its explicit author position or a slot in one of three horizontal bands
   (title / content / call-to-action), snapped to the grid.
2. ``resolve_overlaps`` sweeps layers in ``(priority, id)`` order, nudging
   each one in grid steps until it clears everything placed before it (and
   every locked layer), then runs a pairwise relaxation pass that pushes
   the less protected member of any still-overlapping pair away.

Clearance between boxes is ``min_pad + stroke / 2`` plus the layer's own
``min_pad``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Sequence

from scene_layout_mcp.geom import clamp_rect_to_stage, inflate, overlaps, snap_to_grid
from scene_layout_mcp.models import (
    BandHint,
    BoxPlacement,
    LayoutConfig,
    MeasuredLayer,
    Rect,
    Stage,
)

logger = logging.getLogger(__name__)

# Nudge directions, tried in this order at every step
_DIRECTIONS = [(1, 0), (-1, 0), (0, 1), (0, -1)]


# ---------------------------------------------------------------------------
# Initial placement
# ---------------------------------------------------------------------------

def initial_placement(
    measured: Sequence[MeasuredLayer],
    stage: Stage,
    cfg: LayoutConfig,
) -> list[BoxPlacement]:
    """Compute a start rect for every non-connector layer.

    Layers without an explicit position are laid left to right inside their
    band; each band keeps its own column cursor starting at ``cfg.grid``.
    """
    margin = cfg.grid
    band_y = {
        BandHint.TITLE: margin,
        BandHint.CONTENT: math.floor(stage.h * 0.45 + 0.5),
        BandHint.CTA: stage.h - margin * 2,
    }
    cursors = {band: margin for band in BandHint}

    placements: list[BoxPlacement] = []
    for m in measured:
        layer = m.layer
        if layer.is_connector:
            continue

        if layer.box is not None and layer.box.has_position:
            x, y = layer.box.x, layer.box.y
        else:
            band = layer.band_hint
            x = cursors[band]
            y = band_y[band]
            cursors[band] += m.w + cfg.grid

        # Align to grid, keep on stage
        x = max(0, min(stage.w - m.w, snap_to_grid(x, cfg.grid)))
        y = max(0, min(stage.h - m.h, snap_to_grid(y, cfg.grid)))

        placements.append(BoxPlacement(
            id=layer.id,
            rect=Rect(x, y, m.w, m.h),
            lock=layer.lock,
            priority=layer.priority,
            min_pad=layer.min_pad,
        ))
    return placements


# ---------------------------------------------------------------------------
# Greedy nudging
# ---------------------------------------------------------------------------

def try_positions(
    start: Rect,
    stage: Stage,
    obstacles: Sequence[Rect],
    pad: float,
    grid: float,
    max_nudges: int,
) -> Rect:
    """Find the nearest grid nudge of *start* that clears every padded obstacle.

    Tries +x, -x, +y, -y at distance ``grid * step`` for step 1..max_nudges.
    Returns the clamped start unchanged when nothing fits.
    """
    start_clamped = clamp_rect_to_stage(start, stage)
    inflated = [inflate(o, pad) for o in obstacles]

    def _collides(r: Rect) -> bool:
        return any(overlaps(r, o) for o in inflated)

    if not _collides(start_clamped):
        return start_clamped

    for step in range(1, max_nudges + 1):
        for dx, dy in _DIRECTIONS:
            cand = clamp_rect_to_stage(
                start_clamped.moved(dx * grid * step, dy * grid * step), stage,
            )
            if not _collides(cand):
                return cand

    return start_clamped


def _sign_or_one(v: float) -> int:
    if v > 0:
        return 1
    if v < 0:
        return -1
    return 1


# ---------------------------------------------------------------------------
# Overlap resolution
# ---------------------------------------------------------------------------

def resolve_overlaps(
    measured: Sequence[MeasuredLayer],
    initial: Sequence[BoxPlacement],
    stage: Stage,
    cfg: LayoutConfig,
) -> list[BoxPlacement]:
    """Separate overlapping placements, respecting lock and priority.

    Returns placements in the same order as *initial*.  Overlaps that cannot
    be removed within the nudge limit are left in place for the caller to
    report.
    """
    # Arena: rects indexed by handle, id -> handle built once
    items = list(initial)
    rects = [p.rect for p in items]
    handles = {p.id: h for h, p in enumerate(items)}
    pads = [cfg.base_pad + p.min_pad for p in items]

    order = sorted(
        (m for m in measured if not m.layer.is_connector and m.id in handles),
        key=lambda m: (m.layer.priority, m.id),
    )
    locked = [handles[m.id] for m in order if m.layer.lock]

    # --- Sweep: each item clears everything placed so far plus every lock ---
    placed: list[int] = []
    for m in order:
        h = handles[m.id]
        if m.layer.lock:
            rects[h] = clamp_rect_to_stage(rects[h], stage)
        else:
            obstacle_handles = list(placed)
            obstacle_handles.extend(lh for lh in locked if lh != h and lh not in placed)
            rects[h] = try_positions(
                rects[h],
                stage,
                [rects[o] for o in obstacle_handles],
                pads[h],
                cfg.grid,
                cfg.max_nudges,
            )
        placed.append(h)

    # --- Relaxation: push the less protected member of each overlapping pair ---
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            _relax_pair(i, j, items, rects, pads, stage, cfg)

    return [replace(p, rect=rects[h]) for h, p in enumerate(items)]


def _relax_pair(
    a: int,
    b: int,
    items: list[BoxPlacement],
    rects: list[Rect],
    pads: list[float],
    stage: Stage,
    cfg: LayoutConfig,
) -> None:
    inf_a = inflate(rects[a], pads[a])
    inf_b = inflate(rects[b], pads[b])
    if not overlaps(inf_a, inf_b):
        return

    # Higher (or equal) priority number moves; ties move B.  Locks never move.
    move_b = items[b].priority >= items[a].priority
    if move_b and items[b].lock:
        move_b = False
    elif not move_b and items[a].lock:
        move_b = True
    mover, other = (b, a) if move_b else (a, b)
    if items[mover].lock:
        return

    # Direction from A's center to B's center; B moves along it, A against it
    dir_x = _sign_or_one(rects[b].cx - rects[a].cx)
    dir_y = _sign_or_one(rects[b].cy - rects[a].cy)
    if not move_b:
        dir_x, dir_y = -dir_x, -dir_y

    fixed = inflate(rects[other], pads[other])
    start = rects[mover]
    for step in range(1, cfg.max_nudges + 3):
        cand = clamp_rect_to_stage(
            start.moved(dir_x * cfg.grid * step, dir_y * cfg.grid * step), stage,
        )
        if not overlaps(inflate(cand, pads[mover]), fixed):
            rects[mover] = cand
            return
    logger.debug("Could not separate '%s' from '%s'", items[mover].id, items[other].id)


# ---------------------------------------------------------------------------
# Overlap detection
# ---------------------------------------------------------------------------

def find_overlapping_pairs(
    placements: Sequence[BoxPlacement],
    base_pad: float,
) -> list[tuple[str, str]]:
    """All pairs whose padded rects overlap, in input order.

    Each rect is inflated by *base_pad* plus its own ``min_pad``.
    """
    inflated = [(p.id, inflate(p.rect, base_pad + p.min_pad)) for p in placements]
    pairs: list[tuple[str, str]] = []
    for i in range(len(inflated)):
        for j in range(i + 1, len(inflated)):
            if overlaps(inflated[i][1], inflated[j][1]):
                pairs.append((inflated[i][0], inflated[j][0]))
    return pairs
