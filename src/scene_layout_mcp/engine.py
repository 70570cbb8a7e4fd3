"""
Layout orchestration: one deterministic pass from scene to ``LayoutPlan``.

    measure -> initial placement -> overlap resolution
            -> (optional font-shrink retries) -> connector routing
            -> validation -> plan

The engine never raises for geometric reasons.  Residual problems are
reported as warning strings in the plan:

- ``overlap:<idA>:<idB>``: padded boxes still overlap
- ``connectorIntersect:<connectorId>:<boxId>``: a route crosses a box
- ``fontShrinkApplied:<rounds>``: text was shrunk to make room

The first two are hard failures for scene linting; anything else is a note.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

from scene_layout_mcp.geom import inflate, polyline_intersects_rect
from scene_layout_mcp.measure import TextMeasureCache, measure_layers, shrink_text_once
from scene_layout_mcp.models import (
    BoxPlacement,
    LayerInput,
    LayerKind,
    LayoutConfig,
    LayoutPlan,
    MeasuredLayer,
    PlanBox,
    RoutedConnector,
    SceneInput,
    Stage,
)
from scene_layout_mcp.pack import find_overlapping_pairs, initial_placement, resolve_overlaps
from scene_layout_mcp.router import route_connectors

logger = logging.getLogger(__name__)

MAX_SHRINK_ROUNDS = 2


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------

class WarningKind(Enum):
    OVERLAP = "overlap"
    CONNECTOR_INTERSECT = "connectorIntersect"
    FONT_SHRINK_APPLIED = "fontShrinkApplied"


HARD_FAILURES = {WarningKind.OVERLAP, WarningKind.CONNECTOR_INTERSECT}


@dataclass(frozen=True)
class LayoutWarning:
    kind: WarningKind
    args: tuple[str, ...] = ()

    def __str__(self) -> str:
        return ":".join((self.kind.value, *self.args))


def classify_warnings(warnings: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split plan warnings into (hard failures, soft notes)."""
    hard_prefixes = tuple(k.value + ":" for k in HARD_FAILURES)
    hard: list[str] = []
    soft: list[str] = []
    for w in warnings:
        (hard if w.startswith(hard_prefixes) else soft).append(w)
    return hard, soft


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def find_connector_intersections(
    routed: Sequence[RoutedConnector],
    connectors: Sequence[LayerInput],
    boxes: Sequence[BoxPlacement],
    pad: float,
) -> list[tuple[str, str]]:
    """(connector id, box id) pairs where a route crosses a padded box.

    A connector's own endpoint boxes are not checked.
    """
    endpoints = {c.id: {c.from_id, c.to_id} for c in connectors}
    inflated = [(b.id, inflate(b.rect, pad)) for b in boxes]
    hits: list[tuple[str, str]] = []
    for conn in routed:
        own = endpoints.get(conn.id, set())
        for box_id, rect in inflated:
            if box_id in own:
                continue
            if polyline_intersects_rect(conn.polyline, rect):
                hits.append((conn.id, box_id))
    return hits


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def _pack(
    measured: Sequence[MeasuredLayer],
    stage: Stage,
    cfg: LayoutConfig,
) -> list[BoxPlacement]:
    initial = initial_placement(measured, stage, cfg)
    return resolve_overlaps(measured, initial, stage, cfg)


def compute_layout(
    scene: Union[SceneInput, dict[str, Any]],
    cache: Optional[TextMeasureCache] = None,
) -> LayoutPlan:
    """Compute a complete layout plan for *scene*.

    *scene* may be a ``SceneInput`` or a raw scene dict.  The plan is always
    returned; problems show up in ``plan.warnings``.
    """
    if isinstance(scene, dict):
        scene = SceneInput.from_dict(scene)
    stage = scene.stage
    cfg = LayoutConfig().merged(scene.layout)

    # Deterministic order feeds both band cursors and the packer sweep
    layers = sorted(scene.layers, key=lambda layer: (layer.priority, layer.id))
    measured = measure_layers(layers, cache)
    placed = _pack(measured, stage, cfg)

    warnings: list[LayoutWarning] = []
    if cfg.allow_font_shrink and find_overlapping_pairs(placed, cfg.base_pad):
        rounds = 0
        for _ in range(MAX_SHRINK_ROUNDS):
            measured = [
                shrink_text_once(m, cfg.font_shrink_step, cache)
                if m.kind == LayerKind.TEXT.value else m
                for m in measured
            ]
            placed = _pack(measured, stage, cfg)
            rounds += 1
            if not find_overlapping_pairs(placed, cfg.base_pad):
                break
        logger.debug("Applied %d font shrink round(s)", rounds)
        warnings.append(LayoutWarning(WarningKind.FONT_SHRINK_APPLIED, (str(rounds),)))

    by_id = {m.id: m for m in measured}
    placed = sorted(placed, key=lambda p: p.id)
    boxes = [
        PlanBox(
            id=p.id,
            x=p.rect.x,
            y=p.rect.y,
            w=p.rect.w,
            h=p.rect.h,
            kind=by_id[p.id].kind,
            role=by_id[p.id].layer.role,
        )
        for p in placed
    ]

    connector_layers = [m.layer for m in measured if m.layer.is_connector]
    routed = route_connectors(placed, connector_layers, stage, cfg)

    for a, b in find_overlapping_pairs(placed, cfg.base_pad):
        warnings.append(LayoutWarning(WarningKind.OVERLAP, (a, b)))
    for conn_id, box_id in find_connector_intersections(
        routed, connector_layers, placed, cfg.base_pad,
    ):
        warnings.append(LayoutWarning(WarningKind.CONNECTOR_INTERSECT, (conn_id, box_id)))

    return LayoutPlan(
        stage=stage,
        boxes=boxes,
        connectors=routed,
        warnings=[str(w) for w in warnings],
    )
