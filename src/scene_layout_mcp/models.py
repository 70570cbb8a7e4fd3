"""
Core data model for the scene layout engine.

Provides typed, composable records for everything the engine consumes and
emits: stage sizes, layer descriptions as authored in a scene, measured
layers, intermediate placements and the final ``LayoutPlan``.

Scene files use camelCase keys (``minPad``, ``fontSize``, ``fromId``); the
``from_dict`` constructors accept those as well as snake_case.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LayerKind(Enum):
    """Kinds of content a scene layer can hold."""
    TEXT = "text"
    BOX = "box"
    IMAGE = "image"
    LOTTIE = "lottie"
    DOODLE = "doodle"
    ANNOTATION = "annotation"
    CONNECTOR = "connector"


class BandHint(Enum):
    """Horizontal zone used to place layers that carry no explicit position."""
    TITLE = "title"
    CONTENT = "content"
    CTA = "cta"

    @classmethod
    def from_role(cls, role: Optional[str]) -> 'BandHint':
        """Derive a band from a free-form role string.

        "title"/"header" go to the top band, "cta"/"footer"/"button" to the
        bottom band, anything else to the middle band.
        """
        r = (role or "").lower()
        if "title" in r or "header" in r:
            return cls.TITLE
        if "cta" in r or "footer" in r or "button" in r:
            return cls.CTA
        return cls.CONTENT


# ---------------------------------------------------------------------------
# Geometry records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """A 2-D coordinate."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box, top-left origin."""
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def cx(self) -> float:
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        return self.y + self.h / 2

    def moved(self, dx: float, dy: float) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.w, self.h)

    def intersects(self, other: 'Rect') -> bool:
        """Half-open overlap test: touching edges do not count."""
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.bottom <= other.y
            or other.bottom <= self.y
        )

    def contains_point(self, px: float, py: float) -> bool:
        """Inclusive point-in-rect test."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True)
class Stage:
    """Canvas size in px."""
    w: float = 1920
    h: float = 1080

    def to_dict(self) -> dict[str, float]:
        return {"w": self.w, "h": self.h}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

# Scene-file key -> LayoutConfig attribute
_CONFIG_ALIASES = {
    "grid": "grid",
    "minPad": "min_pad",
    "stroke": "stroke",
    "maxNudges": "max_nudges",
    "allowFontShrink": "allow_font_shrink",
    "fontShrinkStep": "font_shrink_step",
}


@dataclass
class LayoutConfig:
    """Tuning knobs for placement and routing.

    Preconditions: ``grid > 0`` and ``max_nudges >= 0``.
    """
    grid: float = 32               # Placement / alignment quantum
    min_pad: float = 12            # Global clearance around every box
    stroke: float = 6              # Assumed border width, half counts as padding
    max_nudges: int = 3            # Greedy nudge depth per item
    allow_font_shrink: bool = False
    font_shrink_step: float = 0.92  # Multiplicative font-size reduction

    @property
    def base_pad(self) -> float:
        return self.min_pad + self.stroke / 2

    def merged(self, overrides: Optional[dict[str, Any]]) -> 'LayoutConfig':
        """Return a copy with *overrides* applied (camelCase or snake_case keys).

        Unknown keys are ignored.
        """
        if not overrides:
            return replace(self)
        names = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            attr = _CONFIG_ALIASES.get(key, key)
            if attr in names and value is not None:
                changes[attr] = value
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {alias: getattr(self, attr) for alias, attr in _CONFIG_ALIASES.items()}


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class LayerBox:
    """Author-supplied position and size hints; every field is optional."""
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None
    max_w: Optional[float] = None
    max_h: Optional[float] = None

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'LayerBox':
        return cls(
            x=data.get("x"),
            y=data.get("y"),
            w=data.get("w"),
            h=data.get("h"),
            max_w=_pick(data, "maxW", "max_w"),
            max_h=_pick(data, "maxH", "max_h"),
        )


@dataclass
class LayerInput:
    """One layer of a scene as authored.

    ``priority`` runs 1..5: lower numbers are placed earlier and protected,
    higher numbers are displaced more readily.
    """
    id: str
    kind: str = LayerKind.BOX.value
    role: Optional[str] = None
    lock: bool = False
    priority: int = 3
    prefer_edge: bool = False
    min_pad: float = 0
    box: Optional[LayerBox] = None
    text: Optional[str] = None
    font: Optional[str] = None
    font_size: Optional[float] = None
    src: Optional[str] = None
    # connector-only
    from_id: Optional[str] = None
    to_id: Optional[str] = None
    from_role: Optional[str] = None
    to_role: Optional[str] = None
    band: Optional[BandHint] = None

    @property
    def is_connector(self) -> bool:
        return self.kind == LayerKind.CONNECTOR.value

    @property
    def band_hint(self) -> BandHint:
        return self.band if self.band is not None else BandHint.from_role(self.role)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'LayerInput':
        box = data.get("box")
        band = data.get("band")
        return cls(
            id=str(data["id"]),
            kind=data.get("kind", LayerKind.BOX.value),
            role=data.get("role"),
            lock=bool(data.get("lock", False)),
            priority=_pick(data, "priority", default=3),
            prefer_edge=bool(_pick(data, "preferEdge", "prefer_edge", default=False)),
            min_pad=_pick(data, "minPad", "min_pad", default=0),
            box=LayerBox.from_dict(box) if isinstance(box, dict) else None,
            text=data.get("text"),
            font=data.get("font"),
            font_size=_pick(data, "fontSize", "font_size"),
            src=data.get("src"),
            from_id=_pick(data, "fromId", "from_id"),
            to_id=_pick(data, "toId", "to_id"),
            from_role=_pick(data, "fromRole", "from_role"),
            to_role=_pick(data, "toRole", "to_role"),
            band=BandHint(band.lower()) if isinstance(band, str) else band,
        )


@dataclass
class MeasuredLayer:
    """A layer plus its computed footprint (never author-supplied)."""
    layer: LayerInput
    w: float
    h: float
    font_size: Optional[float] = None

    @property
    def id(self) -> str:
        return self.layer.id

    @property
    def kind(self) -> str:
        return self.layer.kind


@dataclass
class BoxPlacement:
    """Intermediate placement of one non-connector layer."""
    id: str
    rect: Rect
    lock: bool = False
    priority: int = 3
    min_pad: float = 0


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------

@dataclass
class RoutedConnector:
    """Connector path; the polyline is empty when an endpoint is unresolved."""
    id: str
    polyline: list[Point] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "polyline": [p.to_dict() for p in self.polyline]}


@dataclass
class PlanBox:
    id: str
    x: float
    y: float
    w: float
    h: float
    kind: str
    role: Optional[str] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.w, self.h)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "kind": self.kind,
        }
        if self.role is not None:
            d["role"] = self.role
        return d


@dataclass
class LayoutPlan:
    """Engine output: final boxes sorted by id, routed connectors, warnings."""
    stage: Stage
    boxes: list[PlanBox] = field(default_factory=list)
    connectors: list[RoutedConnector] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.to_dict(),
            "boxes": [b.to_dict() for b in self.boxes],
            "connectors": [c.to_dict() for c in self.connectors],
            "warnings": list(self.warnings),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


# ---------------------------------------------------------------------------
# Scene input
# ---------------------------------------------------------------------------

@dataclass
class SceneInput:
    """The slice of a scene description the layout engine reads.

    ``style_tokens`` is carried along but never consulted.
    """
    stage: Stage = field(default_factory=Stage)
    layers: list[LayerInput] = field(default_factory=list)
    layout: dict[str, Any] = field(default_factory=dict)
    style_tokens: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SceneInput':
        stage = data.get("stage") or {}
        return cls(
            stage=Stage(
                w=_pick(stage, "width", "w", default=1920),
                h=_pick(stage, "height", "h", default=1080),
            ),
            layers=[LayerInput.from_dict(layer) for layer in data.get("layers") or []],
            layout=dict(data.get("layout") or {}),
            style_tokens=dict(data.get("style_tokens") or {}),
        )
