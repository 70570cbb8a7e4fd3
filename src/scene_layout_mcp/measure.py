"""
Content measurement: turn layer descriptions into concrete footprints.

Text size is a deterministic word-wrap heuristic, not real shaping:
each character is ``0.6 * font_size`` wide, a space ``0.33 * font_size``
and a line ``1.3 * font_size`` tall.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Optional

from scene_layout_mcp.models import LayerInput, LayerKind, MeasuredLayer

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 32
DEFAULT_FONT_FAMILY = "Inter"

AVG_CHAR_WIDTH = 0.6
SPACE_WIDTH = 0.33
LINE_HEIGHT = 1.3

# Footprints for kinds without intrinsic size lookup
MEDIA_DEFAULT_W = 320
MEDIA_DEFAULT_H = 180
UNKNOWN_DEFAULT_W = 200
UNKNOWN_DEFAULT_H = 100

_MEDIA_KINDS = {
    LayerKind.IMAGE.value,
    LayerKind.LOTTIE.value,
    LayerKind.DOODLE.value,
    LayerKind.BOX.value,
    LayerKind.ANNOTATION.value,
}

CacheKey = tuple[str, float, Optional[float], str]


class TextMeasureCache:
    """Memoizes text measurements by ``(family, size, max_width, text)``.

    Pure performance aid: entries are deterministic, so clearing the cache
    or sharing it between callers never changes results.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, tuple[int, int]] = {}

    def get(self, key: CacheKey) -> Optional[tuple[int, int]]:
        return self._entries.get(key)

    def put(self, key: CacheKey, size: tuple[int, int]) -> None:
        self._entries[key] = size

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_default_cache = TextMeasureCache()


def default_cache() -> TextMeasureCache:
    """The process-wide cache used when a caller does not supply one."""
    return _default_cache


def estimate_text_size(
    text: str,
    family: Optional[str] = None,
    font_size: Optional[float] = None,
    max_w: Optional[float] = None,
    cache: Optional[TextMeasureCache] = None,
) -> tuple[int, int]:
    """Estimate the (width, height) of *text* wrapped greedily at *max_w*.

    Without *max_w* the text stays on a single line.
    """
    cache = cache if cache is not None else _default_cache
    size = font_size if font_size is not None else DEFAULT_FONT_SIZE
    family = family or DEFAULT_FONT_FAMILY
    key: CacheKey = (family, size, max_w, text)
    cached = cache.get(key)
    if cached is not None:
        return cached

    char_w = size * AVG_CHAR_WIDTH
    space_w = size * SPACE_WIDTH
    line_h = size * LINE_HEIGHT

    line_w = 0.0
    widest = 0.0
    lines = 1
    for word in re.split(r"\s+", text):
        word_w = len(word) * char_w
        if max_w and line_w > 0 and line_w + space_w + word_w > max_w:
            widest = max(widest, line_w)
            line_w = word_w
            lines += 1
        else:
            line_w = line_w + (space_w if line_w > 0 else 0) + word_w
    widest = max(widest, line_w)

    result = (math.ceil(widest), math.ceil(lines * line_h))
    cache.put(key, result)
    return result


def _wrap_width(layer: LayerInput) -> Optional[float]:
    if layer.box is None:
        return None
    return layer.box.max_w if layer.box.max_w is not None else layer.box.w


def measure_layer(
    layer: LayerInput,
    cache: Optional[TextMeasureCache] = None,
) -> MeasuredLayer:
    box = layer.box
    if layer.kind == LayerKind.TEXT.value:
        w, h = estimate_text_size(
            layer.text or "", layer.font, layer.font_size, _wrap_width(layer), cache,
        )
        return MeasuredLayer(layer, w, h, font_size=layer.font_size)

    if layer.kind in _MEDIA_KINDS:
        w = _first(box and box.w, box and box.max_w, MEDIA_DEFAULT_W)
        h = _first(box and box.h, box and box.max_h, MEDIA_DEFAULT_H)
        return MeasuredLayer(layer, w, h)

    if layer.kind == LayerKind.CONNECTOR.value:
        return MeasuredLayer(layer, 0, 0)

    logger.debug("Unknown layer kind '%s' on '%s', using default size", layer.kind, layer.id)
    w = _first(box and box.w, UNKNOWN_DEFAULT_W)
    h = _first(box and box.h, UNKNOWN_DEFAULT_H)
    return MeasuredLayer(layer, w, h)


def _first(*values: Optional[float]) -> float:
    for v in values:
        if v is not None:
            return v
    return 0


def measure_layers(
    layers: list[LayerInput],
    cache: Optional[TextMeasureCache] = None,
) -> list[MeasuredLayer]:
    """Measure every layer, one-to-one and in order."""
    return [measure_layer(layer, cache) for layer in layers]


def shrink_text_once(
    measured: MeasuredLayer,
    step: float,
    cache: Optional[TextMeasureCache] = None,
) -> MeasuredLayer:
    """Re-measure a text layer with its font size multiplied by *step* (floored)."""
    current = measured.font_size if measured.font_size is not None else DEFAULT_FONT_SIZE
    next_size = math.floor(current * step)
    layer = measured.layer
    w, h = estimate_text_size(layer.text or "", layer.font, next_size, _wrap_width(layer), cache)
    return MeasuredLayer(replace(layer, font_size=next_size), w, h, font_size=next_size)
