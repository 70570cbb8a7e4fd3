"""Tests for initial placement and overlap resolution."""

from scene_layout_mcp.geom import inflate, overlaps
from scene_layout_mcp.measure import TextMeasureCache, measure_layers
from scene_layout_mcp.models import (
    BandHint,
    BoxPlacement,
    LayerBox,
    LayerInput,
    LayoutConfig,
    Rect,
    Stage,
)
from scene_layout_mcp.pack import (
    find_overlapping_pairs,
    initial_placement,
    resolve_overlaps,
    try_positions,
)


def _box(id: str, x=None, y=None, w=100, h=80, **kwargs) -> LayerInput:
    return LayerInput(id=id, kind="box", box=LayerBox(x=x, y=y, w=w, h=h), **kwargs)


def _pack(layers: list[LayerInput], stage: Stage, cfg: LayoutConfig) -> dict[str, Rect]:
    measured = measure_layers(layers, TextMeasureCache())
    initial = initial_placement(measured, stage, cfg)
    return {p.id: p.rect for p in resolve_overlaps(measured, initial, stage, cfg)}


STAGE = Stage(400, 300)


# ===================================================================
# Initial placement
# ===================================================================

class TestInitialPlacement:
    """Tests for band placement, snapping and clamping."""

    def _place(self, layers: list[LayerInput], stage: Stage = Stage(), cfg=None) -> dict[str, Rect]:
        cfg = cfg or LayoutConfig()
        measured = measure_layers(layers, TextMeasureCache())
        return {p.id: p.rect for p in initial_placement(measured, stage, cfg)}

    def test_bands_by_role(self) -> None:
        rects = self._place([
            _box("t", w=200, h=60, role="title"),
            _box("c", w=200, h=60, role="body"),
            _box("b", w=200, h=60, role="cta"),
        ])
        assert rects["t"].y == 32
        assert rects["c"].y == 480
        # Bottom band sits at h - 2*grid, snapped then clamped onto the stage
        assert rects["b"].y == 1020

    def test_band_cursor_advances(self) -> None:
        rects = self._place([
            _box("t1", w=200, h=60, role="title"),
            _box("t2", w=200, h=60, role="title"),
        ])
        assert rects["t1"].x == 32
        assert rects["t2"].x == 256

    def test_explicit_band_overrides_role(self) -> None:
        rects = self._place([_box("x", w=200, h=60, role="body", band=BandHint.TITLE)])
        assert rects["x"].y == 32

    def test_explicit_position_snapped(self) -> None:
        rects = self._place([_box("a", 50, 70)], STAGE, LayoutConfig(grid=20))
        assert rects["a"] == Rect(60, 80, 100, 80)

    def test_clamped_to_stage(self) -> None:
        rects = self._place([_box("a", 1900, 10, w=100)])
        assert rects["a"].x == 1820

    def test_connectors_skipped(self) -> None:
        rects = self._place([
            _box("a"),
            LayerInput(id="c", kind="connector", from_id="a", to_id="a"),
        ])
        assert list(rects) == ["a"]


# ===================================================================
# Greedy nudging
# ===================================================================

class TestTryPositions:
    """Tests for the grid-step search."""

    def test_free_start_returned(self) -> None:
        start = Rect(100, 100, 40, 40)
        assert try_positions(start, STAGE, [], 10, 20, 3) == start

    def test_first_clear_step_wins(self) -> None:
        start = Rect(0, 0, 40, 40)
        result = try_positions(start, STAGE, [Rect(0, 0, 40, 40)], 0, 20, 3)
        assert result == Rect(40, 0, 40, 40)

    def test_exhausted_nudges_return_start(self) -> None:
        start = Rect(0, 0, 40, 40)
        assert try_positions(start, STAGE, [Rect(0, 0, 40, 40)], 0, 20, 0) == start

    def test_result_stays_on_stage(self) -> None:
        start = Rect(360, 260, 40, 40)
        result = try_positions(start, STAGE, [Rect(360, 260, 40, 40)], 0, 20, 3)
        assert 0 <= result.x <= STAGE.w - result.w
        assert 0 <= result.y <= STAGE.h - result.h


# ===================================================================
# Overlap resolution
# ===================================================================

class TestResolveOverlaps:
    """Tests for sweep and relaxation."""

    def test_simple_collision_resolved(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=5)
        rects = _pack([_box("A", 50, 50), _box("B", 80, 70, w=120)], STAGE, cfg)
        assert rects["A"] == Rect(60, 60, 100, 80)
        pad = cfg.base_pad
        assert not overlaps(inflate(rects["A"], pad), inflate(rects["B"], pad))

    def test_locked_layer_never_moves(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=4)
        rects = _pack([
            _box("L", 60, 60, w=120, lock=True),
            _box("M", 60, 60, w=120),
        ], STAGE, cfg)
        assert rects["L"] == Rect(60, 60, 120, 80)
        assert rects["M"] != rects["L"]

    def test_locked_layer_beats_priority(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=5)
        rects = _pack([
            _box("L", 60, 60, lock=True, priority=5),
            _box("M", 60, 60, priority=1),
        ], STAGE, cfg)
        assert rects["L"] == Rect(60, 60, 100, 80)

    def test_two_locked_layers_stay_overlapping(self) -> None:
        cfg = LayoutConfig(grid=20)
        rects = _pack([
            _box("A", 60, 60, lock=True),
            _box("B", 60, 60, lock=True),
        ], STAGE, cfg)
        assert rects["A"] == rects["B"] == Rect(60, 60, 100, 80)

    def test_lower_priority_moves(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=5)
        for order in (["P1", "P5"], ["P5", "P1"]):
            layers = {
                "P1": _box("P1", 60, 60, priority=1),
                "P5": _box("P5", 60, 60, priority=5),
            }
            rects = _pack([layers[i] for i in order], STAGE, cfg)
            assert rects["P1"] == Rect(60, 60, 100, 80)
            assert rects["P5"] != Rect(60, 60, 100, 80)

    def test_priority_displacement_ordering(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=5)
        rects = _pack([
            _box("P5", 60, 60, priority=5),
            _box("P1", 60, 60, priority=1),
        ], STAGE, cfg)

        def _dist(r: Rect) -> float:
            return abs(r.x - 60) + abs(r.y - 60)

        assert _dist(rects["P1"]) < _dist(rects["P5"])

    def test_placements_stay_on_stage(self) -> None:
        cfg = LayoutConfig(grid=20, max_nudges=5)
        rects = _pack([
            _box("A", 300, 220),
            _box("B", 300, 220),
            _box("C", 300, 220),
        ], STAGE, cfg)
        for r in rects.values():
            assert 0 <= r.x <= STAGE.w - r.w
            assert 0 <= r.y <= STAGE.h - r.h

    def test_roomy_band_has_no_overlaps(self) -> None:
        cfg = LayoutConfig()
        layers = [_box(i, w=200, h=100) for i in ("A", "B", "C", "D")]
        measured = measure_layers(layers, TextMeasureCache())
        initial = initial_placement(measured, Stage(), cfg)
        resolved = resolve_overlaps(measured, initial, Stage(), cfg)
        assert find_overlapping_pairs(resolved, cfg.base_pad) == []

    def test_preserves_input_order(self) -> None:
        cfg = LayoutConfig(grid=20)
        measured = measure_layers([_box("z", 0, 0), _box("a", 200, 200)], TextMeasureCache())
        initial = initial_placement(measured, STAGE, cfg)
        assert [p.id for p in resolve_overlaps(measured, initial, STAGE, cfg)] == ["z", "a"]


class TestFindOverlappingPairs:
    """Tests for padded overlap detection."""

    def test_includes_layer_min_pad(self) -> None:
        a = BoxPlacement("a", Rect(0, 0, 50, 50))
        b = BoxPlacement("b", Rect(60, 0, 50, 50))
        assert find_overlapping_pairs([a, b], 4) == []
        b_padded = BoxPlacement("b", Rect(60, 0, 50, 50), min_pad=4)
        assert find_overlapping_pairs([a, b_padded], 4) == [("a", "b")]

    def test_pairs_in_input_order(self) -> None:
        boxes = [BoxPlacement(i, Rect(0, 0, 10, 10)) for i in ("c", "a", "b")]
        assert find_overlapping_pairs(boxes, 0) == [("c", "a"), ("c", "b"), ("a", "b")]
