"""
Scene Layout MCP Server — deterministic scene layout via Model Context Protocol.

Exposes 3 tools that let an agent lay out slide/video scenes: place content
boxes without overlap and route connectors around them.

Tools:
  1. scene    — lifecycle: create, load, list, get_json, save_plan, delete
  2. layout   — engine:    compute, measure, place, route, clear_cache
  3. inspect  — read-only: lint, config, info
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from scene_layout_mcp.engine import classify_warnings, compute_layout
from scene_layout_mcp.measure import TextMeasureCache, measure_layers
from scene_layout_mcp.models import (
    BoxPlacement,
    LayerInput,
    LayoutConfig,
    Rect,
    SceneInput,
    Stage,
)
from scene_layout_mcp.pack import initial_placement, resolve_overlaps
from scene_layout_mcp.router import route_connectors
from scene_layout_mcp.validation import (
    ValidationError,
    validate_action,
    validate_box_dict,
    validate_file_path,
    validate_layer_dict,
    validate_layout_overrides,
    validate_list,
    validate_non_empty_string,
    validate_scene_dict,
    validate_stage_dict,
    _INSPECT_ACTIONS,
    _LAYOUT_ACTIONS,
    _SCENE_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: suppress routine FastMCP INFO messages on stderr.
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("scene-layout-mcp")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "scene-layout-mcp",
    instructions=(
        "MCP server for laying out slide / video scenes.\n\n"
        "=== ONLY 3 TOOLS — use the 'action' parameter to pick the operation ===\n\n"
        "1. scene(action, ...) — lifecycle: create, load, list, get_json,\n"
        "   save_plan, delete.\n"
        "2. layout(action, ...) — engine: compute, measure, place, route,\n"
        "   clear_cache.\n"
        "3. inspect(action, ...) — read-only: lint, config, info.\n\n"
        "=== SCENE FORMAT ===\n"
        "{stage: {width, height}, layers: [...], layout: {grid, minPad, stroke,\n"
        " maxNudges, allowFontShrink, fontShrinkStep}}\n"
        "Each layer: {id, kind, role?, lock?, priority? (1..5, lower = more\n"
        "protected), box? {x, y, w, h, maxW, maxH}, text?, font?, fontSize?}.\n"
        "Connectors: {id, kind: 'connector', fromId, toId}.\n\n"
        "=== RULES ===\n"
        "- Plans always come back; problems appear in 'warnings'.\n"
        "- 'overlap:' and 'connectorIntersect:' warnings fail lint.\n"
        "- Locked layers with explicit x/y never move.\n"
    ),
)

# In-memory scene store: name -> validated scene dict.
# Guarded by _scenes_lock for thread-safety.
_scenes: dict[str, dict[str, Any]] = {}
_scenes_lock = threading.Lock()

# Shared text measurement cache for every tool call
_measure_cache = TextMeasureCache()


def _resolve_scene(scene_name: str, scene: dict[str, Any] | None) -> dict[str, Any]:
    """Return an inline scene (validated) or a stored scene by name."""
    if scene is not None:
        return validate_scene_dict(scene)
    name = validate_non_empty_string(scene_name, "scene_name")
    stored = _scenes.get(name)
    if stored is None:
        raise ValidationError(f"scene '{name}' not found.")
    return stored


def _with_overrides(scene: dict[str, Any], overrides: dict[str, Any] | None) -> dict[str, Any]:
    if not overrides:
        return scene
    validate_layout_overrides(overrides)
    merged = dict(scene)
    merged["layout"] = {**(scene.get("layout") or {}), **overrides}
    return merged


# ===================================================================
# TOOL 1: scene — lifecycle
# ===================================================================

@mcp.tool()
def scene(
    action: str,
    name: str = "",
    scene: dict[str, Any] | None = None,
    file_path: str = "",
) -> str:
    """Scene lifecycle management.

    Actions:
      create     — Store a scene description. Params: name, scene.
      load       — Load a scene JSON file from disk. Params: name, file_path.
      list       — List stored scenes. No params needed.
      get_json   — Get the stored scene as JSON. Params: name.
      save_plan  — Compute the layout plan and write it as JSON.
                   Params: name, file_path.
      delete     — Remove a stored scene. Params: name.

    Args:
        action: One of: create, load, list, get_json, save_plan, delete.
        name: Scene name (key in memory).
        scene: Scene dict for create.
        file_path: Absolute path for load / save_plan.

    Returns:
        Result string or JSON depending on action.
    """
    try:
        action = validate_action(action, "scene", _SCENE_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        result = [
            {
                "name": n,
                "layers": len(s.get("layers") or []),
                "connectors": sum(
                    1 for layer in s.get("layers") or [] if layer.get("kind") == "connector"
                ),
            }
            for n, s in sorted(_scenes.items())
        ]
        return json.dumps(result, indent=2)

    try:
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "create":
        try:
            if scene is None:
                raise ValidationError("'scene' is required for create.")
            validate_scene_dict(scene)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        with _scenes_lock:
            _scenes[name] = copy.deepcopy(scene)
        return f"Scene '{name}' created with {len(scene.get('layers') or [])} layer(s)."

    elif action == "load":
        try:
            validate_file_path(file_path, "file_path")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        path = Path(file_path)
        if not path.exists():
            return f"Error: file '{file_path}' not found."
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            return f"Error: file '{file_path}' is not valid JSON ({exc.msg})."
        try:
            validate_scene_dict(data)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        with _scenes_lock:
            _scenes[name] = data
        return f"Scene '{name}' loaded from {path.resolve()}."

    elif action == "get_json":
        stored = _scenes.get(name)
        if stored is None:
            return f"Error: scene '{name}' not found."
        return json.dumps(stored, indent=2)

    elif action == "save_plan":
        try:
            validate_file_path(file_path, "file_path")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        stored = _scenes.get(name)
        if stored is None:
            return f"Error: scene '{name}' not found."
        plan = compute_layout(stored, cache=_measure_cache)
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(plan.to_json(indent=2), encoding="utf-8")
        return f"Plan saved to {path.resolve()} ({len(plan.warnings)} warning(s))."

    elif action == "delete":
        with _scenes_lock:
            removed = _scenes.pop(name, None)
        if removed is None:
            return f"Error: scene '{name}' not found."
        return f"Scene '{name}' deleted."

    return f"Error: unknown scene action '{action}'."


# ===================================================================
# TOOL 2: layout — engine operations
# ===================================================================

@mcp.tool()
def layout(
    action: str,
    scene_name: str = "",
    scene: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
    boxes: list[dict[str, Any]] | None = None,
    connectors: list[dict[str, Any]] | None = None,
    stage: dict[str, Any] | None = None,
) -> str:
    """Run the layout engine.

    Actions:
      compute      — Full layout plan. Params: scene_name or scene, overrides.
      measure      — Measured footprint per layer. Params: scene_name or scene.
      place        — Packed boxes only (no routing). Params: scene_name or
                     scene, overrides.
      route        — Route connectors over given boxes. Params: boxes (list
                     of {id, x, y, w, h}), connectors (list of {id, fromId,
                     toId}), stage, overrides.
      clear_cache  — Drop cached text measurements.

    Args:
        action: One of: compute, measure, place, route, clear_cache.
        scene_name: Name of a stored scene.
        scene: Inline scene dict (takes precedence over scene_name).
        overrides: Layout config overrides (grid, minPad, stroke, ...).
        boxes: Placed boxes for route.
        connectors: Connector layers for route.
        stage: {width, height} for route (default 1920x1080).

    Returns:
        JSON results or an error message.
    """
    try:
        action = validate_action(action, "layout", _LAYOUT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "clear_cache":
        count = len(_measure_cache)
        _measure_cache.clear()
        return f"Cleared {count} cached measurement(s)."

    if action == "route":
        try:
            validate_list(boxes, "boxes")
            validate_list(connectors, "connectors", min_length=1)
            for i, b in enumerate(boxes):
                validate_box_dict(b, i)
            for i, c in enumerate(connectors):
                if not isinstance(c, dict):
                    raise ValidationError(f"Connector at index {i} must be a dict/object.")
                validate_layer_dict({"kind": "connector", **c}, i)
            if stage is not None:
                validate_stage_dict(stage)
            validate_layout_overrides(overrides)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        placements = [
            BoxPlacement(id=b["id"], rect=Rect(b["x"], b["y"], b["w"], b["h"]))
            for b in boxes
        ]
        conns = [LayerInput.from_dict({"kind": "connector", **c}) for c in connectors]
        st = Stage(stage["width"], stage["height"]) if stage else Stage()
        cfg = LayoutConfig().merged(overrides)
        routed = route_connectors(placements, conns, st, cfg)
        return json.dumps([r.to_dict() for r in routed], indent=2)

    try:
        data = _with_overrides(_resolve_scene(scene_name, scene), overrides)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "compute":
        plan = compute_layout(data, cache=_measure_cache)
        if plan.warnings:
            logger.info("Layout produced %d warning(s)", len(plan.warnings))
        return plan.to_json(indent=2)

    parsed = SceneInput.from_dict(data)
    layers = sorted(parsed.layers, key=lambda layer: (layer.priority, layer.id))
    measured = measure_layers(layers, _measure_cache)

    if action == "measure":
        return json.dumps(
            [{"id": m.id, "kind": m.kind, "w": m.w, "h": m.h} for m in measured],
            indent=2,
        )

    elif action == "place":
        cfg = LayoutConfig().merged(parsed.layout)
        initial = initial_placement(measured, parsed.stage, cfg)
        placed = resolve_overlaps(measured, initial, parsed.stage, cfg)
        return json.dumps(
            [{"id": p.id, **p.rect.to_dict()} for p in sorted(placed, key=lambda p: p.id)],
            indent=2,
        )

    return f"Error: unknown layout action '{action}'."


# ===================================================================
# TOOL 3: inspect — read-only
# ===================================================================

@mcp.tool()
def inspect(
    action: str,
    scene_name: str = "",
    scene: dict[str, Any] | None = None,
) -> str:
    """Read-only inspection of scenes and engine state.

    Actions:
      lint    — Compute plans and classify warnings. 'overlap:' and
                'connectorIntersect:' are hard failures; everything else is
                a note. Params: scene_name or scene; with neither, lints
                every stored scene that has layers.
      config  — Effective layout config. Params: scene_name or scene
                (optional; defaults only without).
      info    — Store and cache summary.

    Returns:
        JSON data.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "info":
        return json.dumps({
            "scenes": len(_scenes),
            "cached_measurements": len(_measure_cache),
        }, indent=2)

    if action == "config":
        if scene is None and not scene_name:
            return json.dumps(LayoutConfig().to_dict(), indent=2)
        try:
            data = _resolve_scene(scene_name, scene)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        return json.dumps(LayoutConfig().merged(data.get("layout")).to_dict(), indent=2)

    # lint
    if scene is not None or scene_name:
        try:
            targets = [(scene_name or "inline", _resolve_scene(scene_name, scene))]
        except ValidationError as exc:
            return f"Error: {exc.message}"
    else:
        targets = sorted(_scenes.items())

    reports: list[dict[str, Any]] = []
    for target_name, data in targets:
        if not data.get("layers"):
            continue
        plan = compute_layout(data, cache=_measure_cache)
        hard, soft = classify_warnings(plan.warnings)
        for w in hard:
            logger.warning("%s: %s", target_name, w)
        reports.append({
            "name": target_name,
            "passed": not hard,
            "errors": hard,
            "notes": soft,
        })
    return json.dumps({
        "passed": all(r["passed"] for r in reports),
        "scenes": reports,
    }, indent=2)


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
