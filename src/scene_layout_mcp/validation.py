"""
Input validation for scene-layout MCP tool parameters.

Provides reusable validators that produce clear error messages for scene
dicts, layer dicts and layout overrides received from agent callers.  The
layout engine itself assumes its preconditions (``grid > 0``,
``maxNudges >= 0``); they are enforced here, at the tool boundary.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any

from scene_layout_mcp.models import _CONFIG_ALIASES, BandHint, LayoutConfig


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
    exclusive_min: bool = False,
) -> float:
    """Validate a numeric value and optional range."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    if min_val is not None:
        if exclusive_min and value <= min_val:
            raise ValidationError(f"'{field_name}' must be > {min_val}, got {value}.")
        if not exclusive_min and value < min_val:
            raise ValidationError(f"'{field_name}' must be >= {min_val}, got {value}.")
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    """Validate an integer value and optional range."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be an integer, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_bool(value: Any, field_name: str) -> bool:
    """Ensure *value* is a boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a boolean, got {type(value).__name__}."
        )
    return value


def validate_list(value: Any, field_name: str, *, min_length: int = 0) -> list:
    """Ensure *value* is a list with at least *min_length* items."""
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list, got {type(value).__name__}."
        )
    if len(value) < min_length:
        raise ValidationError(
            f"'{field_name}' must have at least {min_length} item(s), got {len(value)}."
        )
    return value


def validate_dict(value: Any, field_name: str) -> dict:
    """Ensure *value* is a dict."""
    if not isinstance(value, dict):
        raise ValidationError(
            f"'{field_name}' must be a dict/object, got {type(value).__name__}."
        )
    return value


def validate_file_path(value: Any, field_name: str) -> str:
    """Validate that a file path is a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty file path string.")
    return value.strip()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

_SCENE_ACTIONS = {"CREATE", "LOAD", "LIST", "GET_JSON", "SAVE_PLAN", "DELETE"}
_LAYOUT_ACTIONS = {"COMPUTE", "MEASURE", "PLACE", "ROUTE", "CLEAR_CACHE"}
_INSPECT_ACTIONS = {"LINT", "CONFIG", "INFO"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


# ---------------------------------------------------------------------------
# Scene validators
# ---------------------------------------------------------------------------

_BOX_NUMBER_KEYS = ("x", "y", "w", "h", "maxW", "maxH", "max_w", "max_h")
_BANDS = {b.value for b in BandHint}
_CONFIG_FIELDS = {f.name for f in fields(LayoutConfig)}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_stage_dict(value: Any) -> dict:
    """Validate a ``{width, height}`` stage dict."""
    validate_dict(value, "stage")
    for key in ("width", "height"):
        if key not in value:
            raise ValidationError(f"'stage' missing required key '{key}'.")
        validate_number(value[key], f"stage.{key}", min_val=0, exclusive_min=True)
    return value


def validate_layout_overrides(value: Any) -> dict:
    """Validate partial ``LayoutConfig`` overrides (camelCase or snake_case keys)."""
    if value is None:
        return {}
    validate_dict(value, "layout")
    for key, raw in value.items():
        attr = _CONFIG_ALIASES.get(key, key)
        if raw is None or attr not in _CONFIG_FIELDS:
            continue
        field_name = f"layout.{key}"
        if attr == "grid":
            validate_number(raw, field_name, min_val=0, exclusive_min=True)
        elif attr in ("min_pad", "stroke"):
            validate_number(raw, field_name, min_val=0)
        elif attr == "max_nudges":
            validate_int(raw, field_name, min_val=0)
        elif attr == "allow_font_shrink":
            validate_bool(raw, field_name)
        elif attr == "font_shrink_step":
            validate_number(raw, field_name, min_val=0, max_val=1, exclusive_min=True)
    return value


def validate_layer_dict(layer: Any, index: int) -> None:
    """Validate a single layer dict from a scene's layers list."""
    if not isinstance(layer, dict):
        raise ValidationError(f"Layer at index {index} must be a dict/object.")
    if "id" not in layer:
        raise ValidationError(f"Layer at index {index} missing required key 'id'.")
    if not isinstance(layer["id"], str) or not layer["id"].strip():
        raise ValidationError(f"Layer at index {index}: 'id' must be a non-empty string.")
    if "kind" in layer and not isinstance(layer["kind"], str):
        raise ValidationError(f"Layer at index {index}: 'kind' must be a string.")
    if "role" in layer and layer["role"] is not None and not isinstance(layer["role"], str):
        raise ValidationError(f"Layer at index {index}: 'role' must be a string.")
    if "lock" in layer and not isinstance(layer["lock"], bool):
        raise ValidationError(f"Layer at index {index}: 'lock' must be a boolean.")
    if "priority" in layer:
        p = layer["priority"]
        if not isinstance(p, int) or isinstance(p, bool) or not 1 <= p <= 5:
            raise ValidationError(f"Layer at index {index}: 'priority' must be an integer 1..5.")
    for key in ("minPad", "min_pad"):
        if layer.get(key) is not None and not _is_number(layer[key]):
            raise ValidationError(f"Layer at index {index}: '{key}' must be a number.")
    for key in ("fontSize", "font_size"):
        if layer.get(key) is not None and (not _is_number(layer[key]) or layer[key] <= 0):
            raise ValidationError(f"Layer at index {index}: '{key}' must be a number > 0.")
    for key in ("preferEdge", "prefer_edge"):
        if layer.get(key) is not None and not isinstance(layer[key], bool):
            raise ValidationError(f"Layer at index {index}: '{key}' must be a boolean.")
    if "text" in layer and layer["text"] is not None and not isinstance(layer["text"], str):
        raise ValidationError(f"Layer at index {index}: 'text' must be a string.")
    band = layer.get("band")
    if band is not None and (not isinstance(band, str) or band.lower() not in _BANDS):
        choices = ", ".join(sorted(_BANDS))
        raise ValidationError(
            f"Layer at index {index}: 'band' must be one of [{choices}], got '{band}'."
        )
    if "box" in layer and layer["box"] is not None:
        box = layer["box"]
        if not isinstance(box, dict):
            raise ValidationError(f"Layer at index {index}: 'box' must be a dict/object.")
        for key in _BOX_NUMBER_KEYS:
            if key in box and box[key] is not None and not isinstance(box[key], (int, float)):
                raise ValidationError(f"Layer at index {index}: 'box.{key}' must be a number.")
        for key in ("w", "h", "maxW", "maxH", "max_w", "max_h"):
            if isinstance(box.get(key), (int, float)) and box[key] < 0:
                raise ValidationError(f"Layer at index {index}: 'box.{key}' must be >= 0.")
    if layer.get("kind") == "connector":
        for key in ("fromId", "from_id", "toId", "to_id", "fromRole", "from_role",
                    "toRole", "to_role"):
            if layer.get(key) is not None and not isinstance(layer[key], str):
                raise ValidationError(f"Layer at index {index}: '{key}' must be a string.")


def validate_scene_dict(value: Any) -> dict:
    """Validate the geometry-relevant parts of a scene description."""
    validate_dict(value, "scene")
    if value.get("stage") is not None:
        validate_stage_dict(value["stage"])
    layers = value.get("layers")
    if layers is not None:
        validate_list(layers, "layers")
        seen: set[str] = set()
        for i, layer in enumerate(layers):
            validate_layer_dict(layer, i)
            if layer["id"] in seen:
                raise ValidationError(f"Layer at index {i}: duplicate id '{layer['id']}'.")
            seen.add(layer["id"])
    validate_layout_overrides(value.get("layout"))
    return value


def validate_box_dict(box: Any, index: int) -> None:
    """Validate a placed-box dict ``{id, x, y, w, h}`` for routing."""
    if not isinstance(box, dict):
        raise ValidationError(f"Box at index {index} must be a dict/object.")
    if not isinstance(box.get("id"), str) or not box["id"].strip():
        raise ValidationError(f"Box at index {index}: 'id' must be a non-empty string.")
    for key in ("x", "y", "w", "h"):
        if key not in box:
            raise ValidationError(f"Box at index {index} missing required key '{key}'.")
        if not isinstance(box[key], (int, float)) or isinstance(box[key], bool):
            raise ValidationError(f"Box at index {index}: '{key}' must be a number.")
    if box["w"] < 0 or box["h"] < 0:
        raise ValidationError(f"Box at index {index}: 'w' and 'h' must be >= 0.")
