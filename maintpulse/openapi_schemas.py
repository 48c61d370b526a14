"""
Marshall model dataclasses to OpenAPI 3 schema dicts.
Schemas are derived from maintpulse.models, not written out by hand.
"""
from __future__ import annotations

import dataclasses
import typing
from typing import Any, Literal, get_args, get_origin

from maintpulse import models


def _type_to_schema(typ: Any, refs: dict[type, str]) -> dict[str, Any]:
    """Map a Python type to an OpenAPI schema dict. refs maps dataclass -> component name."""
    if typ is type(None):
        return {"type": "string", "nullable": True}
    origin = get_origin(typ)
    args = get_args(typ)

    # Optional / X | None
    if args and type(None) in args:
        inner = next(a for a in args if a is not type(None))
        s = dict(_type_to_schema(inner, refs))
        s["nullable"] = True
        return s

    if origin is Literal and args and all(isinstance(a, str) for a in args):
        return {"type": "string", "enum": list(args)}

    # list[T] and tuple[T, ...] both go out as JSON arrays
    if origin in (list, tuple):
        item_type = args[0] if args else Any
        return {"type": "array", "items": _type_to_schema(item_type, refs)}

    if origin is dict:
        return {"type": "object", "additionalProperties": True}

    if dataclasses.is_dataclass(typ) and typ in refs:
        return {"$ref": f"#/components/schemas/{refs[typ]}"}

    if typ is str:
        return {"type": "string"}
    if typ is bool:
        return {"type": "boolean"}
    if typ is int:
        return {"type": "integer"}
    if typ is float:
        return {"type": "number"}

    return {"type": "object"}


def _dataclass_to_schema(cls: type, refs: dict[type, str]) -> dict[str, Any]:
    try:
        hints = typing.get_type_hints(cls)
    except Exception:
        hints = {}
    properties: dict[str, Any] = {}
    required: list[str] = []
    for f in dataclasses.fields(cls):
        if f.name.startswith("_") or f.name in _HIDDEN_FIELDS:
            continue
        properties[f.name] = _type_to_schema(hints.get(f.name, f.type), refs)
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            required.append(f.name)
    out: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        out["required"] = required
    if cls.__doc__ and not cls.__doc__.startswith(cls.__name__ + "("):
        doc = cls.__doc__.strip().split("\n")[0]
        if doc:
            out["description"] = doc
    return out


# Never exposed over the dashboard API
_HIDDEN_FIELDS = {"token", "state_dir"}

MODEL_ORDER: list[tuple[type, str]] = [
    (models.NotificationEvent, "NotificationEvent"),
    (models.StoredNotification, "Notification"),
    (models.ClientSettings, "Settings"),
]
REF_MAP: dict[type, str] = {cls: name for cls, name in MODEL_ORDER}


def schemas_from_models() -> dict[str, dict[str, Any]]:
    """Return components/schemas keyed by schema name."""
    return {name: _dataclass_to_schema(cls, REF_MAP) for cls, name in MODEL_ORDER}


def session_schema() -> dict[str, Any]:
    """GET /session response."""
    return {
        "type": "object",
        "properties": {
            "isLoggedIn": {"type": "boolean"},
            "userId": {"type": "string", "nullable": True},
            "role": {"type": "string", "enum": list(models.ROLES), "nullable": True},
            "expiration": {"type": "string", "format": "date-time", "nullable": True},
            "restoredRole": {"type": "string", "nullable": True},
        },
    }


def alert_schema() -> dict[str, Any]:
    """An active transient alert."""
    s = _dataclass_to_schema(models.NotificationEvent, REF_MAP)
    s = {"type": "object", "properties": dict(s["properties"])}
    s["properties"].update({
        "category": {"type": "string"},
        "icon": {"type": "string"},
        "exiting": {"type": "boolean"},
        "remaining_ms": {"type": "integer"},
    })
    return s


def alerts_state_schema() -> dict[str, Any]:
    """GET /alerts response."""
    return {
        "type": "object",
        "properties": {
            "connected": {"type": "boolean"},
            "state": {"type": "string",
                      "enum": ["disconnected", "connecting", "connected", "reconnecting"]},
            "banner": {"type": "string", "nullable": True},
            "channels": {"type": "array", "items": {"type": "string"}},
            "alerts": {"type": "array", "items": {"$ref": "#/components/schemas/Alert"}},
        },
    }
