"""JSON rendering of configuration and runtime objects."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import ipaddress
import json
import uuid
from collections.abc import Mapping
from enum import Enum
from pathlib import PurePath
from typing import Any

from .errors import PlatformError

_IP_TYPES = (
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
)


def _key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, (str, int, float)):
        return str(key)
    raise PlatformError.serde(f"key must be a string, got {type(key).__name__}")


def to_data(value: Any) -> Any:
    """Convert a value into plain JSON-compatible data (dicts, lists, scalars)."""
    if isinstance(value, Enum):
        return to_data(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict) and not isinstance(value, type):
        return to_data(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_data(getattr(value, field.name))
            for field in dataclasses.fields(value)
            if not field.name.startswith("_")
        }
    if isinstance(value, Mapping):
        return {_key(k): to_data(v) for k, v in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_data(item) for item in value]
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, _IP_TYPES) or isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    raise PlatformError.serde(f"cannot serialize value of type {type(value).__name__}")


def to_json(value: Any) -> str:
    """Render a value as compact JSON."""
    return json.dumps(to_data(value), separators=(",", ":"), ensure_ascii=False)


def to_pretty_json(value: Any) -> str:
    """Render a value as indented JSON."""
    return json.dumps(to_data(value), indent=2, ensure_ascii=False)