"""Normalize DynamoDB typed-attribute records into plain Python values.

Records exported from the hosted store arrive wrapped in type envelopes::

    {"id": {"S": "17"}, "goals_2025": {"N": "12"}, "is_new": {"BOOL": false}}

Everything that reads such records goes through :func:`deserialize_item`, so
no envelope ever reaches the models or the engine.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def _number(raw: str) -> int | float:
    try:
        value = Decimal(raw)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a number: {raw!r}")
    if not value.is_finite():
        raise ValueError(f"Not a finite number: {raw!r}")
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def deserialize_value(attribute: dict[str, Any]) -> Any:
    """Unwrap a single ``{"<type>": value}`` envelope."""
    if not isinstance(attribute, dict) or len(attribute) != 1:
        raise ValueError(f"Not a typed attribute: {attribute!r}")

    (kind, raw), = attribute.items()
    if kind in ("L", "SS", "NS") and not isinstance(raw, list):
        raise ValueError(f"Attribute type '{kind}' needs a list, got {raw!r}")
    if kind == "S":
        return raw
    if kind == "N":
        return _number(raw)
    if kind == "BOOL":
        return bool(raw)
    if kind == "NULL":
        return None
    if kind == "L":
        return [deserialize_value(v) for v in raw]
    if kind == "M":
        return deserialize_item(raw)
    if kind == "SS":
        return set(raw)
    if kind == "NS":
        return {_number(v) for v in raw}
    raise ValueError(f"Unsupported attribute type '{kind}'")


def deserialize_item(item: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError(f"Not a DynamoDB item: {item!r}")
    return {key: deserialize_value(value) for key, value in item.items()}


def deserialize_scan(payload: dict[str, Any] | list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Accept a raw scan response (``{"Items": [...]}``) or a bare list of items."""
    items = payload.get("Items", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ValueError("Expected a list of DynamoDB items")
    return [deserialize_item(item) for item in items]
