"""
Snapshot encoding and display rendering.

Snapshots are stored as a tagged union so display code dispatches on ``kind``
instead of probing the payload shape::

    {"kind": "object",   "payload": {field: value, ...}}
    {"kind": "list",     "payload": [{field: value, ...}, ...]}
    {"kind": "value",    "payload": scalar}
    {"kind": "redacted"}

A withheld value is the typed ``REDACTED`` marker, stored as
``{"$redacted": true}``. Callers decide what to redact when they write; this
module only recognizes the marker and never recovers what it replaced.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

WITHHELD_TEXT = "[OCULTO POR SEGURANÇA]"

_MARKER_KEY = "$redacted"


class Redacted:
    """Marker for a value withheld from the audit trail. Distinct from None."""

    _instance: Optional["Redacted"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REDACTED"


REDACTED = Redacted()


def is_marker(value: Any) -> bool:
    return value is REDACTED or (isinstance(value, dict) and value.get(_MARKER_KEY) is True and len(value) == 1)


def encode_value(value: Any) -> Any:
    if value is REDACTED:
        return {_MARKER_KEY: True}
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def encode_snapshot(value: Any) -> Optional[dict]:
    if value is None:
        return None
    if value is REDACTED:
        return {"kind": "redacted"}
    if isinstance(value, dict):
        return {"kind": "object", "payload": encode_value(value)}
    if isinstance(value, (list, tuple)):
        return {"kind": "list", "payload": encode_value(value)}
    return {"kind": "value", "payload": encode_value(value)}


def find_unredacted(value: Any, sensitive_fields: Iterable[str]) -> list[str]:
    """Names of sensitive fields that carry a real value instead of the marker."""
    sensitive = {f.lower() for f in sensitive_fields}
    found: list[str] = []

    def walk(v: Any) -> None:
        if isinstance(v, dict):
            for k, item in v.items():
                if str(k).lower() in sensitive and not is_marker(item):
                    found.append(str(k))
                else:
                    walk(item)
        elif isinstance(v, (list, tuple)):
            for item in v:
                walk(item)

    walk(value)
    return sorted(set(found))


def _display(value: Any) -> Any:
    if is_marker(value):
        return WITHHELD_TEXT
    if isinstance(value, dict):
        return {k: _display(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_display(v) for v in value]
    return value


def render_snapshot(stored: Optional[dict]) -> Optional[dict]:
    """Turn a stored snapshot into a display structure: field list, table or value."""
    if stored is None:
        return None
    kind = stored.get("kind")
    payload = stored.get("payload")

    if kind == "redacted" or is_marker(payload):
        return {"kind": "redacted", "display": WITHHELD_TEXT}

    if kind == "object":
        return {
            "kind": "fields",
            "fields": [{"field": k, "value": _display(v)} for k, v in (payload or {}).items()],
        }

    if kind == "list":
        items = payload or []
        columns: list[str] = []
        for item in items:
            if isinstance(item, dict):
                columns.extend(k for k in item if k not in columns)
        if not columns:
            return {"kind": "table", "columns": ["value"], "rows": [[_display(i)] for i in items]}
        rows = [
            [_display(item.get(c)) for c in columns] if isinstance(item, dict) else [_display(item)]
            for item in items
        ]
        return {"kind": "table", "columns": columns, "rows": rows}

    if kind == "value":
        return {"kind": "value", "value": _display(payload)}

    # unknown tag
    return {"kind": "redacted", "display": WITHHELD_TEXT}
