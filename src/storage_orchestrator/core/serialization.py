from __future__ import annotations

from dataclasses import asdict
from typing import Any


def _normalize(obj: Any, drop_none: bool) -> Any:
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, dict):
        return {
            str(k): _normalize(v, drop_none)
            for k, v in obj.items()
            if not (drop_none and v is None)
        }
    if isinstance(obj, (list, tuple)):
        return [_normalize(v, drop_none) for v in obj]
    return obj


def to_json_safe_dict(obj: Any, drop_none: bool = False) -> dict[str, Any]:
    """
    Convert a dataclass object into a JSON safe dict.

    drop_none removes unset optional fields, which is what request bodies want:
    an absent key means "leave unchanged" to the inventory service.
    """
    raw = asdict(obj)
    normalized = _normalize(raw, drop_none)
    if not isinstance(normalized, dict):
        raise TypeError("expected dict after normalization")
    return normalized


def format_opts(obj: Any) -> str:
    """Render request options for log and error messages."""
    fields = to_json_safe_dict(obj, drop_none=True)
    return ", ".join(f"{k}={fields[k]}" for k in sorted(fields))
