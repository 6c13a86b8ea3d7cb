"""
Helpers for the JSON documents stored in the key-value table.
Records are stored as plain JSON (camelCase keys, ISO timestamps).
"""

import json
from typing import Any, Optional


def encode_value(value: Any) -> str:
    """Serialize a JSON-ready value. Raises TypeError/ValueError on unserializable input."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def decode_value(raw: Optional[str]) -> Any:
    """Parse stored JSON text. None stays None; corrupt text raises ValueError."""
    if raw is None:
        return None
    return json.loads(raw)


def safe_parse_json(raw: Optional[str]) -> Optional[Any]:
    """Parse JSON text safely. Returns None on error."""
    try:
        return decode_value(raw)
    except (json.JSONDecodeError, TypeError):
        return None
