"""Per-field coercion helpers for untrusted collaborator documents.

Each helper has one documented fallback and never raises.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Mapping


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_CODE_FENCE = re.compile(r"```(?:json)?\n?|```", re.IGNORECASE)
_MAX_DIGITS = 18


def _leading_int(match: re.Match, default: Any) -> Any:
    digits = match.group(1)
    if len(digits.lstrip("+-")) > _MAX_DIGITS:
        return default
    return int(digits)


def coerce_int(value: Any, default: int = 0) -> int:
    """Parse the leading integer of ``value`` (``"12abc"`` -> 12, ``"3.7"`` -> 3); ``default`` otherwise."""

    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in {float("inf"), float("-inf")}:
            return default
        return int(value)
    match = _LEADING_INT.match(str(value if value is not None else ""))
    if match is None:
        return default
    return _leading_int(match, default)


def coerce_optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return coerce_int(value)
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return _leading_int(match, None)


def coerce_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return value != 0
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "y"}:
        return True
    if normalized in {"0", "false", "no", "n", ""}:
        return False
    return default


def safe_string(value: Any, default: str = "") -> str:
    """Flatten loosely-typed text: objects yield their text/content/value/name member, else JSON."""

    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        for key in ("text", "content", "value", "name"):
            member = value.get(key)
            if isinstance(member, str) and member:
                return member
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def optional_string(value: Any) -> str | None:
    text = safe_string(value).strip()
    return text or None


def coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        value = [value]
    rows: List[str] = []
    for item in value:
        text = safe_string(item).strip()
        if text:
            rows.append(text)
    return rows


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", str(text or "")).strip()


def pick(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key among ``keys`` (wire camelCase first, then snake_case aliases)."""

    for key in keys:
        if key in mapping:
            return mapping[key]
    return default
