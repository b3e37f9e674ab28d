from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

_PLACEHOLDER_UNSAFE = re.compile(r"[^A-Za-z0-9_]+")
_ARRAY_PREFIX = re.compile(r"^\[\d*\]")

_INT_TYPES = {
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "byte", "rune",
}
_FLOAT_TYPES = {"float32", "float64"}
_TIME_TYPES = {"time.Time"}
_RAW_JSON_TYPES = {"json.RawMessage"}


def placeholder(name: str) -> str:
    """`<name>` with anything but word characters squashed to '_'."""
    return f"<{_PLACEHOLDER_UNSAFE.sub('_', name)}>"


def _split_map_type(go_type: str) -> Optional[tuple[str, str]]:
    # map[K]V with K possibly containing brackets, e.g. map[[2]int]string
    if not go_type.startswith("map["):
        return None
    depth = 0
    for i in range(3, len(go_type)):
        ch = go_type[i]
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return go_type[4:i], go_type[i + 1 :]
    return None


def sample_value(go_type: str, field_name: str, now: Optional[datetime] = None) -> Any:
    """
    A JSON-ready example value for a field of the given Go type.

    Nested structs are not expanded: any other capitalized type yields one
    placeholder field.
    """
    t = go_type.strip()

    if t.startswith("*"):
        return sample_value(t[1:], field_name, now)

    arr = _ARRAY_PREFIX.match(t)
    if arr:
        return [sample_value(t[arr.end() :], field_name, now)]

    if _split_map_type(t) is not None:
        return {"<key>": "<value>"}

    if t in _INT_TYPES:
        return 0
    if t in _FLOAT_TYPES:
        return 0.0
    if t == "bool":
        return False
    if t == "string":
        return placeholder(field_name)
    if t in _TIME_TYPES:
        moment = now or datetime.now(timezone.utc)
        return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if t in _RAW_JSON_TYPES:
        return {}

    type_name = t.rsplit(".", 1)[-1]
    if type_name[:1].isupper():
        return {"field": "<value>"}

    return placeholder(field_name)
