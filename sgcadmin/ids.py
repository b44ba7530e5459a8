"""
Identifier normalization.

The backend returns relational fields either populated (``{"_id": ..., "name": ...}``)
or as bare id strings, depending on the endpoint. Everything entering client
state goes through ``resolve_id`` so the rest of the code only sees strings.
"""

from typing import Any, Optional


def resolve_id(value: Any) -> str:
    """Return the identifier of a populated object or a bare id; '' when absent"""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return resolve_id(value.get("_id", value.get("id")))
    inner = getattr(value, "id", None)
    if inner is not None:
        return resolve_id(inner)
    return str(value)


def populated_name(value: Any, key: str = "name") -> Optional[str]:
    """Display name of a populated reference, None for bare ids"""
    if isinstance(value, dict):
        name = value.get(key)
        return name if isinstance(name, str) else None
    return None
