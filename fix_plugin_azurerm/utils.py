import logging
from typing import Any, Dict, Optional, TypeVar

from fix_plugin_azurerm.json import json_string_equal

T = TypeVar("T")
log = logging.getLogger("fix.plugins.azurerm")


def case_insensitive_eq(left: T, right: T) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return left.lower() == right.lower()
    else:
        return left == right


def normalize_location(location: Any) -> str:
    """
    The API returns locations either as display name ("West Europe") or as name ("westeurope").
    Always use the name.
    """
    if not isinstance(location, str):
        return ""
    return location.replace(" ", "").lower()


# diff suppressors: (attribute name, old value, new value) -> True if the difference is irrelevant


def suppress_case_difference(_: str, old: Any, new: Any) -> bool:
    return case_insensitive_eq(old, new)


def suppress_location_difference(_: str, old: Any, new: Any) -> bool:
    return normalize_location(old) == normalize_location(new)


def suppress_json_difference(_: str, old: Any, new: Any) -> bool:
    return json_string_equal(old, new)


def expand_tags(tags: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {k: str(v) for k, v in (tags or {}).items()}


def flatten_tags(tags: Optional[Dict[str, Any]]) -> Dict[str, str]:
    if not tags:
        return {}
    return {k: v if isinstance(v, str) else str(v) for k, v in tags.items() if v is not None}
