"""
Parse the composite identifiers of the Azure Resource Manager.

An identifier is a path of alternating key/value segments:
/subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{parentType}/{parentName}/{childType}/{childName}

The parser is strict about the shape, but does not know about concrete resource types.
Each handler asks for the segments it needs via `ResourceId.segment`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from attr import define, field
from azure.core.utils import case_insensitive_dict

from fix_plugin_azurerm.errors import ResourceIdParseError


@define
class ResourceId:
    subscription_id: str
    resource_group: str = ""
    provider: str = ""
    # ordered mapping of segment name to value, e.g. {"virtualMachines": "vm1", "extensions": "ext"}
    path: Dict[str, str] = field(factory=case_insensitive_dict)
    raw: str = ""

    def segment(self, name: str) -> str:
        """
        Return the value of the given path segment.
        Segment names are compared case-insensitively, since the API is not consistent in casing.
        """
        if (value := self.path.get(name)) is None:
            raise ResourceIdParseError(f"ID was missing the `{name}` element: {self.raw!r}")
        return value

    def __str__(self) -> str:
        return self.raw


def parse_resource_id(resource_id: str) -> ResourceId:
    """
    Parse an ARM resource identifier.

    :param resource_id: the identifier as returned by the management API.
    :return: the parsed identifier. Subscription, resource group and provider are removed from the path.
    :raises ResourceIdParseError: if the identifier does not have the expected shape.
    """
    if not isinstance(resource_id, str) or not resource_id:
        raise ResourceIdParseError("Cannot parse an empty Azure Resource ID")
    parsed = urlparse(resource_id)
    if parsed.scheme or parsed.netloc:
        raise ResourceIdParseError(f"Cannot parse Azure ID {resource_id!r}: expected a path, not a URL")
    path = parsed.path.strip("/")
    # the id might carry a trailing slash
    components = path.split("/") if path else []
    if len(components) % 2 != 0:
        raise ResourceIdParseError(f"The number of path segments is not divisible by 2 in {resource_id!r}")

    pairs: List[Tuple[str, str]] = []
    for idx in range(0, len(components), 2):
        key, value = components[idx], components[idx + 1]
        if key == "" or value == "":
            raise ResourceIdParseError(f"Key/Value cannot be empty strings. Key: {key!r}, Value: {value!r}")
        pairs.append((key, value))

    segments: Dict[str, str] = case_insensitive_dict()
    provider: Optional[str] = None
    for key, value in pairs:
        # the provider namespace appears once per scope: keep the innermost one
        if key.lower() == "providers":
            provider = value
            continue
        segments[key] = value

    subscription_id = segments.pop("subscriptions", None)
    if not subscription_id:
        raise ResourceIdParseError(f"No subscription ID found in: {resource_id!r}")
    resource_group = segments.pop("resourceGroups", "")

    return ResourceId(
        subscription_id=subscription_id,
        resource_group=resource_group,
        provider=provider or "",
        path=segments,
        raw=resource_id,
    )


def validate_resource_id(value: Any, key: str) -> Tuple[List[str], List[str]]:
    """Attribute validator: the value has to be a parsable resource identifier."""
    if not isinstance(value, str):
        return [], [f"expected type of {key!r} to be string"]
    try:
        parse_resource_id(value)
    except ResourceIdParseError as e:
        return [], [f"Can not parse {key!r} as a resource id: {e}"]
    return [], []


def extract_part(resource_id: str, part: str) -> Optional[str]:
    """
    Extracts a specific part from a resource ID, also from ids that do not live in a subscription.

    Example:
    extract_part("/providers/Microsoft.Management/managementGroups/mg1/providers/...", "managementGroups") -> "mg1"
    """
    id_parts = resource_id.split("/")
    lowered = [p.lower() for p in id_parts]
    try:
        idx = lowered.index(part.lower())
        return id_parts[idx + 1] or None
    except (ValueError, IndexError):
        return None
