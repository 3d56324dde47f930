from __future__ import annotations

import logging
from threading import Event
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from attr import define, field
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from fix_plugin_azurerm.azure_client import AzureResourceSpec, MicrosoftClient
from fix_plugin_azurerm.config import AzureRmConfig
from fix_plugin_azurerm.errors import (
    ImportAsExistsError,
    InvariantViolationError,
    RemoteCallError,
    ValidationError,
)
from fix_plugin_azurerm.json import from_json, expand_json_from_string
from fix_plugin_azurerm.json_bender import Bender, bend
from fix_plugin_azurerm.resource_id import ResourceId, parse_resource_id
from fix_plugin_azurerm.schema import ResourceData, Schema, SchemaMap, SchemaType
from fix_plugin_azurerm.types import Json
from fix_plugin_azurerm.utils import normalize_location, suppress_case_difference, suppress_location_difference
from fix_plugin_azurerm.validation import (
    no_empty_strings,
    resource_group_name as validate_resource_group_name,
    tags as validate_tags,
)

log = logging.getLogger("fix.plugins.azurerm")

T = TypeVar("T")
ResourcePath = Dict[str, str]


@define
class ProviderMeta:
    """
    Everything a handler needs besides the attributes: the stateless client handle,
    the provider configuration and the signal to abort long running waits.
    """

    client: MicrosoftClient
    config: AzureRmConfig
    stop_event: Event = field(factory=Event)

    @property
    def resources_must_be_imported(self) -> bool:
        return self.config.features.resources_must_be_imported


def parse_json(json: Json, clazz: Type[T], mapping: Optional[Dict[str, Bender]] = None) -> T:
    """
    Use this method to parse json returned by the management API into a class.
    :param json: the json to parse.
    :param clazz: the class to parse into.
    :param mapping: the optional mapping to apply before parsing.
    :return: The parsed object.
    """
    mapped = bend(mapping, json) if mapping is not None else json
    try:
        return from_json(mapped, clazz)
    except Exception as e:
        raise InvariantViolationError(f"Failed to parse json into {clazz.__name__}: {e}. Source: {json}") from e


def format_path(path: ResourcePath, **display: str) -> str:
    """
    Render the identifying parts of a resource for error messages:
    'Extension "ext" (Virtual Machine "vm" / Resource Group "rg")'
    """
    return " / ".join(f'{label} "{path.get(key, "")}"' for label, key in display.items())


@define(eq=False, slots=False)
class AzureRmResource:
    """
    Base class of all managed resources.

    Each subclass describes one resource type: its attributes (schema), where it lives in the API (api_spec)
    and how the API json is mapped into the typed record (mapping). An instance of the subclass is the typed
    record itself - either decoded from the configuration, or from the API response.

    The create/update, read and delete handlers implement the reconciliation with the management API and
    only call the hooks that differ between resource types.
    """

    kind: ClassVar[str] = "azurerm_resource"
    _kind_display: ClassVar[str] = "Azure Resource"
    # Where the resource lives in the management API.
    api_spec: ClassVar[Optional[AzureResourceSpec]] = None
    # The declared attributes.
    schema: ClassVar[SchemaMap] = {}
    # The mapping to transform the incoming API json into the typed record.
    mapping: ClassVar[Dict[str, Bender]] = {}

    # ---- hooks to be implemented by every resource ----

    @classmethod
    def path_from_data(cls, d: ResourceData) -> ResourcePath:
        """Resolve the path parameters of a new resource from its attributes."""
        raise NotImplementedError

    @classmethod
    def path_from_id(cls, rid: ResourceId) -> ResourcePath:
        """Recover the path parameters from a stored identifier."""
        raise NotImplementedError

    @classmethod
    def describe(cls, path: ResourcePath) -> str:
        return f"{cls._kind_display} {path}"

    @classmethod
    def from_data(cls: Type[AzureRmResourceType], d: ResourceData) -> AzureRmResourceType:
        """Decode the attributes into the typed record. Raises ValidationError."""
        raise NotImplementedError

    def to_api(self) -> Json:
        """The request payload for the create-or-update call."""
        raise NotImplementedError

    def to_data(self, d: ResourceData, rid: ResourceId, meta: ProviderMeta) -> None:
        """Populate all attributes from this record, which reflects the remote state."""
        raise NotImplementedError

    @classmethod
    def from_api(cls: Type[AzureRmResourceType], json: Json) -> AzureRmResourceType:
        return parse_json(json, cls, cls.mapping)

    # ---- handlers ----

    @classmethod
    def spec(cls) -> AzureResourceSpec:
        if cls.api_spec is None:
            raise NotImplementedError(f"{cls.__name__} does not define an api_spec")
        return cls.api_spec

    @classmethod
    def create(cls, d: ResourceData, meta: ProviderMeta) -> None:
        cls.create_or_update(d, meta)

    @classmethod
    def update(cls, d: ResourceData, meta: ProviderMeta) -> None:
        cls.create_or_update(d, meta)

    @classmethod
    def create_or_update(cls, d: ResourceData, meta: ProviderMeta) -> None:
        spec = cls.spec()
        # identifying attributes force a new resource: an existing resource is addressed by its id
        if d.is_new_resource():
            path = cls.path_from_data(d)
        else:
            path = cls.path_from_id(parse_resource_id(d.id))
        desc = cls.describe(path)
        # decode and check everything, before the first remote call is issued
        record = cls.from_data(d)
        body = record.to_api()

        if d.is_new_resource() and meta.resources_must_be_imported:
            cls.ensure_absent(path, desc, meta)

        log.debug(f"Create or update {desc}")
        try:
            operation = meta.client.create_or_update(spec, body, **path)
        except HttpResponseError as e:
            raise RemoteCallError(f"Error creating/updating {desc}: {e}") from e
        operation.wait(meta.stop_event)

        try:
            read = meta.client.get(spec, **path)
        except HttpResponseError as e:
            raise RemoteCallError(f"Error retrieving {desc}: {e}") from e
        if not (resource_id := read.get("id")):
            raise InvariantViolationError(f"Cannot read {desc} ID")

        d.set_id(resource_id)
        cls.read(d, meta)

    @classmethod
    def ensure_absent(cls, path: ResourcePath, desc: str, meta: ProviderMeta) -> None:
        try:
            existing: Optional[Json] = meta.client.get(cls.spec(), **path)
        except ResourceNotFoundError:
            existing = None
        except HttpResponseError as e:
            raise RemoteCallError(f"Error checking for presence of existing {desc}: {e}") from e
        if existing and (existing_id := existing.get("id")):
            raise ImportAsExistsError(cls.kind, existing_id)

    @classmethod
    def read(cls, d: ResourceData, meta: ProviderMeta) -> None:
        rid = parse_resource_id(d.id)
        path = cls.path_from_id(rid)
        desc = cls.describe(path)
        try:
            js = meta.client.get(cls.spec(), **path)
        except ResourceNotFoundError:
            log.debug(f"{desc} was not found - removing from state!")
            d.set_id("")
            return
        except HttpResponseError as e:
            raise RemoteCallError(f"Error reading {desc}: {e}") from e
        cls.from_api(js).to_data(d, rid, meta)

    @classmethod
    def delete(cls, d: ResourceData, meta: ProviderMeta) -> None:
        path = cls.path_from_id(parse_resource_id(d.id))
        desc = cls.describe(path)
        log.debug(f"Delete {desc}")
        try:
            operation = meta.client.delete(cls.spec(), **path)
        except HttpResponseError as e:
            raise RemoteCallError(f"Error deleting {desc}: {e}") from e
        operation.wait(meta.stop_event)
        d.set_id("")


AzureRmResourceType = TypeVar("AzureRmResourceType", bound=AzureRmResource)


class AzureRmDataSource:
    """
    Base class of all data sources: read only lookups, that never manage a resource.
    """

    kind: ClassVar[str] = "azurerm_data_source"
    schema: ClassVar[SchemaMap] = {}

    @classmethod
    def read(cls, d: ResourceData, meta: ProviderMeta) -> None:
        raise NotImplementedError


def require(condition: Any, message: str) -> None:
    if not condition:
        raise ValidationError.single(message)


def expand_json_attribute(d: ResourceData, key: str) -> Optional[Json]:
    """Decode a JSON-string valued attribute. An empty value yields None."""
    if not (value := d.get(key)):
        return None
    try:
        return expand_json_from_string(value)
    except ValueError as e:
        raise ValidationError.single(f"unable to parse {key}: {e}") from e


# ---- attribute declarations shared by multiple resources ----


def location_schema() -> Schema:
    return Schema(
        type=SchemaType.string,
        required=True,
        force_new=True,
        validate_func=no_empty_strings,
        state_func=normalize_location,
        diff_suppress_func=suppress_location_difference,
    )


def tags_schema() -> Schema:
    return Schema(type=SchemaType.map, optional=True, validate_func=validate_tags)


def resource_group_name_schema() -> Schema:
    # The API returns the resource group name in lower case for some resources.
    # BUG: https://github.com/Azure/azure-rest-api-specs/issues/5788
    return Schema(
        type=SchemaType.string,
        required=True,
        force_new=True,
        validate_func=validate_resource_group_name,
        diff_suppress_func=suppress_case_difference,
    )
