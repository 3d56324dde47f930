from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, Optional

from attr import define, field

from fix_plugin_azurerm.azure_client import AzureResourceSpec
from fix_plugin_azurerm.errors import ResourceIdParseError, ValidationError
from fix_plugin_azurerm.json import flatten_json_to_string
from fix_plugin_azurerm.json_bender import Bender, S, F
from fix_plugin_azurerm.resource.base import (
    AzureRmResource,
    ProviderMeta,
    ResourcePath,
    expand_json_attribute,
    format_path,
    location_schema,
    require,
    tags_schema,
)
from fix_plugin_azurerm.resource_id import ResourceId, parse_resource_id, validate_resource_id
from fix_plugin_azurerm.schema import ResourceData, Schema, SchemaMap, SchemaType
from fix_plugin_azurerm.types import Json
from fix_plugin_azurerm.utils import expand_tags, flatten_tags, normalize_location, suppress_json_difference
from fix_plugin_azurerm.validation import json_string, no_empty_strings, resource_group_name

log = logging.getLogger("fix.plugins.azurerm")
service_name = "compute"

VirtualMachineSpec = AzureResourceSpec(
    service=service_name,
    version="2018-06-01",
    path="/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/virtualMachines/{vmName}",  # noqa: E501
    path_parameters=["subscriptionId", "resourceGroupName", "vmName"],
)


@define(eq=False, slots=False)
class AzureRmVirtualMachineExtension(AzureRmResource):
    kind: ClassVar[str] = "azurerm_virtual_machine_extension"
    _kind_display: ClassVar[str] = "Virtual Machine Extension"
    api_spec: ClassVar[AzureResourceSpec] = AzureResourceSpec(
        service=service_name,
        version="2018-06-01",
        path="/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Compute/virtualMachines/{vmName}/extensions/{vmExtensionName}",  # noqa: E501
        path_parameters=["subscriptionId", "resourceGroupName", "vmName", "vmExtensionName"],
    )
    schema: ClassVar[SchemaMap] = {
        "name": Schema(type=SchemaType.string, required=True, force_new=True),
        "virtual_machine_id": Schema(
            type=SchemaType.string,
            optional=True,
            computed=True,
            force_new=True,
            validate_func=validate_resource_id,
            conflicts_with=["virtual_machine_name"],
            exactly_one_of=["virtual_machine_name"],
        ),
        "location": location_schema(),
        "resource_group_name": Schema(
            type=SchemaType.string,
            optional=True,
            computed=True,
            force_new=True,
            deprecated="This property has been deprecated as the resource group is now pulled from the virtual machine ID",  # noqa: E501
            validate_func=resource_group_name,
        ),
        "virtual_machine_name": Schema(
            type=SchemaType.string,
            optional=True,
            computed=True,
            force_new=True,
            deprecated="This property has been deprecated in favour of the virtual_machine_id property",
            validate_func=no_empty_strings,
            conflicts_with=["virtual_machine_id"],
        ),
        "publisher": Schema(type=SchemaType.string, required=True),
        "type": Schema(type=SchemaType.string, required=True),
        "type_handler_version": Schema(type=SchemaType.string, required=True),
        "auto_upgrade_minor_version": Schema(type=SchemaType.bool, optional=True),
        "settings": Schema(
            type=SchemaType.string,
            optional=True,
            validate_func=json_string,
            diff_suppress_func=suppress_json_difference,
        ),
        # due to the sensitive nature, these are not returned by the API
        "protected_settings": Schema(
            type=SchemaType.string,
            optional=True,
            sensitive=True,
            validate_func=json_string,
            diff_suppress_func=suppress_json_difference,
        ),
        "tags": tags_schema(),
    }
    mapping: ClassVar[Dict[str, Bender]] = {
        "name": S("name"),
        "location": S("location") >> F(normalize_location),
        "publisher": S("properties", "publisher"),
        "extension_type": S("properties", "type"),
        "type_handler_version": S("properties", "typeHandlerVersion"),
        "auto_upgrade_minor_version": S("properties", "autoUpgradeMinorVersion"),
        "settings": S("properties", "settings"),
        "tags": S("tags", default={}),
    }
    name: Optional[str] = field(default=None, metadata={"description": "The name of the extension."})
    location: Optional[str] = field(default=None, metadata={"description": "Normalized resource location."})
    publisher: Optional[str] = field(default=None, metadata={'description': 'The name of the extension handler publisher.'})  # fmt: skip
    extension_type: Optional[str] = field(default=None, metadata={'description': 'Specifies the type of the extension; an example is CustomScriptExtension.'})  # fmt: skip
    type_handler_version: Optional[str] = field(default=None, metadata={'description': 'Specifies the version of the script handler.'})  # fmt: skip
    auto_upgrade_minor_version: Optional[bool] = field(default=None, metadata={'description': 'Indicates whether the extension should use a newer minor version if one is available at deployment time.'})  # fmt: skip
    settings: Optional[Dict[str, Any]] = field(default=None, metadata={'description': 'Json formatted public settings for the extension.'})  # fmt: skip
    protected_settings: Optional[Dict[str, Any]] = field(default=None, metadata={'description': 'The extension can contain either protectedSettings or protectedSettingsFromKeyVault or no protected settings at all.'})  # fmt: skip
    tags: Dict[str, str] = field(factory=dict)

    @classmethod
    def path_from_data(cls, d: ResourceData) -> ResourcePath:
        name = d.get("name")
        vm_id = d.get("virtual_machine_id")
        vm_name = d.get("virtual_machine_name")
        if vm_id and vm_name:
            raise ValidationError.single("only one of `virtual_machine_id` or `virtual_machine_name` can be set")
        if vm_name:
            resource_group = d.get("resource_group_name")
            require(resource_group, "`resource_group_name` must be set when `virtual_machine_name` is used")
            return {"resourceGroupName": resource_group, "vmName": vm_name, "vmExtensionName": name}

        require(vm_id, "one of `virtual_machine_id` or `virtual_machine_name` must be set")
        try:
            rid = parse_resource_id(vm_id)
            vm = rid.segment("virtualMachines")
        except ResourceIdParseError as e:
            raise ValidationError.single(f"virtual_machine_id does not contain `virtualMachines`: {vm_id!r}") from e
        return {
            "subscriptionId": rid.subscription_id,
            "resourceGroupName": rid.resource_group,
            "vmName": vm,
            "vmExtensionName": name,
        }

    @classmethod
    def path_from_id(cls, rid: ResourceId) -> ResourcePath:
        return {
            "subscriptionId": rid.subscription_id,
            "resourceGroupName": rid.resource_group,
            "vmName": rid.segment("virtualMachines"),
            "vmExtensionName": rid.segment("extensions"),
        }

    @classmethod
    def describe(cls, path: ResourcePath) -> str:
        parent = format_path(path, **{"Virtual Machine": "vmName", "Resource Group": "resourceGroupName"})
        return f'{cls._kind_display} "{path.get("vmExtensionName")}" ({parent})'

    @classmethod
    def from_data(cls, d: ResourceData) -> AzureRmVirtualMachineExtension:
        return cls(
            name=d.get("name"),
            location=normalize_location(d.get("location")),
            publisher=d.get("publisher"),
            extension_type=d.get("type"),
            type_handler_version=d.get("type_handler_version"),
            auto_upgrade_minor_version=d.get("auto_upgrade_minor_version"),
            settings=expand_json_attribute(d, "settings"),
            protected_settings=expand_json_attribute(d, "protected_settings"),
            tags=expand_tags(d.get("tags")),
        )

    def to_api(self) -> Json:
        properties: Json = {
            "publisher": self.publisher,
            "type": self.extension_type,
            "typeHandlerVersion": self.type_handler_version,
            "autoUpgradeMinorVersion": bool(self.auto_upgrade_minor_version),
        }
        if self.settings is not None:
            properties["settings"] = self.settings
        if self.protected_settings is not None:
            properties["protectedSettings"] = self.protected_settings
        return {"location": self.location, "properties": properties, "tags": self.tags}

    def to_data(self, d: ResourceData, rid: ResourceId, meta: ProviderMeta) -> None:
        vm_name = rid.segment("virtualMachines")
        vm_id = VirtualMachineSpec.resource_path(
            meta.client,
            subscriptionId=rid.subscription_id,
            resourceGroupName=rid.resource_group,
            vmName=vm_name,
        )
        d.set("name", self.name)
        if self.location:
            d.set("location", self.location)
        d.set("virtual_machine_id", vm_id)
        d.set("virtual_machine_name", vm_name)
        d.set("resource_group_name", rid.resource_group)
        d.set("publisher", self.publisher)
        d.set("type", self.extension_type)
        d.set("type_handler_version", self.type_handler_version)
        d.set("auto_upgrade_minor_version", bool(self.auto_upgrade_minor_version))
        # protected_settings are never returned: the configured value is kept
        d.set("settings", flatten_json_to_string(self.settings) if self.settings else "")
        d.set("tags", flatten_tags(self.tags))
