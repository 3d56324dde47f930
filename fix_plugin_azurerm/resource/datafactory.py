from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, List, Optional, Union

from attr import define, field
from azure.core.exceptions import HttpResponseError

from fix_plugin_azurerm.azure_client import AzureResourceSpec
from fix_plugin_azurerm.errors import InvariantViolationError, RemoteCallError, ValidationError
from fix_plugin_azurerm.json_bender import Bender, S, F, Bend, AsInt
from fix_plugin_azurerm.resource.base import (
    AzureRmResource,
    ProviderMeta,
    ResourcePath,
    format_path,
    location_schema,
    parse_json,
    require,
    resource_group_name_schema,
)
from fix_plugin_azurerm.resource_id import ResourceId, validate_resource_id
from fix_plugin_azurerm.schema import ResourceData, Schema, SchemaMap, SchemaType
from fix_plugin_azurerm.types import Json
from fix_plugin_azurerm.utils import normalize_location, suppress_case_difference
from fix_plugin_azurerm.validation import data_factory_name, int_between, integration_runtime_name, string_in_slice

log = logging.getLogger("fix.plugins.azurerm")
service_name = "datafactory"

SelfHostedType = "SelfHosted"
ManagedType = "Managed"


@define(eq=False, slots=False)
class IntegrationRuntimeVNetProperties:
    kind: ClassVar[str] = "azurerm_integration_runtime_vnet_properties"
    mapping: ClassVar[Dict[str, Bender]] = {"vnet_id": S("vNetId"), "subnet": S("subnet")}
    vnet_id: Optional[str] = field(default=None, metadata={'description': 'The ID of the VNet that this integration runtime will join.'})  # fmt: skip
    subnet: Optional[str] = field(default=None, metadata={'description': 'The name of the subnet this integration runtime will join.'})  # fmt: skip


@define(eq=False, slots=False)
class IntegrationRuntimeComputeProperties:
    kind: ClassVar[str] = "azurerm_integration_runtime_compute_properties"
    mapping: ClassVar[Dict[str, Bender]] = {
        "location": S("location") >> F(normalize_location),
        "node_size": S("nodeSize"),
        "node_count": S("numberOfNodes") >> AsInt(),
        "max_node_executions": S("maxParallelExecutionsPerNode") >> AsInt(),
        "vnet": S("vNetProperties") >> Bend(IntegrationRuntimeVNetProperties.mapping),
    }
    location: Optional[str] = field(default=None, metadata={'description': 'The location for managed integration runtime.'})  # fmt: skip
    node_size: Optional[str] = field(default=None, metadata={'description': 'The node size requirement to managed integration runtime.'})  # fmt: skip
    node_count: Optional[int] = field(default=None, metadata={'description': 'The required number of nodes for managed integration runtime.'})  # fmt: skip
    max_node_executions: Optional[int] = field(default=None, metadata={'description': 'Maximum parallel executions count per node for managed integration runtime.'})  # fmt: skip
    vnet: Optional[IntegrationRuntimeVNetProperties] = field(default=None, metadata={'description': 'VNet properties for managed integration runtime.'})  # fmt: skip

    @staticmethod
    def from_block(block: Json) -> IntegrationRuntimeComputeProperties:
        vnet_id = block.get("vnet_id") or ""
        subnet = block.get("subnet") or ""
        vnet: Optional[IntegrationRuntimeVNetProperties] = None
        if vnet_id and subnet:
            vnet = IntegrationRuntimeVNetProperties(vnet_id=vnet_id, subnet=subnet)
        elif vnet_id or subnet:
            raise ValidationError.single(
                "Error parsing integration runtime compute properties: "
                "Both `vnet_id` and `subnet` must be provided if setting the vnet properties"
            )
        return IntegrationRuntimeComputeProperties(
            location=normalize_location(block.get("location")),
            node_size=block.get("node_size"),
            node_count=block.get("node_count"),
            max_node_executions=block.get("max_node_executions"),
            vnet=vnet,
        )

    def to_api(self) -> Json:
        result: Json = {
            "location": self.location,
            "nodeSize": self.node_size,
            "numberOfNodes": self.node_count,
            "maxParallelExecutionsPerNode": self.max_node_executions,
        }
        if self.vnet is not None:
            result["vNetProperties"] = {"vNetId": self.vnet.vnet_id, "subnet": self.vnet.subnet}
        return result

    def to_block(self) -> Json:
        block: Json = {
            "location": self.location,
            "node_size": self.node_size,
            "node_count": self.node_count,
            "max_node_executions": self.max_node_executions,
        }
        if self.vnet is not None:
            block["vnet_id"] = self.vnet.vnet_id
            block["subnet"] = self.vnet.subnet
        return block


@define(eq=False, slots=False)
class SelfHostedIntegrationRuntime:
    runtime_type: ClassVar[str] = SelfHostedType
    description: Optional[str] = None

    def to_api(self) -> Json:
        return {"type": self.runtime_type, "description": self.description}


@define(eq=False, slots=False)
class ManagedIntegrationRuntime:
    runtime_type: ClassVar[str] = ManagedType
    description: Optional[str] = None
    compute_properties: Optional[IntegrationRuntimeComputeProperties] = None

    def to_api(self) -> Json:
        result: Json = {"type": self.runtime_type, "description": self.description}
        if self.compute_properties is not None:
            result["typeProperties"] = {"computeProperties": self.compute_properties.to_api()}
        return result


IntegrationRuntimeProperties = Union[SelfHostedIntegrationRuntime, ManagedIntegrationRuntime]


@define(eq=False, slots=False)
class AzureRmDataFactoryIntegrationRuntime(AzureRmResource):
    kind: ClassVar[str] = "azurerm_data_factory_integration_runtime"
    _kind_display: ClassVar[str] = "Data Factory Integration Runtime"
    api_spec: ClassVar[AzureResourceSpec] = AzureResourceSpec(
        service=service_name,
        version="2018-06-01",
        path="/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.DataFactory/factories/{factoryName}/integrationRuntimes/{integrationRuntimeName}",  # noqa: E501
        path_parameters=["subscriptionId", "resourceGroupName", "factoryName", "integrationRuntimeName"],
    )
    schema: ClassVar[SchemaMap] = {
        "name": Schema(
            type=SchemaType.string,
            required=True,
            force_new=True,
            validate_func=integration_runtime_name,
        ),
        "data_factory_name": Schema(
            type=SchemaType.string,
            required=True,
            force_new=True,
            validate_func=data_factory_name,
        ),
        "resource_group_name": resource_group_name_schema(),
        "type": Schema(
            type=SchemaType.string,
            required=True,
            force_new=True,
            validate_func=string_in_slice([SelfHostedType, ManagedType]),
        ),
        "description": Schema(type=SchemaType.string, optional=True),
        "compute_properties": Schema(
            type=SchemaType.list,
            optional=True,
            max_items=1,
            elem={
                "location": location_schema(),
                "node_size": Schema(
                    type=SchemaType.string,
                    required=True,
                    diff_suppress_func=suppress_case_difference,
                ),
                "node_count": Schema(type=SchemaType.int, required=True, validate_func=int_between(2, 8)),
                "max_node_executions": Schema(type=SchemaType.int, required=True, validate_func=int_between(2, 8)),
                "vnet_id": Schema(
                    type=SchemaType.string,
                    optional=True,
                    validate_func=validate_resource_id,
                    diff_suppress_func=suppress_case_difference,
                ),
                "subnet": Schema(type=SchemaType.string, optional=True),
            },
        ),
        "auth_key_1": Schema(type=SchemaType.string, computed=True, sensitive=True),
        "auth_key_2": Schema(type=SchemaType.string, computed=True, sensitive=True),
    }
    name: Optional[str] = None
    properties: Optional[IntegrationRuntimeProperties] = None

    @classmethod
    def path_from_data(cls, d: ResourceData) -> ResourcePath:
        return {
            "resourceGroupName": d.get("resource_group_name"),
            "factoryName": d.get("data_factory_name"),
            "integrationRuntimeName": d.get("name"),
        }

    @classmethod
    def path_from_id(cls, rid: ResourceId) -> ResourcePath:
        return {
            "subscriptionId": rid.subscription_id,
            "resourceGroupName": rid.resource_group,
            "factoryName": rid.segment("factories"),
            "integrationRuntimeName": rid.segment("integrationRuntimes"),
        }

    @classmethod
    def describe(cls, path: ResourcePath) -> str:
        parent = format_path(path, **{"Resource Group": "resourceGroupName", "Data Factory": "factoryName"})
        return f'{cls._kind_display} "{path.get("integrationRuntimeName")}" ({parent})'

    @classmethod
    def from_data(cls, d: ResourceData) -> AzureRmDataFactoryIntegrationRuntime:
        description = d.get("description") or None
        blocks: List[Json] = d.get("compute_properties")
        properties: IntegrationRuntimeProperties
        runtime_type = d.get("type")
        if runtime_type == SelfHostedType:
            require(not blocks, "`compute_properties` can only be specified when `type` is `Managed`")
            properties = SelfHostedIntegrationRuntime(description=description)
        elif runtime_type == ManagedType:
            require(blocks, "`compute_properties` must be specified when `type` is `Managed`")
            compute = IntegrationRuntimeComputeProperties.from_block(blocks[0])
            properties = ManagedIntegrationRuntime(description=description, compute_properties=compute)
        else:
            raise ValidationError.single(f"expected type to be one of {[SelfHostedType, ManagedType]}, got {runtime_type}")
        return cls(name=d.get("name"), properties=properties)

    @classmethod
    def from_api(cls, json: Json) -> AzureRmDataFactoryIntegrationRuntime:
        props: Json = json.get("properties") or {}
        description = props.get("description")
        properties: IntegrationRuntimeProperties
        runtime_type = props.get("type")
        if runtime_type == SelfHostedType:
            properties = SelfHostedIntegrationRuntime(description=description)
        elif runtime_type == ManagedType:
            compute: Optional[IntegrationRuntimeComputeProperties] = None
            if compute_js := S("typeProperties", "computeProperties")(props):
                compute = parse_json(
                    compute_js, IntegrationRuntimeComputeProperties, IntegrationRuntimeComputeProperties.mapping
                )
            properties = ManagedIntegrationRuntime(description=description, compute_properties=compute)
        else:
            raise InvariantViolationError(f"Unsupported integration runtime type {runtime_type!r}: {json.get('id')}")
        return cls(name=json.get("name"), properties=properties)

    def to_api(self) -> Json:
        if self.properties is None:
            raise InvariantViolationError(f"Integration runtime {self.name!r} has no properties")
        return {"properties": self.properties.to_api()}

    def to_data(self, d: ResourceData, rid: ResourceId, meta: ProviderMeta) -> None:
        path = self.path_from_id(rid)
        d.set("name", self.name)
        d.set("resource_group_name", rid.resource_group)
        d.set("data_factory_name", path["factoryName"])

        props = self.properties
        if props is None:
            return
        d.set("description", props.description or "")
        d.set("type", props.runtime_type)
        if isinstance(props, SelfHostedIntegrationRuntime):
            keys = self.list_auth_keys(path, meta)
            d.set("auth_key_1", keys.get("authKey1"))
            d.set("auth_key_2", keys.get("authKey2"))
            d.set("compute_properties", [])
        elif isinstance(props, ManagedIntegrationRuntime):
            compute = props.compute_properties
            d.set("compute_properties", [compute.to_block()] if compute is not None else [])

    def list_auth_keys(self, path: ResourcePath, meta: ProviderMeta) -> Dict[str, Any]:
        try:
            return meta.client.post(self.spec(), "listAuthKeys", **path)
        except HttpResponseError as e:
            raise RemoteCallError(f"Error retrieving auth keys of {self.describe(path)}: {e}") from e
