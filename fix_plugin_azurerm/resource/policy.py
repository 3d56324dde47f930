from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from attr import define, field
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from fix_plugin_azurerm.azure_client import AzureResourceSpec
from fix_plugin_azurerm.errors import InvariantViolationError, RemoteCallError
from fix_plugin_azurerm.json import flatten_json_to_string
from fix_plugin_azurerm.json_bender import Bender, S
from fix_plugin_azurerm.resource.base import AzureRmDataSource, ProviderMeta, parse_json
from fix_plugin_azurerm.resource_id import extract_part
from fix_plugin_azurerm.schema import ResourceData, Schema, SchemaMap, SchemaType
from fix_plugin_azurerm.types import Json
from fix_plugin_azurerm.validation import no_empty_strings

log = logging.getLogger("fix.plugins.azurerm")
service_name = "policy"
api_version = "2019-09-01"

SubscriptionPolicyDefinitionSpec = AzureResourceSpec(
    service=service_name,
    version=api_version,
    path="/subscriptions/{subscriptionId}/providers/Microsoft.Authorization/policyDefinitions/{policyDefinitionName}",
    path_parameters=["subscriptionId", "policyDefinitionName"],
)
ManagementGroupPolicyDefinitionSpec = AzureResourceSpec(
    service=service_name,
    version=api_version,
    path="/providers/Microsoft.Management/managementGroups/{managementGroupId}/providers/Microsoft.Authorization/policyDefinitions/{policyDefinitionName}",  # noqa: E501
    path_parameters=["managementGroupId", "policyDefinitionName"],
)
BuiltInPolicyDefinitionSpec = AzureResourceSpec(
    service=service_name,
    version=api_version,
    path="/providers/Microsoft.Authorization/policyDefinitions/{policyDefinitionName}",
    path_parameters=["policyDefinitionName"],
)


def _computed_string() -> Schema:
    return Schema(type=SchemaType.string, computed=True)


@define(eq=False, slots=False)
class AzureRmPolicyDefinition:
    kind: ClassVar[str] = "azurerm_policy_definition_record"
    mapping: ClassVar[Dict[str, Bender]] = {
        "id": S("id"),
        "name": S("name"),
        "policy_type": S("properties", "policyType"),
        "mode": S("properties", "mode"),
        "display_name": S("properties", "displayName"),
        "description": S("properties", "description"),
        "policy_rule": S("properties", "policyRule"),
        "metadata": S("properties", "metadata"),
        "parameters": S("properties", "parameters"),
    }
    id: Optional[str] = field(default=None, metadata={"description": "The ID of the policy definition."})
    name: Optional[str] = field(default=None, metadata={"description": "The name of the policy definition."})
    policy_type: Optional[str] = field(default=None, metadata={'description': 'The type of policy definition. Possible values are notspecified, builtin, custom, and static.'})  # fmt: skip
    mode: Optional[str] = field(default=None, metadata={'description': 'The policy definition mode. Some examples are all, indexed, microsoft.keyvault.data.'})  # fmt: skip
    display_name: Optional[str] = field(default=None, metadata={'description': 'The display name of the policy definition.'})  # fmt: skip
    description: Optional[str] = field(default=None, metadata={'description': 'The policy definition description.'})  # fmt: skip
    policy_rule: Optional[Any] = field(default=None, metadata={'description': 'The policy rule for the policy definition.'})  # fmt: skip
    metadata: Optional[Any] = field(default=None, metadata={'description': 'The policy definition metadata.'})  # fmt: skip
    parameters: Optional[Any] = field(default=None, metadata={'description': 'The parameter definitions for parameters used in the policy rule.'})  # fmt: skip

    def to_data(self, d: ResourceData) -> None:
        d.set("name", self.name)
        d.set("policy_type", self.policy_type or "")
        d.set("mode", self.mode or "")
        d.set("display_name", self.display_name or "")
        d.set("description", self.description or "")
        d.set("policy_rule", flatten_json_to_string(self.policy_rule) if self.policy_rule else "")
        d.set("metadata", flatten_json_to_string(self.metadata) if self.metadata else "")
        d.set("parameters", flatten_json_to_string(self.parameters) if self.parameters else "")
        d.set("management_group_id", extract_part(self.id or "", "managementGroups") or "")


class AzureRmPolicyDefinitionDataSource(AzureRmDataSource):
    """
    Look up a policy definition by name.

    With a management group, only the management group scope is searched.
    Otherwise the definitions of the subscription are searched first, then the built-in definitions.
    """

    kind: ClassVar[str] = "azurerm_policy_definition"
    schema: ClassVar[SchemaMap] = {
        "name": Schema(type=SchemaType.string, required=True, validate_func=no_empty_strings),
        "management_group_id": Schema(type=SchemaType.string, optional=True, computed=True),
        "policy_type": _computed_string(),
        "mode": _computed_string(),
        "display_name": _computed_string(),
        "description": _computed_string(),
        "policy_rule": _computed_string(),
        "metadata": _computed_string(),
        "parameters": _computed_string(),
    }

    @classmethod
    def lookups(cls, d: ResourceData) -> List[Tuple[AzureResourceSpec, Dict[str, str]]]:
        name = d.get("name")
        if management_group_id := d.get("management_group_id"):
            return [
                (
                    ManagementGroupPolicyDefinitionSpec,
                    {"managementGroupId": management_group_id, "policyDefinitionName": name},
                )
            ]
        return [
            (SubscriptionPolicyDefinitionSpec, {"policyDefinitionName": name}),
            (BuiltInPolicyDefinitionSpec, {"policyDefinitionName": name}),
        ]

    @classmethod
    def read(cls, d: ResourceData, meta: ProviderMeta) -> None:
        name = d.get("name")
        js: Optional[Json] = None
        for spec, path in cls.lookups(d):
            try:
                js = meta.client.get(spec, **path)
                break
            except ResourceNotFoundError:
                log.debug(f"Policy Definition {name!r} not found in {spec.path}")
            except HttpResponseError as e:
                raise RemoteCallError(f'Error reading Policy Definition "{name}": {e}') from e
        if js is None:
            raise RemoteCallError(f'Policy Definition "{name}" was not found')

        definition = parse_json(js, AzureRmPolicyDefinition, AzureRmPolicyDefinition.mapping)
        if not definition.id:
            raise InvariantViolationError(f'Cannot read Policy Definition "{name}" ID')
        d.set_id(definition.id)
        definition.to_data(d)
