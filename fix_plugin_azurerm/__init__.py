import logging
from typing import Dict, Optional, Type

from fix_plugin_azurerm.azure_client import MicrosoftClient
from fix_plugin_azurerm.config import AzureRmConfig
from fix_plugin_azurerm.errors import ValidationError
from fix_plugin_azurerm.resource.base import AzureRmDataSource, AzureRmResource, ProviderMeta
from fix_plugin_azurerm.resource.compute import AzureRmVirtualMachineExtension
from fix_plugin_azurerm.resource.datafactory import AzureRmDataFactoryIntegrationRuntime
from fix_plugin_azurerm.resource.policy import AzureRmPolicyDefinitionDataSource
from fix_plugin_azurerm.schema import SchemaMap, ensure_valid
from fix_plugin_azurerm.types import Json

log = logging.getLogger("fix.plugins.azurerm")


class AzureRmProvider:
    """
    Registry of all resource and data source handlers.
    The host looks up the handler by kind and calls its operations with the attributes and the provider meta.
    """

    resources: Dict[str, Type[AzureRmResource]] = {
        r.kind: r for r in [AzureRmVirtualMachineExtension, AzureRmDataFactoryIntegrationRuntime]
    }
    data_sources: Dict[str, Type[AzureRmDataSource]] = {
        ds.kind: ds for ds in [AzureRmPolicyDefinitionDataSource]
    }

    @staticmethod
    def meta(config: AzureRmConfig, client: Optional[MicrosoftClient] = None) -> ProviderMeta:
        log.debug(f"Create provider meta for subscription {config.subscription_id}")
        return ProviderMeta(client or MicrosoftClient.create(config, config.credentials()), config)

    @classmethod
    def schema_of(cls, kind: str) -> SchemaMap:
        if handler := cls.resources.get(kind):
            return handler.schema
        if data_source := cls.data_sources.get(kind):
            return data_source.schema
        raise ValidationError.single(f"The provider does not support the kind {kind!r}")

    @classmethod
    def validate(cls, kind: str, config: Json) -> None:
        ensure_valid(cls.schema_of(kind), config)
