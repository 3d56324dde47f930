import os
from typing import ClassVar, Optional, Union

from attr import define, field
from azure.identity import DefaultAzureCredential, ClientSecretCredential

from fix_plugin_azurerm.json import from_json
from fix_plugin_azurerm.types import Json

AzureCredentials = Union[DefaultAzureCredential, ClientSecretCredential]


@define
class AzureClientSecretConfig:
    kind: ClassVar[str] = "azure_client_secret"
    tenant_id: str = field(metadata={"description": "Azure tenant ID"})
    client_id: str = field(metadata={"description": "Azure client ID"})
    client_secret: str = field(metadata={"description": "Azure client secret"})


@define
class AzureRmFeaturesConfig:
    kind: ClassVar[str] = "azurerm_features"
    resources_must_be_imported: bool = field(
        default=False,
        metadata={
            "description": "Refuse to create a resource, if a resource with the same identifier already exists.\n"
            "The existing resource has to be imported into the state instead of being silently adopted."
        },
    )


@define
class AzureRmConfig:
    kind: ClassVar[str] = "azurerm"

    subscription_id: str = field(default="", metadata={"description": "The subscription to manage resources in."})
    client_secret: Optional[AzureClientSecretConfig] = field(
        default=None,
        metadata={
            "description": "If you can not provide access via the environment, define access with a client secret.\nIf no secret is provided the default credential chain will be used.\nSee https://docs.microsoft.com/en-us/azure/developer/python/azure-sdk-authenticate?tabs=cmd#environment-variables for more information."  # noqa: E501
        },
    )
    features: AzureRmFeaturesConfig = field(
        factory=AzureRmFeaturesConfig, metadata={"description": "Feature switches of the provider."}
    )
    polling_interval: float = field(
        default=10,
        metadata={"description": "Seconds to wait between two status checks of a long running operation."},
    )

    def credentials(self) -> AzureCredentials:
        if cs := self.client_secret:
            return ClientSecretCredential(
                tenant_id=cs.tenant_id,
                client_id=cs.client_id,
                client_secret=cs.client_secret,
            )

        return DefaultAzureCredential(process_timeout=300)

    @staticmethod
    def from_json(js: Json) -> "AzureRmConfig":
        return from_json(js, AzureRmConfig)

    @staticmethod
    def from_env(js: Optional[Json] = None) -> "AzureRmConfig":
        """
        Read the configuration from the given json and fill missing values from the environment.
        ARM_SUBSCRIPTION_ID, ARM_TENANT_ID, ARM_CLIENT_ID and ARM_CLIENT_SECRET are used.
        """
        config = from_json(js or {}, AzureRmConfig)
        if not config.subscription_id:
            config.subscription_id = os.environ.get("ARM_SUBSCRIPTION_ID", "")
        if config.client_secret is None:
            tenant_id = os.environ.get("ARM_TENANT_ID")
            client_id = os.environ.get("ARM_CLIENT_ID")
            client_secret = os.environ.get("ARM_CLIENT_SECRET")
            if tenant_id and client_id and client_secret:
                config.client_secret = AzureClientSecretConfig(tenant_id, client_id, client_secret)
        return config
