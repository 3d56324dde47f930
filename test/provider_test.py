import pytest

from conftest import InMemoryMicrosoftClient
from fix_plugin_azurerm import AzureRmProvider
from fix_plugin_azurerm.config import AzureRmConfig
from fix_plugin_azurerm.errors import ValidationError


def test_registry() -> None:
    assert set(AzureRmProvider.resources) == {
        "azurerm_virtual_machine_extension",
        "azurerm_data_factory_integration_runtime",
    }
    assert set(AzureRmProvider.data_sources) == {"azurerm_policy_definition"}
    for handler in AzureRmProvider.resources.values():
        for operation in ("create", "read", "update", "delete"):
            assert callable(getattr(handler, operation))


def test_meta(azure_client: InMemoryMicrosoftClient, config: AzureRmConfig) -> None:
    # the client factory is replaced by the azure_client fixture
    meta = AzureRmProvider.meta(config)
    assert isinstance(meta.client, InMemoryMicrosoftClient)
    assert meta.config is config
    assert not meta.stop_event.is_set()
    assert not meta.resources_must_be_imported


def test_validate() -> None:
    AzureRmProvider.validate("azurerm_policy_definition", {"name": "p"})
    with pytest.raises(ValidationError) as ex:
        AzureRmProvider.validate("azurerm_data_factory_integration_runtime", {"name": "ir"})
    assert "The argument 'data_factory_name' is required, but no definition was found." in ex.value.errors
    with pytest.raises(ValidationError, match="does not support the kind"):
        AzureRmProvider.validate("azurerm_storage_account", {})
