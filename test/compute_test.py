from typing import Any

import pytest
from azure.core.exceptions import HttpResponseError

from conftest import InMemoryMicrosoftClient, SUBSCRIPTION_ID
from fix_plugin_azurerm.errors import (
    ImportAsExistsError,
    InvariantViolationError,
    OperationCancelledError,
    RemoteCallError,
    ResourceIdParseError,
    ValidationError,
)
from fix_plugin_azurerm.resource.base import ProviderMeta
from fix_plugin_azurerm.resource.compute import AzureRmVirtualMachineExtension
from fix_plugin_azurerm.schema import SENSITIVE_PLACEHOLDER, ResourceData, diff, redact, validate_config
from fix_plugin_azurerm.types import Json

VM_ID = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/acctest-rg/providers/Microsoft.Compute/virtualMachines/acctvm"
EXISTING_ID = f"{VM_ID}/extensions/existing-ext"
schema = AzureRmVirtualMachineExtension.schema


def extension_config(**overrides: Any) -> Json:
    config = {
        "name": "hostname",
        "virtual_machine_id": VM_ID,
        "location": "West Europe",
        "publisher": "Microsoft.Azure.Extensions",
        "type": "CustomScript",
        "type_handler_version": "2.0",
        "settings": '{"commandToExecute": "hostname"}',
        "tags": {"environment": "Production"},
    }
    config.update(overrides)
    return {k: v for k, v in config.items() if v is not None}


def create(config: Json, meta: ProviderMeta) -> ResourceData:
    d = ResourceData(schema, config)
    AzureRmVirtualMachineExtension.create(d, meta)
    return d


def test_create_and_read(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    config = extension_config()
    d = create(config, meta)
    assert d.id == f"{VM_ID}/extensions/hostname"
    state = d.state()
    assert state["location"] == "westeurope"
    assert state["virtual_machine_id"] == VM_ID
    assert state["virtual_machine_name"] == "acctvm"
    assert state["resource_group_name"] == "acctest-rg"
    assert state["settings"] == '{"commandToExecute": "hostname"}'
    assert state["auto_upgrade_minor_version"] is False
    assert state["tags"] == {"environment": "Production"}
    # the configuration matches the remote state: nothing to do
    assert diff(schema, state, config).empty
    assert azure_client.count("PUT") == 1


def test_settings_key_order_is_irrelevant(meta: ProviderMeta) -> None:
    config = extension_config(settings='{"fileUris": ["a.sh"], "commandToExecute": "sh a.sh"}')
    state = create(config, meta).state()
    assert state["settings"] == '{"commandToExecute": "sh a.sh", "fileUris": ["a.sh"]}'
    assert diff(schema, state, config).empty


def test_protected_settings_are_kept(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    secret = '{"storageAccountKey": "s3cr3t"}'
    d = create(extension_config(protected_settings=secret), meta)
    # never returned by the API
    assert "protectedSettings" not in azure_client.resources[d.id.lower()]["properties"]
    state = d.state()
    assert state["protected_settings"] == secret
    assert redact(schema, state)["protected_settings"] == SENSITIVE_PLACEHOLDER


def test_create_with_virtual_machine_name(meta: ProviderMeta) -> None:
    config = extension_config(
        virtual_machine_id=None, virtual_machine_name="acctvm", resource_group_name="acctest-rg"
    )
    d = create(config, meta)
    assert d.id == f"{VM_ID}/extensions/hostname"
    assert d.get("virtual_machine_id") == VM_ID


def test_virtual_machine_id_and_name_are_exclusive(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    config = extension_config(virtual_machine_name="acctvm")
    assert "'virtual_machine_id': conflicts with virtual_machine_name" in validate_config(schema, config)
    with pytest.raises(ValidationError, match="only one of `virtual_machine_id` or `virtual_machine_name`"):
        create(config, meta)
    assert azure_client.calls == []


def test_virtual_machine_reference_is_required(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    with pytest.raises(ValidationError, match="one of `virtual_machine_id` or `virtual_machine_name` must be set"):
        create(extension_config(virtual_machine_id=None), meta)
    with pytest.raises(ValidationError, match="`resource_group_name` must be set"):
        create(extension_config(virtual_machine_id=None, virtual_machine_name="acctvm"), meta)
    assert azure_client.calls == []

    errors = validate_config(schema, extension_config(virtual_machine_id=None, tags=None, settings=None))
    assert "'virtual_machine_id': one of `virtual_machine_id`, `virtual_machine_name` must be specified" in errors
    assert validate_config(schema, extension_config(virtual_machine_id=None, virtual_machine_name="acctvm")) == []


def test_invalid_settings(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    config = extension_config(settings="{not json")
    assert any("settings" in e for e in validate_config(schema, config))
    with pytest.raises(ValidationError, match="unable to parse settings"):
        create(config, meta)
    assert azure_client.calls == []


def test_existing_resource_must_be_imported(
    strict_meta: ProviderMeta, azure_client: InMemoryMicrosoftClient
) -> None:
    azure_client.seed("compute", "extensions")
    with pytest.raises(ImportAsExistsError) as ex:
        create(extension_config(name="existing-ext"), strict_meta)
    assert ex.value.resource_id == EXISTING_ID
    assert "needs to be imported into the state" in str(ex.value)
    assert azure_client.count("PUT") == 0


def test_existing_resource_is_adopted(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    azure_client.seed("compute", "extensions")
    d = create(extension_config(name="existing-ext"), meta)
    assert d.id == EXISTING_ID
    assert d.get("settings") == '{"commandToExecute": "hostname"}'


def test_read_existing(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    azure_client.seed("compute", "extensions")
    d = ResourceData(schema, resource_id=EXISTING_ID)
    AzureRmVirtualMachineExtension.read(d, meta)
    assert d.get("name") == "existing-ext"
    assert d.get("virtual_machine_id") == VM_ID
    assert d.get("publisher") == "Microsoft.Azure.Extensions"
    assert d.get("type") == "CustomScript"
    assert d.get("auto_upgrade_minor_version") is True
    assert d.get("settings") == '{"commandToExecute": "hostname && uptime"}'
    assert d.get("tags") == {"environment": "Production"}


def test_read_removed_resource_clears_state(meta: ProviderMeta) -> None:
    state = {"id": f"{VM_ID}/extensions/gone", "name": "gone", "location": "westeurope"}
    d = ResourceData(schema, state=state)
    AzureRmVirtualMachineExtension.read(d, meta)
    assert d.id == ""
    assert d.state() == {}


def test_read_malformed_id(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    d = ResourceData(schema, resource_id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups")
    with pytest.raises(ResourceIdParseError):
        AzureRmVirtualMachineExtension.read(d, meta)
    d = ResourceData(schema, resource_id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg/providers/Microsoft.Compute/virtualMachines/vm")  # noqa: E501
    with pytest.raises(ResourceIdParseError, match="missing the `extensions` element"):
        AzureRmVirtualMachineExtension.read(d, meta)
    assert azure_client.calls == []


def test_update_in_place(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    state = create(extension_config(), meta).state()
    config = extension_config(settings='{"commandToExecute": "uptime"}', auto_upgrade_minor_version=True)
    changes = diff(schema, state, config)
    assert set(changes.changed) == {"settings", "auto_upgrade_minor_version"}
    assert not changes.requires_replacement

    d = ResourceData(schema, config, state)
    assert d.has_change("settings")
    AzureRmVirtualMachineExtension.update(d, meta)
    assert d.id == state["id"]
    assert d.get("settings") == '{"commandToExecute": "uptime"}'
    assert d.get("auto_upgrade_minor_version") is True
    assert azure_client.count("PUT") == 2


def test_location_change_forces_replacement(meta: ProviderMeta) -> None:
    state = create(extension_config(), meta).state()
    assert diff(schema, state, extension_config(location="westeurope")).empty
    changes = diff(schema, state, extension_config(location="North Europe"))
    assert changes.requires_replace == ["location"]


def test_delete(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    config = extension_config()
    state = create(config, meta).state()
    d = ResourceData(schema, config, state)
    AzureRmVirtualMachineExtension.delete(d, meta)
    assert d.id == ""
    assert azure_client.count("DELETE") == 1

    # a subsequent read finds nothing
    d = ResourceData(schema, config, state)
    AzureRmVirtualMachineExtension.read(d, meta)
    assert d.id == ""


def test_remote_failure_carries_context(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    def fail(*args: Any, **kwargs: Any) -> Any:
        raise HttpResponseError("Conflict: operation in progress")

    azure_client.create_or_update = fail  # type: ignore
    with pytest.raises(RemoteCallError) as ex:
        create(extension_config(), meta)
    message = str(ex.value)
    assert 'Virtual Machine Extension "hostname"' in message
    assert 'Virtual Machine "acctvm"' in message
    assert 'Resource Group "acctest-rg"' in message
    assert isinstance(ex.value.__cause__, HttpResponseError)


def test_missing_id_after_create(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    azure_client.get = lambda spec, **kwargs: {"name": "hostname"}  # type: ignore
    with pytest.raises(InvariantViolationError, match="Cannot read"):
        create(extension_config(), meta)


def test_cancelled_wait(meta: ProviderMeta, azure_client: InMemoryMicrosoftClient) -> None:
    meta.stop_event.set()
    with pytest.raises(OperationCancelledError):
        create(extension_config(), meta)
    assert azure_client.count("GET") == 0
