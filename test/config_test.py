from _pytest.monkeypatch import MonkeyPatch
from azure.identity import ClientSecretCredential

from fix_plugin_azurerm.config import AzureClientSecretConfig, AzureRmConfig

TENANT_ID = "00000000-0000-0000-0000-0000000000aa"


def test_defaults() -> None:
    config = AzureRmConfig()
    assert config.subscription_id == ""
    assert config.client_secret is None
    assert config.features.resources_must_be_imported is False
    assert config.polling_interval == 10


def test_from_json() -> None:
    config = AzureRmConfig.from_json(
        {
            "subscription_id": "sub",
            "client_secret": {"tenant_id": TENANT_ID, "client_id": "client", "client_secret": "secret"},
            "features": {"resources_must_be_imported": True},
            "polling_interval": 2,
        }
    )
    assert config.subscription_id == "sub"
    assert config.client_secret == AzureClientSecretConfig(TENANT_ID, "client", "secret")
    assert config.features.resources_must_be_imported is True
    assert config.polling_interval == 2
    assert isinstance(config.credentials(), ClientSecretCredential)


def test_from_env(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("ARM_SUBSCRIPTION_ID", "env-sub")
    monkeypatch.setenv("ARM_TENANT_ID", TENANT_ID)
    monkeypatch.setenv("ARM_CLIENT_ID", "env-client")
    monkeypatch.setenv("ARM_CLIENT_SECRET", "env-secret")
    config = AzureRmConfig.from_env()
    assert config.subscription_id == "env-sub"
    assert config.client_secret == AzureClientSecretConfig(TENANT_ID, "env-client", "env-secret")

    # explicit values win
    config = AzureRmConfig.from_env({"subscription_id": "sub"})
    assert config.subscription_id == "sub"


def test_from_env_incomplete_secret(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv("ARM_SUBSCRIPTION_ID", raising=False)
    monkeypatch.setenv("ARM_TENANT_ID", TENANT_ID)
    monkeypatch.delenv("ARM_CLIENT_ID", raising=False)
    monkeypatch.delenv("ARM_CLIENT_SECRET", raising=False)
    config = AzureRmConfig.from_env()
    assert config.subscription_id == ""
    assert config.client_secret is None
