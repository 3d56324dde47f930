from __future__ import annotations

import copy
import json
import os
from threading import Event
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pytest import fixture
from azure.core.exceptions import ResourceNotFoundError

from fix_plugin_azurerm.azure_client import AzureResourceSpec, MicrosoftClient, Operation
from fix_plugin_azurerm.config import AzureRmConfig
from fix_plugin_azurerm.errors import OperationCancelledError
from fix_plugin_azurerm.resource.base import ProviderMeta
from fix_plugin_azurerm.types import Json

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
AUTH_KEYS = {"authKey1": "IR@key-one", "authKey2": "IR@key-two"}


class CompletedOperation(Operation):
    def __init__(self, result: Optional[Json] = None) -> None:
        self.result = result

    def wait(self, stop_event: Optional[Event] = None) -> Optional[Json]:
        if stop_event is not None and stop_event.is_set():
            raise OperationCancelledError("test operation")
        return self.result


class InMemoryMicrosoftClient(MicrosoftClient):
    """
    Behaves like the management API for the resources it holds.
    Resources are keyed by their lower cased id, all calls are recorded.
    """

    def __init__(self, subscription_id: str = SUBSCRIPTION_ID) -> None:
        self.subscription_id = subscription_id
        self.resources: Dict[str, Json] = {}
        self.calls: List[Tuple[str, str]] = []

    def seed(self, service: str, name: str) -> List[Json]:
        path = os.path.dirname(__file__) + f"/files/{service}/{name}.json"
        with open(path) as f:
            resources: List[Json] = json.load(f)
        for js in resources:
            self.resources[js["id"].lower()] = js
        return resources

    def count(self, method: str) -> int:
        return len([c for c in self.calls if c[0] == method])

    def get(self, spec: AzureResourceSpec, **kwargs: Any) -> Json:
        path = spec.resource_path(self, **kwargs)
        self.calls.append(("GET", path))
        if (js := self.resources.get(path.lower())) is None:
            raise ResourceNotFoundError(f"The Resource '{path}' was not found.")
        return copy.deepcopy(js)

    def create_or_update(self, spec: AzureResourceSpec, body: Json, **kwargs: Any) -> Operation:
        path = spec.resource_path(self, **kwargs)
        self.calls.append(("PUT", path))
        existing = self.resources.get(path.lower())
        stored = copy.deepcopy(body)
        # secrets are accepted, but never returned
        stored.get("properties", {}).pop("protectedSettings", None)
        if isinstance(location := stored.get("location"), str):
            stored["location"] = location.replace(" ", "").lower()
        stored["id"] = existing["id"] if existing else path
        stored["name"] = path.rsplit("/", 1)[-1]
        self.resources[path.lower()] = stored
        return CompletedOperation(copy.deepcopy(stored))

    def delete(self, spec: AzureResourceSpec, **kwargs: Any) -> Operation:
        path = spec.resource_path(self, **kwargs)
        self.calls.append(("DELETE", path))
        self.resources.pop(path.lower(), None)
        return CompletedOperation()

    def post(self, spec: AzureResourceSpec, action: str, body: Optional[Json] = None, **kwargs: Any) -> Json:
        path = spec.resource_path(self, **kwargs)
        self.calls.append(("POST", f"{path}/{action}"))
        if path.lower() not in self.resources:
            raise ResourceNotFoundError(f"The Resource '{path}' was not found.")
        if action == "listAuthKeys":
            return dict(AUTH_KEYS)
        raise NotImplementedError(f"Action {action} is not supported")

    @staticmethod
    def create(*args: Any, **kwargs: Any) -> InMemoryMicrosoftClient:
        return InMemoryMicrosoftClient()


@fixture
def config() -> AzureRmConfig:
    return AzureRmConfig(subscription_id=SUBSCRIPTION_ID, polling_interval=0)


@fixture
def azure_client() -> Iterator[InMemoryMicrosoftClient]:
    original = MicrosoftClient.create
    MicrosoftClient.create = InMemoryMicrosoftClient.create  # type: ignore
    yield InMemoryMicrosoftClient()
    MicrosoftClient.create = original  # type: ignore


@fixture
def meta(azure_client: InMemoryMicrosoftClient, config: AzureRmConfig) -> ProviderMeta:
    return ProviderMeta(azure_client, config)


@fixture
def strict_meta(azure_client: InMemoryMicrosoftClient, config: AzureRmConfig) -> ProviderMeta:
    strict = copy.deepcopy(config)
    strict.features.resources_must_be_imported = True
    return ProviderMeta(azure_client, strict)
