from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Event
from typing import List, Optional, Any, Dict, cast

from attr import define
from azure.core.exceptions import (
    ClientAuthenticationError,
    ResourceExistsError,
    ResourceNotFoundError,
    map_error,
    HttpResponseError,
)
from azure.core.pipeline import PipelineResponse
from azure.core.polling import LROPoller
from azure.core.rest import HttpRequest, HttpResponse
from azure.core.utils import case_insensitive_dict
from azure.mgmt.core.exceptions import ARMErrorFormat
from azure.mgmt.core.polling.arm_polling import ARMPolling
from azure.mgmt.resource import ResourceManagementClient

from fix_plugin_azurerm.config import AzureRmConfig, AzureCredentials
from fix_plugin_azurerm.errors import OperationCancelledError
from fix_plugin_azurerm.types import Json

log = logging.getLogger("fix.plugins.azurerm")

ErrorMap = {
    401: ClientAuthenticationError,
    404: ResourceNotFoundError,
    409: ResourceExistsError,
}


@define
class AzureResourceSpec:
    service: str
    path: str
    version: str
    path_parameters: List[str] = []

    def resource_path(self, client: MicrosoftClient, **kwargs: Any) -> str:
        # Construct lookup map used to fill path parameters
        lookup_map = {"subscriptionId": client.subscription_id, **kwargs}

        path_map = case_insensitive_dict()
        for param in self.path_parameters:
            if lookup_map.get(param, None) is not None:
                path_map[param] = lookup_map[param]
            else:
                raise KeyError(
                    f"{self.service}:{self.path}: Path parameter {param} was not provided as argument. {lookup_map}"
                )
        return self.path.format_map(path_map)

    def request(
        self,
        client: MicrosoftResourceManagementClient,
        method: str = "GET",
        body: Optional[Json] = None,
        action: Optional[str] = None,
        **kwargs: Any,
    ) -> HttpRequest:
        path = self.resource_path(client, **kwargs)
        if action:
            path = f"{path}/{action}"
        url = client.resource_management_client._client.format_url(path)  # pylint: disable=protected-access
        params = {"api-version": self.version}
        return HttpRequest(method=method, url=url, params=params, json=body)


class Operation(ABC):
    """
    Handle of a long running operation.
    """

    @abstractmethod
    def wait(self, stop_event: Optional[Event] = None) -> Optional[Json]:
        """
        Block until the operation reached a terminal state.
        Failures of the operation are raised unchanged.
        :param stop_event: when set, the wait is aborted with an OperationCancelledError.
        :return: the final json of the operation, if there is one.
        """


class ArmOperation(Operation):
    def __init__(self, poller: LROPoller[Optional[Json]], description: str, check_interval: float = 1.0) -> None:
        self.poller = poller
        self.description = description
        self.check_interval = check_interval

    def wait(self, stop_event: Optional[Event] = None) -> Optional[Json]:
        while not self.poller.done():
            if stop_event is not None and stop_event.is_set():
                log.debug(f"Stop requested while waiting for {self.description}")
                raise OperationCancelledError(self.description)
            self.poller.wait(self.check_interval)
        return self.poller.result()


class MicrosoftClient(ABC):
    subscription_id: str

    @abstractmethod
    def get(self, spec: AzureResourceSpec, **kwargs: Any) -> Json:
        """
        Fetch a single resource.
        :raises ResourceNotFoundError: if the resource does not exist.
        """

    @abstractmethod
    def create_or_update(self, spec: AzureResourceSpec, body: Json, **kwargs: Any) -> Operation:
        pass

    @abstractmethod
    def delete(self, spec: AzureResourceSpec, **kwargs: Any) -> Operation:
        pass

    @abstractmethod
    def post(self, spec: AzureResourceSpec, action: str, body: Optional[Json] = None, **kwargs: Any) -> Json:
        """
        Invoke a resource specific action, e.g. listAuthKeys.
        """

    @staticmethod
    def __create_management_client(
        config: AzureRmConfig,
        credential: AzureCredentials,
        subscription_id: Optional[str] = None,
    ) -> MicrosoftClient:
        return MicrosoftResourceManagementClient(config, credential, subscription_id)

    create = __create_management_client


class MicrosoftResourceManagementClient(MicrosoftClient):
    def __init__(
        self,
        config: AzureRmConfig,
        credential: AzureCredentials,
        subscription_id: Optional[str] = None,
    ) -> None:
        self.config = config
        self.credential = credential
        self.subscription_id = subscription_id or config.subscription_id
        self.resource_management_client = ResourceManagementClient(self.credential, self.subscription_id)

    def get(self, spec: AzureResourceSpec, **kwargs: Any) -> Json:
        request = spec.request(self, "GET", **kwargs)
        response = self._send(request, [200]).http_response
        return cast(Json, response.json())

    def create_or_update(self, spec: AzureResourceSpec, body: Json, **kwargs: Any) -> Operation:
        request = spec.request(self, "PUT", body=body, **kwargs)
        return self._long_running(request, [200, 201, 202])

    def delete(self, spec: AzureResourceSpec, **kwargs: Any) -> Operation:
        request = spec.request(self, "DELETE", **kwargs)
        return self._long_running(request, [200, 202, 204])

    def post(self, spec: AzureResourceSpec, action: str, body: Optional[Json] = None, **kwargs: Any) -> Json:
        request = spec.request(self, "POST", body=body, action=action, **kwargs)
        response = self._send(request, [200]).http_response
        return cast(Json, response.json())

    def _long_running(self, request: HttpRequest, expected_status: List[int]) -> Operation:
        pipeline_response = self._send(request, expected_status)
        poller: LROPoller[Optional[Json]] = LROPoller(
            self.resource_management_client._client,  # pylint: disable=protected-access
            pipeline_response,
            _deserialize,
            ARMPolling(self.config.polling_interval),
        )
        return ArmOperation(poller, f"{request.method} {request.url}")

    # noinspection PyProtectedMember
    def _send(self, request: HttpRequest, expected_status: List[int]) -> PipelineResponse:  # type: ignore
        log.debug(f"[AzureRM] {request.method} {request.url}")
        pipeline_response = self.resource_management_client._client._pipeline.run(request, stream=False)
        response = cast(HttpResponse, pipeline_response.http_response)
        # Handle error responses
        if response.status_code not in expected_status:
            map_error(status_code=response.status_code, response=response, error_map=ErrorMap)
            raise HttpResponseError(response=response, error_format=ARMErrorFormat)
        return pipeline_response


def _deserialize(pipeline_response: PipelineResponse) -> Optional[Json]:  # type: ignore
    response = cast(HttpResponse, pipeline_response.http_response)
    if not response.text():
        return None
    body: Dict[str, Any] = response.json()
    return body
