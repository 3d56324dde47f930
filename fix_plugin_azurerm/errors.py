from typing import List, Optional


class AzureRmError(Exception):
    """Base class of all errors raised by the resource handlers."""


class ValidationError(AzureRmError):
    """
    The configuration can not be applied as is.
    Raised before any remote call is issued.
    """

    def __init__(self, errors: List[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))

    @staticmethod
    def single(message: str) -> "ValidationError":
        return ValidationError([message])


class ResourceIdParseError(AzureRmError, ValueError):
    """A composite resource identifier does not have the expected shape."""


class ImportAsExistsError(AzureRmError):
    """
    A resource already exists at the target identifier, but adopting existing resources is not allowed.
    The resource has to be imported into the state first.
    """

    def __init__(self, kind: str, resource_id: str) -> None:
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be managed this resource needs "
            f"to be imported into the state. Please see the resource documentation for {kind!r} "
            "for more information."
        )


class RemoteCallError(AzureRmError):
    """A call to the management API failed. The original error is available as __cause__."""


class InvariantViolationError(AzureRmError):
    """The management API answered successfully, but with data that can not be correct."""


class OperationCancelledError(AzureRmError):
    """Waiting for a long running operation was aborted via the stop signal."""

    def __init__(self, operation: str, resource_id: Optional[str] = None) -> None:
        self.operation = operation
        self.resource_id = resource_id
        target = f" of {resource_id}" if resource_id else ""
        super().__init__(f"Waiting for {operation}{target} was cancelled")
