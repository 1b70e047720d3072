"""Exception hierarchy for the Linode driver.

Every error raised by the driver derives from :class:`DriverError`. The
optional ``stage`` attribute names the step (``"validate"``, ``"create"``,
``"boot"``, ...) in which the error surfaced so the caller gets context
without the original message being rewritten.
"""

from __future__ import annotations


class DriverError(Exception):
    """Base class for all driver errors.

    Parameters
    ----------
    message : str
        Human readable error message
    stage : str | None
        Name of the operation stage in which the error occurred
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ConfigError(DriverError, ValueError):
    """Invalid or missing driver configuration."""


class NotFoundError(DriverError):
    """A StackScript or instance does not exist on the remote side."""


class ProviderError(DriverError):
    """Base class for failures reported by the remote compute API."""


class ProviderAPIError(ProviderError):
    """The Linode API rejected a request.

    Parameters
    ----------
    message : str
        Error message as reported by the API
    status : int | None
        HTTP status code of the failed response
    errors : list[str] | None
        Individual error reasons returned by the API
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        errors: list[str] | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.status = status
        self.errors = list(errors or [])


class ProviderNotFoundError(ProviderAPIError):
    """The API answered 404 for the requested resource."""


class ProviderCredentialsError(ProviderAPIError):
    """The API token is missing, invalid or lacks the required scopes."""


class ProviderConnectionError(ProviderError):
    """The Linode API could not be reached."""


class AddressError(DriverError):
    """A created instance has no usable address.

    The remote instance already exists when this is raised; ``instance_id``
    lets the caller clean it up.
    """

    def __init__(
        self, message: str, instance_id: int | None = None, stage: str | None = None
    ) -> None:
        super().__init__(message, stage=stage)
        self.instance_id = instance_id


class ConfigurationError(DriverError):
    """An instance has no boot configuration where one is required."""

    def __init__(
        self, message: str, instance_id: int | None = None, stage: str | None = None
    ) -> None:
        super().__init__(message, stage=stage)
        self.instance_id = instance_id


class WaitTimeoutError(DriverError, TimeoutError):
    """An instance did not reach the expected status before the deadline."""


class OperationCancelledError(DriverError):
    """A wait was interrupted by an external cancellation request."""


class KeyMaterialError(DriverError):
    """Local SSH key material could not be generated or read."""
