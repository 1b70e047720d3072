"""Translation of Linode SDK failures into driver exceptions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import requests
from linode_api4.errors import ApiError, UnexpectedResponseError

from linode_machine.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderNotFoundError,
)

logger = logging.getLogger(__name__)

CREDENTIAL_ERROR_STATUSES = frozenset((401, 403))


@contextmanager
def handle_linode_errors(stage: str | None = None) -> Iterator[None]:
    """Convert linode_api4 and requests exceptions raised in the block.

    The original message, HTTP status and error reasons are kept; the
    original exception is chained as ``__cause__``.

    Parameters
    ----------
    stage : str | None
        Operation stage recorded on the raised driver exception

    Raises
    ------
    ProviderCredentialsError
        For 401/403 responses
    ProviderNotFoundError
        For 404 responses
    ProviderAPIError
        For any other API error or an unexpected response
    ProviderConnectionError
        If the API could not be reached
    """
    try:
        yield
    except ApiError as e:
        status = getattr(e, "status", None)
        errors = list(getattr(e, "errors", None) or [])
        message = str(e)
        logger.debug("Linode API error (status=%s): %s", status, message)

        if status in CREDENTIAL_ERROR_STATUSES:
            raise ProviderCredentialsError(
                message, status=status, errors=errors, stage=stage
            ) from e
        if status == 404:
            raise ProviderNotFoundError(
                message, status=status, errors=errors, stage=stage
            ) from e
        raise ProviderAPIError(message, status=status, errors=errors, stage=stage) from e
    except UnexpectedResponseError as e:
        raise ProviderAPIError(
            str(e), status=getattr(e, "status", None), stage=stage
        ) from e
    except requests.exceptions.RequestException as e:
        raise ProviderConnectionError(
            f"Unable to reach the Linode API: {e}", stage=stage
        ) from e
