"""Remote compute providers and their error hierarchy."""

from __future__ import annotations

from linode_machine.providers.exceptions import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
    ProviderNotFoundError,
)

__all__ = [
    "ProviderError",
    "ProviderAPIError",
    "ProviderConnectionError",
    "ProviderCredentialsError",
    "ProviderNotFoundError",
]
