"""Utility functions for linode-machine."""

import base64
import logging
import re
import secrets
import sys
from typing import Any

from linode_machine.constants import (
    INSTANCE_LABEL_MAX_LENGTH,
    MAX_VALID_PORT,
    MIN_VALID_PORT,
    ROOT_PASSWORD_ENTROPY_BYTES,
)

LABEL_PUNCTUATION = "._-"


def normalize_instance_label(label: str) -> str:
    """Canonicalize an instance label for the Linode API.

    Applies the Linode label rules:
    - Remove characters other than letters, digits, dot, dash and underscore
    - Trim leading/trailing punctuation
    - Collapse repeated runs of the same punctuation character
    - Limit to 64 characters, then trim trailing punctuation again

    Parameters
    ----------
    label : str
        Raw label, typically the machine name

    Returns
    -------
    str
        Canonical label, possibly empty
    """
    label = re.sub(r"[^A-Za-z0-9._-]", "", label)
    label = label.strip(LABEL_PUNCTUATION)
    label = re.sub(r"([._-])\1+", r"\1", label)
    label = label[:INSTANCE_LABEL_MAX_LENGTH]
    return label.rstrip(LABEL_PUNCTUATION)


def split_csv(value: str | None) -> list[str]:
    """Split a comma separated option value.

    Parameters
    ----------
    value : str | None
        Comma separated list, e.g. ``"alice,bob"``

    Returns
    -------
    list[str]
        Items in order; empty when the value is empty or None
    """
    if not value:
        return []
    return value.split(",")


def generate_root_password() -> str:
    """Generate a high-entropy disposable root password.

    Returns
    -------
    str
        Base64 encoding of 50 cryptographically random bytes
    """
    raw = secrets.token_bytes(ROOT_PASSWORD_ENTROPY_BYTES)
    return base64.b64encode(raw).decode("ascii")


def validate_port(port: int) -> None:
    """Validate port number is in valid range.

    Parameters
    ----------
    port : int
        Port number to validate

    Raises
    ------
    ValueError
        If port is not in valid range 1-65535
    """
    if (
        isinstance(port, bool)
        or not isinstance(port, int)
        or port < MIN_VALID_PORT
        or port > MAX_VALID_PORT
    ):
        raise ValueError(f"Port must be between 1-65535, got {port}")


def log_and_print_error(message: str, *args: Any) -> None:
    """Log error message and print to stderr.

    Parameters
    ----------
    message : str
        Error message with optional format placeholders
    *args : Any
        Format arguments for message
    """
    logging.error(message, *args)
    formatted_msg = message % args if args else message
    print(f"Error: {formatted_msg}", file=sys.stderr)
