"""CLI argument parsing and parameter conversion utilities."""

from __future__ import annotations

import json
from typing import Any

CLI_PARAMETER_OPTIONS = {
    "token": "linode-token",
    "root_pass": "linode-root-pass",
    "authorized_users": "linode-authorized-users",
    "label": "linode-label",
    "region": "linode-region",
    "instance_type": "linode-instance-type",
    "ssh_port": "linode-ssh-port",
    "ssh_user": "linode-ssh-user",
    "image": "linode-image",
    "docker_port": "linode-docker-port",
    "swap_size": "linode-swap-size",
    "stackscript": "linode-stackscript",
    "stackscript_data": "linode-stackscript-data",
    "private_ip": "linode-create-private-ip",
    "ua_prefix": "linode-ua-prefix",
    "tags": "linode-tags",
    "kernel": "linode-kernel",
}
"""CLI keyword argument name to driver option name."""


def apply_cli_overrides(**params: Any) -> dict[str, Any]:
    """Translate CLI keyword arguments into driver option overrides.

    Parameters
    ----------
    **params : Any
        Keyword arguments as received from Fire; None means "not given"

    Returns
    -------
    dict[str, Any]
        Overrides keyed by option name, without the None values

    Raises
    ------
    ValueError
        If a parameter has no matching driver option
    """
    overrides: dict[str, Any] = {}

    for name, value in params.items():
        if value is None:
            continue
        if name not in CLI_PARAMETER_OPTIONS:
            raise ValueError(f"Unknown parameter: {name}")
        overrides[CLI_PARAMETER_OPTIONS[name]] = normalize_cli_value(value)

    return overrides


def normalize_cli_value(value: Any) -> Any:
    """Undo Fire's parsing of comma separated values into tuples.

    Fire turns ``--tags a,b`` into ``("a", "b")``; options expect the
    comma separated string.

    Parameters
    ----------
    value : Any
        Value as parsed by Fire

    Returns
    -------
    Any
        Comma joined string for tuples and lists, otherwise the value
    """
    if isinstance(value, (tuple, list)):
        return ",".join(str(item) for item in value)
    if isinstance(value, dict):
        # Fire parses --stackscript-data '{"a": "b"}' into a dict
        return json.dumps(value)
    return value


def parse_instance_id(instance_id: str | int) -> int:
    """Parse an instance id given on the command line.

    Raises
    ------
    ValueError
        If the value is not a positive integer
    """
    if isinstance(instance_id, bool):
        raise ValueError(f"Invalid instance id: {instance_id!r}")
    try:
        parsed = int(instance_id)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid instance id: {instance_id!r}") from None
    if parsed <= 0:
        raise ValueError(f"Invalid instance id: {instance_id!r}")
    return parsed
