"""Linode provider implementation."""

from __future__ import annotations

from linode_machine.providers.linode.api import LinodeAPI
from linode_machine.providers.linode.compute import InstanceProvisioner
from linode_machine.providers.linode.stackscripts import StackScriptResolver
from linode_machine.providers.linode.state import map_instance_status

__all__ = [
    "LinodeAPI",
    "InstanceProvisioner",
    "StackScriptResolver",
    "map_instance_status",
]
