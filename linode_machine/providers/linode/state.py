"""Mapping of Linode instance statuses to canonical machine states."""

from __future__ import annotations

from enum import Enum

from linode_machine.constants import MachineState


class InstanceStatus(str, Enum):
    """Instance statuses reported by the Linode API.

    ``UNRECOGNIZED`` stands for any value this driver does not know, so a new
    provider status never falls into an existing bucket.
    """

    RUNNING = "running"
    OFFLINE = "offline"
    BOOTING = "booting"
    REBOOTING = "rebooting"
    SHUTTING_DOWN = "shutting_down"
    PROVISIONING = "provisioning"
    DELETING = "deleting"
    MIGRATING = "migrating"
    REBUILDING = "rebuilding"
    CLONING = "cloning"
    RESTORING = "restoring"
    STOPPED = "stopped"
    BILLING_SUSPENSION = "billing_suspension"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, value: str | None) -> InstanceStatus:
        """Return the member for ``value``, or ``UNRECOGNIZED``."""
        if isinstance(value, cls):
            return value
        try:
            status = cls(value)
        except ValueError:
            return cls.UNRECOGNIZED
        return status


STATUS_TO_STATE: dict[InstanceStatus, MachineState] = {
    InstanceStatus.RUNNING: MachineState.RUNNING,
    InstanceStatus.OFFLINE: MachineState.STOPPED,
    InstanceStatus.REBUILDING: MachineState.STOPPED,
    InstanceStatus.MIGRATING: MachineState.STOPPED,
    InstanceStatus.SHUTTING_DOWN: MachineState.STOPPING,
    InstanceStatus.DELETING: MachineState.STOPPING,
    InstanceStatus.PROVISIONING: MachineState.STARTING,
    InstanceStatus.REBOOTING: MachineState.STARTING,
    InstanceStatus.BOOTING: MachineState.STARTING,
    InstanceStatus.CLONING: MachineState.STARTING,
    InstanceStatus.RESTORING: MachineState.STARTING,
}


def map_instance_status(status: str | InstanceStatus | None) -> MachineState:
    """Map a remote instance status to a canonical machine state.

    Total: every input, including unknown statuses and None, yields a state.
    Unknown statuses map to ``MachineState.UNKNOWN``. ``MachineState.ERROR``
    is never returned here; it is reserved for failed status fetches.

    Parameters
    ----------
    status : str | InstanceStatus | None
        Status as reported by the API

    Returns
    -------
    MachineState
        Canonical state
    """
    return STATUS_TO_STATE.get(InstanceStatus.parse(status), MachineState.UNKNOWN)
