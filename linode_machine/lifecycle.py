"""Power and removal operations on existing Linode instances."""

from __future__ import annotations

import logging

from linode_machine.constants import MachineState
from linode_machine.core.interfaces import ComputeAPI
from linode_machine.providers.exceptions import ProviderError, ProviderNotFoundError
from linode_machine.providers.linode.state import map_instance_status

logger = logging.getLogger(__name__)


class LifecycleController:
    """Power and removal operations on an existing Linode instance.

    Each operation issues exactly one remote request. Behaviour against an
    instance already in the requested state is left to the API.

    Parameters
    ----------
    api : ComputeAPI
        Remote compute API
    """

    def __init__(self, api: ComputeAPI) -> None:
        self.api = api

    def get_state(self, instance_id: int) -> tuple[MachineState, ProviderError | None]:
        """Fetch the remote status and map it to a machine state.

        The status is always fetched; nothing is served from cache.

        Parameters
        ----------
        instance_id : int
            Instance to query

        Returns
        -------
        tuple[MachineState, ProviderError | None]
            Mapped state and None, or ``MachineState.ERROR`` and the fetch
            error
        """
        try:
            instance = self.api.get_instance(instance_id)
        except ProviderError as e:
            logger.debug("Failed to fetch state of Linode %s: %s", instance_id, e)
            return MachineState.ERROR, e

        return map_instance_status(instance["status"]), None

    def start(self, instance_id: int) -> None:
        """Boot the instance with its default configuration."""
        logger.debug("Start...")
        self.api.boot_instance(instance_id)

    def stop(self, instance_id: int) -> None:
        """Shut the instance down gracefully."""
        logger.debug("Stop...")
        self.api.shutdown_instance(instance_id)

    def kill(self, instance_id: int) -> None:
        """Shut the instance down.

        The Linode API offers no forced power-off, so this sends the same
        graceful shutdown as :meth:`stop`.
        """
        logger.debug("Killing...")
        self.api.shutdown_instance(instance_id)

    def restart(self, instance_id: int) -> None:
        """Reboot the instance with a single reboot request."""
        logger.debug("Restarting...")
        self.api.reboot_instance(instance_id)

    def remove(self, instance_id: int) -> None:
        """Delete the instance.

        An instance that no longer exists counts as removed.

        Raises
        ------
        ProviderError
            For any failure other than "not found"
        """
        logger.info("Removing linode: %s", instance_id)
        try:
            self.api.delete_instance(instance_id)
        except ProviderNotFoundError:
            logger.debug("Linode was already removed")
