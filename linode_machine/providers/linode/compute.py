"""Linode instance provisioning for linode-machine."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from linode_machine.constants import (
    BOOT_WAIT_TIMEOUT_SECONDS,
    DEFAULT_SSH_PORT,
    WAITER_MIN_POLL_INTERVAL_SECONDS,
    WAITER_POLL_INTERVAL_SECONDS,
)
from linode_machine.core.config import Configuration
from linode_machine.core.interfaces import ComputeAPI, KeyMaterialProvider
from linode_machine.core.models import Instance
from linode_machine.providers.exceptions import (
    AddressError,
    ConfigurationError,
    OperationCancelledError,
    WaitTimeoutError,
)
from linode_machine.providers.linode.network import split_addresses
from linode_machine.providers.linode.state import InstanceStatus
from linode_machine.utils import split_csv

logger = logging.getLogger(__name__)


class InstanceProvisioner:
    """Create a Linode instance and wait until it is running.

    Creation is not idempotent: every call to :meth:`provision` creates a new
    remote instance, and no step is retried. A failure after the instance
    exists leaves it in place; the id is reported through ``on_created`` and
    on the raised exception where applicable.

    Parameters
    ----------
    api : ComputeAPI
        Remote compute API
    key_manager : KeyMaterialProvider
        Source of the SSH public key authorized on the instance
    boot_timeout : float
        Seconds to wait for the running status (default: 180)
    poll_interval : float
        Seconds between status polls, never below one second
    clock : Callable[[], float] | None
        Monotonic clock. If None, uses ``time.monotonic``
    """

    def __init__(
        self,
        api: ComputeAPI,
        key_manager: KeyMaterialProvider,
        boot_timeout: float = BOOT_WAIT_TIMEOUT_SECONDS,
        poll_interval: float = WAITER_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.api = api
        self.key_manager = key_manager
        self.boot_timeout = boot_timeout
        self.poll_interval = max(poll_interval, WAITER_MIN_POLL_INTERVAL_SECONDS)
        self.clock = clock or time.monotonic

    def build_create_request(
        self, config: Configuration, public_key: str
    ) -> dict[str, Any]:
        """Build the instance create request.

        An instance that asks for a private IP or a specific kernel is created
        powered off, so its boot configuration can be changed before the first
        boot.

        Parameters
        ----------
        config : Configuration
            Validated configuration, StackScript already resolved
        public_key : str
            OpenSSH public key to authorize for root

        Returns
        -------
        dict[str, Any]
            Request accepted by ``ComputeAPI.create_instance``
        """
        request: dict[str, Any] = {
            "region": config.region,
            "type": config.instance_type,
            "root_pass": config.root_password,
            "authorized_keys": [public_key.strip()],
            "image": config.image,
            "swap_size": config.swap_size,
            "private_ip": config.private_ip,
            "booted": not (config.private_ip or config.kernel),
        }

        if config.label:
            request["label"] = config.label

        authorized_users = split_csv(config.authorized_users)
        if authorized_users:
            request["authorized_users"] = authorized_users

        tags = split_csv(config.tags)
        if tags:
            request["tags"] = tags

        if config.stackscript is not None and config.stackscript.is_resolved:
            request["stackscript_id"] = config.stackscript.script_id
            request["stackscript_data"] = dict(config.stackscript_data)
            logger.info("Using StackScript %s", config.stackscript)

        return request

    def provision(
        self,
        config: Configuration,
        key_path: str | Path,
        cancel_event: threading.Event | None = None,
        on_created: Callable[[Instance], None] | None = None,
    ) -> Instance:
        """Create the instance described by ``config``.

        Parameters
        ----------
        config : Configuration
            Validated configuration, StackScript already resolved
        key_path : str | Path
            Private key path handed to the key manager
        cancel_event : threading.Event | None
            Set it to abort the wait for the running status
        on_created : Callable[[Instance], None] | None
            Called with the instance record as soon as the remote instance
            exists, before addresses are checked

        Returns
        -------
        Instance
            Instance with public address, private address when requested,
            and status ``running``

        Raises
        ------
        KeyMaterialError
            If the SSH key cannot be generated or read
        ProviderError
            If any remote call fails
        AddressError
            If a required address is missing from the created instance
        ConfigurationError
            If a private IP or a kernel was requested and the instance has
            no boot configuration
        WaitTimeoutError
            If the instance is not running before the deadline
        OperationCancelledError
            If ``cancel_event`` is set while waiting
        """
        logger.info("Creating Linode machine instance...", extra={"stage": "create"})

        if config.ssh_port != DEFAULT_SSH_PORT:
            logger.info("Using SSH port %d", config.ssh_port)

        public_key = self.key_manager.ensure_key_pair(key_path)
        request = self.build_create_request(config, public_key)

        created = self.api.create_instance(request)
        instance = Instance(
            instance_id=created["id"],
            label=created["label"],
            region=created["region"],
            status=created["status"],
        )

        if on_created is not None:
            on_created(instance)

        self.assign_addresses(instance, created["ipv4"], config.private_ip)

        logger.debug(
            "Created Linode Instance %s (%d), IP address %r, Private IP address %r",
            instance.label,
            instance.instance_id,
            instance.public_ip,
            instance.private_ip,
        )

        if config.private_ip or config.kernel:
            self.configure_and_boot(instance, config)

        logger.info("Waiting for Machine Running...", extra={"stage": "wait"})
        current = self.wait_for_status(
            instance.instance_id, InstanceStatus.RUNNING, cancel_event=cancel_event
        )
        instance.status = current["status"]

        return instance

    def assign_addresses(
        self, instance: Instance, addresses: list[str], private_ip_requested: bool
    ) -> None:
        """Record the public (and requested private) address on ``instance``.

        Raises
        ------
        AddressError
            If no public address exists, or a requested private one is missing
        """
        public_ip, private_ip = split_addresses(addresses)

        if public_ip is None:
            raise AddressError(
                "Linode IP Address is not found",
                instance_id=instance.instance_id,
                stage="addresses",
            )

        if private_ip_requested and private_ip is None:
            raise AddressError(
                "Linode Private IP Address is not found",
                instance_id=instance.instance_id,
                stage="addresses",
            )

        instance.public_ip = public_ip
        if private_ip_requested:
            instance.private_ip = private_ip

    def configure_and_boot(self, instance: Instance, config: Configuration) -> None:
        """Update the boot configuration, then boot the instance.

        The network helper has to be active on the first boot for the guest
        to configure its private interface, and the kernel is read at boot,
        so the config update must complete before the boot request is sent.

        Parameters
        ----------
        instance : Instance
            Powered-off instance; ``config_id`` is recorded on it
        config : Configuration
            Source of the private IP flag and the kernel

        Raises
        ------
        ConfigurationError
            If the instance has no boot configuration
        """
        helpers = {}
        if config.private_ip:
            logger.debug(
                "Enabling Network Helper for Private IP configuration...",
                extra={"stage": "boot-config"},
            )
            helpers["network"] = True
        if config.kernel:
            logger.info("Using kernel %s", config.kernel, extra={"stage": "boot-config"})

        configs = self.api.list_instance_configs(instance.instance_id)
        if not configs:
            raise ConfigurationError(
                f"Linode Config was not found for Linode {instance.instance_id}",
                instance_id=instance.instance_id,
                stage="boot-config",
            )

        config_id = configs[0]["id"]
        self.api.update_instance_config(
            instance.instance_id, config_id, helpers, kernel=config.kernel or None
        )
        self.api.boot_instance(instance.instance_id, config_id)
        instance.config_id = config_id

    def wait_for_status(
        self,
        instance_id: int,
        target: InstanceStatus,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> dict[str, Any]:
        """Poll the instance until it reports ``target``.

        Parameters
        ----------
        instance_id : int
            Instance to poll
        target : InstanceStatus
            Status to wait for
        timeout : float | None
            Seconds before giving up; defaults to ``boot_timeout``
        cancel_event : threading.Event | None
            Set it to stop waiting early

        Returns
        -------
        dict[str, Any]
            Last fetched instance record

        Raises
        ------
        WaitTimeoutError
            If the deadline passes first
        OperationCancelledError
            If ``cancel_event`` is set
        """
        if timeout is None:
            timeout = self.boot_timeout
        if cancel_event is None:
            cancel_event = threading.Event()

        deadline = self.clock() + timeout

        while True:
            if cancel_event.is_set():
                raise OperationCancelledError(
                    f"Wait for Linode {instance_id} was cancelled", stage="wait"
                )

            current = self.api.get_instance(instance_id)
            if InstanceStatus.parse(current["status"]) is target:
                return current

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise WaitTimeoutError(
                    f"wait for machine running failed: Linode {instance_id} still "
                    f"{current['status']!r} after {timeout:g}s",
                    stage="wait",
                )

            logger.debug(
                "Linode %s is %s, waiting for %s", instance_id, current["status"], target.value
            )
            cancel_event.wait(min(self.poll_interval, remaining))
