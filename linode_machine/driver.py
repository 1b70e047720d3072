"""Host-facing Linode driver.

:class:`LinodeDriver` implements the uniform contract a host orchestration
tool expects from a machine driver: option discovery, configuration,
pre-create checks, create, power operations, removal, state and connection
details. One driver manages one instance and owns its API client.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from linode_machine.constants import DEFAULT_SSH_PORT, DRIVER_NAME, MachineState
from linode_machine.core.config import OPTIONS, Configuration, ConfigValidator, OptionSpec
from linode_machine.core.interfaces import ComputeAPI, KeyMaterialProvider
from linode_machine.core.models import Instance
from linode_machine.lifecycle import LifecycleController
from linode_machine.providers.exceptions import AddressError, ConfigError, ProviderError
from linode_machine.providers.linode.api import LinodeAPI
from linode_machine.providers.linode.compute import InstanceProvisioner
from linode_machine.providers.linode.network import split_addresses
from linode_machine.providers.linode.stackscripts import StackScriptResolver
from linode_machine.services.ssh import SSHKeyManager

logger = logging.getLogger(__name__)


class LinodeDriver:
    """Machine driver for Linode.

    Parameters
    ----------
    machine_name : str
        Name of the host; the default instance label
    store_path : str
        Root of the host tool's storage directory
    api_factory : Callable[[str, str], ComputeAPI] | None
        Factory called with ``(token, ua_prefix)`` on first API use. If None,
        uses :class:`LinodeAPI`
    key_manager : KeyMaterialProvider | None
        SSH key source. If None, uses :class:`SSHKeyManager`

    Attributes
    ----------
    config : Configuration | None
        Current configuration, None until :meth:`set_config_from_flags`
    instance : Instance | None
        Record of the managed instance; set as soon as the remote instance
        exists and dropped after :meth:`remove`
    instance_id : int | None
        Remote id of the managed instance
    """

    def __init__(
        self,
        machine_name: str = "",
        store_path: str = "",
        api_factory: Callable[[str, str], ComputeAPI] | None = None,
        key_manager: KeyMaterialProvider | None = None,
    ) -> None:
        self.machine_name = machine_name
        self.store_path = store_path
        self.api_factory = api_factory or LinodeAPI
        self.key_manager = key_manager or SSHKeyManager()
        self.config: Configuration | None = None
        self.instance: Instance | None = None
        self.instance_id: int | None = None
        self._api: ComputeAPI | None = None

    def driver_name(self) -> str:
        return DRIVER_NAME

    @staticmethod
    def get_create_flags() -> list[OptionSpec]:
        """Return the options this driver accepts, with env vars and defaults."""
        return list(OPTIONS)

    def set_config_from_flags(self, options: Mapping[str, Any]) -> None:
        """Validate and store driver options.

        Raises
        ------
        ConfigError
            If the options are invalid
        """
        self.config = ConfigValidator().validate(options, self.machine_name)

    @property
    def api(self) -> ComputeAPI:
        """Remote API handle, created on first use from the configured token."""
        if self._api is None:
            config = self._require_config()
            self._api = self.api_factory(config.token, config.ua_prefix)
        return self._api

    def pre_create_check(self) -> None:
        """Resolve the configured StackScript and settle the root password.

        Nothing is created remotely; a missing root password is generated here.

        Raises
        ------
        NotFoundError
            If the StackScript does not exist
        """
        config = ConfigValidator().ensure_root_password(self._require_config())
        self.config = StackScriptResolver(self.api).resolve(config)

    def create(self, cancel_event: threading.Event | None = None) -> Instance:
        """Create the instance and wait until it runs.

        Parameters
        ----------
        cancel_event : threading.Event | None
            Set it to abort the wait for the running status

        Returns
        -------
        Instance
            The running instance
        """
        config = ConfigValidator().ensure_root_password(self._require_config())
        self.config = config
        provisioner = InstanceProvisioner(self.api, self.key_manager)
        self.instance = provisioner.provision(
            config,
            self.get_ssh_key_path(),
            cancel_event=cancel_event,
            on_created=self._record_instance,
        )
        return self.instance

    def _record_instance(self, instance: Instance) -> None:
        self.instance = instance
        self.instance_id = instance.instance_id
        # the server may correct the label and canonicalize region aliases
        self.config = dataclasses.replace(
            self._require_config(), label=instance.label, region=instance.region
        )

    def load_instance(self, instance_id: int) -> Instance:
        """Attach the driver to an existing instance and fetch its record.

        Parameters
        ----------
        instance_id : int
            Remote id of the instance

        Returns
        -------
        Instance
            Fresh record with addresses classified
        """
        current = self.api.get_instance(instance_id)
        public_ip, private_ip = split_addresses(current["ipv4"])
        self.instance_id = instance_id
        self.instance = Instance(
            instance_id=current["id"],
            label=current["label"],
            region=current["region"],
            status=current["status"],
            public_ip=public_ip,
            private_ip=private_ip,
        )
        return self.instance

    def get_state(self) -> tuple[MachineState, ProviderError | None]:
        """Return the canonical state, fetched from the API on every call.

        Returns
        -------
        tuple[MachineState, ProviderError | None]
            The state and None, or ``MachineState.ERROR`` and the error that
            prevented the fetch
        """
        state, error = self._lifecycle().get_state(self._require_instance_id())
        if error is not None:
            logger.error("Unable to get state of Linode %s: %s", self.instance_id, error)
        return state, error

    def start(self) -> None:
        self._lifecycle().start(self._require_instance_id())

    def stop(self) -> None:
        self._lifecycle().stop(self._require_instance_id())

    def kill(self) -> None:
        self._lifecycle().kill(self._require_instance_id())

    def restart(self) -> None:
        self._lifecycle().restart(self._require_instance_id())

    def remove(self) -> None:
        """Delete the instance and forget it; already-deleted counts as success."""
        self._lifecycle().remove(self._require_instance_id())
        self.instance = None
        self.instance_id = None

    def get_ip(self) -> str:
        """Return the public IPv4 address of the instance.

        Raises
        ------
        AddressError
            If no address is known
        """
        if self.instance is None or not self.instance.public_ip:
            raise AddressError("IP address is not set", instance_id=self.instance_id)
        return self.instance.public_ip

    def get_url(self) -> str:
        """Return the service URL, e.g. ``tcp://1.2.3.4:2376``."""
        return f"tcp://{self.get_ip()}:{self._require_config().docker_port}"

    def get_ssh_hostname(self) -> str:
        return self.get_ip()

    def get_ssh_port(self) -> int:
        if self.config is None or not self.config.ssh_port:
            return DEFAULT_SSH_PORT
        return self.config.ssh_port

    def get_ssh_username(self) -> str:
        return self._require_config().ssh_user

    def get_ssh_key_path(self) -> Path:
        return Path(self.store_path) / "machines" / self.machine_name / "id_rsa"

    def _lifecycle(self) -> LifecycleController:
        return LifecycleController(self.api)

    def _require_config(self) -> Configuration:
        if self.config is None:
            raise ConfigError("driver is not configured; call set_config_from_flags first")
        return self.config

    def _require_instance_id(self) -> int:
        if self.instance_id is None:
            raise ConfigError("Linode instance ID is not set")
        return self.instance_id
