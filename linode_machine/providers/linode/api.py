"""Thin adapter over the linode_api4 SDK.

The adapter exposes exactly the remote operations the driver needs and
returns plain dictionaries, so the provisioner and lifecycle controller can
be exercised against an in-memory fake. Every call is attempted once; the
SDK's own retry layer is disabled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from linode_api4 import Config, Instance, LinodeClient, StackScript

from linode_machine import __version__
from linode_machine.constants import PRODUCT_NAME
from linode_machine.providers.linode.errors import handle_linode_errors

logger = logging.getLogger(__name__)


def build_user_agent(ua_prefix: str = "") -> str:
    """Compose the product token sent ahead of the SDK's own User-Agent.

    Parameters
    ----------
    ua_prefix : str
        Optional ``product/version`` supplied by the caller

    Returns
    -------
    str
        ``"[<prefix> ]linode-machine/<version>"``; linode_api4 appends
        ``python-linode_api4/<version>`` to it
    """
    ua = f"{PRODUCT_NAME}/{__version__}"
    if ua_prefix:
        ua = f"{ua_prefix} {ua}"
    return ua


def _region_id(region: Any) -> str:
    return getattr(region, "id", None) or str(region)


def instance_to_dict(instance: Any) -> dict[str, Any]:
    """Flatten an SDK Instance into the fields the driver uses.

    Parameters
    ----------
    instance : linode_api4.Instance
        Loaded instance object

    Returns
    -------
    dict[str, Any]
        Keys: id, label, region, status, ipv4
    """
    return {
        "id": instance.id,
        "label": instance.label,
        "region": _region_id(instance.region),
        "status": instance.status,
        "ipv4": [str(address) for address in instance.ipv4 or []],
    }


def stackscript_to_dict(script: Any) -> dict[str, Any]:
    return {"id": script.id, "username": script.username, "label": script.label}


class LinodeAPI:
    """Remote compute operations used by the driver.

    Parameters
    ----------
    token : str
        Linode API personal access token
    ua_prefix : str
        Optional User-Agent prefix
    client_factory : Callable[..., Any] | None
        Optional factory for the SDK client. If None, uses
        ``linode_api4.LinodeClient``

    Attributes
    ----------
    client : linode_api4.LinodeClient
        SDK client, constructed on first use and reused afterwards
    """

    def __init__(
        self,
        token: str,
        ua_prefix: str = "",
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.token = token
        self.ua_prefix = ua_prefix
        self.client_factory = client_factory or LinodeClient
        self._client: Any | None = None

    @property
    def user_agent(self) -> str:
        return build_user_agent(self.ua_prefix)

    @property
    def client(self) -> Any:
        if self._client is None:
            logger.debug("Creating Linode API client (User-Agent: %s)", self.user_agent)
            self._client = self.client_factory(
                self.token, user_agent=self.user_agent, retry=False
            )
        return self._client

    def create_instance(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Create an instance.

        Parameters
        ----------
        request : Mapping[str, Any]
            Create request with at least ``type`` and ``region``. An optional
            ``stackscript_id`` selects the StackScript; every other key is
            sent as-is.

        Returns
        -------
        dict[str, Any]
            Created instance (see :func:`instance_to_dict`)
        """
        params = dict(request)
        ltype = params.pop("type")
        region = params.pop("region")
        stackscript = params.pop("stackscript_id", None)

        with handle_linode_errors("create"):
            result = self.client.linode.instance_create(
                ltype, region, stackscript=stackscript, **params
            )

        # instance_create returns (instance, password) when it generated the password
        if isinstance(result, tuple):
            result = result[0]

        return instance_to_dict(result)

    def get_instance(self, instance_id: int) -> dict[str, Any]:
        """Fetch the current remote record of an instance."""
        with handle_linode_errors("get-instance"):
            instance = self.client.load(Instance, instance_id)
            return instance_to_dict(instance)

    def list_instance_configs(self, instance_id: int) -> list[dict[str, Any]]:
        """List the boot configurations of an instance.

        Returns
        -------
        list[dict[str, Any]]
            Keys: id, label, helpers (mapping of helper name to bool)
        """
        with handle_linode_errors("list-configs"):
            configs = Instance(self.client, instance_id).configs
            return [
                {
                    "id": config.id,
                    "label": config.label,
                    "helpers": {"network": bool(config.helpers.network)},
                }
                for config in configs
            ]

    def update_instance_config(
        self,
        instance_id: int,
        config_id: int,
        helpers: Mapping[str, bool],
        kernel: str | None = None,
    ) -> None:
        """Change helper settings and the kernel of a boot configuration.

        Parameters
        ----------
        instance_id : int
            Instance owning the configuration
        config_id : int
            Boot configuration to update
        helpers : Mapping[str, bool]
            Helper flags to set, e.g. ``{"network": True}``
        kernel : str | None
            Kernel id, e.g. ``linode/grub2``; None keeps the current one
        """
        with handle_linode_errors("update-config"):
            config = Config(self.client, config_id, instance_id)
            for name, enabled in helpers.items():
                setattr(config.helpers, name, enabled)
            if kernel is not None:
                config.kernel = kernel
            config.save()

    def boot_instance(self, instance_id: int, config_id: int | None = None) -> None:
        """Boot an instance, with a specific configuration when given."""
        with handle_linode_errors("boot"):
            config = None
            if config_id is not None:
                config = Config(self.client, config_id, instance_id)
            Instance(self.client, instance_id).boot(config=config)

    def shutdown_instance(self, instance_id: int) -> None:
        with handle_linode_errors("shutdown"):
            Instance(self.client, instance_id).shutdown()

    def reboot_instance(self, instance_id: int) -> None:
        with handle_linode_errors("reboot"):
            Instance(self.client, instance_id).reboot()

    def delete_instance(self, instance_id: int) -> None:
        with handle_linode_errors("delete"):
            Instance(self.client, instance_id).delete()

    def get_stackscript(self, script_id: int) -> dict[str, Any]:
        """Fetch a StackScript by id.

        Returns
        -------
        dict[str, Any]
            Keys: id, username, label
        """
        with handle_linode_errors("stackscript"):
            script = self.client.load(StackScript, script_id)
            return stackscript_to_dict(script)

    def list_stackscripts(self, label: str) -> list[dict[str, Any]]:
        """List public and own StackScripts carrying ``label``.

        The label filter is applied server-side; owners are not filtered.
        """
        with handle_linode_errors("stackscript"):
            scripts = self.client.linode.stackscripts(StackScript.label == label)
            return [stackscript_to_dict(script) for script in scripts]
