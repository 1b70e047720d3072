"""CLI entry point for linode-machine."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import fire

from linode_machine.cli.parsing import apply_cli_overrides, parse_instance_id
from linode_machine.constants import EXIT_CONFIG_ERROR, EXIT_ERROR
from linode_machine.core.config import ConfigLoader
from linode_machine.core.signals import CancelOnSignals
from linode_machine.driver import LinodeDriver
from linode_machine.logging import StreamFormatter, StreamRoutingFilter
from linode_machine.providers.exceptions import (
    ConfigError,
    DriverError,
    ProviderAPIError,
    ProviderCredentialsError,
)
from linode_machine.utils import log_and_print_error

DEFAULT_STORE_PATH = "~/.linode-machine"

NOISY_LOGGERS = ("urllib3", "paramiko", "linode_api4")


class LinodeMachineCLI:
    """Create and manage a Linode machine.

    Parameters
    ----------
    driver_factory : Callable[..., LinodeDriver] | None
        Optional factory called with ``machine_name`` and ``store_path``.
        If None, uses :class:`LinodeDriver`.
    config_loader : ConfigLoader | None
        Optional option loader. If None, uses :class:`ConfigLoader`.
    """

    def __init__(
        self,
        driver_factory: Callable[..., LinodeDriver] | None = None,
        config_loader: ConfigLoader | None = None,
    ) -> None:
        self._driver_factory = driver_factory or LinodeDriver
        self._config_loader = config_loader or ConfigLoader()

    def _build_driver(
        self,
        name: str = "",
        store_path: str = DEFAULT_STORE_PATH,
        config: str | None = None,
        **params: Any,
    ) -> LinodeDriver:
        options = self._config_loader.get_options(
            config_path=config, overrides=apply_cli_overrides(**params)
        )
        driver = self._driver_factory(
            machine_name=name, store_path=str(Path(store_path).expanduser())
        )
        driver.set_config_from_flags(options)
        return driver

    def _attach(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> LinodeDriver:
        driver = self._build_driver(config=config, token=token, ua_prefix=ua_prefix)
        driver.instance_id = parse_instance_id(instance_id)
        return driver

    def flags(self, json_output: bool = False) -> list[dict[str, Any]] | str:
        """List the driver options with their environment variables and defaults.

        Parameters
        ----------
        json_output : bool
            Output result as JSON
        """
        result = [
            {
                "name": spec.name,
                "env_var": spec.env_var,
                "type": spec.type.__name__,
                "default": spec.default,
                "usage": spec.usage,
            }
            for spec in LinodeDriver.get_create_flags()
        ]
        return json.dumps(result, indent=2) if json_output else result

    def create(
        self,
        name: str = "",
        store_path: str = DEFAULT_STORE_PATH,
        config: str | None = None,
        token: str | None = None,
        region: str | None = None,
        instance_type: str | None = None,
        image: str | None = None,
        label: str | None = None,
        root_pass: str | None = None,
        ssh_port: int | None = None,
        ssh_user: str | None = None,
        docker_port: int | None = None,
        swap_size: int | None = None,
        stackscript: str | None = None,
        stackscript_data: str | None = None,
        private_ip: bool | None = None,
        authorized_users: str | None = None,
        tags: str | None = None,
        ua_prefix: str | None = None,
        kernel: str | None = None,
        json_output: bool = False,
    ) -> dict[str, Any] | str:
        """Create a Linode instance and wait until it is running.

        Parameters
        ----------
        name : str
            Machine name; default instance label and key directory name
        store_path : str
            Directory holding machine SSH keys
        config : str | None
            YAML options file (default: LINODE_MACHINE_CONFIG or linode-machine.yaml)
        json_output : bool
            Output result as JSON

        Other parameters override the matching ``linode-*`` options.

        Returns
        -------
        dict[str, Any] | str
            Instance details, or their JSON encoding
        """
        driver = self._build_driver(
            name=name,
            store_path=store_path,
            config=config,
            token=token,
            region=region,
            instance_type=instance_type,
            image=image,
            label=label,
            root_pass=root_pass,
            ssh_port=ssh_port,
            ssh_user=ssh_user,
            docker_port=docker_port,
            swap_size=swap_size,
            stackscript=stackscript,
            stackscript_data=stackscript_data,
            private_ip=private_ip,
            authorized_users=authorized_users,
            tags=tags,
            ua_prefix=ua_prefix,
            kernel=kernel,
        )
        driver.pre_create_check()

        try:
            with CancelOnSignals():
                instance = driver.create()
        except DriverError:
            if driver.instance_id is not None:
                log_and_print_error(
                    "Linode %s was created but is not usable; remove it with: "
                    "linode-machine remove %s",
                    driver.instance_id,
                    driver.instance_id,
                )
            raise

        result = {
            "instance_id": instance.instance_id,
            "label": instance.label,
            "region": instance.region,
            "status": instance.status,
            "public_ip": instance.public_ip,
            "private_ip": instance.private_ip,
            "url": driver.get_url(),
            "ssh_host": driver.get_ssh_hostname(),
            "ssh_port": driver.get_ssh_port(),
            "ssh_user": driver.get_ssh_username(),
            "ssh_key": str(driver.get_ssh_key_path()),
        }
        return json.dumps(result, indent=2) if json_output else result

    def state(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Print the canonical state of an instance.

        Raises
        ------
        ProviderError
            If the state could not be fetched
        """
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        state, error = driver.get_state()
        if error is not None:
            raise error
        return state.value

    def url(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Print the service URL of an instance."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        driver.load_instance(driver.instance_id)
        return driver.get_url()

    def start(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Boot an instance."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        driver.start()
        return f"Linode {driver.instance_id} starting"

    def stop(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Shut an instance down."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        driver.stop()
        return f"Linode {driver.instance_id} stopping"

    def kill(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Shut an instance down (same request as stop)."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        driver.kill()
        return f"Linode {driver.instance_id} stopping"

    def restart(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Reboot an instance."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        driver.restart()
        return f"Linode {driver.instance_id} rebooting"

    def remove(
        self,
        instance_id: str | int,
        config: str | None = None,
        token: str | None = None,
        ua_prefix: str | None = None,
    ) -> str:
        """Delete an instance; an already deleted instance is not an error."""
        driver = self._attach(instance_id, config=config, token=token, ua_prefix=ua_prefix)
        parsed_id = driver.instance_id
        driver.remove()
        return f"Linode {parsed_id} removed"


def handle_config_error(error: ConfigError, debug_mode: bool) -> None:
    """Handle invalid configuration.

    Parameters
    ----------
    error : ConfigError
        The configuration error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ConfigError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def handle_credentials_error(error: ProviderCredentialsError, debug_mode: bool) -> None:
    """Handle a rejected or missing API token.

    Parameters
    ----------
    error : ProviderCredentialsError
        The credentials error that was raised
    debug_mode : bool
        Whether debug mode is enabled
    """
    if debug_mode:
        raise error

    print("Linode credentials rejected\n", file=sys.stderr)
    print("Create a personal access token with Linodes and StackScripts", file=sys.stderr)
    print("read/write scopes at https://cloud.linode.com/profile/tokens\n", file=sys.stderr)
    print("Then set it:", file=sys.stderr)
    print("  export LINODE_TOKEN=...", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_api_error(error: ProviderAPIError, debug_mode: bool) -> None:
    """Handle a Linode API error with context-specific messages.

    Parameters
    ----------
    error : ProviderAPIError
        The API error that was raised
    debug_mode : bool
        Whether debug mode is enabled
    """
    if debug_mode:
        raise error

    if error.status == 429:
        print("Linode API rate limit reached\n", file=sys.stderr)
        print("Wait a minute and try again.", file=sys.stderr)
    elif error.status == 400 and error.errors:
        print("Linode API rejected the request:", file=sys.stderr)
        for reason in error.errors:
            print(f"  - {reason}", file=sys.stderr)
    else:
        print(f"Cloud API error: {error}", file=sys.stderr)

    sys.exit(EXIT_ERROR)


def handle_driver_error(error: DriverError, debug_mode: bool) -> None:
    """Handle any other driver error.

    Parameters
    ----------
    error : DriverError
        The error that was raised
    debug_mode : bool
        Whether debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def setup_logging(verbose: bool = False) -> None:
    """Route log records to stdout/stderr handlers.

    Parameters
    ----------
    verbose : bool
        Log at DEBUG instead of INFO
    """
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[stdout_handler, stderr_handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps the methods of :class:`LinodeMachineCLI` to commands. Driver
    errors are turned into messages and exit codes; set
    ``LINODE_MACHINE_DEBUG=1`` to see tracebacks instead.
    """
    debug_mode = os.environ.get("LINODE_MACHINE_DEBUG") == "1"
    setup_logging(verbose=debug_mode)

    try:
        fire.Fire(LinodeMachineCLI())
    except ConfigError as e:
        handle_config_error(e, debug_mode)
    except ProviderCredentialsError as e:
        handle_credentials_error(e, debug_mode)
    except ProviderAPIError as e:
        handle_api_error(e, debug_mode)
    except DriverError as e:
        handle_driver_error(e, debug_mode)
    except ValueError as e:
        if debug_mode:
            raise
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
