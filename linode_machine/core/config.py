"""Driver options: catalog, loading and validation.

Options travel as a flat mapping keyed by the option names the host
orchestration tool knows (``linode-token``, ``linode-region``, ...).
:class:`ConfigLoader` builds that mapping from defaults, an optional YAML
file, ``LINODE_*`` environment variables and explicit overrides.
:class:`ConfigValidator` turns it into an immutable :class:`Configuration`.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from linode_machine.constants import (
    CONTAINER_LINUX_IMAGE_MARKER,
    CONTAINER_LINUX_SSH_USER,
    DEFAULT_DOCKER_PORT,
    DEFAULT_INSTANCE_IMAGE,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_REGION,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    DEFAULT_SWAP_SIZE,
)
from linode_machine.core.models import StackScriptRef
from linode_machine.providers.exceptions import ConfigError
from linode_machine.utils import (
    generate_root_password,
    normalize_instance_label,
    validate_port,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset(("1", "true", "yes", "on"))
FALSE_VALUES = frozenset(("0", "false", "no", "off", ""))


@dataclass(frozen=True)
class OptionSpec:
    """Description of one driver option.

    Attributes
    ----------
    name : str
        Option name, e.g. ``linode-region``
    env_var : str
        Environment variable bound to the option
    type : type
        One of ``str``, ``int`` or ``bool``
    default : Any
        Value used when nothing else sets the option
    usage : str
        Help text shown by the host tool
    """

    name: str
    env_var: str
    type: type
    default: Any
    usage: str


OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec("linode-token", "LINODE_TOKEN", str, "", "Linode API Token"),
    OptionSpec("linode-root-pass", "LINODE_ROOT_PASSWORD", str, "", "Root Password"),
    OptionSpec(
        "linode-authorized-users",
        "LINODE_AUTHORIZED_USERS",
        str,
        "",
        "Linode user accounts (separated by commas) whose Linode SSH keys will be "
        "permitted root access to the created node",
    ),
    OptionSpec("linode-label", "LINODE_LABEL", str, "", "Linode Instance Label"),
    OptionSpec(
        "linode-region",
        "LINODE_REGION",
        str,
        DEFAULT_REGION,
        "Specifies the region (location) of the Linode instance",
    ),
    OptionSpec(
        "linode-instance-type",
        "LINODE_INSTANCE_TYPE",
        str,
        DEFAULT_INSTANCE_TYPE,
        "Specifies the Linode Instance type which determines CPU, memory, disk size, etc.",
    ),
    OptionSpec(
        "linode-ssh-port", "LINODE_SSH_PORT", int, DEFAULT_SSH_PORT, "Linode Instance SSH Port"
    ),
    OptionSpec(
        "linode-ssh-user",
        "LINODE_SSH_USER",
        str,
        "",
        "Specifies the user as which the host tool should log in to the Linode instance",
    ),
    OptionSpec(
        "linode-image",
        "LINODE_IMAGE",
        str,
        DEFAULT_INSTANCE_IMAGE,
        "Specifies the Linode Instance image which determines the OS distribution and base files",
    ),
    OptionSpec(
        "linode-docker-port", "LINODE_DOCKER_PORT", int, DEFAULT_DOCKER_PORT, "Docker Port"
    ),
    OptionSpec(
        "linode-swap-size",
        "LINODE_SWAP_SIZE",
        int,
        DEFAULT_SWAP_SIZE,
        "Linode Instance Swap Size (MB)",
    ),
    OptionSpec(
        "linode-stackscript",
        "LINODE_STACKSCRIPT",
        str,
        "",
        "Specifies the Linode StackScript to use to create the instance",
    ),
    OptionSpec(
        "linode-stackscript-data",
        "LINODE_STACKSCRIPT_DATA",
        str,
        "",
        "A JSON string specifying data for the selected StackScript",
    ),
    OptionSpec(
        "linode-create-private-ip",
        "LINODE_CREATE_PRIVATE_IP",
        bool,
        False,
        "Create private IP for the instance",
    ),
    OptionSpec(
        "linode-ua-prefix",
        "LINODE_UA_PREFIX",
        str,
        "",
        "Prefix the User-Agent in Linode API calls with some 'product/version'",
    ),
    OptionSpec(
        "linode-tags",
        "LINODE_TAGS",
        str,
        "",
        "A comma separated list of tags to apply to the Linode resource",
    ),
    OptionSpec(
        "linode-kernel",
        "LINODE_KERNEL",
        str,
        "",
        "Linode Instance kernel, e.g. linode/grub2 (default: the image's kernel)",
    ),
)

OPTIONS_BY_NAME: dict[str, OptionSpec] = {spec.name: spec for spec in OPTIONS}


def coerce_option_value(spec: OptionSpec, value: Any) -> Any:
    """Convert a raw option value to the option's declared type.

    Parameters
    ----------
    spec : OptionSpec
        Option being converted
    value : Any
        Raw value from YAML, the environment or the command line

    Returns
    -------
    Any
        Value of type ``spec.type``; None stays None

    Raises
    ------
    ConfigError
        If the value cannot be converted
    """
    if value is None:
        return None

    if spec.type is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise ConfigError(f"{spec.name} must be a boolean, got: {value!r}")

    if spec.type is int:
        if isinstance(value, bool):
            raise ConfigError(f"{spec.name} must be an integer, got: {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{spec.name} must be an integer, got: {value!r}") from None

    return str(value)


@dataclass(frozen=True)
class Configuration:
    """Validated, immutable driver configuration.

    Server-corrected values (label, region), resolved StackScript data and a
    generated root password are applied by building a new instance with
    :func:`dataclasses.replace`. StackScript parameters are kept as sorted
    ``(name, value)`` pairs so the configuration stays hashable.
    """

    token: str = field(repr=False)
    region: str
    instance_type: str
    image: str
    root_password: str = field(repr=False)
    swap_size: int
    ssh_port: int
    ssh_user: str
    label: str
    docker_port: int
    authorized_users: str = ""
    tags: str = ""
    private_ip: bool = False
    ua_prefix: str = ""
    stackscript: StackScriptRef | None = None
    stackscript_data: tuple[tuple[str, str], ...] = ()
    kernel: str = ""


class ConfigLoader:
    """Load and merge driver options with defaults."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """Initialize ConfigLoader with the catalog defaults.

        Parameters
        ----------
        environ : Mapping[str, str] | None
            Environment to read ``LINODE_*`` bindings from. Defaults to
            ``os.environ``.
        """
        self.environ = os.environ if environ is None else environ
        self.BUILT_IN_DEFAULTS = {spec.name: spec.default for spec in OPTIONS}

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load options from a YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks LINODE_MACHINE_CONFIG env
            var, then falls back to linode-machine.yaml

        Returns
        -------
        dict[str, Any]
            Options found in the file with interpolations resolved. Empty when
            the file does not exist.

        Raises
        ------
        ConfigError
            If the file is not valid YAML, cannot be read, or references
            undefined variables
        """
        if config_path is None:
            config_path = self.environ.get(
                "LINODE_MACHINE_CONFIG", "linode-machine.yaml"
            )

        config_file = Path(config_path)

        if not config_file.exists():
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise ConfigError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {}

        var_keys = []
        if "vars" in cfg:
            vars_dict = OmegaConf.to_container(cfg.vars, resolve=False)
            for key, value in vars_dict.items():
                if key not in cfg:
                    cfg[key] = value
                    var_keys.append(key)

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except OmegaConfBaseException as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping")

        for key in ["vars", *var_keys]:
            config.pop(key, None)
        return config

    def load_environment(self) -> dict[str, Any]:
        """Collect options set through their ``LINODE_*`` environment variables.

        Returns
        -------
        dict[str, Any]
            Typed option values keyed by option name
        """
        options = {}
        for spec in OPTIONS:
            if spec.env_var in self.environ:
                options[spec.name] = coerce_option_value(
                    spec, self.environ[spec.env_var]
                )
        return options

    def get_options(
        self,
        config_path: str | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build the merged option mapping.

        Precedence from lowest to highest: built-in defaults, YAML file,
        environment variables, overrides.

        Parameters
        ----------
        config_path : str | None
            Optional YAML file path (see :meth:`load_config`)
        overrides : Mapping[str, Any] | None
            Explicit values, e.g. from the command line. None values are ignored.

        Returns
        -------
        dict[str, Any]
            Complete option mapping

        Raises
        ------
        ConfigError
            If the file contains an unknown option or a value has the wrong type
        """
        merged = dict(self.BUILT_IN_DEFAULTS)

        for key, value in self.load_config(config_path).items():
            spec = OPTIONS_BY_NAME.get(key)
            if spec is None:
                raise ConfigError(
                    f"Unknown option '{key}' in config file. "
                    f"Valid options: {', '.join(sorted(OPTIONS_BY_NAME))}"
                )
            merged[key] = coerce_option_value(spec, value)

        merged.update(self.load_environment())

        for key, value in (overrides or {}).items():
            if value is None:
                continue
            spec = OPTIONS_BY_NAME.get(key)
            if spec is None:
                raise ConfigError(f"Unknown option '{key}'")
            merged[key] = coerce_option_value(spec, value)

        return merged


class ConfigValidator:
    """Validate a flat option mapping into a :class:`Configuration`.

    Validation performs no network or disk I/O.
    """

    def validate(
        self, options: Mapping[str, Any], machine_name: str = ""
    ) -> Configuration:
        """Validate and normalize driver options.

        Parameters
        ----------
        options : Mapping[str, Any]
            Option values keyed by option name; missing options take their
            catalog default
        machine_name : str
            Name of the host being created, used as the default label

        Returns
        -------
        Configuration
            Normalized configuration

        Raises
        ------
        ConfigError
            If the token is empty, the StackScript reference or its data is
            malformed, or a value has the wrong type
        """
        token = self._get(options, "linode-token")
        if not token:
            raise ConfigError(
                "linode driver requires the --linode-token option", stage="validate"
            )

        stackscript = self.parse_stackscript(self._get(options, "linode-stackscript"))
        stackscript_data = self.parse_stackscript_data(
            self._get(options, "linode-stackscript-data")
        )

        image = self._get(options, "linode-image")
        ssh_user = self.select_ssh_user(image, self._get(options, "linode-ssh-user"))

        ssh_port = self._get(options, "linode-ssh-port") or DEFAULT_SSH_PORT
        docker_port = self._get(options, "linode-docker-port")
        for name, port in (("linode-ssh-port", ssh_port), ("linode-docker-port", docker_port)):
            try:
                validate_port(port)
            except ValueError as e:
                raise ConfigError(f"{name}: {e}", stage="validate") from e

        label = self._get(options, "linode-label") or machine_name
        normalized_label = normalize_instance_label(label)
        if normalized_label != label:
            logger.debug("Normalized instance label %r to %r", label, normalized_label)

        return Configuration(
            token=token,
            region=self._get(options, "linode-region"),
            instance_type=self._get(options, "linode-instance-type"),
            image=image,
            root_password=self._get(options, "linode-root-pass"),
            swap_size=self._get(options, "linode-swap-size"),
            ssh_port=ssh_port,
            ssh_user=ssh_user,
            label=normalized_label,
            docker_port=docker_port,
            authorized_users=self._get(options, "linode-authorized-users"),
            tags=self._get(options, "linode-tags"),
            private_ip=self._get(options, "linode-create-private-ip"),
            ua_prefix=self._get(options, "linode-ua-prefix"),
            stackscript=stackscript,
            stackscript_data=stackscript_data,
            kernel=self._get(options, "linode-kernel"),
        )

    def ensure_root_password(self, config: Configuration) -> Configuration:
        """Return ``config`` with a generated root password when none was given.

        Only needed before an instance is created; attaching to an existing
        instance never requires one.
        """
        if config.root_password:
            return config
        logger.info("Generating a secure disposable linode-root-pass...")
        return replace(config, root_password=generate_root_password())

    def parse_stackscript(self, value: str) -> StackScriptRef | None:
        """Parse the StackScript option.

        Parameters
        ----------
        value : str
            Either a numeric identifier (``"123"``) or ``owner/label``

        Returns
        -------
        StackScriptRef | None
            Parsed reference, or None when the option is empty or ``"0"``

        Raises
        ------
        ConfigError
            If the value is neither numeric nor a two-part owner/label
        """
        if not value:
            return None

        if value.isascii() and value.isdecimal():
            script_id = int(value)
            if script_id == 0:
                return None
            return StackScriptRef(script_id=script_id)

        parts = value.split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigError(
                f"malformed StackScript identifier: {value!r}. Linode StackScripts "
                "must be specified using username/label syntax, or using their identifier",
                stage="validate",
            )

        return StackScriptRef(owner=parts[0], label=parts[1])

    def parse_stackscript_data(self, value: str) -> tuple[tuple[str, str], ...]:
        """Parse StackScript parameter data.

        Parameters
        ----------
        value : str
            JSON object mapping parameter names to string values

        Returns
        -------
        tuple[tuple[str, str], ...]
            Parameter name and value pairs sorted by name, empty when the
            option is empty

        Raises
        ------
        ConfigError
            If the value is not a JSON object of strings
        """
        if not value:
            return ()

        try:
            data = json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"invalid StackScript parameters: {e}", stage="validate"
            ) from e

        if not isinstance(data, dict) or not all(
            isinstance(key, str) and isinstance(item, str) for key, item in data.items()
        ):
            raise ConfigError(
                "invalid StackScript parameters: expected a JSON object of strings",
                stage="validate",
            )

        return tuple(sorted(data.items()))

    def select_ssh_user(self, image: str, override: str = "") -> str:
        """Pick the SSH login user for an image.

        Parameters
        ----------
        image : str
            Image identifier, e.g. ``linode/containerlinux``
        override : str
            Explicitly configured user; wins when set

        Returns
        -------
        str
            Login user name
        """
        if override:
            return override
        if CONTAINER_LINUX_IMAGE_MARKER in image:
            return CONTAINER_LINUX_SSH_USER
        return DEFAULT_SSH_USER

    def _get(self, options: Mapping[str, Any], name: str) -> Any:
        spec = OPTIONS_BY_NAME[name]
        value = options.get(name)
        if value is None:
            return spec.default
        try:
            return coerce_option_value(spec, value)
        except ConfigError as e:
            e.stage = "validate"
            raise
