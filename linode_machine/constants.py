"""Global constants for linode-machine.

This module contains application-wide constants shared by the driver,
the provisioner and the command line interface.
"""

from enum import Enum

DRIVER_NAME = "linode"
"""Name the host orchestration tool knows this driver by."""

PRODUCT_NAME = "linode-machine"
"""Product token used in the outgoing User-Agent header."""

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_USER = "root"
DEFAULT_INSTANCE_IMAGE = "linode/ubuntu18.04"
DEFAULT_REGION = "us-east"
DEFAULT_INSTANCE_TYPE = "g6-standard-4"
DEFAULT_SWAP_SIZE = 512
DEFAULT_DOCKER_PORT = 2376

CONTAINER_LINUX_IMAGE_MARKER = "linode/containerlinux"
"""Image identifier fragment of the immutable Container Linux images."""

CONTAINER_LINUX_SSH_USER = "core"
"""Conventional non-root login user on Container Linux images."""

ROOT_PASSWORD_ENTROPY_BYTES = 50
"""Number of random bytes used to build a generated root password."""

INSTANCE_LABEL_MAX_LENGTH = 64
"""Longest label the Linode API accepts for an instance."""

BOOT_WAIT_TIMEOUT_SECONDS = 180
"""Deadline for a freshly created instance to report the running status.

Three minutes covers image deployment plus first boot on every instance
type currently offered.
"""

WAITER_POLL_INTERVAL_SECONDS = 3.0
"""Delay between status polls while waiting for an instance."""

WAITER_MIN_POLL_INTERVAL_SECONDS = 1.0
"""Lower bound for the poll interval so the wait never busy-loops."""

SSH_KEY_BITS = 2048
"""RSA modulus size for generated machine keys."""

MIN_VALID_PORT = 1
MAX_VALID_PORT = 65535

EXIT_SUCCESS = 0
"""Exit code indicating successful program completion."""

EXIT_ERROR = 1
"""Exit code indicating a provider, SSH key or other runtime error."""

EXIT_CONFIG_ERROR = 2
"""Exit code indicating invalid or missing configuration."""


class MachineState(str, Enum):
    """Canonical lifecycle states exposed to the host orchestrator."""

    RUNNING = "Running"
    STARTING = "Starting"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"
    ERROR = "Error"
