"""IPv4 address classification for created instances."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

PRIVATE_CIDRS = ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")
"""RFC1918 ranges. Anything outside them counts as public."""


def ip_in_cidr(address: str, cidr: str) -> bool:
    """Check whether an address belongs to a network.

    Parameters
    ----------
    address : str
        IPv4 address
    cidr : str
        Network in CIDR notation

    Returns
    -------
    bool
        True if the address is inside the network; False for unparsable input
    """
    try:
        return ipaddress.ip_address(address) in ipaddress.ip_network(cidr)
    except ValueError as e:
        logger.error("Error parsing address %s or CIDR %s: %s", address, cidr, e)
        return False


def is_private_ip(address: str) -> bool:
    """Return True if ``address`` is in one of the RFC1918 ranges."""
    return any(ip_in_cidr(address, cidr) for cidr in PRIVATE_CIDRS)


def split_addresses(addresses: Iterable[str]) -> tuple[str | None, str | None]:
    """Pick the first public and first private address.

    Parameters
    ----------
    addresses : Iterable[str]
        IPv4 addresses in the order the API reported them

    Returns
    -------
    tuple[str | None, str | None]
        (public_ip, private_ip); either is None when absent
    """
    public_ip = None
    private_ip = None

    for address in addresses:
        if is_private_ip(address):
            if private_ip is None:
                private_ip = address
        elif public_ip is None:
            public_ip = address

    return public_ip, private_ip
