"""Local address discovery for the startup banner."""

import ipaddress
import logging
import socket

import psutil

from secureserve.errors import StartupError
from secureserve.password import Credential

logger = logging.getLogger(__name__)


class NetworkInfoError(StartupError):
    """Network interfaces could not be enumerated."""

    def __init__(self, message: str):
        super().__init__("E500", message)


def list_ipv4_addresses() -> list[str]:
    """Return the host's non-loopback IPv4 addresses, sorted.

    Raises:
        NetworkInfoError: If interface enumeration fails
    """
    try:
        interfaces = psutil.net_if_addrs()
    except (OSError, psutil.Error) as e:
        raise NetworkInfoError(f"Error getting network interfaces: {e}") from e

    found = set()
    for iface, addrs in interfaces.items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                logger.debug("Skipping unparsable address %r on %s", addr.address, iface)
                continue
            if not ip.is_loopback:
                found.add(ip)

    return [str(ip) for ip in sorted(found)]


def connection_lines(addresses: list[str], port: int, credential: Credential) -> list[str]:
    """Format one connection URL line per address."""
    return [
        f"https://{address}:{port} "
        f"(Username: {credential.username}, Password: {credential.password})"
        for address in addresses
    ]
