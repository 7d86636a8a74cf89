"""Local host facts: architecture, host name and interface addresses."""

from __future__ import annotations

import logging
import platform
import socket
from typing import Tuple

import psutil

from .core.models import IPAddress, IPList, normalize_address

LOGGER = logging.getLogger(__name__)

_ARCH_ALIASES = {
    "amd64": "x86_64",
}


def get_arch() -> str:
    machine = platform.machine()
    return _ARCH_ALIASES.get(machine.lower(), machine)


def get_hostname() -> str:
    return socket.gethostname()


def is_private(addr: IPAddress) -> bool:
    return addr.is_private or addr.is_link_local


def scan_addresses() -> Tuple[IPList, IPList]:
    """Enumerate local interface addresses.

    Returns:
        ``(public, private)`` address lists. Loopback, unspecified and
        multicast addresses are skipped.
    """
    public = IPList()
    private = IPList()

    try:
        interfaces = psutil.net_if_addrs()
    except OSError as exc:
        LOGGER.warning("Could not enumerate network interfaces: %s", exc)
        return public, private

    for name, addresses in interfaces.items():
        for address in addresses:
            if address.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                addr = normalize_address(address.address)
            except ValueError:
                LOGGER.debug("Skipping address %r on %s", address.address, name)
                continue
            if addr.is_loopback or addr.is_unspecified or addr.is_multicast:
                continue
            if is_private(addr):
                private.add(addr)
            else:
                public.add(addr)

    return public, private

