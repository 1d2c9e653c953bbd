"""
Enumerates local interface addresses for binding discovery sockets.
"""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import List, Union

import psutil

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class InterfaceAddress:
    """One address of one network interface.

    The interface name doubles as the IPv6 zone, the index as the scope id.
    """
    name: str
    index: int
    address: IPAddress

    @property
    def zone(self) -> str:
        return self.name

    @property
    def is_ipv4(self) -> bool:
        return self.address.version == 4


def _is_loopback(name: str, stats) -> bool:
    if name.lower().startswith('lo'):
        return True
    # psutil only exposes interface flags on some platforms
    flags = getattr(stats, 'flags', '') if stats is not None else ''
    return 'loopback' in flags.split(',')


def _interface_index(name: str) -> int:
    try:
        return socket.if_nametoindex(name)
    except OSError:
        return 0


def enumerate_interfaces() -> List[InterfaceAddress]:
    """
    Returns every IPv4/IPv6 address of every non-loopback interface.
    """
    result: List[InterfaceAddress] = []
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except OSError as e:
        logger.error(f"Could not list network interfaces: {e}")
        return result

    for iface, iface_addrs in addrs.items():
        if _is_loopback(iface, stats.get(iface)):
            continue
        index = _interface_index(iface)
        for addr in iface_addrs:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            # psutil reports link-local IPv6 addresses as fe80::1%eth0
            literal = addr.address.split('%', 1)[0]
            try:
                ip = ipaddress.ip_address(literal)
            except ValueError:
                logger.debug("Skipping unparsable address %r on %s", addr.address, iface)
                continue
            if ip.is_loopback:
                continue
            result.append(InterfaceAddress(name=iface, index=index, address=ip))

    logger.debug("Found %d interface address(es): %s", len(result),
                 [f"{a.address}%{a.name}" for a in result])
    return result
