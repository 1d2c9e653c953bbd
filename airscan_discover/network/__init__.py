"""
Network-related utilities for airscan-discover.
"""

from .interfaces import InterfaceAddress, enumerate_interfaces
from .zones import repair_ipv6_zone

__all__ = [
    "InterfaceAddress",
    "enumerate_interfaces",
    "repair_ipv6_zone",
]
