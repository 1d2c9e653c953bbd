"""
WS-Discovery for scanners.
"""

from .handler import KnownAddresses, ProbeMatchHandler
from .metadata import MetadataFetcher
from .session import WSDSession

__all__ = [
    "KnownAddresses",
    "ProbeMatchHandler",
    "MetadataFetcher",
    "WSDSession",
]
