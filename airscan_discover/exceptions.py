"""
Error types raised by the discovery engine.

Only TransportError ever reaches a caller (when no socket at all could be
bound at session start); everything else is caught and logged close to
where it happens.
"""


class DiscoveryError(Exception):
    """Base class for all discovery errors."""


class MalformedXML(DiscoveryError, ValueError):
    """A datagram or HTTP response body is not well-formed XML."""


class InvalidURL(DiscoveryError, ValueError):
    """A URL could not be parsed for IPv6 zone repair."""


class TransportError(DiscoveryError, OSError):
    """Socket or HTTP failure."""


class ProtocolMismatch(DiscoveryError):
    """A message is well-formed but not the one we are waiting for."""
