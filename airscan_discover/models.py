from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class EndpointProtocol(Enum):
    """Protocol through which an endpoint was discovered."""
    NONE = ""
    WSD = "wsd"


@dataclass(frozen=True)
class Endpoint:
    """A discovered scanner service endpoint.

    Equality and hashing cover all three fields, so endpoints can be
    collected into sets to drop duplicates.
    """
    protocol: EndpointProtocol
    name: str
    url: str
