"""
Discovery of network scanners via WS-Discovery and DNS-SD.
"""
from .models import Endpoint, EndpointProtocol

__all__ = ["Endpoint", "EndpointProtocol"]
__version__ = "0.1.0"
