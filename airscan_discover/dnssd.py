"""
DNS-SD (mDNS) browsing for eSCL scanners.

Runs next to WS-Discovery and feeds the same endpoint queue.
"""
from __future__ import annotations
import ipaddress
import logging
import queue
import threading
from typing import Any, List, Optional

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from .models import Endpoint, EndpointProtocol

logger = logging.getLogger(__name__)

USCAN_SERVICE_TYPE = "_uscan._tcp.local."


def instance_name(name: str, service_type: str) -> str:
    """Strips the service type suffix from a full service instance name."""
    suffix = "." + service_type
    if name.endswith(suffix):
        return name[:-len(suffix)]
    return name


def resource_path(properties: dict) -> str:
    """Returns the eSCL resource path from the TXT 'rs' key, without slashes."""
    for key, value in properties.items():
        if isinstance(key, bytes):
            key = key.decode("utf-8", "replace")
        if key.lower() != "rs":
            continue
        if value is None:
            return ""
        if isinstance(value, bytes):
            value = value.decode("utf-8", "replace")
        return value.strip("/")
    return ""


def service_url(address: str, port: int, rs: str) -> Optional[str]:
    """
    Builds the scanner URL for one resolved address.

    address may carry a %zone suffix, as zeroconf reports scoped link-local
    IPv6 addresses.
    """
    literal, _, zone = address.partition("%")
    try:
        ip = ipaddress.ip_address(literal)
    except ValueError:
        return None
    if ip.version == 4:
        return f"http://{ip}:{port}/{rs}"
    if ip.is_link_local and zone:
        return f"http://[{ip}%25{zone}]:{port}/{rs}"
    return f"http://[{ip}]:{port}/{rs}"


class _UscanListener(ServiceListener):
    def __init__(self, browser: "DNSSDBrowser", out_queue: "queue.Queue[Endpoint]") -> None:
        super().__init__()
        self._browser = browser
        self._out_queue = out_queue

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass

    def _resolve(self, zc: Zeroconf, type_: str, name: str) -> None:
        for endpoint in self._browser.resolve(zc, type_, name):
            self._out_queue.put(endpoint)


class DNSSDBrowser:
    """Browses for eSCL scanners via zeroconf."""

    def __init__(self, service_type: str = USCAN_SERVICE_TYPE, resolve_timeout_ms: int = 1500):
        self.service_type = service_type
        self.resolve_timeout_ms = resolve_timeout_ms

    def resolve(self, zc: Any, type_: str, name: str) -> List[Endpoint]:
        try:
            info = zc.get_service_info(type_, name, timeout=self.resolve_timeout_ms)
        except Exception as e:  # zeroconf raises a range of errors while shutting down
            logger.debug("DNS-SD: resolving %s failed: %s", name, e)
            return []
        if info is None or not info.port:
            logger.debug("DNS-SD: %s did not resolve", name)
            return []

        label = instance_name(name, type_)
        rs = resource_path(info.properties or {})
        endpoints = []
        for address in info.parsed_scoped_addresses():
            url = service_url(address, info.port, rs)
            if url is None:
                continue
            endpoint = Endpoint(protocol=EndpointProtocol.NONE, name=label, url=url)
            logger.debug("DNS-SD: %r = %s", endpoint.name, endpoint.url)
            endpoints.append(endpoint)
        return endpoints

    def run(self, out_queue: "queue.Queue[Endpoint]", stop_event: threading.Event) -> None:
        """Browses until stop_event is set."""
        try:
            zc = Zeroconf()
        except OSError as e:
            logger.warning(f"DNS-SD discovery unavailable: {e}")
            return
        try:
            ServiceBrowser(zc, self.service_type, _UscanListener(self, out_queue))
            logger.debug("DNS-SD: browsing for %s", self.service_type)
            stop_event.wait()
        finally:
            zc.close()
