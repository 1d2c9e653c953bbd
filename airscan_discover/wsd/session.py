"""
WS-Discovery session: per-interface sockets, the periodic prober and the
receiver threads.
"""
from __future__ import annotations
import logging
import queue
import socket
import threading
from dataclasses import dataclass
from typing import List, Optional

from ..exceptions import TransportError
from ..models import Endpoint
from ..network.interfaces import InterfaceAddress, enumerate_interfaces
from ..trace import ProtocolTrace
from .handler import KnownAddresses, ProbeMatchHandler
from .messages import WSD_MULTICAST_IPV4, WSD_MULTICAST_IPV6, WSD_PORT, build_probe
from .metadata import MetadataFetcher

logger = logging.getLogger(__name__)


@dataclass
class SocketBinding:
    """A UDP socket bound to one interface address."""
    sock: socket.socket
    iface: InterfaceAddress

    @property
    def zone(self) -> str:
        return self.iface.zone

    def destination(self):
        if self.iface.is_ipv4:
            return (WSD_MULTICAST_IPV4, WSD_PORT)
        return (WSD_MULTICAST_IPV6, WSD_PORT, 0, self.iface.index)


def _is_candidate(iface: InterfaceAddress) -> bool:
    # WS-Discovery over IPv6 is only used on the link-local scope
    return iface.is_ipv4 or iface.address.is_link_local


class WSDSession:
    """Runs WS-Discovery for scanners until told to stop."""

    def __init__(
        self,
        probe_interval: float = 0.25,
        metadata_timeout: float = 2.0,
        receive_buffer_size: int = 32768,
        receive_poll: float = 0.2,
        trace: Optional[ProtocolTrace] = None,
    ):
        self.probe_interval = probe_interval
        self.metadata_timeout = metadata_timeout
        self.receive_buffer_size = receive_buffer_size
        self.receive_poll = receive_poll
        self.trace = trace
        self.known = KnownAddresses()
        self.bindings: List[SocketBinding] = []
        self.receiver_threads: List[threading.Thread] = []

    def _bind_socket(self, iface: InterfaceAddress) -> socket.socket:
        if iface.is_ipv4:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF,
                                socket.inet_aton(str(iface.address)))
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 1)
                sock.bind((str(iface.address), 0))
            except OSError:
                sock.close()
                raise
        else:
            sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, iface.index)
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, 1)
                sock.bind((str(iface.address), 0, 0, iface.index))
            except OSError:
                sock.close()
                raise
        sock.settimeout(self.receive_poll)
        return sock

    def open(self) -> List[SocketBinding]:
        """
        Binds one socket per usable interface address.

        Addresses that fail to bind are skipped. Raises TransportError only
        if there were candidates and none of them could be bound.
        """
        candidates = [iface for iface in enumerate_interfaces() if _is_candidate(iface)]
        for iface in candidates:
            try:
                sock = self._bind_socket(iface)
            except OSError as e:
                logger.debug("Cannot bind %s%%%s: %s", iface.address, iface.zone, e)
                continue
            self.bindings.append(SocketBinding(sock=sock, iface=iface))
            logger.debug("Bound WS-Discovery socket on %s%%%s", iface.address, iface.zone)

        if candidates and not self.bindings:
            raise TransportError("Could not bind a WS-Discovery socket on any interface")
        if not candidates:
            logger.warning("No usable network interface for WS-Discovery")
        return self.bindings

    def close(self) -> None:
        for binding in self.bindings:
            try:
                binding.sock.close()
            except OSError:
                pass
        self.bindings = []

    def send_probes(self) -> None:
        """Sends one fresh Probe on every bound socket."""
        msg = build_probe()
        if self.trace:
            self.trace.record("probe", msg)
        for binding in self.bindings:
            try:
                binding.sock.sendto(msg, binding.destination())
            except OSError as e:
                logger.debug("%s: Probe send failed: %s", binding.zone, e)

    def new_handler(self, out_queue: "queue.Queue[Endpoint]") -> ProbeMatchHandler:
        """Creates a handler with its own HTTP session, one per receiver thread."""
        fetcher = MetadataFetcher(timeout=self.metadata_timeout, trace=self.trace)
        return ProbeMatchHandler(fetcher, self.known, out_queue, trace=self.trace)

    def receive_loop(self, binding: SocketBinding, handler: ProbeMatchHandler,
                     stop_event: threading.Event) -> None:
        """Receives datagrams on one socket and hands them to the handler."""
        while not stop_event.is_set():
            try:
                data, _addr = binding.sock.recvfrom(self.receive_buffer_size)
            except socket.timeout:
                continue
            except OSError as e:
                if not stop_event.is_set():
                    logger.warning(f"Receive on {binding.zone} stopped: {e}")
                return
            if data:
                handler.handle_datagram(data, binding.zone)

    def run(self, out_queue: "queue.Queue[Endpoint]", stop_event: threading.Event) -> None:
        """
        Probes and receives until stop_event is set.

        Raises TransportError if no socket could be bound; after that
        nothing propagates out of the session.
        """
        if not self.bindings:
            self.open()
        if not self.bindings:
            return

        self.receiver_threads.clear()
        for binding in self.bindings:
            thread = threading.Thread(
                target=self.receive_loop,
                args=(binding, self.new_handler(out_queue), stop_event),
                name=f"wsd-recv-{binding.zone}",
                daemon=True,
            )
            thread.start()
            self.receiver_threads.append(thread)

        try:
            while True:
                self.send_probes()
                if stop_event.wait(self.probe_interval):
                    break
        finally:
            # Receivers still inside a metadata fetch are daemons and not waited for
            for thread in self.receiver_threads:
                thread.join(timeout=self.receive_poll * 2)
            self.close()
