"""
Handling of inbound WS-Discovery datagrams.
"""
from __future__ import annotations
import dataclasses
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..exceptions import InvalidURL, MalformedXML, ProtocolMismatch
from ..models import Endpoint
from ..network.zones import repair_ipv6_zone
from ..trace import ProtocolTrace
from ..xmldecode import XMLDocument, decode
from .messages import PROBE_MATCHES_ACTIONS, SCAN_DEVICE_TYPE, WSD_NAMESPACES
from .metadata import MetadataFetcher

logger = logging.getLogger(__name__)

ACTION_PATH = "/s:Envelope/s:Header/a:Action"
PROBE_MATCH_PATH = "/s:Envelope/s:Body/d:ProbeMatches/d:ProbeMatch"

_MATCH_ADDRESS = "/a:EndpointReference/a:Address"
_MATCH_TYPES = "/d:Types"
_MATCH_XADDRS = "/d:XAddrs"


class KnownAddresses:
    """Device addresses that were already matched during this session."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._addresses: Set[str] = set()

    def contains(self, address: str) -> bool:
        with self._lock:
            return address in self._addresses

    def add(self, address: str) -> None:
        with self._lock:
            self._addresses.add(address)

    def __len__(self) -> int:
        with self._lock:
            return len(self._addresses)


@dataclass
class ProbeMatch:
    """Fields of one ProbeMatch entry."""
    address: str = ""
    types: str = ""
    xaddrs: List[str] = field(default_factory=list)


def _repair_xaddrs(tokens: List[str], zone: str) -> List[str]:
    repaired = []
    for token in tokens:
        try:
            repaired.append(repair_ipv6_zone(token, zone))
        except InvalidURL as e:
            logger.debug("Dropping XAddr %r: %s", token, e)
    return repaired


def extract_probe_matches(doc: XMLDocument, zone: str) -> List[ProbeMatch]:
    """Reads every ProbeMatch entry of a decoded datagram."""
    matches = []
    for elem in doc.find_all(PROBE_MATCH_PATH):
        match = ProbeMatch()
        for child in doc.children_of(elem):
            if child.path == elem.path + _MATCH_ADDRESS:
                match.address = child.text
            elif child.path == elem.path + _MATCH_TYPES:
                match.types = child.text
            elif child.path == elem.path + _MATCH_XADDRS:
                match.xaddrs.extend(_repair_xaddrs(child.text.split(), zone))
        matches.append(match)
    return matches


class ProbeMatchHandler:
    """Validates ProbeMatches datagrams and resolves them into endpoints.

    Each device address is resolved once per session. The known-address
    check happens before the metadata fetch and the address is marked only
    after it, so two interfaces reporting the same device at the same time
    may both fetch. The collector's final dedup hides that.
    """

    def __init__(
        self,
        fetcher: MetadataFetcher,
        known: KnownAddresses,
        out_queue: "queue.Queue[Endpoint]",
        trace: Optional[ProtocolTrace] = None,
    ):
        self.fetcher = fetcher
        self.known = known
        self.out_queue = out_queue
        self.trace = trace

    def handle_datagram(self, data: bytes, zone: str) -> List[Endpoint]:
        """
        Processes one received datagram.

        Found endpoints are put on the output queue and also returned.
        Anything that is not a usable ProbeMatches is dropped silently.
        """
        if self.trace:
            self.trace.record("probe-matches", data)

        try:
            doc = decode(WSD_NAMESPACES, data)
        except MalformedXML as e:
            logger.debug("%s: malformed datagram: %s", zone, e)
            return []

        action = doc.text_of(ACTION_PATH)
        emitted: List[Endpoint] = []
        for match in extract_probe_matches(doc, zone):
            try:
                self._validate(action, match)
            except ProtocolMismatch as e:
                logger.debug("%s: ProbeMatch %r ignored: %s", zone, match.address, e)
                continue
            emitted.extend(self._resolve(match, zone))
        return emitted

    def _validate(self, action: str, match: ProbeMatch) -> None:
        # Known devices are skipped before anything else, no I/O for them
        if self.known.contains(match.address):
            raise ProtocolMismatch("already known")
        if action not in PROBE_MATCHES_ACTIONS:
            raise ProtocolMismatch(f"unexpected action {action!r}")
        if not match.xaddrs:
            raise ProtocolMismatch("no XAddrs")
        if SCAN_DEVICE_TYPE not in match.types:
            raise ProtocolMismatch(f"not a scanner: {match.types!r}")
        if not match.address:
            raise ProtocolMismatch("empty address")

    def _resolve(self, match: ProbeMatch, zone: str) -> List[Endpoint]:
        # Several XAddrs may describe the same service; dict keeps first-seen order
        merged: Dict[Endpoint, None] = {}
        for xaddr in match.xaddrs:
            for endpoint in self.fetcher.fetch(match.address, xaddr):
                merged.setdefault(endpoint, None)

        self.known.add(match.address)

        emitted = []
        for endpoint in merged:
            try:
                endpoint = dataclasses.replace(endpoint, url=repair_ipv6_zone(endpoint.url, zone))
            except InvalidURL as e:
                logger.debug("%s: dropping endpoint %s: %s", zone, endpoint.url, e)
                continue
            logger.debug("%s: %r = %s", zone, endpoint.name, endpoint.url)
            self.out_queue.put(endpoint)
            emitted.append(endpoint)
        return emitted
