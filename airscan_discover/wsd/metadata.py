"""
Metadata exchange (Get/GetResponse) with a discovered WS-Discovery device.
"""
from __future__ import annotations
import logging
from typing import List, Optional

import requests

from ..exceptions import MalformedXML, ProtocolMismatch
from ..models import Endpoint, EndpointProtocol
from ..trace import ProtocolTrace
from ..xmldecode import XMLDocument, decode
from .messages import (
    GET_RESPONSE_ACTIONS,
    SCANNER_SERVICE_TYPE,
    SOAP_CONTENT_TYPE,
    WSD_NAMESPACES,
    build_get,
)

logger = logging.getLogger(__name__)

ACTION_PATH = "/s:Envelope/s:Header/a:Action"
_SECTION = "/s:Envelope/s:Body/mex:Metadata/mex:MetadataSection"
MANUFACTURER_PATH = _SECTION + "/devprof:ThisModel/devprof:Manufacturer"
MODEL_NAME_PATH = _SECTION + "/devprof:ThisModel/devprof:ModelName"
HOSTED_PATH = _SECTION + "/devprof:Relationship/devprof:Hosted"

_HOSTED_TYPES = "/devprof:Types"
_HOSTED_ADDRESS = "/a:EndpointReference/a:Address"


def endpoint_name(manufacturer: str, model: str) -> str:
    """Joins manufacturer and model, leaving out whichever is blank."""
    return " ".join(part for part in (manufacturer, model) if part)


def hosted_scanner_urls(doc: XMLDocument) -> List[str]:
    """
    Collects endpoint addresses of all Hosted blocks whose Types name a
    scanner service. Order is preserved and duplicates are dropped.
    """
    urls: List[str] = []
    for hosted in doc.find_all(HOSTED_PATH):
        types = ""
        addresses = []
        for child in doc.children_of(hosted):
            if child.path == hosted.path + _HOSTED_TYPES:
                types = child.text
            elif child.path == hosted.path + _HOSTED_ADDRESS and child.text:
                addresses.append(child.text)
        if SCANNER_SERVICE_TYPE not in types:
            continue
        for url in addresses:
            if url not in urls:
                urls.append(url)
    return urls


def parse_get_response(doc: XMLDocument) -> List[Endpoint]:
    """
    Turns a decoded GetResponse into scanner endpoints.

    Raises ProtocolMismatch if the document is not a usable GetResponse.
    """
    action = doc.text_of(ACTION_PATH)
    if action not in GET_RESPONSE_ACTIONS:
        raise ProtocolMismatch(f"unexpected action {action!r}")

    manufacturer = doc.text_of(MANUFACTURER_PATH)
    model = doc.text_of(MODEL_NAME_PATH)
    if not manufacturer and not model:
        raise ProtocolMismatch("neither manufacturer nor model reported")

    urls = hosted_scanner_urls(doc)
    if not urls:
        raise ProtocolMismatch("no hosted scanner service")

    name = endpoint_name(manufacturer, model)
    return [Endpoint(protocol=EndpointProtocol.WSD, name=name, url=url) for url in urls]


class MetadataFetcher:
    """Retrieves device metadata over HTTP and extracts scanner endpoints."""

    def __init__(
        self,
        timeout: float = 2.0,
        http: Optional[requests.Session] = None,
        trace: Optional[ProtocolTrace] = None,
    ):
        self.timeout = timeout
        self.http = http if http is not None else requests.Session()
        self.trace = trace

    def fetch(self, address: str, xaddr: str) -> List[Endpoint]:
        """
        Sends a Get for the device at address to xaddr.

        Transport errors and unusable responses are logged and yield an
        empty list; they never propagate.
        """
        msg = build_get(address)
        if self.trace:
            self.trace.record("get", msg)

        try:
            resp = self.http.post(
                xaddr,
                data=msg,
                headers={"Content-Type": SOAP_CONTENT_TYPE},
                timeout=self.timeout,
            )
            body = resp.content
        except requests.RequestException as e:
            logger.debug("Get %s failed: %s", xaddr, e)
            return []

        if self.trace:
            self.trace.record("get-response", body)

        try:
            doc = decode(WSD_NAMESPACES, body)
        except MalformedXML as e:
            logger.debug("Get %s: malformed response: %s", xaddr, e)
            return []

        try:
            endpoints = parse_get_response(doc)
        except ProtocolMismatch as e:
            logger.debug("Get %s: response ignored: %s", xaddr, e)
            return []

        for endpoint in endpoints:
            logger.debug("Get %s: found %r at %s", xaddr, endpoint.name, endpoint.url)
        return endpoints
