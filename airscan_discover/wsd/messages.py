"""
WS-Discovery constants and outbound SOAP message templates.

Only the subset of WS-Discovery and WS-MetadataExchange needed to find scan
services is covered: Probe/ProbeMatches over UDP multicast and
Get/GetResponse over HTTP.
"""
from __future__ import annotations
import uuid
from typing import Dict, Optional
from xml.sax.saxutils import escape

WSD_PORT = 3702
WSD_MULTICAST_IPV4 = "239.255.255.250"
WSD_MULTICAST_IPV6 = "ff02::c"

SOAP_CONTENT_TYPE = "application/soap+xml; charset=utf-8"

SCAN_DEVICE_TYPE = "ScanDeviceType"
SCANNER_SERVICE_TYPE = "ScannerServiceType"


def _both_schemes(url: str) -> tuple:
    """Peers use http and https spellings of the same URI interchangeably."""
    rest = url.split("://", 1)[1]
    return ("http://" + rest, "https://" + rest)


def _ns(url: str, prefix: str) -> Dict[str, str]:
    return {variant: prefix for variant in _both_schemes(url)}


# Namespace URI -> short prefix used in decoded element paths
WSD_NAMESPACES: Dict[str, str] = {
    **_ns("http://www.w3.org/2003/05/soap-envelope", "s"),
    **_ns("http://schemas.xmlsoap.org/ws/2005/04/discovery", "d"),
    **_ns("http://schemas.xmlsoap.org/ws/2004/08/addressing", "a"),
    **_ns("http://schemas.xmlsoap.org/ws/2006/02/devprof", "devprof"),
    **_ns("http://schemas.xmlsoap.org/ws/2004/09/mex", "mex"),
}

PROBE_ACTION = "http://schemas.xmlsoap.org/ws/2005/04/discovery/Probe"
GET_ACTION = "http://schemas.xmlsoap.org/ws/2004/09/transfer/Get"
PROBE_MATCHES_ACTIONS = frozenset(_both_schemes("http://schemas.xmlsoap.org/ws/2005/04/discovery/ProbeMatches"))
GET_RESPONSE_ACTIONS = frozenset(_both_schemes("http://schemas.xmlsoap.org/ws/2004/09/transfer/GetResponse"))

DISCOVERY_TO = "urn:schemas-xmlsoap-org:ws:2005:04:discovery"

_PROBE_TEMPLATE = """<?xml version="1.0" ?>
<s:Envelope xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing" xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery" xmlns:s="http://www.w3.org/2003/05/soap-envelope">
  <s:Header>
    <a:Action>{action}</a:Action>
    <a:MessageID>{message_id}</a:MessageID>
    <a:To>{to}</a:To>
  </s:Header>
  <s:Body>
    <d:Probe/>
  </s:Body>
</s:Envelope>
"""

_GET_TEMPLATE = """<?xml version="1.0" ?>
<s:Envelope xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing" xmlns:s="http://www.w3.org/2003/05/soap-envelope">
  <s:Header>
    <a:Action>{action}</a:Action>
    <a:MessageID>{message_id}</a:MessageID>
    <a:To>{to}</a:To>
  </s:Header>
  <s:Body>
  </s:Body>
</s:Envelope>
"""


def new_message_id() -> str:
    """Returns a fresh urn:uuid message identifier."""
    return f"urn:uuid:{uuid.uuid4()}"


def build_probe(message_id: Optional[str] = None) -> bytes:
    """Builds a Probe message with an empty body."""
    return _PROBE_TEMPLATE.format(
        action=PROBE_ACTION,
        message_id=escape(message_id or new_message_id()),
        to=DISCOVERY_TO,
    ).encode("utf-8")


def build_get(to_address: str, message_id: Optional[str] = None) -> bytes:
    """Builds a metadata exchange Get message addressed to a device."""
    return _GET_TEMPLATE.format(
        action=GET_ACTION,
        message_id=escape(message_id or new_message_id()),
        to=escape(to_address),
    ).encode("utf-8")
