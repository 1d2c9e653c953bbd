import requests

from airscan_discover.models import Endpoint, EndpointProtocol
from airscan_discover.wsd.messages import SOAP_CONTENT_TYPE, WSD_NAMESPACES
from airscan_discover.wsd.metadata import MetadataFetcher, endpoint_name
from airscan_discover.xmldecode import decode

from .samples import FakeHTTP, get_response

URL = "http://192.168.1.102:5358/WSDScanner"


def _fetch(body, url=URL, address="urn:uuid:abc"):
    http = FakeHTTP({url: body})
    fetcher = MetadataFetcher(timeout=1.5, http=http)
    return fetcher.fetch(address, url), http


def test_kyocera_response_yields_one_endpoint():
    endpoints, http = _fetch(get_response())
    assert endpoints == [Endpoint(EndpointProtocol.WSD, "Kyocera ECOSYS M2040dn", URL)]

    call = http.calls[0]
    assert call["url"] == URL
    assert call["headers"] == {"Content-Type": SOAP_CONTENT_TYPE}
    assert call["timeout"] == 1.5
    sent = decode(WSD_NAMESPACES, call["data"])
    assert sent.text_of("/s:Envelope/s:Header/a:To") == "urn:uuid:abc"
    assert sent.text_of("/s:Envelope/s:Header/a:Action") == \
        "http://schemas.xmlsoap.org/ws/2004/09/transfer/Get"


def test_blank_manufacturer_and_model_yield_nothing():
    endpoints, _ = _fetch(get_response(manufacturer="", model=""))
    assert endpoints == []
    endpoints, _ = _fetch(get_response(manufacturer=None, model=None))
    assert endpoints == []


def test_manufacturer_is_optional():
    endpoints, _ = _fetch(get_response(manufacturer=None, model="MFC-L2710DW"))
    assert [e.name for e in endpoints] == ["MFC-L2710DW"]


def test_non_scanner_hosted_blocks_are_ignored():
    body = get_response(hosted=[
        ("http://192.168.1.102:5358/WSDPrinter", "wprt:PrinterServiceType"),
        ("http://192.168.1.102:5358/WSDScanner", "wscn:ScannerServiceType"),
    ])
    endpoints, _ = _fetch(body)
    assert [e.url for e in endpoints] == ["http://192.168.1.102:5358/WSDScanner"]


def test_multiple_scanner_services():
    body = get_response(hosted=[
        ("http://192.168.1.102:5358/Scan1", "wscn:ScannerServiceType"),
        ("http://192.168.1.102:5358/Scan2", "wscn:ScannerServiceType"),
        ("http://192.168.1.102:5358/Scan1", "wscn:ScannerServiceType"),
    ])
    endpoints, _ = _fetch(body)
    assert [e.url for e in endpoints] == [
        "http://192.168.1.102:5358/Scan1",
        "http://192.168.1.102:5358/Scan2",
    ]
    assert {e.name for e in endpoints} == {"Kyocera ECOSYS M2040dn"}


def test_no_scanner_service_yields_nothing():
    body = get_response(hosted=[("http://192.168.1.102:5358/WSDPrinter", "wprt:PrinterServiceType")])
    endpoints, _ = _fetch(body)
    assert endpoints == []


def test_wrong_action_yields_nothing():
    body = get_response(action="http://schemas.xmlsoap.org/ws/2004/09/transfer/Get")
    endpoints, _ = _fetch(body)
    assert endpoints == []


def test_https_action_variant_is_accepted():
    body = get_response(action="https://schemas.xmlsoap.org/ws/2004/09/transfer/GetResponse")
    endpoints, _ = _fetch(body)
    assert len(endpoints) == 1


def test_transport_error_yields_nothing():
    endpoints, _ = _fetch(requests.ConnectionError("refused"))
    assert endpoints == []
    endpoints, _ = _fetch(requests.Timeout("slow"))
    assert endpoints == []


def test_malformed_response_yields_nothing():
    endpoints, _ = _fetch(b"<html><body>Not Found</body>")
    assert endpoints == []


def test_endpoint_name():
    assert endpoint_name("Kyocera", "ECOSYS M2040dn") == "Kyocera ECOSYS M2040dn"
    assert endpoint_name("", "ECOSYS") == "ECOSYS"
    assert endpoint_name("Kyocera", "") == "Kyocera"
