import logging
import threading
import time

from airscan_discover.collector import CollectorState, DiscoveryCollector
from airscan_discover.models import Endpoint, EndpointProtocol

A = Endpoint(EndpointProtocol.WSD, "Kyocera ECOSYS M2040dn", "http://192.168.1.102:5358/WSDScanner")
B = Endpoint(EndpointProtocol.NONE, "HP LaserJet", "http://192.168.1.50:8080/eSCL")


class ListSource:
    def __init__(self, endpoints, delay=0.0):
        self.endpoints = endpoints
        self.delay = delay
        self.stopped = threading.Event()

    def run(self, out_queue, stop_event):
        for endpoint in self.endpoints:
            time.sleep(self.delay)
            out_queue.put(endpoint)
        stop_event.wait()
        self.stopped.set()


class FailingSource:
    def run(self, out_queue, stop_event):
        raise OSError("no sockets")


def test_collects_and_deduplicates_across_sources():
    first = ListSource([A, B, A])
    second = ListSource([B, A], delay=0.01)
    collector = DiscoveryCollector([first, second], window_seconds=0.3)

    assert collector.run() == [A, B]
    assert collector.stop_event.is_set()
    assert collector.state == CollectorState.IDLE
    assert first.stopped.wait(1)
    assert second.stopped.wait(1)


def test_failing_source_does_not_stop_others(caplog):
    with caplog.at_level(logging.ERROR):
        collector = DiscoveryCollector([FailingSource(), ListSource([A])], window_seconds=0.2)
        assert collector.run() == [A]
    assert "no sockets" in caplog.text


def test_window_bounds_collection():
    late = ListSource([B], delay=0.5)
    collector = DiscoveryCollector([late], window_seconds=0.1)
    start = time.monotonic()
    assert collector.run() == []
    assert time.monotonic() - start < 0.4
