"""
Runs the discovery channels for a fixed window and gathers their results.
"""
from __future__ import annotations
import logging
import queue
import threading
import time
from enum import Enum, auto
from typing import Dict, List, Optional, Protocol

from .models import Endpoint

logger = logging.getLogger(__name__)


class DiscoverySource(Protocol):
    """Anything that streams endpoints into a queue until stopped."""

    def run(self, out_queue: "queue.Queue[Endpoint]", stop_event: threading.Event) -> None:
        ...


class CollectorState(Enum):
    IDLE = auto()
    COLLECTING = auto()


class DiscoveryCollector:
    """Manages the discovery threads and the collection deadline."""

    def __init__(self, sources: List[DiscoverySource], window_seconds: float = 2.5):
        self.sources = sources
        self.window_seconds = window_seconds
        self.state = CollectorState.IDLE
        self.threads: List[threading.Thread] = []
        self.stop_event = threading.Event()
        self.update_queue: queue.Queue[Endpoint] = queue.Queue()

    def _run_source(self, source: DiscoverySource) -> None:
        try:
            source.run(self.update_queue, self.stop_event)
        except Exception as e:
            logger.error(f"Discovery via {type(source).__name__} failed: {e}")

    def start(self) -> None:
        self.state = CollectorState.COLLECTING
        self.stop_event.clear()
        self.threads.clear()
        for source in self.sources:
            thread = threading.Thread(
                target=self._run_source,
                args=(source,),
                name=f"discovery-{type(source).__name__}",
                daemon=True,
            )
            thread.start()
            self.threads.append(thread)

    def stop(self) -> None:
        if self.state == CollectorState.IDLE:
            return
        self.state = CollectorState.IDLE
        self.stop_event.set()

    def collect(self, deadline: Optional[float] = None) -> List[Endpoint]:
        """
        Drains the queue until the deadline, returning each distinct
        endpoint once, in the order first seen.
        """
        if deadline is None:
            deadline = time.monotonic() + self.window_seconds
        found: Dict[Endpoint, None] = {}
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                endpoint = self.update_queue.get(timeout=remaining)
            except queue.Empty:
                break
            if endpoint not in found:
                logger.debug("Collected %r = %s", endpoint.name, endpoint.url)
                found[endpoint] = None
        return list(found)

    def run(self) -> List[Endpoint]:
        """Runs all sources for the window and returns what they found."""
        deadline = time.monotonic() + self.window_seconds
        self.start()
        try:
            return self.collect(deadline)
        finally:
            self.stop()
