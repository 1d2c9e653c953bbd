"""
Command line front end: runs discovery for a fixed window and prints the
devices found.
"""
import argparse
import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

from . import configuration
from .collector import DiscoveryCollector, DiscoverySource
from .dnssd import DNSSDBrowser
from .models import Endpoint, EndpointProtocol
from .trace import ProtocolTrace
from .wsd.session import WSDSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airscan-discover",
        description="Discover network scanners via WS-Discovery and DNS-SD",
    )
    parser.add_argument('-d', '--debug', action='store_true', help='Enable debug output')
    parser.add_argument('-t', '--trace', metavar='FILE', nargs='?', const='trace.tar',
                        help='Write raw protocol messages to a tar archive (default: trace.tar)')
    parser.add_argument('-c', '--config', metavar='PATH', help='Configuration file to use')
    parser.add_argument('-w', '--window', metavar='MS', type=int,
                        help='Discovery window in milliseconds')
    return parser


def build_sources(config: Dict[str, Any], trace: Optional[ProtocolTrace]) -> List[DiscoverySource]:
    sources: List[DiscoverySource] = []
    if config.get('enable_dnssd', True):
        sources.append(DNSSDBrowser(service_type=config['dnssd_service_type']))
    if config.get('enable_wsd', True):
        sources.append(WSDSession(
            probe_interval=config['probe_interval_ms'] / 1000.0,
            metadata_timeout=config['metadata_timeout_seconds'],
            receive_buffer_size=config['receive_buffer_size'],
            receive_poll=config['receive_poll_seconds'],
            trace=trace,
        ))
    return sources


def format_endpoint(endpoint: Endpoint) -> str:
    """Formats one report line, e.g. '"Name" = http://host/path, wsd'."""
    name = endpoint.name.replace('\\', '\\\\').replace('"', '\\"')
    line = f'"{name}" = {endpoint.url}'
    if endpoint.protocol != EndpointProtocol.NONE:
        line += f", {endpoint.protocol.value}"
    return line


def print_report(endpoints: List[Endpoint], out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    out.write("[devices]\n")
    for endpoint in endpoints:
        out.write(f"  {format_endpoint(endpoint)}\n")


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the application."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    config = configuration.load_or_create_config(args.config)
    if args.window is not None:
        config['discovery_window_ms'] = args.window

    trace_path = args.trace or config.get('trace_file')
    trace = ProtocolTrace(trace_path) if trace_path else None

    collector = DiscoveryCollector(
        build_sources(config, trace),
        window_seconds=config['discovery_window_ms'] / 1000.0,
    )
    logging.info("Discovery starting.")
    try:
        endpoints = collector.run()
    finally:
        if trace:
            trace.close()

    print_report(endpoints)
    return 0
