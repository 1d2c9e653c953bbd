"""
IPv6 link-local zone repair for URLs reported by devices.

A device on a link-local address reports URLs such as
http://[fe80::1]:5358/x, which are useless without the zone of the
interface the report arrived on.
"""
import ipaddress
from urllib.parse import urlsplit, urlunsplit

from ..exceptions import InvalidURL


def _split_netloc(netloc: str):
    """Splits netloc into (userinfo prefix, host, port suffix)."""
    userinfo, sep, hostport = netloc.rpartition('@')
    prefix = userinfo + sep
    if hostport.startswith('['):
        end = hostport.find(']')
        if end == -1:
            raise InvalidURL(f"Missing closing ']' in '{netloc}'")
        return prefix, hostport[:end + 1], hostport[end + 1:]
    host, colon, port = hostport.partition(':')
    return prefix, host, colon + port


def repair_ipv6_zone(url: str, zone: str) -> str:
    """
    Adds %zone to a bracketed link-local IPv6 host in url.

    An existing zone is replaced, so repairing twice with the same zone
    yields the same URL. IPv4, global IPv6 and hostname URLs are returned
    unchanged. Raises InvalidURL if url is not absolute or the bracketed
    host is not an IP address.
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidURL(f"Cannot parse URL '{url}': {e}") from e
    if not parts.scheme or not parts.netloc:
        raise InvalidURL(f"Not an absolute URL: '{url}'")

    prefix, host, suffix = _split_netloc(parts.netloc)
    if not host.startswith('['):
        return url

    # Zone is written as %25zone in URLs; accept a bare % as well
    literal = host[1:-1].split('%', 1)[0]
    try:
        ip = ipaddress.ip_address(literal)
    except ValueError as e:
        raise InvalidURL(f"Invalid IP literal '{host}' in '{url}'") from e

    if ip.version != 6 or not ip.is_link_local:
        return url

    netloc = f"{prefix}[{literal}%25{zone}]{suffix}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
