"""
Client Metadata
===============

Normalize proxy-chain headers into a ClientMetadata and derive the public
address list forwarded to the analytics endpoint.
"""

from ipaddress import ip_address, ip_network, IPv4Address
from typing import Iterable, List, Optional, Protocol

from naotimes_og.models.schemas import ClientMetadata, IPAddress


class MultiHeaders(Protocol):
    def getlist(self, key: str) -> List[str]: ...

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...


CF_CONNECTING_IP = "cf-connecting-ip"
CF_CONNECTING_IPV6 = "cf-connecting-ipv6"
X_FORWARDED_FOR = "x-forwarded-for"
FORWARDED = "forwarded"
X_REAL_IP = "x-real-ip"

IPV4_DOCUMENTATION = (
    ip_network("192.0.2.0/24"),
    ip_network("198.51.100.0/24"),
    ip_network("203.0.113.0/24"),
)
IPV4_BROADCAST = IPv4Address("255.255.255.255")


def parse_ip(value: str) -> Optional[IPAddress]:
    """Parse a single address, tolerating quotes, IPv6 brackets and ports."""
    value = value.strip().strip('"').strip()
    if not value:
        return None

    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            return None
        value = value[1:end]
    elif value.count(":") == 1:
        # IPv4 with port
        value = value.split(":", 1)[0]

    try:
        return ip_address(value)
    except ValueError:
        return None


def _split_list(values: Iterable[str]) -> List[str]:
    items = []
    for value in values:
        items.extend(value.split(","))
    return items


def _forwarded_for(values: Iterable[str]) -> List[str]:
    """Extract ``for=`` parameters from RFC 7239 Forwarded headers."""
    found = []
    for element in _split_list(values):
        for pair in element.split(";"):
            key, sep, val = pair.partition("=")
            if sep and key.strip().lower() == "for":
                found.append(val)
    return found


def extract_client_metadata(headers: MultiHeaders) -> ClientMetadata:
    """
    Build client metadata from inbound request headers.

    Candidate addresses are collected from the CDN headers, X-Forwarded-For,
    Forwarded and X-Real-IP, in that order, keeping the order of values within
    each header. Values that are not IP addresses are dropped.
    """
    raw: List[str] = []
    raw.extend(_split_list(headers.getlist(CF_CONNECTING_IP)))
    raw.extend(_split_list(headers.getlist(CF_CONNECTING_IPV6)))
    raw.extend(_split_list(headers.getlist(X_FORWARDED_FOR)))
    raw.extend(_forwarded_for(headers.getlist(FORWARDED)))
    raw.extend(_split_list(headers.getlist(X_REAL_IP)))

    candidates = []
    for value in raw:
        parsed = parse_ip(value)
        if parsed is not None:
            candidates.append(parsed)

    return ClientMetadata(
        user_agent=headers.get("user-agent") or "",
        candidate_ips=tuple(candidates),
    )


def is_public_ip(address: IPAddress) -> bool:
    if isinstance(address, IPv4Address):
        return not (
            address.is_private
            or address.is_loopback
            or address.is_link_local
            or address.is_unspecified
            or address.is_multicast
            or address == IPV4_BROADCAST
            or any(address in network for network in IPV4_DOCUMENTATION)
        )
    return not (address.is_loopback or address.is_multicast or address.is_unspecified)


def public_ips(metadata: ClientMetadata) -> List[IPAddress]:
    return [address for address in metadata.candidate_ips if is_public_ip(address)]


def forwarded_for(metadata: ClientMetadata) -> str:
    """Comma-joined public addresses, empty when none are left."""
    return ",".join(str(address) for address in public_ips(metadata))
