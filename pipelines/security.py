"""Security utilities for SiteFoundry pipelines.

Rejects seed addresses that point at private IP ranges, localhost or
internal service ports before any crawl starts.
"""

import ipaddress
import socket
from typing import Optional, Set, Tuple
from urllib.parse import urlsplit
import logging

from .errors import UnsafeAddress
from .urls import ALLOWED_SCHEMES

logger = logging.getLogger(__name__)

# Private IP ranges as defined by RFC 1918, RFC 4193, and others
PRIVATE_IP_RANGES = [
    ipaddress.ip_network('10.0.0.0/8'),        # RFC 1918
    ipaddress.ip_network('172.16.0.0/12'),     # RFC 1918
    ipaddress.ip_network('192.168.0.0/16'),    # RFC 1918
    ipaddress.ip_network('127.0.0.0/8'),       # Loopback
    ipaddress.ip_network('169.254.0.0/16'),    # Link-local
    ipaddress.ip_network('::1/128'),           # IPv6 loopback
    ipaddress.ip_network('fc00::/7'),          # IPv6 unique local
    ipaddress.ip_network('fe80::/10'),         # IPv6 link-local
    ipaddress.ip_network('0.0.0.0/8'),         # "This" network
    ipaddress.ip_network('224.0.0.0/4'),       # Multicast
    ipaddress.ip_network('240.0.0.0/4'),       # Reserved
]

# Common internal services
BLOCKED_PORTS = {
    22, 23, 25, 53, 110, 143, 993, 995,
    1433, 1521, 3306, 3389, 5432, 5984, 6379, 8086, 9200, 27017,
}

LOCALHOST_NAMES = {'localhost', '0.0.0.0', '0', 'local'}

METADATA_HOSTS = {
    'metadata.google.internal',
    '169.254.169.254',
    'metadata.azure.com',
    'metadata.packet.net',
}


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is in a private range.

    Unparseable addresses count as private.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return any(ip in network for network in PRIVATE_IP_RANGES)


def resolve_hostname(hostname: str) -> Set[str]:
    """Resolve hostname to IP addresses.

    Raises:
        UnsafeAddress: If resolution fails or yields a private IP
    """
    try:
        addr_info = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise UnsafeAddress(f"Failed to resolve hostname {hostname}: {e}")

    ips = {info[4][0] for info in addr_info}
    private_ips = sorted(ip for ip in ips if is_private_ip(ip))
    if private_ips:
        raise UnsafeAddress(f"Hostname {hostname} resolves to private IP(s): {private_ips}")
    return ips


def validate_url_security(url: str, resolve: bool = True) -> Tuple[bool, Optional[str]]:
    """Validate an address for SSRF protection.

    Args:
        url: Address to validate
        resolve: Resolve hostnames and check the resulting IPs

    Returns:
        Tuple of (is_safe, error_message)
    """
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError as e:
        return False, f"URL validation error: {e}"

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False, f"Scheme '{parsed.scheme}' not allowed. Only {sorted(ALLOWED_SCHEMES)} are permitted."

    hostname = (parsed.hostname or '').lower()
    if not hostname:
        return False, "URL must have a valid hostname."
    if hostname in LOCALHOST_NAMES:
        return False, f"Localhost hostname '{hostname}' is blocked for security."
    if hostname in METADATA_HOSTS:
        return False, f"Metadata host '{hostname}' is blocked for security."
    if port and port in BLOCKED_PORTS:
        return False, f"Port {port} is blocked for security (internal service port)."

    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        if resolve:
            try:
                resolve_hostname(hostname)
            except UnsafeAddress as e:
                return False, e.message
    else:
        if is_private_ip(hostname):
            return False, f"Private IP address '{hostname}' is blocked for security."

    return True, None


def check_url_ssrf(url: str, resolve: bool = True) -> None:
    """Raise ``UnsafeAddress`` if ``url`` must not be fetched."""
    is_safe, error_msg = validate_url_security(url, resolve=resolve)
    if not is_safe:
        logger.warning(f"SSRF protection blocked URL: {url} - {error_msg}")
        raise UnsafeAddress(f"URL blocked by SSRF protection: {error_msg}")
