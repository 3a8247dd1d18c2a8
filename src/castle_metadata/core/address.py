"""Public/private address classification.

We use this so that we never request URLs from inside our own network,
localhost, etc. That could be wasteful at best and a security issue at
worst. Every URL is classified before it is fetched, and again whenever a
new URL is derived during resolution.
"""

import asyncio
import ipaddress
import socket
from typing import Awaitable, Callable
from urllib.parse import urlparse

import structlog

logger = structlog.get_logger(__name__)

HostResolver = Callable[[str], Awaitable[list[str]]]


async def resolve_host(hostname: str) -> list[str]:
    """Resolve a hostname to its IP addresses.

    Args:
        hostname: Hostname or IP literal

    Returns:
        Unique addresses, in resolver order

    Raises:
        socket.gaierror: If the name cannot be resolved
    """
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)

    addresses = []
    for _family, _type, _proto, _canonname, sockaddr in infos:
        address = sockaddr[0]
        if address not in addresses:
            addresses.append(address)

    logger.debug("Resolved host", hostname=hostname, addresses=addresses)
    return addresses


def is_public_address(address: str) -> bool:
    """Check whether an IP address is publicly routable.

    Args:
        address: IPv4 or IPv6 address string (IPv6 scope ids are ignored)

    Returns:
        False for private, loopback, link-local, reserved and unparseable addresses
    """
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return False

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    return ip.is_global and not ip.is_multicast


async def is_public_url(url: str, resolver: HostResolver = resolve_host) -> bool:
    """Check whether a URL points at the public Internet.

    URLs without a hostname (``file:``, ``data:``, relative paths) are never
    public. A hostname is public only if every address it resolves to is.

    Args:
        url: URL to classify
        resolver: Async hostname resolver

    Returns:
        True if the URL's host is publicly routable

    Raises:
        socket.gaierror: If DNS resolution fails
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        # Malformed netloc, e.g. an unterminated IPv6 literal
        hostname = None

    if not hostname:
        logger.debug("URL has no hostname, not public", url=url)
        return False

    addresses = await resolver(hostname)
    public = bool(addresses) and all(is_public_address(address) for address in addresses)

    logger.debug("Classified URL", url=url, hostname=hostname, public=public)
    return public
