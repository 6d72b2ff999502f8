"""Name resolution for the connect step.

Resolves the target host to IP addresses with ``dnspython``'s asyncio
resolver, so a slow or unresponsive DNS server is cancelled together with
everything else when the probe deadline fires. The system resolver runs in
an executor thread that cannot be cancelled and would keep the process alive
after the verdict was printed.

Note:
    IP literals are returned as-is and the reserved ``localhost`` names map
    to the loopback addresses. Other names are looked up in DNS only; entries
    in the hosts file are not consulted.

See Also:
    [SecureConnectionEstablisher][certprobe.tls.establisher.SecureConnectionEstablisher]:
        Connects to the resolved addresses in order.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Final

import dns.asyncresolver
import dns.exception


LOOPBACK_ADDRESSES: Final[dict[int, tuple[str, ...]]] = {
    socket.AF_UNSPEC: ("::1", "127.0.0.1"),
    socket.AF_INET: ("127.0.0.1",),
    socket.AF_INET6: ("::1",),
}

ADDRESS_VERSIONS: Final[dict[int, int]] = {socket.AF_INET: 4, socket.AF_INET6: 6}


class NoAddressError(dns.exception.DNSException):
    """The host has no address usable with the requested family."""


def _is_localhost(host: str) -> bool:
    name = host.rstrip(".").lower()
    return name == "localhost" or name.endswith(".localhost")


async def resolve_addresses(host: str, family: int, lifetime: float) -> list[str]:
    """Resolve ``host`` to the addresses to connect to, in preference order.

    Args:
        host: Host name or IP literal.
        family: ``socket.AF_UNSPEC``, ``socket.AF_INET`` or ``socket.AF_INET6``.
        lifetime: Upper bound in seconds for the whole lookup.

    Returns:
        At least one IP address as text.

    Raises:
        dns.exception.DNSException: If the name does not resolve, has no
            address of the requested family, or the lookup times out.
    """
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        wanted = ADDRESS_VERSIONS.get(family)
        if wanted is not None and address.version != wanted:
            raise NoAddressError(f"{host} is not an IPv{wanted} address")
        return [str(address)]

    if _is_localhost(host):
        return list(LOOPBACK_ADDRESSES[family])

    resolver = dns.asyncresolver.Resolver()
    resolver.lifetime = lifetime
    answers = await resolver.resolve_name(host, family=family)
    addresses = list(answers.addresses())
    if not addresses:
        raise NoAddressError(f"{host} has no usable address")
    return addresses
