"""Peer identity verification (RFC 6125).

Matches the verification name against the certificate's Subject Alternative
Names:

* IP literals match ``iPAddress`` entries only.
* DNS names match ``dNSName`` entries case-insensitively; a wildcard is only
  honoured as the complete left-most label, covers exactly one label, and
  needs at least two labels after it.
* ``uniformResourceIdentifier`` entries match when their host equals the name
  and their scheme equals the verification scheme (URI-ID).

The subject common name is never consulted.
"""

from __future__ import annotations

import ipaddress
from urllib.parse import urlsplit

from cryptography import x509

from certprobe.core.exceptions import TlsError


def _normalize(name: str) -> str:
    return name.rstrip(".").lower()


def dns_name_matches(pattern: str, name: str) -> bool:
    """Return True if certificate DNS-ID ``pattern`` covers ``name``."""
    pattern = _normalize(pattern)
    name = _normalize(name)
    if not pattern or not name:
        return False
    if "*" not in pattern:
        return pattern == name

    first, _, rest = pattern.partition(".")
    if first != "*" or "*" in rest or rest.count(".") < 1:
        return False
    name_first, _, name_rest = name.partition(".")
    return bool(name_first) and name_rest == rest


def _parse_ip(name: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(name.strip("[]"))
    except ValueError:
        return None


def _uri_matches(uri: str, name: str, scheme: str) -> bool:
    parts = urlsplit(uri)
    host = parts.hostname
    if parts.scheme.lower() != scheme.lower() or not host:
        return False
    return _normalize(host) == _normalize(name)


def verify_peer_identity(cert: x509.Certificate, name: str, scheme: str) -> None:
    """Verify that ``cert`` identifies ``name`` for the given scheme.

    Raises:
        TlsError: If no Subject Alternative Name matches.
    """
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound as e:
        raise TlsError(f"certificate has no subjectAltName, cannot verify {name!r}") from e

    address = _parse_ip(name)
    if address is not None:
        if address in san.get_values_for_type(x509.IPAddress):
            return
    else:
        if any(dns_name_matches(p, name) for p in san.get_values_for_type(x509.DNSName)):
            return
        uris = san.get_values_for_type(x509.UniformResourceIdentifier)
        if any(_uri_matches(uri, name, scheme) for uri in uris):
            return

    raise TlsError(f"certificate does not match {name!r} (scheme {scheme})")
