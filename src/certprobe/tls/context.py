"""SSL context construction for the probe.

The probe owns the ``ssl.SSLContext`` and hands the configured object to
every transport strategy, including the STARTTLS ones, so trust roots,
version constraints and the key-algorithm filter apply uniformly.

Note:
    Hostname checking by OpenSSL is disabled because the SNI name and the
    verification name may differ; the peer name is verified after the
    handshake by
    [verify_peer_identity()][certprobe.tls.identity.verify_peer_identity].
    Chain verification stays mandatory (``CERT_REQUIRED``).
"""

from __future__ import annotations

import ssl
from typing import TYPE_CHECKING, Final

from certprobe.core.exceptions import ConfigurationError


if TYPE_CHECKING:
    from certprobe.models.request import ProbeRequest, TlsVersionConstraint


TLS_VERSIONS: Final[dict[str, ssl.TLSVersion]] = {
    "1.0": ssl.TLSVersion.TLSv1,
    "1.1": ssl.TLSVersion.TLSv1_1,
    "1.2": ssl.TLSVersion.TLSv1_2,
    "1.3": ssl.TLSVersion.TLSv1_3,
}

# Cipher strings restricting TLS 1.2 suites to one authentication algorithm,
# which determines the certificate type the server must present.
KEY_ALGORITHM_CIPHERS: Final[dict[str, str]] = {
    "rsa": "aRSA",
    "ecdsa": "aECDSA",
}


def cipher_string_for(key_algorithm: str) -> str:
    """Map ``rsa``/``ecdsa`` to an OpenSSL cipher string; pass anything else through."""
    return KEY_ALGORITHM_CIPHERS.get(key_algorithm.lower(), key_algorithm)


def _apply_version_constraint(context: ssl.SSLContext, constraint: TlsVersionConstraint) -> None:
    version = TLS_VERSIONS[constraint.version]
    try:
        context.minimum_version = version
        if not constraint.or_newer:
            context.maximum_version = version
    except (ValueError, ssl.SSLError) as e:
        raise ConfigurationError(f"TLS version {constraint} not supported: {e}") from e


def _apply_key_algorithm(context: ssl.SSLContext, key_algorithm: str) -> None:
    ciphers = cipher_string_for(key_algorithm)
    try:
        context.set_ciphers(ciphers)
    except ssl.SSLError as e:
        raise ConfigurationError(
            f"cannot request {key_algorithm} certificate (cipher string {ciphers!r}): {e}"
        ) from e
    # TLS 1.3 suites do not carry the authentication algorithm.
    if context.maximum_version in (ssl.TLSVersion.MAXIMUM_SUPPORTED, ssl.TLSVersion.TLSv1_3):
        context.maximum_version = ssl.TLSVersion.TLSv1_2


def build_ssl_context(request: ProbeRequest) -> ssl.SSLContext:
    """Create the client context for one probe.

    Args:
        request: The probe configuration.

    Returns:
        A context with chain verification enabled, trust roots pinned to
        ``ca_file``/``ca_path`` when given, and the version and key-algorithm
        constraints applied.

    Raises:
        ConfigurationError: If the trust roots cannot be loaded, the version
            is unsupported by the local OpenSSL, or the key-algorithm cipher
            string selects no cipher.
    """
    try:
        context = ssl.create_default_context(
            purpose=ssl.Purpose.SERVER_AUTH,
            cafile=request.ca_file,
            capath=request.ca_path,
        )
    except (OSError, ssl.SSLError) as e:
        raise ConfigurationError(f"cannot load trust roots: {e}") from e

    context.check_hostname = False
    context.verify_mode = ssl.CERT_REQUIRED

    constraint = request.tls_version_constraint
    if constraint is not None:
        _apply_version_constraint(context, constraint)
    if request.key_algorithm is not None:
        _apply_key_algorithm(context, request.key_algorithm)
    return context
