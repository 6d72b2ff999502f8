"""TLS pipeline: strategies, context, establisher, extraction, revocation, verdicts.

See Also:
    [CertificateProbe][certprobe.tls.probe.CertificateProbe]: Entry point
        running the whole pipeline for one request.
"""

from .channel import SecureChannel
from .composer import compose_configuration_error, compose_failure, compose_verdict, days_left
from .context import build_ssl_context, cipher_string_for
from .establisher import SecureConnectionEstablisher
from .extractor import CertificateExtractor
from .identity import dns_name_matches, verify_peer_identity
from .ocsp import RevocationChecker
from .probe import CertificateProbe, run_probe
from .strategies import STRATEGIES, Strategy, select_strategy


__all__ = [
    "STRATEGIES",
    "CertificateExtractor",
    "CertificateProbe",
    "RevocationChecker",
    "SecureChannel",
    "SecureConnectionEstablisher",
    "Strategy",
    "build_ssl_context",
    "cipher_string_for",
    "compose_configuration_error",
    "compose_failure",
    "compose_verdict",
    "days_left",
    "dns_name_matches",
    "run_probe",
    "select_strategy",
    "verify_peer_identity",
]
