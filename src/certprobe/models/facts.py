"""Certificate facts extracted from an established TLS channel.

See Also:
    [CertificateExtractor][certprobe.tls.extractor.CertificateExtractor]:
        Produces [CertificateFacts][certprobe.models.facts.CertificateFacts].
    [compose_verdict][certprobe.tls.composer.compose_verdict]: Consumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ._validation import validate_aware_datetime, validate_text, validate_tuple_of


@dataclass(frozen=True, slots=True)
class CertificateFacts:
    """Metadata of the peer certificate and of the channel it arrived on.

    Produced at most once per probe, and only after the channel reached the
    established state.

    Attributes:
        not_after: End of the validity period (timezone-aware, UTC).
        subject_alt_names: Subject Alternative Name values in certificate
            order, duplicates preserved.
        key_algorithm: ``"RSA"``, ``"ECDSA"`` or the raw dotted OID of any
            other public-key algorithm.
        peer_address: Remote endpoint as ``address/port``.
        tls_version: Negotiated protocol version, e.g. ``"1.3"``.
    """

    not_after: datetime
    subject_alt_names: tuple[str, ...]
    key_algorithm: str
    peer_address: str
    tls_version: str

    def __post_init__(self) -> None:
        validate_aware_datetime(self.not_after, "not_after")
        validate_tuple_of(self.subject_alt_names, str, "subject_alt_names")
        validate_text(self.key_algorithm, "key_algorithm")
        validate_text(self.peer_address, "peer_address")
        validate_text(self.tls_version, "tls_version")
