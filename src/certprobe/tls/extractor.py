"""Peer certificate extraction.

Reads the DER-encoded peer certificate from an established channel, parses
it with the ``cryptography`` library and produces
[CertificateFacts][certprobe.models.facts.CertificateFacts].

Note:
    ``getpeercert()`` in dict form is avoided on purpose: it drops fields
    the probe reports (e.g. ``registeredID`` SANs) and its date format is
    locale-free text that must be re-parsed. The binary form is always
    available on a channel that completed the handshake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from cryptography import x509
from cryptography.x509.oid import PublicKeyAlgorithmOID

from certprobe.core.exceptions import ExtractionError
from certprobe.models.constants import KeyAlgorithm
from certprobe.models.facts import CertificateFacts
from certprobe.utils.text import printable


if TYPE_CHECKING:
    from .channel import SecureChannel


RSA_OIDS: Final[frozenset[x509.ObjectIdentifier]] = frozenset(
    {PublicKeyAlgorithmOID.RSAES_PKCS1_v1_5, PublicKeyAlgorithmOID.RSASSA_PSS}
)
ECDSA_OIDS: Final[frozenset[x509.ObjectIdentifier]] = frozenset(
    {PublicKeyAlgorithmOID.EC_PUBLIC_KEY}
)


class CertificateExtractor:
    """Extracts [CertificateFacts][certprobe.models.facts.CertificateFacts] from a channel.

    All helpers are static so they can be exercised on parsed certificates
    without a live connection.
    """

    @staticmethod
    def peer_certificate(channel: SecureChannel) -> x509.Certificate:
        """Return the parsed peer certificate.

        Raises:
            ExtractionError: If the channel is not TLS or the peer presented
                no certificate.
        """
        ssl_object = channel.ssl_object
        if ssl_object is None:
            raise ExtractionError("channel exposes no TLS session")
        der = ssl_object.getpeercert(binary_form=True)
        if not der:
            raise ExtractionError("peer presented no certificate")
        try:
            return x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise ExtractionError(f"cannot parse peer certificate: {e}") from e

    @staticmethod
    def normalize_key_algorithm(oid: x509.ObjectIdentifier) -> str:
        """Map the RSA family to ``RSA``, EC keys to ``ECDSA``, else the dotted OID."""
        if oid in RSA_OIDS:
            return KeyAlgorithm.RSA.value
        if oid in ECDSA_OIDS:
            return KeyAlgorithm.ECDSA.value
        return oid.dotted_string

    @staticmethod
    def normalize_tls_version(version: str | None) -> str:
        """Turn ``TLSv1.3`` into ``1.3`` (and ``TLSv1`` into ``1.0``)."""
        if not version:
            return "unknown"
        number = version.removeprefix("TLSv")
        if number == version:
            return version
        return number if "." in number else f"{number}.0"

    @staticmethod
    def general_name_text(name: x509.GeneralName) -> str:
        """Textual form of one Subject Alternative Name entry, control characters escaped."""
        match name:
            case x509.IPAddress():
                text = str(name.value)
            case x509.DirectoryName():
                text = name.value.rfc4514_string()
            case x509.RegisteredID():
                text = name.value.dotted_string
            case x509.OtherName():
                text = name.type_id.dotted_string
            case _:
                text = str(name.value)
        return printable(text)

    @classmethod
    def subject_alt_names(cls, cert: x509.Certificate) -> tuple[str, ...]:
        """All SAN values in certificate order, duplicates kept; empty if absent."""
        try:
            san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            return ()
        return tuple(cls.general_name_text(name) for name in san)

    @classmethod
    def extract(cls, channel: SecureChannel) -> CertificateFacts:
        """Extract the facts the verdict is computed from.

        Raises:
            ExtractionError: If the channel carries no peer certificate.
        """
        cert = cls.peer_certificate(channel)
        return CertificateFacts(
            not_after=cert.not_valid_after_utc,
            subject_alt_names=cls.subject_alt_names(cert),
            key_algorithm=cls.normalize_key_algorithm(cert.public_key_algorithm_oid),
            peer_address=channel.peer_address,
            tls_version=cls.normalize_tls_version(channel.ssl_object.version()),
        )
