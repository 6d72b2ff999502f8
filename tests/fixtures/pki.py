"""Throwaway PKI for tests: a CA, RSA and ECDSA leaves, and OCSP helpers.

Usage: Registered via ``pytest_plugins`` in the root ``conftest.py``. The
builder functions are also imported directly by tests that need custom
certificates.
"""

from __future__ import annotations

import datetime
import ipaddress
import ssl
from dataclasses import dataclass
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509 import ocsp
from cryptography.x509.oid import AuthorityInformationAccessOID, ExtendedKeyUsageOID, NameOID


NOW = datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC)

PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey | ed25519.Ed25519PrivateKey


def make_key(kind: str = "ecdsa") -> PrivateKey:
    """Generate a private key: ``rsa``, ``ecdsa`` or ``ed25519``."""
    if kind == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)
    if kind == "ed25519":
        return ed25519.Ed25519PrivateKey.generate()
    return ec.generate_private_key(ec.SECP256R1())


def _signing_hash(key: PrivateKey) -> hashes.HashAlgorithm | None:
    return None if isinstance(key, ed25519.Ed25519PrivateKey) else hashes.SHA256()


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def make_ca(
    common_name: str = "certprobe test CA",
    key: PrivateKey | None = None,
    issuer: tuple[x509.Certificate, PrivateKey] | None = None,
) -> tuple[x509.Certificate, PrivateKey]:
    """Create a CA certificate; self-signed unless ``issuer`` is given."""
    key = key or make_key("ecdsa")
    issuer_name = issuer[0].subject if issuer else _name(common_name)
    signing_key = issuer[1] if issuer else key
    now = datetime.datetime.now(datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=3650))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
        )
        .sign(signing_key, _signing_hash(signing_key))
    )
    return cert, key


def _general_name(value: str) -> x509.GeneralName:
    if "://" in value:
        return x509.UniformResourceIdentifier(value)
    try:
        return x509.IPAddress(ipaddress.ip_address(value))
    except ValueError:
        return x509.DNSName(value)


def make_leaf(
    ca: tuple[x509.Certificate, PrivateKey],
    names: tuple[str, ...] = ("localhost", "127.0.0.1"),
    key_kind: str = "ecdsa",
    *,
    days: float = 90,
    not_after: datetime.datetime | None = None,
    ocsp_url: str | None = None,
    ca_issuers_url: str | None = None,
    ocsp_signing: bool = False,
    common_name: str = "certprobe test leaf",
) -> tuple[x509.Certificate, PrivateKey]:
    """Create an end-entity certificate issued by ``ca``.

    ``names`` become SAN entries: IP literals as iPAddress, values containing
    ``://`` as URIs, everything else as dNSName. An empty tuple omits the
    SAN extension entirely.
    """
    ca_cert, ca_key = ca
    key = make_key(key_kind)
    now = datetime.datetime.now(datetime.UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(not_after or now + datetime.timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key()),
            critical=False,
        )
    )
    if names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([_general_name(n) for n in names]), critical=False
        )
    access = []
    if ocsp_url:
        access.append(
            x509.AccessDescription(
                AuthorityInformationAccessOID.OCSP, x509.UniformResourceIdentifier(ocsp_url)
            )
        )
    if ca_issuers_url:
        access.append(
            x509.AccessDescription(
                AuthorityInformationAccessOID.CA_ISSUERS,
                x509.UniformResourceIdentifier(ca_issuers_url),
            )
        )
    if access:
        builder = builder.add_extension(x509.AuthorityInformationAccess(access), critical=False)
    usages = [ExtendedKeyUsageOID.OCSP_SIGNING] if ocsp_signing else [
        ExtendedKeyUsageOID.SERVER_AUTH
    ]
    builder = builder.add_extension(x509.ExtendedKeyUsage(usages), critical=False)
    return builder.sign(ca_key, _signing_hash(ca_key)), key


def ocsp_response(
    cert: x509.Certificate,
    issuer: x509.Certificate,
    signer: tuple[x509.Certificate, PrivateKey],
    *,
    status: ocsp.OCSPCertStatus = ocsp.OCSPCertStatus.GOOD,
    this_update: datetime.datetime = NOW - datetime.timedelta(hours=1),
    next_update: datetime.datetime | None = NOW + datetime.timedelta(days=1),
    revocation_time: datetime.datetime | None = None,
    embed_signer: bool = False,
) -> ocsp.OCSPResponse:
    """Build and sign a single-response OCSP answer about ``cert``."""
    signer_cert, signer_key = signer
    builder = ocsp.OCSPResponseBuilder().add_response(
        cert=cert,
        issuer=issuer,
        algorithm=hashes.SHA1(),
        cert_status=status,
        this_update=this_update,
        next_update=next_update,
        revocation_time=revocation_time,
        revocation_reason=x509.ReasonFlags.key_compromise if revocation_time else None,
    )
    builder = builder.responder_id(ocsp.OCSPResponderEncoding.HASH, signer_cert)
    if embed_signer:
        builder = builder.certificates([signer_cert])
    return builder.sign(signer_key, _signing_hash(signer_key))


def ocsp_der(response: ocsp.OCSPResponse) -> bytes:
    return response.public_bytes(serialization.Encoding.DER)


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def key_pem(key: PrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@dataclass(frozen=True)
class TestPki:
    """CA plus one RSA and one ECDSA leaf, written to disk as PEM files."""

    __test__ = False

    ca: tuple[x509.Certificate, PrivateKey]
    rsa_leaf: tuple[x509.Certificate, PrivateKey]
    ecdsa_leaf: tuple[x509.Certificate, PrivateKey]
    ca_file: Path
    rsa_cert_file: Path
    rsa_key_file: Path
    ecdsa_cert_file: Path
    ecdsa_key_file: Path

    def server_context(self, *, rsa_cert: bool = False, ecdsa_cert: bool = True) -> ssl.SSLContext:
        """Server-side context presenting the selected leaf certificate(s)."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        if rsa_cert:
            context.load_cert_chain(self.rsa_cert_file, self.rsa_key_file)
        if ecdsa_cert:
            context.load_cert_chain(self.ecdsa_cert_file, self.ecdsa_key_file)
        return context


def write_pki(directory: Path) -> TestPki:
    ca = make_ca(key=make_key("ecdsa"))
    rsa_leaf = make_leaf(ca, key_kind="rsa")
    ecdsa_leaf = make_leaf(ca, key_kind="ecdsa")
    files = {
        "ca.pem": cert_pem(ca[0]),
        "rsa.pem": cert_pem(rsa_leaf[0]),
        "rsa.key": key_pem(rsa_leaf[1]),
        "ecdsa.pem": cert_pem(ecdsa_leaf[0]),
        "ecdsa.key": key_pem(ecdsa_leaf[1]),
    }
    for name, data in files.items():
        (directory / name).write_bytes(data)
    return TestPki(
        ca=ca,
        rsa_leaf=rsa_leaf,
        ecdsa_leaf=ecdsa_leaf,
        ca_file=directory / "ca.pem",
        rsa_cert_file=directory / "rsa.pem",
        rsa_key_file=directory / "rsa.key",
        ecdsa_cert_file=directory / "ecdsa.pem",
        ecdsa_key_file=directory / "ecdsa.key",
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def pki(tmp_path_factory: pytest.TempPathFactory) -> TestPki:
    """Session-wide CA with RSA and ECDSA leaves for localhost/127.0.0.1."""
    return write_pki(tmp_path_factory.mktemp("pki"))


@pytest.fixture(scope="session")
def ca() -> tuple[x509.Certificate, PrivateKey]:
    """A standalone ECDSA CA (not written to disk)."""
    return make_ca()
