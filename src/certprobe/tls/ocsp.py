"""OCSP revocation checking of the presented certificate chain.

Runs after the channel reached the established state and only when the
request enables it. Every certificate of the chain that has its issuer in the
chain is checked against the first OCSP responder named in its Authority
Information Access extension. Any problem (responder unreachable, malformed
or unsigned response, stale data, a status other than GOOD) is an
[OcspError][certprobe.core.exceptions.OcspError]: revocation checking is a
correctness gate, not advisory.

Note:
    The chain comes from ``SSLObject.get_verified_chain()`` where the
    interpreter provides it as DER bytes. Otherwise only the leaf is
    available and its issuer is downloaded from the AIA ``caIssuers`` URL.
"""

from __future__ import annotations

import datetime
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Final

import aiohttp
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, padding, rsa
from cryptography.hazmat.primitives.serialization import pkcs7
from cryptography.x509 import ocsp
from cryptography.x509.oid import (
    AuthorityInformationAccessOID,
    ExtendedKeyUsageOID,
    SignatureAlgorithmOID,
)

from certprobe.core.exceptions import OcspError
from certprobe.utils.http import fetch_bytes

from .extractor import CertificateExtractor


if TYPE_CHECKING:
    from certprobe.core.logger import Logger
    from certprobe.utils.deadline import Deadline

    from .channel import SecureChannel


OCSP_REQUEST_CONTENT_TYPE: Final[str] = "application/ocsp-request"

Fetch = Callable[..., Awaitable[bytes]]
Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def aia_urls(cert: x509.Certificate, method: x509.ObjectIdentifier) -> list[str]:
    """URLs of one access method (OCSP or caIssuers) in the AIA extension."""
    try:
        aia = cert.extensions.get_extension_for_class(x509.AuthorityInformationAccess).value
    except x509.ExtensionNotFound:
        return []
    return [
        desc.access_location.value
        for desc in aia
        if desc.access_method == method
        and isinstance(desc.access_location, x509.UniformResourceIdentifier)
    ]


def describe(cert: x509.Certificate) -> str:
    try:
        return cert.subject.rfc4514_string() or f"serial {cert.serial_number:#x}"
    except ValueError:
        return f"serial {cert.serial_number:#x}"


def load_issuer_certificate(data: bytes) -> x509.Certificate:
    """Parse a downloaded issuer certificate (DER, PEM, or a PKCS#7 bundle).

    Raises:
        ValueError: If no certificate can be parsed from ``data``.
    """
    if data.lstrip().startswith(b"-----BEGIN"):
        return x509.load_pem_x509_certificate(data)
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError:
        certs = pkcs7.load_der_pkcs7_certificates(data)
        if not certs:
            raise
        return certs[0]


def verify_signature(
    public_key: object,
    signature: bytes,
    data: bytes,
    hash_algorithm: hashes.HashAlgorithm | None,
    algorithm_oid: x509.ObjectIdentifier | None = None,
) -> None:
    """Check a signature with whatever key type the signer holds.

    RSA signatures use PSS padding when ``algorithm_oid`` is RSASSA-PSS and
    PKCS#1 v1.5 otherwise.

    Raises:
        InvalidSignature: If the signature does not verify.
        OcspError: If the key type is not supported.
    """
    if isinstance(public_key, rsa.RSAPublicKey) and hash_algorithm is not None:
        rsa_padding: padding.AsymmetricPadding = padding.PKCS1v15()
        if algorithm_oid == SignatureAlgorithmOID.RSASSA_PSS:
            rsa_padding = padding.PSS(
                mgf=padding.MGF1(hash_algorithm), salt_length=padding.PSS.AUTO
            )
        public_key.verify(signature, data, rsa_padding, hash_algorithm)
    elif isinstance(public_key, ec.EllipticCurvePublicKey) and hash_algorithm is not None:
        public_key.verify(signature, data, ec.ECDSA(hash_algorithm))
    elif isinstance(public_key, ed25519.Ed25519PublicKey | ed448.Ed448PublicKey):
        public_key.verify(signature, data)
    else:
        raise OcspError(f"unsupported responder key type {type(public_key).__name__}")


def _is_ocsp_signer(candidate: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        candidate.verify_directly_issued_by(issuer)
        eku = candidate.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except (ValueError, TypeError, InvalidSignature, x509.ExtensionNotFound):
        return False
    return ExtendedKeyUsageOID.OCSP_SIGNING in eku


class RevocationChecker:
    """Checks the OCSP status of every certificate in the presented chain.

    Args:
        logger: Structured logger for request/response details.
        fetch: Coroutine performing the HTTP exchange; defaults to
            [fetch_bytes][certprobe.utils.http.fetch_bytes].
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        logger: Logger,
        fetch: Fetch = fetch_bytes,
        clock: Clock = _utcnow,
    ) -> None:
        self._logger = logger
        self._fetch = fetch
        self._clock = clock

    async def check(self, channel: SecureChannel, deadline: Deadline) -> None:
        """Validate the chain presented on ``channel``.

        Raises:
            OcspError: On any resolver error or a status other than GOOD.
            TimeoutError: If the deadline expires during an HTTP exchange.
        """
        chain = await self.chain(channel, deadline)
        for position, (cert, issuer) in enumerate(zip(chain, chain[1:], strict=False)):
            urls = aia_urls(cert, AuthorityInformationAccessOID.OCSP)
            if not urls:
                if position == 0:
                    raise OcspError(f"certificate {describe(cert)} names no OCSP responder")
                self._logger.debug("ocsp_skipped", cert=describe(cert), reason="no responder")
                continue
            await self.check_one(cert, issuer, urls[0], deadline)

    async def chain(self, channel: SecureChannel, deadline: Deadline) -> list[x509.Certificate]:
        """Leaf-first chain: the verified chain if available, else leaf plus AIA issuer."""
        leaf = CertificateExtractor.peer_certificate(channel)
        ssl_object = channel.ssl_object
        get_chain = getattr(ssl_object, "get_verified_chain", None)
        if get_chain is not None:
            ders = get_chain()
            if ders and all(isinstance(der, bytes) for der in ders):
                try:
                    chain = [x509.load_der_x509_certificate(der) for der in ders]
                except ValueError as e:
                    raise OcspError(f"cannot parse verified chain: {e}") from e
                self._logger.debug("chain_loaded", source="verified", length=len(chain))
                return chain

        urls = aia_urls(leaf, AuthorityInformationAccessOID.CA_ISSUERS)
        if not urls:
            raise OcspError(f"issuer of {describe(leaf)} unavailable: no caIssuers URL")
        try:
            data = await self._fetch(urls[0], deadline)
            issuer = load_issuer_certificate(data)
        except aiohttp.ClientError as e:
            raise OcspError(f"issuer download from {urls[0]} failed: {e}") from e
        except ValueError as e:
            raise OcspError(f"issuer from {urls[0]} unusable: {e}") from e
        self._logger.debug("chain_loaded", source="aia", url=urls[0], issuer=describe(issuer))
        return [leaf, issuer]

    async def check_one(
        self,
        cert: x509.Certificate,
        issuer: x509.Certificate,
        url: str,
        deadline: Deadline,
    ) -> None:
        """Query ``url`` for the status of ``cert`` and validate the answer.

        Raises:
            OcspError: On transport, parsing, signature, freshness or status
                problems.
        """
        request = (
            ocsp.OCSPRequestBuilder()
            .add_certificate(cert, issuer, hashes.SHA1())  # noqa: S303
            .build()
            .public_bytes(serialization.Encoding.DER)
        )
        self._logger.debug("ocsp_request", url=url, serial=f"{cert.serial_number:#x}")
        try:
            body = await self._fetch(
                url, deadline, data=request, content_type=OCSP_REQUEST_CONTENT_TYPE
            )
            response = ocsp.load_der_ocsp_response(body)
        except aiohttp.ClientError as e:
            raise OcspError(f"responder {url} failed: {e}") from e
        except ValueError as e:
            raise OcspError(f"invalid response from {url}: {e}") from e

        self.validate(response, cert, issuer, url)

    def validate(
        self,
        response: ocsp.OCSPResponse,
        cert: x509.Certificate,
        issuer: x509.Certificate,
        url: str = "responder",
    ) -> None:
        """Validate a parsed OCSP response for ``cert``.

        Raises:
            OcspError: If the response is not a fresh, correctly signed GOOD
                answer about ``cert``.
        """
        if response.response_status != ocsp.OCSPResponseStatus.SUCCESSFUL:
            raise OcspError(f"{url} answered {response.response_status.name}")

        single = next(
            (r for r in response.responses if r.serial_number == cert.serial_number), None
        )
        if single is None:
            raise OcspError(f"{url} answered for a different serial than {cert.serial_number:#x}")

        self._verify_response_signature(response, issuer, url)

        now = self._clock()
        next_update = single.next_update_utc
        if next_update is not None and next_update < now:
            raise OcspError(f"{url} response is stale (next update {next_update:%Y-%m-%d %H:%M:%S %Z})")

        status = single.certificate_status
        self._logger.debug("ocsp_status", url=url, status=status.name, cert=describe(cert))
        if status == ocsp.OCSPCertStatus.REVOKED:
            revoked_at = single.revocation_time_utc
            when = f"{revoked_at:%Y-%m-%d %H:%M:%S %Z}" if revoked_at else "unknown time"
            raise OcspError(f"certificate {describe(cert)} revoked at {when}")
        if status != ocsp.OCSPCertStatus.GOOD:
            raise OcspError(f"certificate {describe(cert)} status {status.name}")

    def _verify_response_signature(
        self,
        response: ocsp.OCSPResponse,
        issuer: x509.Certificate,
        url: str,
    ) -> None:
        signers = [issuer] + [c for c in response.certificates if _is_ocsp_signer(c, issuer)]
        for signer in signers:
            try:
                verify_signature(
                    signer.public_key(),
                    response.signature,
                    response.tbs_response_bytes,
                    response.signature_hash_algorithm,
                    response.signature_algorithm_oid,
                )
            except InvalidSignature:
                continue
            if signer is not issuer:
                self._logger.debug("ocsp_delegated_signer", signer=describe(signer))
            return
        raise OcspError(f"{url} response signature not verified by issuer or delegated responder")
