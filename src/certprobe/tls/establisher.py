"""Secure connection establisher.

Drives a [Strategy][certprobe.tls.strategies.Strategy] from an idle state to
an established, verified TLS channel:

```text
IDLE -> CONNECTING -> (PLAINTEXT-PREAMBLE ->)? HANDSHAKING -> ESTABLISHED
          \______________________\_________________\______-> FAILED
```

The caller runs [establish()][certprobe.tls.establisher.SecureConnectionEstablisher.establish]
under the probe [Deadline][certprobe.utils.deadline.Deadline]. Whatever ends
the attempt early (a library error, a rejected upgrade, or cancellation when
the deadline fires) the transport opened so far is aborted before the
exception leaves this module.

After a STARTTLS preamble the server has agreed to upgrade. If it then
answers the ClientHello with plaintext or closes the connection, the
upgrade was ignored and the attempt fails with
[UpgradeError][certprobe.core.exceptions.UpgradeError] rather than a TLS
error.

See Also:
    [CertificateProbe][certprobe.tls.probe.CertificateProbe]: Owns the
        deadline and maps the raised errors to a verdict.
"""

from __future__ import annotations

import asyncio
import socket
import ssl
from typing import TYPE_CHECKING, Final

import dns.exception

from certprobe.core.exceptions import ConnectError, TlsError, UpgradeError
from certprobe.models.constants import AddressFamily, ProbeState
from certprobe.protocols import PlaintextSession
from certprobe.utils.dns import resolve_addresses

from .channel import SecureChannel
from .extractor import CertificateExtractor
from .identity import verify_peer_identity


if TYPE_CHECKING:
    from certprobe.core.logger import Logger
    from certprobe.models.request import ProbeRequest
    from certprobe.utils.deadline import Deadline

    from .strategies import Strategy


SOCKET_FAMILIES: Final[dict[AddressFamily, int]] = {
    AddressFamily.UNSPECIFIED: socket.AF_UNSPEC,
    AddressFamily.IPV4: socket.AF_INET,
    AddressFamily.IPV6: socket.AF_INET6,
}

# Keeps library-level timeouts (DNS lifetime, TLS handshake) behind the probe
# deadline, so expiry is always reported as a timeout.
LIBRARY_TIMEOUT_MARGIN: Final[float] = 1.0

# OpenSSL reasons for a first record that is not TLS at all.
NOT_TLS_REASONS: Final[frozenset[str]] = frozenset(
    {
        "WRONG_VERSION_NUMBER",
        "UNKNOWN_PROTOCOL",
        "HTTP_REQUEST",
        "RECORD_LAYER_FAILURE",
        "PACKET_LENGTH_TOO_LONG",
    }
)


class SecureConnectionEstablisher:
    """Establishes one verified TLS channel for a probe request.

    Attributes:
        state: Current [ProbeState][certprobe.models.constants.ProbeState].
        failed_in: The state that was active when the attempt failed, or
            None if it has not failed.
    """

    def __init__(
        self,
        request: ProbeRequest,
        strategy: Strategy,
        context: ssl.SSLContext,
        logger: Logger,
    ) -> None:
        self._request = request
        self._strategy = strategy
        self._context = context
        self._logger = logger
        self.state = ProbeState.IDLE
        self.failed_in: ProbeState | None = None

    def _transition(self, state: ProbeState, deadline: Deadline) -> None:
        self._logger.debug(
            "state_changed",
            previous=self.state.value,
            state=state.value,
            remaining_s=round(deadline.remaining(), 3),
        )
        self.state = state

    async def establish(self, deadline: Deadline) -> SecureChannel:
        """Run the strategy and return an established channel.

        Args:
            deadline: Probe deadline; remaining time bounds the handshake.

        Returns:
            A TLS channel whose chain and peer name have been verified. The
            caller owns it and must close it.

        Raises:
            ConnectError: If the host does not resolve or no address accepts
                the connection.
            UpgradeError: If the plaintext preamble fails, or the server
                agreed to upgrade but did not start TLS.
            TlsError: If the handshake or peer verification fails.
            ExtractionError: If no peer certificate is available.
            asyncio.CancelledError: When the surrounding deadline fires.
        """
        channel: SecureChannel | None = None
        established = False
        try:
            self._transition(ProbeState.CONNECTING, deadline)
            channel = await self._connect(deadline)

            if self._strategy.starttls:
                self._transition(ProbeState.PREAMBLE, deadline)
                session = PlaintextSession(
                    channel.reader, channel.writer, self._logger.child(self._strategy.upgrade.value)
                )
                await self._strategy.preamble(session)

            self._transition(ProbeState.HANDSHAKING, deadline)
            await self._handshake(channel, deadline)
            self._verify(channel)

            self._transition(ProbeState.ESTABLISHED, deadline)
            established = True
            return channel
        finally:
            if not established:
                self.failed_in = self.state
                self.state = ProbeState.FAILED
                if channel is not None:
                    channel.abort()

    async def _connect(self, deadline: Deadline) -> SecureChannel:
        request = self._request
        port = self._strategy.resolve_port(request)
        family = SOCKET_FAMILIES[request.address_family]
        self._logger.debug(
            "connecting", host=request.host, port=port, family=request.address_family.value
        )
        try:
            addresses = await resolve_addresses(
                request.host, family, lifetime=deadline.remaining() + LIBRARY_TIMEOUT_MARGIN
            )
        except dns.exception.DNSException as e:
            raise ConnectError(f"{request.host}:{port}: {e}") from e

        error: OSError | None = None
        for address in addresses:
            try:
                reader, writer = await asyncio.open_connection(address, port)
            except OSError as e:
                self._logger.debug("connect_failed", address=address, error=e.strerror or str(e))
                error = e
                continue
            return SecureChannel(reader, writer)
        raise ConnectError(f"{request.host}:{port}: {error.strerror or error}") from error

    async def _handshake(self, channel: SecureChannel, deadline: Deadline) -> None:
        sni = self._request.resolved_sni
        try:
            await self._strategy.upgrade_to_tls(
                channel.writer,
                self._context,
                server_hostname=sni,
                handshake_timeout=deadline.remaining() + LIBRARY_TIMEOUT_MARGIN,
            )
        except ssl.SSLCertVerificationError as e:
            raise TlsError(f"certificate verification failed: {e.verify_message}") from e
        except ssl.SSLError as e:
            if self._strategy.starttls and isinstance(e, ssl.SSLEOFError):
                raise self.upgrade_ignored("connection closed") from e
            if self._strategy.starttls and e.reason in NOT_TLS_REASONS:
                raise self.upgrade_ignored(f"non-TLS reply ({e.reason})") from e
            raise TlsError(f"handshake failed: {e.reason or e}") from e
        except (ConnectionError, EOFError) as e:
            if self._strategy.starttls:
                raise self.upgrade_ignored("connection closed") from e
            raise TlsError(f"handshake failed: {e or type(e).__name__}") from e
        except OSError as e:
            raise TlsError(f"handshake failed: {e or type(e).__name__}") from e

    def upgrade_ignored(self, detail: str) -> UpgradeError:
        """Error for a server that agreed to upgrade and then did not start TLS."""
        return UpgradeError(
            f"{self._strategy.name} reported success but the server did not start TLS: {detail}"
        )

    def _verify(self, channel: SecureChannel) -> None:
        if not channel.encrypted:
            raise UpgradeError(
                f"{self._strategy.name} reported success but the channel is not encrypted"
            )
        cert = CertificateExtractor.peer_certificate(channel)
        verify_name = self._request.resolved_verify_name
        scheme = self._strategy.resolve_scheme(self._request)
        verify_peer_identity(cert, verify_name, scheme)
        ssl_object = channel.ssl_object
        self._logger.debug(
            "handshake_completed",
            version=ssl_object.version() if ssl_object else None,
            cipher=ssl_object.cipher()[0] if ssl_object and ssl_object.cipher() else None,
            verify_name=verify_name,
            scheme=scheme,
        )
