"""Transport strategies: direct TLS and the five STARTTLS dialects.

Each [Strategy][certprobe.tls.strategies.Strategy] fixes the default port,
the default verification scheme and the plaintext preamble that runs before
the TLS handshake. [select_strategy()][certprobe.tls.strategies.select_strategy]
is the dispatch table from
[ProtocolUpgrade][certprobe.models.constants.ProtocolUpgrade] tokens to
strategy instances.

Examples:
    ```python
    strategy = select_strategy("smtp")
    strategy.default_port    # 25
    strategy.default_scheme  # "smtp"
    ```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Final

from certprobe.core.exceptions import ConfigurationError
from certprobe.models.constants import ProtocolUpgrade
from certprobe.protocols import ImapClient, LdapClient, ftp_starttls, pop3_starttls, smtp_starttls


if TYPE_CHECKING:
    import asyncio
    import ssl

    from certprobe.models.request import ProbeRequest
    from certprobe.protocols import PlaintextSession


class Strategy(ABC):
    """How to get from a plain TCP connection to a TLS channel.

    Attributes:
        upgrade: The protocol token selecting this strategy.
        default_port: Port used when the request does not set one.
        default_scheme: Verification scheme used when the request does not
            set one.
        starttls: Whether a plaintext preamble precedes the handshake.
        silence_ignores_upgrade: Whether a server that agreed to upgrade and
            then stays silent until the deadline counts as having ignored
            the upgrade rather than as a timeout.
    """

    upgrade: ClassVar[ProtocolUpgrade]
    default_port: ClassVar[int]
    default_scheme: ClassVar[str]
    starttls: ClassVar[bool] = True
    silence_ignores_upgrade: ClassVar[bool] = False

    @property
    def name(self) -> str:
        if not self.starttls:
            return "direct-tls"
        return f"starttls-{self.upgrade.value}"

    def resolve_port(self, request: ProbeRequest) -> int:
        return request.port if request.port is not None else self.default_port

    def resolve_scheme(self, request: ProbeRequest) -> str:
        return request.scheme or self.default_scheme

    @abstractmethod
    async def preamble(self, session: PlaintextSession) -> None:
        """Run the plaintext exchange that ends with the server ready for TLS."""

    async def upgrade_to_tls(
        self,
        writer: asyncio.StreamWriter,
        context: ssl.SSLContext,
        server_hostname: str,
        handshake_timeout: float,
    ) -> None:
        """Perform the TLS handshake on the connected transport."""
        await writer.start_tls(
            context,
            server_hostname=server_hostname,
            ssl_handshake_timeout=handshake_timeout,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DirectTls(Strategy):
    """TLS handshake immediately after the TCP connection."""

    upgrade = ProtocolUpgrade.NONE
    default_port = 443
    default_scheme = "http"
    starttls = False

    async def preamble(self, session: PlaintextSession) -> None:
        return None


class SmtpStartTls(Strategy):
    upgrade = ProtocolUpgrade.SMTP
    default_port = 25
    default_scheme = "smtp"

    async def preamble(self, session: PlaintextSession) -> None:
        await smtp_starttls(session)


class Pop3StartTls(Strategy):
    upgrade = ProtocolUpgrade.POP3
    default_port = 110
    default_scheme = "pop3"

    async def preamble(self, session: PlaintextSession) -> None:
        await pop3_starttls(session)


class FtpStartTls(Strategy):
    upgrade = ProtocolUpgrade.FTP
    default_port = 21
    default_scheme = "ftp"

    async def preamble(self, session: PlaintextSession) -> None:
        await ftp_starttls(session)


class ImapStartTls(Strategy):
    upgrade = ProtocolUpgrade.IMAP
    default_port = 143
    default_scheme = "imap"

    async def preamble(self, session: PlaintextSession) -> None:
        client = ImapClient(session)
        await client.connect()
        await client.starttls()


class LdapStartTls(Strategy):
    """LDAPv3 StartTLS extended operation before the handshake."""

    upgrade = ProtocolUpgrade.LDAP
    default_port = 389
    default_scheme = "ldap"
    silence_ignores_upgrade = True

    async def preamble(self, session: PlaintextSession) -> None:
        await LdapClient(session).start_tls()


STRATEGIES: Final[dict[ProtocolUpgrade, Strategy]] = {
    strategy.upgrade: strategy
    for strategy in (
        DirectTls(),
        SmtpStartTls(),
        Pop3StartTls(),
        FtpStartTls(),
        ImapStartTls(),
        LdapStartTls(),
    )
}


def select_strategy(upgrade: ProtocolUpgrade | str | None) -> Strategy:
    """Return the strategy for a protocol-upgrade token.

    ``None`` and ``"none"`` select direct TLS.

    Raises:
        ConfigurationError: If the token names no known protocol.
    """
    if upgrade is None:
        return STRATEGIES[ProtocolUpgrade.NONE]
    try:
        return STRATEGIES[ProtocolUpgrade(str(upgrade).lower())]
    except ValueError as e:
        known = ", ".join(p.value for p in ProtocolUpgrade)
        raise ConfigurationError(f"unknown protocol upgrade {upgrade!r} (expected one of {known})") from e
