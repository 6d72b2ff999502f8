"""FTP ``AUTH TLS`` preamble (RFC 4217): ``220`` greeting, ``AUTH TLS``, ``234``."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .base import PlaintextSession


async def ftp_starttls(session: PlaintextSession) -> None:
    """Run the FTP plaintext exchange up to the TLS ready signal.

    Raises:
        UpgradeError: If the greeting is not ``220`` or ``AUTH TLS`` is not
            answered with ``234``.
    """
    await session.expect_reply(220, "FTP greeting")
    await session.send_line("AUTH TLS")
    await session.expect_reply(234, "FTP AUTH TLS")
