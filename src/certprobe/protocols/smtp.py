"""SMTP STARTTLS preamble (RFC 3207).

Greeting ``220`` -> ``EHLO`` -> ``250`` listing ``STARTTLS`` -> ``STARTTLS``
-> ``220``. After the final ``220`` the caller starts the TLS handshake on
the same transport.
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

from certprobe.core.exceptions import UpgradeError


if TYPE_CHECKING:
    from .base import PlaintextSession


async def smtp_starttls(session: PlaintextSession, client_name: str | None = None) -> None:
    """Run the SMTP plaintext exchange up to the TLS ready signal.

    Args:
        session: Plaintext session on a freshly connected transport.
        client_name: Name announced in ``EHLO`` (default: local host name).

    Raises:
        UpgradeError: If the server rejects any step or does not advertise
            STARTTLS.
    """
    await session.expect_reply(220, "SMTP greeting")
    await session.send_line(f"EHLO {client_name or socket.gethostname() or 'localhost'}")
    ehlo = await session.expect_reply(250, "EHLO")
    # First line is the server's own greeting text, the rest are extensions.
    extensions = {line.split(" ", 1)[0].upper() for line in ehlo.lines[1:]}
    if "STARTTLS" not in extensions:
        raise UpgradeError("SMTP server does not advertise STARTTLS")
    await session.send_line("STARTTLS")
    await session.expect_reply(220, "SMTP STARTTLS")
