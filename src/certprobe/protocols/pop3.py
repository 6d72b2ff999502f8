"""POP3 STLS preamble (RFC 2595): ``+OK`` greeting, ``STLS``, ``+OK``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from certprobe.core.exceptions import UpgradeError


if TYPE_CHECKING:
    from .base import PlaintextSession


async def _expect_ok(session: PlaintextSession, context: str) -> None:
    line = await session.read_line()
    if not line.startswith("+OK"):
        raise UpgradeError(f"{context} rejected: {line}")


async def pop3_starttls(session: PlaintextSession) -> None:
    """Run the POP3 plaintext exchange up to the TLS ready signal.

    Raises:
        UpgradeError: If the greeting or the ``STLS`` command is not ``+OK``.
    """
    await _expect_ok(session, "POP3 greeting")
    await session.send_line("STLS")
    await _expect_ok(session, "POP3 STLS")
