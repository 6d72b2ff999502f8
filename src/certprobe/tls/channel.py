"""An open transport, plaintext or TLS, owned by exactly one probe."""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from dataclasses import dataclass


CLOSE_GRACE_SECONDS = 1.0


@dataclass(slots=True)
class SecureChannel:
    """Stream pair of a connection plus helpers for inspection and teardown.

    Attributes:
        reader: Stream reader of the connection.
        writer: Stream writer of the connection; its transport is replaced
            in place when STARTTLS upgrades the connection.
    """

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter

    @property
    def ssl_object(self) -> ssl.SSLObject | None:
        """The TLS session, or None while the transport is plaintext."""
        return self.writer.get_extra_info("ssl_object")

    @property
    def encrypted(self) -> bool:
        return self.ssl_object is not None

    @property
    def peer_address(self) -> str:
        """Remote endpoint as ``address/port`` (``unknown`` if not available)."""
        peer = self.writer.get_extra_info("peername")
        if not peer:
            return "unknown"
        return f"{peer[0]}/{peer[1]}"

    def abort(self) -> None:
        """Tear the transport down immediately, without any TLS shutdown."""
        self.writer.transport.abort()

    async def close(self, grace: float = CLOSE_GRACE_SECONDS) -> None:
        """Close gracefully, aborting if the peer does not finish within ``grace``."""
        self.writer.close()
        try:
            async with asyncio.timeout(grace):
                with contextlib.suppress(OSError):
                    await self.writer.wait_closed()
        except TimeoutError:
            self.abort()
