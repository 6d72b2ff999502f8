"""Line-oriented plaintext session shared by the STARTTLS dialects.

Wraps an ``asyncio`` stream pair with logging and error normalization: a
closed connection, an oversized line or a socket error while the plaintext
preamble is running all become
[UpgradeError][certprobe.core.exceptions.UpgradeError].

See Also:
    [certprobe.protocols.smtp][]: SMTP/FTP style numeric replies via
        [read_reply()][certprobe.protocols.base.PlaintextSession.read_reply].
    [certprobe.protocols.imap][]: Tagged IMAP responses via
        [read_line()][certprobe.protocols.base.PlaintextSession.read_line].
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, NamedTuple

from certprobe.core.exceptions import UpgradeError
from certprobe.utils.text import printable


if TYPE_CHECKING:
    from certprobe.core.logger import Logger


class Reply(NamedTuple):
    """A numeric (SMTP/FTP style) reply: code plus the text of every line."""

    code: int
    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return " ".join(self.lines)


class PlaintextSession:
    """Plaintext command/response exchange over an open stream pair.

    The session never closes the transport: ownership stays with the
    [SecureConnectionEstablisher][certprobe.tls.establisher.SecureConnectionEstablisher],
    which tears it down on every failure path.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        logger: Logger,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._logger = logger

    @property
    def reader(self) -> asyncio.StreamReader:
        return self._reader

    @property
    def writer(self) -> asyncio.StreamWriter:
        return self._writer

    async def read_exactly(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        try:
            return await self._reader.readexactly(size)
        except asyncio.IncompleteReadError as e:
            raise UpgradeError("connection closed by server during preamble") from e
        except OSError as e:
            raise UpgradeError(f"read failed during preamble: {e}") from e

    async def read_line(self) -> str:
        """Read one CRLF (or LF) terminated line, without the terminator."""
        try:
            raw = await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            raise UpgradeError("connection closed by server during preamble") from e
        except asyncio.LimitOverrunError as e:
            raise UpgradeError("server response line too long") from e
        except OSError as e:
            raise UpgradeError(f"read failed during preamble: {e}") from e
        line = raw.decode("utf-8", "replace").rstrip("\r\n")
        self._logger.debug("preamble_recv", line=printable(line))
        return line

    async def send_line(self, line: str) -> None:
        """Send one command line terminated by CRLF."""
        self._logger.debug("preamble_send", line=line)
        await self.send_bytes(line.encode("ascii") + b"\r\n")

    async def send_bytes(self, data: bytes) -> None:
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise UpgradeError(f"write failed during preamble: {e}") from e

    async def read_reply(self) -> Reply:
        """Read a numeric reply, following ``NNN-`` continuation lines.

        The reply ends at the first line that starts with the same code
        followed by a space (or consists of the bare code). Continuation
        lines without a code, as FTP allows, are kept verbatim.

        Raises:
            UpgradeError: If the first line does not start with a 3-digit code.
        """
        first = await self.read_line()
        code_text = first[:3]
        if len(code_text) != 3 or not code_text.isdigit():  # noqa: PLR2004
            raise UpgradeError(f"malformed server reply: {first!r}")
        lines = [first[4:]]
        if first[3:4] == "-":
            while True:
                line = await self.read_line()
                if line == code_text or line.startswith(code_text + " "):
                    lines.append(line[4:])
                    break
                lines.append(line[4:] if line.startswith(code_text + "-") else line)
        return Reply(int(code_text), tuple(lines))

    async def expect_reply(self, expected: int, context: str) -> Reply:
        """Read a numeric reply and require ``expected`` as its code."""
        reply = await self.read_reply()
        if reply.code != expected:
            raise UpgradeError(f"{context} rejected: {reply.code} {reply.text}".rstrip())
        return reply
