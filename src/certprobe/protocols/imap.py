"""IMAP STARTTLS client (RFC 3501 section 6.2.1).

A small tagged-command client: greeting, ``CAPABILITY`` (STARTTLS must be
listed), then ``STARTTLS`` answered by a tagged ``OK``.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from certprobe.core.exceptions import UpgradeError


if TYPE_CHECKING:
    from .base import PlaintextSession


class ImapClient:
    """Minimal IMAP4rev1 client that can only negotiate STARTTLS."""

    def __init__(self, session: PlaintextSession) -> None:
        self._session = session
        self._tags = (f"A{n:03d}" for n in itertools.count(1))

    async def connect(self) -> None:
        """Read the server greeting."""
        greeting = await self._session.read_line()
        upper = greeting.upper()
        if upper.startswith("* PREAUTH"):
            raise UpgradeError("IMAP server pre-authenticated the session, STARTTLS not allowed")
        if not upper.startswith("* OK"):
            raise UpgradeError(f"IMAP greeting rejected: {greeting}")

    async def command(self, name: str) -> list[str]:
        """Send a command and collect untagged lines until its tagged ``OK``.

        Raises:
            UpgradeError: On a tagged ``NO``/``BAD`` or a ``* BYE``.
        """
        tag = next(self._tags)
        await self._session.send_line(f"{tag} {name}")
        untagged: list[str] = []
        while True:
            line = await self._session.read_line()
            if line.startswith(tag + " "):
                status, _, text = line[len(tag) + 1 :].partition(" ")
                if status.upper() != "OK":
                    raise UpgradeError(f"IMAP {name} rejected: {status} {text}".rstrip())
                return untagged
            if line.upper().startswith("* BYE"):
                raise UpgradeError(f"IMAP server closed the session: {line}")
            untagged.append(line)

    async def capability(self) -> frozenset[str]:
        untagged = await self.command("CAPABILITY")
        caps: set[str] = set()
        for line in untagged:
            words = line.split()
            if len(words) >= 2 and words[1].upper() == "CAPABILITY":  # noqa: PLR2004
                caps.update(word.upper() for word in words[2:])
        return frozenset(caps)

    async def starttls(self) -> None:
        """Negotiate STARTTLS; the caller performs the handshake afterwards.

        Raises:
            UpgradeError: If STARTTLS is not advertised or is rejected.
        """
        if "STARTTLS" not in await self.capability():
            raise UpgradeError("IMAP server does not advertise STARTTLS")
        await self.command("STARTTLS")
