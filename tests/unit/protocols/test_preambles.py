"""
Unit tests for the plaintext STARTTLS preambles.

Tests:
- PlaintextSession line/reply reading and error normalization
- SMTP, POP3 and FTP symmetric exchanges
- ImapClient greeting, tagged commands and STARTTLS
"""

from __future__ import annotations

import pytest

from certprobe.core.exceptions import UpgradeError
from certprobe.core.logger import Logger
from certprobe.protocols import (
    ImapClient,
    PlaintextSession,
    ftp_starttls,
    pop3_starttls,
    smtp_starttls,
)
from tests.fixtures.streams import RecordingWriter, scripted_reader


def _session(script: str) -> tuple[PlaintextSession, RecordingWriter]:
    writer = RecordingWriter()
    session = PlaintextSession(scripted_reader(script), writer, Logger("certprobe.test"))  # type: ignore[arg-type]
    return session, writer


# =============================================================================
# PlaintextSession Tests
# =============================================================================


class TestPlaintextSession:
    """Tests for PlaintextSession."""

    async def test_read_line_strips_terminator(self) -> None:
        session, _ = _session("hello\r\nworld\n")
        assert await session.read_line() == "hello"
        assert await session.read_line() == "world"

    async def test_read_line_eof(self) -> None:
        session, _ = _session("partial")
        with pytest.raises(UpgradeError, match="connection closed"):
            await session.read_line()

    async def test_send_line_appends_crlf(self) -> None:
        session, writer = _session("")
        await session.send_line("EHLO probe")
        assert bytes(writer.buffer) == b"EHLO probe\r\n"

    async def test_single_line_reply(self) -> None:
        session, _ = _session("220 mail.example.com ESMTP\r\n")
        reply = await session.read_reply()
        assert reply.code == 220
        assert reply.lines == ("mail.example.com ESMTP",)

    async def test_multiline_reply(self) -> None:
        session, _ = _session("250-mail.example.com\r\n250-PIPELINING\r\n250 STARTTLS\r\n")
        reply = await session.read_reply()
        assert reply.code == 250
        assert reply.lines == ("mail.example.com", "PIPELINING", "STARTTLS")

    async def test_ftp_style_continuation(self) -> None:
        session, _ = _session("220-Welcome\r\n  to the server\r\n220 ready\r\n")
        reply = await session.read_reply()
        assert reply.lines == ("Welcome", "  to the server", "ready")

    async def test_malformed_reply(self) -> None:
        session, _ = _session("hello there\r\n")
        with pytest.raises(UpgradeError, match="malformed server reply"):
            await session.read_reply()

    async def test_expect_reply_mismatch(self) -> None:
        session, _ = _session("554 go away\r\n")
        with pytest.raises(UpgradeError, match="SMTP greeting rejected: 554 go away"):
            await session.expect_reply(220, "SMTP greeting")

    async def test_read_exactly_short(self) -> None:
        session, _ = _session("ab")
        with pytest.raises(UpgradeError, match="connection closed"):
            await session.read_exactly(4)


# =============================================================================
# SMTP Tests
# =============================================================================


class TestSmtpStartTls:
    async def test_success(self) -> None:
        session, writer = _session(
            "220 mail.example.com ESMTP\r\n"
            "250-mail.example.com\r\n250-SIZE 1000\r\n250 STARTTLS\r\n"
            "220 2.0.0 Ready to start TLS\r\n"
        )
        await smtp_starttls(session, client_name="probe.local")
        assert writer.lines == ["EHLO probe.local", "STARTTLS"]

    async def test_starttls_not_advertised(self) -> None:
        session, writer = _session("220 mx\r\n250-mx\r\n250 PIPELINING\r\n")
        with pytest.raises(UpgradeError, match="does not advertise STARTTLS"):
            await smtp_starttls(session, client_name="probe.local")
        assert writer.lines == ["EHLO probe.local"]

    async def test_greeting_text_is_not_an_extension(self) -> None:
        """A server whose greeting line says STARTTLS still needs the extension."""
        session, _ = _session("220 mx\r\n250-STARTTLS\r\n250 8BITMIME\r\n")
        with pytest.raises(UpgradeError, match="does not advertise STARTTLS"):
            await smtp_starttls(session, client_name="probe.local")

    async def test_starttls_refused(self) -> None:
        session, _ = _session("220 mx\r\n250-mx\r\n250 STARTTLS\r\n454 TLS not available\r\n")
        with pytest.raises(UpgradeError, match="SMTP STARTTLS rejected: 454"):
            await smtp_starttls(session, client_name="probe.local")

    async def test_bad_greeting(self) -> None:
        session, _ = _session("421 busy\r\n")
        with pytest.raises(UpgradeError, match="SMTP greeting rejected"):
            await smtp_starttls(session)


# =============================================================================
# POP3 / FTP Tests
# =============================================================================


class TestPop3StartTls:
    async def test_success(self) -> None:
        session, writer = _session("+OK POP3 ready\r\n+OK Begin TLS\r\n")
        await pop3_starttls(session)
        assert writer.lines == ["STLS"]

    async def test_refused(self) -> None:
        session, _ = _session("+OK POP3 ready\r\n-ERR not supported\r\n")
        with pytest.raises(UpgradeError, match="POP3 STLS rejected: -ERR not supported"):
            await pop3_starttls(session)

    async def test_bad_greeting(self) -> None:
        session, _ = _session("-ERR go away\r\n")
        with pytest.raises(UpgradeError, match="POP3 greeting rejected"):
            await pop3_starttls(session)


class TestFtpStartTls:
    async def test_success(self) -> None:
        session, writer = _session("220 FTP ready\r\n234 AUTH TLS OK\r\n")
        await ftp_starttls(session)
        assert writer.lines == ["AUTH TLS"]

    async def test_refused(self) -> None:
        session, _ = _session("220 FTP ready\r\n502 not implemented\r\n")
        with pytest.raises(UpgradeError, match="FTP AUTH TLS rejected: 502"):
            await ftp_starttls(session)


# =============================================================================
# IMAP Tests
# =============================================================================


class TestImapClient:
    """Tests for ImapClient."""

    async def test_starttls_success(self) -> None:
        session, writer = _session(
            "* OK IMAP4rev1 ready\r\n"
            "* CAPABILITY IMAP4rev1 STARTTLS LOGINDISABLED\r\n"
            "A001 OK CAPABILITY completed\r\n"
            "A002 OK Begin TLS negotiation now\r\n"
        )
        client = ImapClient(session)
        await client.connect()
        await client.starttls()
        assert writer.lines == ["A001 CAPABILITY", "A002 STARTTLS"]

    async def test_preauth_rejected(self) -> None:
        session, _ = _session("* PREAUTH logged in\r\n")
        with pytest.raises(UpgradeError, match="pre-authenticated"):
            await ImapClient(session).connect()

    async def test_bad_greeting(self) -> None:
        session, _ = _session("* BYE too many connections\r\n")
        with pytest.raises(UpgradeError, match="IMAP greeting rejected"):
            await ImapClient(session).connect()

    async def test_starttls_not_advertised(self) -> None:
        session, writer = _session(
            "* OK ready\r\n* CAPABILITY IMAP4rev1\r\nA001 OK done\r\n"
        )
        client = ImapClient(session)
        await client.connect()
        with pytest.raises(UpgradeError, match="does not advertise STARTTLS"):
            await client.starttls()
        assert writer.lines == ["A001 CAPABILITY"]

    async def test_tagged_no(self) -> None:
        session, _ = _session(
            "* OK ready\r\n* CAPABILITY IMAP4rev1 STARTTLS\r\nA001 OK done\r\n"
            "A002 NO TLS unavailable\r\n"
        )
        client = ImapClient(session)
        await client.connect()
        with pytest.raises(UpgradeError, match="IMAP STARTTLS rejected: NO TLS unavailable"):
            await client.starttls()

    async def test_capability_words_uppercased(self) -> None:
        session, _ = _session(
            "* OK ready\r\n"
            "* CAPABILITY IMAP4rev1 starttls AUTH=PLAIN\r\n"
            "A001 OK done\r\n"
        )
        client = ImapClient(session)
        await client.connect()
        assert await client.capability() == frozenset({"IMAP4REV1", "STARTTLS", "AUTH=PLAIN"})

    async def test_bye_during_command(self) -> None:
        session, _ = _session("* OK ready\r\n* BYE shutting down\r\n")
        client = ImapClient(session)
        await client.connect()
        with pytest.raises(UpgradeError, match="closed the session"):
            await client.capability()
