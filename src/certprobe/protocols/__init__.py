"""Plaintext preambles of the STARTTLS dialects.

Each dialect runs over a [PlaintextSession][certprobe.protocols.base.PlaintextSession]
and stops right before the TLS handshake. SMTP, POP3 and FTP are symmetric
request/ready exchanges; IMAP and LDAP go through small dedicated clients.
"""

from .base import PlaintextSession, Reply
from .ftp import ftp_starttls
from .imap import ImapClient
from .ldap import LdapClient
from .pop3 import pop3_starttls
from .smtp import smtp_starttls


__all__ = [
    "ImapClient",
    "LdapClient",
    "PlaintextSession",
    "Reply",
    "ftp_starttls",
    "pop3_starttls",
    "smtp_starttls",
]
