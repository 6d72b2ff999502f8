"""Shared enumerations for the models layer.

Defines the closed sets of values used across the probe: verdict severities,
STARTTLS upgrade tokens, address-family constraints, normalized key algorithm
families, and the states of the connection establisher. Placing them here
keeps the models layer free of imports from ``core`` or ``tls``.

See Also:
    [certprobe.models.request][]: Uses
        [ProtocolUpgrade][certprobe.models.constants.ProtocolUpgrade] and
        [AddressFamily][certprobe.models.constants.AddressFamily].
    [certprobe.tls.establisher][]: Walks through the
        [ProbeState][certprobe.models.constants.ProbeState] values.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Severity(IntEnum):
    """Nagios plugin verdict, ordered by escalation rank.

    The integer value doubles as the process exit code, and ``max()`` over a
    collection of severities yields the overall verdict of several checks.

    Attributes:
        OK: Every check passed.
        WARNING: A warning threshold was violated.
        CRITICAL: A critical threshold was violated or the probe failed.
        UNKNOWN: The probe could not run (configuration problem).
    """

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


class ProtocolUpgrade(StrEnum):
    """Plaintext protocol spoken before the TLS upgrade.

    ``NONE`` selects a direct TLS handshake; every other member selects the
    STARTTLS dialect of that protocol.
    """

    NONE = "none"
    SMTP = "smtp"
    POP3 = "pop3"
    FTP = "ftp"
    IMAP = "imap"
    LDAP = "ldap"


class AddressFamily(StrEnum):
    """Address family constraint for the transport connection."""

    UNSPECIFIED = "unspecified"
    IPV4 = "ipv4"
    IPV6 = "ipv6"


class KeyAlgorithm(StrEnum):
    """Normalized public-key algorithm families.

    Any other algorithm is reported by its raw dotted OID string.
    """

    RSA = "RSA"
    ECDSA = "ECDSA"


class ProbeState(StrEnum):
    """States of the secure connection establisher.

    ``PREAMBLE`` is only visited by STARTTLS strategies. ``FAILED`` is
    reachable from every other state.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    PREAMBLE = "plaintext-preamble"
    HANDSHAKING = "handshaking"
    ESTABLISHED = "established"
    FAILED = "failed"
