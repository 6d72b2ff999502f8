"""Immutable probe configuration.

[ProbeRequest][certprobe.models.request.ProbeRequest] is built once from the
command line (optionally merged with a YAML file) and read-only thereafter.
Everything that can be rejected without touching the network is rejected
here by Pydantic validation.

Note:
    Port and verification-scheme defaults depend on the transport strategy
    and are resolved by
    [Strategy][certprobe.tls.strategies.Strategy], not here.

See Also:
    [certprobe.core.config.load_request][]: Builds a request and maps
        validation failures to
        [ConfigurationError][certprobe.core.exceptions.ConfigurationError].
"""

from __future__ import annotations

import re
from typing import NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import AddressFamily, ProtocolUpgrade


_TLS_VERSION_RE = re.compile(r"^(?:tlsv)?(?P<version>1\.[0-3])(?P<or_newer>\+)?$", re.IGNORECASE)


class TlsVersionConstraint(NamedTuple):
    """Parsed ``--tls-version`` value: a version and whether newer ones are allowed."""

    version: str
    or_newer: bool

    @classmethod
    def parse(cls, text: str) -> TlsVersionConstraint:
        match = _TLS_VERSION_RE.match(text.strip())
        if match is None:
            raise ValueError(f"invalid TLS version constraint: {text!r}")
        return cls(match["version"], match["or_newer"] is not None)

    def __str__(self) -> str:
        return self.version + ("+" if self.or_newer else "")


class ProbeRequest(BaseModel):
    """Configuration for one probe invocation.

    Attributes:
        host: Target host name or IP literal.
        port: Target port; ``None`` selects the strategy default.
        ipv4_only: Connect over IPv4 only.
        ipv6_only: Connect over IPv6 only.
        sni: Server name sent via SNI (defaults to ``host``).
        verify_name: Name the certificate must match (defaults to the
            resolved SNI name).
        protocol_upgrade: STARTTLS dialect, or ``none`` for direct TLS.
        key_algorithm: ``rsa``, ``ecdsa`` or a raw OpenSSL cipher string that
            steers the server towards a certificate of that key type.
        tls_version: Version constraint such as ``1.2`` (pinned) or ``1.2+``.
        ca_file: PEM bundle replacing the system trust store.
        ca_path: Hashed certificate directory replacing the system trust store.
        ocsp: Require a successful OCSP check of the presented chain.
        scheme: Verification scheme for URI-ID matching; ``None`` selects the
            strategy default.
        timeout: Deadline in seconds for the whole probe.
        warn_days: Minimum days to expiry before WARNING.
        crit_days: Minimum days to expiry before CRITICAL.
        show_names: Append the Subject Alternative Names to the message.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = Field(min_length=1, description="Target host")
    port: int | None = Field(default=None, ge=1, le=65535, description="Target port")
    ipv4_only: bool = Field(default=False, description="Connect over IPv4 only")
    ipv6_only: bool = Field(default=False, description="Connect over IPv6 only")
    sni: str | None = Field(default=None, min_length=1, description="SNI server name")
    verify_name: str | None = Field(
        default=None, min_length=1, description="Name the certificate must match"
    )
    protocol_upgrade: ProtocolUpgrade = Field(
        default=ProtocolUpgrade.NONE, description="STARTTLS dialect"
    )
    key_algorithm: str | None = Field(
        default=None, min_length=1, description="rsa, ecdsa or a cipher string"
    )
    tls_version: str | None = Field(default=None, description="TLS version constraint")
    ca_file: str | None = Field(default=None, description="CA bundle file")
    ca_path: str | None = Field(default=None, description="CA directory")
    ocsp: bool = Field(default=False, description="Require OCSP validation")
    scheme: str | None = Field(default=None, min_length=1, description="Verification scheme")
    timeout: int = Field(default=10, ge=1, description="Probe deadline in seconds")
    warn_days: int | None = Field(default=None, ge=0, description="Warning threshold in days")
    crit_days: int | None = Field(default=None, ge=0, description="Critical threshold in days")
    show_names: bool = Field(default=False, description="List SANs in the message")

    @field_validator("tls_version")
    @classmethod
    def _normalize_tls_version(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(TlsVersionConstraint.parse(value))

    @field_validator("scheme")
    @classmethod
    def _normalize_scheme(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    @model_validator(mode="after")
    def _validate_consistency(self) -> Self:
        if self.ipv4_only and self.ipv6_only:
            raise ValueError("conflicting address family: IPv4-only and IPv6-only both requested")
        constraint = self.tls_version_constraint
        if self.key_algorithm is not None and constraint is not None and constraint.version == "1.3":
            raise ValueError(
                "key algorithm filter requires TLS 1.2 or older, "
                f"but TLS version constraint is {constraint}"
            )
        return self

    @property
    def address_family(self) -> AddressFamily:
        """The single address-family constraint in effect."""
        if self.ipv4_only:
            return AddressFamily.IPV4
        if self.ipv6_only:
            return AddressFamily.IPV6
        return AddressFamily.UNSPECIFIED

    @property
    def resolved_sni(self) -> str:
        """SNI name, falling back to ``host``."""
        return self.sni or self.host

    @property
    def resolved_verify_name(self) -> str:
        """Verification name, falling back to the SNI name and then ``host``."""
        return self.verify_name or self.resolved_sni

    @property
    def tls_version_constraint(self) -> TlsVersionConstraint | None:
        """Parsed TLS version constraint, if any."""
        if self.tls_version is None:
            return None
        return TlsVersionConstraint.parse(self.tls_version)
