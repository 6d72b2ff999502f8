"""certprobe exception hierarchy.

Every failure of a probe is normalized into one of these types at the stage
boundary where the underlying library raised, so the verdict composer only
ever sees a closed taxonomy.

Exception hierarchy:

```text
CertProbeError (base -- never raised directly)
├── ConfigurationError       -- bad or contradictory options, no I/O done
└── ProbeError               -- the probe ran and failed (tagged)
    ├── ConnectError         -- transport connection failed
    ├── UpgradeError         -- STARTTLS refused or ignored by the server
    ├── TlsError             -- handshake or peer verification failed
    ├── OcspError            -- revocation check failed
    ├── ExtractionError      -- no peer certificate on the channel
    └── ProbeTimeoutError    -- deadline expired before completion
```

See Also:
    [SecureConnectionEstablisher][certprobe.tls.establisher.SecureConnectionEstablisher]:
        Raises the connection-level errors.
    [compose_failure][certprobe.tls.composer.compose_failure]: Turns a
        [ProbeError][certprobe.core.exceptions.ProbeError] into a CRITICAL
        verdict.
"""

from __future__ import annotations

from typing import ClassVar

from certprobe.utils.text import printable


class CertProbeError(Exception):
    """Base exception for all certprobe errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(CertProbeError):
    """Invalid or contradictory configuration (CLI flags, YAML, ranges).

    Detected before any network I/O and reported as UNKNOWN.
    """


class ProbeError(CertProbeError):
    """Base for failures of a probe that started running.

    Each subclass carries a short ``tag`` that prefixes the verdict message so
    the failing stage is visible in monitoring output. Control characters in
    the detail (often echoed server text) are escaped.
    """

    tag: ClassVar[str] = "probe-error"

    def __str__(self) -> str:
        detail = printable(super().__str__())
        return f"{self.tag}: {detail}" if detail else self.tag


class ConnectError(ProbeError):
    """The transport connection to the target could not be opened."""

    tag = "connect-error"


class UpgradeError(ProbeError):
    """The STARTTLS preamble was rejected, or the server agreed but never started TLS."""

    tag = "upgrade-error"


class TlsError(ProbeError):
    """TLS handshake, chain verification, or peer-name verification failed."""

    tag = "tls-error"


class OcspError(ProbeError):
    """OCSP resolution reported an error or a non-good status."""

    tag = "ocsp-error"


class ExtractionError(ProbeError):
    """The established channel exposes no peer certificate."""

    tag = "extraction-error"


class ProbeTimeoutError(ProbeError):
    """The probe deadline expired before the pipeline completed."""

    tag = "timeout"
