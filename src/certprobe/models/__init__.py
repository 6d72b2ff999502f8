"""Pure data models for the certificate probe.

Zero I/O. Request configuration is a frozen Pydantic model; probe results are
``@dataclass(frozen=True, slots=True)`` validated in ``__post_init__``.

See Also:
    [certprobe.core][]: Exceptions, logging and configuration loading built
        on top of these models.
"""

from .constants import AddressFamily, KeyAlgorithm, ProbeState, ProtocolUpgrade, Severity
from .facts import CertificateFacts
from .request import ProbeRequest, TlsVersionConstraint
from .verdict import PerfDatum, Verdict


__all__ = [
    "AddressFamily",
    "CertificateFacts",
    "KeyAlgorithm",
    "PerfDatum",
    "ProbeRequest",
    "ProbeState",
    "ProtocolUpgrade",
    "Severity",
    "TlsVersionConstraint",
    "Verdict",
]
