"""Verdict composition.

Turns [CertificateFacts][certprobe.models.facts.CertificateFacts] into the
final [Verdict][certprobe.models.verdict.Verdict], and maps failures to their
verdicts: probe failures are CRITICAL, configuration problems UNKNOWN.

Examples:
    ```python
    verdict = compose_verdict(facts, request)
    verdict.message
    # 'Expires 2027-01-01 00:00:00 UTC (74 days) 192.0.2.1/443 1.3 ECDSA'
    ```
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Final

from certprobe.core.thresholds import ThresholdRange, evaluate
from certprobe.models.constants import Severity
from certprobe.models.verdict import PerfDatum, Verdict
from certprobe.utils.text import printable


if TYPE_CHECKING:
    from certprobe.core.exceptions import ConfigurationError, ProbeError
    from certprobe.models.facts import CertificateFacts
    from certprobe.models.request import ProbeRequest


SECONDS_PER_DAY: Final[int] = 86400
DAYS_LEFT_LABEL: Final[str] = "days_left"
DAYS_UNIT: Final[str] = "d"


def days_left(not_after: datetime.datetime, now: datetime.datetime) -> float:
    """Fractional days from ``now`` until ``not_after`` (negative once expired)."""
    return (not_after - now).total_seconds() / SECONDS_PER_DAY


def _floor(days: int | None) -> ThresholdRange | None:
    return ThresholdRange.at_least(days) if days is not None else None


def compose_verdict(
    facts: CertificateFacts,
    request: ProbeRequest,
    now: datetime.datetime | None = None,
) -> Verdict:
    """Evaluate expiry thresholds and build the success-path verdict.

    The message truncates the day count toward zero; the severity is
    computed from the fractional value.
    """
    if now is None:
        now = datetime.datetime.now(datetime.UTC)
    days = days_left(facts.not_after, now)
    warn = _floor(request.warn_days)
    crit = _floor(request.crit_days)
    severity = evaluate(days, warn, crit)

    message = (
        f"Expires {facts.not_after:%Y-%m-%d %H:%M:%S %Z} ({int(days)} days) "
        f"{facts.peer_address} {facts.tls_version} {facts.key_algorithm}"
    )
    if request.show_names:
        message += "; names=" + ",".join(facts.subject_alt_names)

    datum = PerfDatum(
        DAYS_LEFT_LABEL,
        int(days),
        DAYS_UNIT,
        warn=str(warn) if warn else None,
        crit=str(crit) if crit else None,
    )
    return Verdict(severity=severity, message=message, perf_data=(datum,))


def compose_failure(error: ProbeError) -> Verdict:
    """CRITICAL verdict carrying ``<tag>: <diagnostic>``."""
    return Verdict(severity=Severity.CRITICAL, message=str(error))


def compose_configuration_error(error: ConfigurationError) -> Verdict:
    return Verdict(
        severity=Severity.UNKNOWN, message=f"configuration error: {printable(str(error))}"
    )
