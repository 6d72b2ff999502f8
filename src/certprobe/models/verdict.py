"""Verdict and performance data models.

A [Verdict][certprobe.models.verdict.Verdict] is the sole output of a probe
invocation: a severity, a human-readable message and an ordered sequence of
[PerfDatum][certprobe.models.verdict.PerfDatum] entries for graphing.

See Also:
    [certprobe.core.output][]: Renders a verdict as a Nagios plugin line.
    [certprobe.core.thresholds.worst][]: Merges several verdicts.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_instance, validate_number, validate_text, validate_tuple_of
from .constants import Severity


@dataclass(frozen=True, slots=True)
class PerfDatum:
    """One ``label=value[unit][;warn][;crit]`` performance data token.

    Attributes:
        label: Metric name, e.g. ``days_left``.
        value: Measured value.
        unit: Unit of measure appended to the value (may be empty).
        warn: Warning range in threshold syntax, if configured.
        crit: Critical range in threshold syntax, if configured.
    """

    label: str
    value: int | float
    unit: str = ""
    warn: str | None = None
    crit: str | None = None

    def __post_init__(self) -> None:
        validate_text(self.label, "label")
        validate_number(self.value, "value")
        validate_text(self.unit, "unit", allow_empty=True)


@dataclass(frozen=True, slots=True)
class Verdict:
    """Final result of a probe.

    Attributes:
        severity: Overall [Severity][certprobe.models.constants.Severity].
        message: Human-readable summary.
        perf_data: Performance data entries in output order.
    """

    severity: Severity
    message: str
    perf_data: tuple[PerfDatum, ...] = ()

    def __post_init__(self) -> None:
        validate_instance(self.severity, Severity, "severity")
        validate_text(self.message, "message", allow_empty=True)
        validate_tuple_of(self.perf_data, PerfDatum, "perf_data")

    @property
    def exit_code(self) -> int:
        """Process exit code mandated by the Nagios plugin convention."""
        return int(self.severity)
