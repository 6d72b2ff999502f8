"""Threshold range evaluation.

Implements the monitoring-plugin range syntax ``[@][start:][end]``:

| Range      | Alert when                      |
|------------|---------------------------------|
| ``10``     | value < 0 or value > 10         |
| ``10:``    | value < 10                      |
| ``~:10``   | value > 10                      |
| ``10:20``  | value < 10 or value > 20        |
| ``@10:20`` | 10 <= value <= 20               |

Bounds are inclusive. A malformed range is a
[ConfigurationError][certprobe.core.exceptions.ConfigurationError], never a
probe failure.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Self

from certprobe.models.constants import Severity
from certprobe.models.verdict import Verdict

from .exceptions import ConfigurationError


_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"
_RANGE_RE = re.compile(
    rf"^(?P<inside>@)?(?:(?P<start>~|{_NUMBER}):)?(?P<end>{_NUMBER})?$",
)


@dataclass(frozen=True, slots=True)
class ThresholdRange:
    """A parsed threshold range.

    Attributes:
        start: Lower inclusive bound (``-inf`` for ``~``).
        end: Upper inclusive bound (``+inf`` when omitted).
        inside: Alert when the value is inside the bounds instead of outside.
        text: The range as written, reused in performance data.
    """

    start: float
    end: float
    inside: bool = False
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parse a range string.

        Raises:
            ConfigurationError: If ``text`` is not valid range syntax or its
                start exceeds its end.
        """
        spec = text.strip()
        match = _RANGE_RE.match(spec)
        if match is None or (match["start"] is None and match["end"] is None):
            raise ConfigurationError(f"malformed threshold range: {text!r}")

        raw_start = match["start"]
        if raw_start is None:
            start = 0.0
        elif raw_start == "~":
            start = -math.inf
        else:
            start = float(raw_start)
        end = float(match["end"]) if match["end"] is not None else math.inf

        if start > end:
            raise ConfigurationError(f"threshold range start exceeds end: {text!r}")
        return cls(start=start, end=end, inside=match["inside"] is not None, text=spec)

    @classmethod
    def at_least(cls, floor: int | float) -> Self:
        """Range that alerts when a value drops below ``floor``."""
        return cls.parse(f"{floor}:")

    def violated(self, value: float) -> bool:
        """Return True if ``value`` should raise an alert for this range."""
        within = self.start <= value <= self.end
        return within if self.inside else not within

    def __str__(self) -> str:
        return self.text


def _coerce(spec: ThresholdRange | str | None) -> ThresholdRange | None:
    if spec is None or isinstance(spec, ThresholdRange):
        return spec
    return ThresholdRange.parse(spec)


def evaluate(
    value: float,
    warn: ThresholdRange | str | None = None,
    crit: ThresholdRange | str | None = None,
) -> Severity:
    """Map a measured value onto a severity.

    An unset range disables that check. CRITICAL wins over WARNING.

    Raises:
        ConfigurationError: If a range string is malformed.
    """
    warn_range = _coerce(warn)
    crit_range = _coerce(crit)
    if crit_range is not None and crit_range.violated(value):
        return Severity.CRITICAL
    if warn_range is not None and warn_range.violated(value):
        return Severity.WARNING
    return Severity.OK


def worst(*verdicts: Verdict) -> Verdict:
    """Merge verdicts of independent checks into one.

    The result carries the maximum severity. Messages are joined with
    ``"; "``, worst first; verdicts of equal severity keep their evaluation
    order. Performance data keeps evaluation order.

    Raises:
        ValueError: If no verdicts are given.
    """
    if not verdicts:
        raise ValueError("worst() requires at least one verdict")
    ranked = sorted(verdicts, key=lambda v: v.severity, reverse=True)
    return Verdict(
        severity=ranked[0].severity,
        message="; ".join(v.message for v in ranked if v.message),
        perf_data=tuple(p for v in verdicts for p in v.perf_data),
    )
