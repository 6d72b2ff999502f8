"""Nagios plugin output sink.

Renders a [Verdict][certprobe.models.verdict.Verdict] as the single line a
monitoring system reads from the plugin's stdout::

    OK - Expires 2027-01-01 00:00:00 UTC (74 days) 192.0.2.1/443 1.3 ECDSA | days_left=74d;30:;14:

The exit code is the severity's integer value (0/1/2/3).
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from certprobe.models.verdict import PerfDatum, Verdict


def _strip_pipes(text: str) -> str:
    return text.replace("|", "/").replace("\n", " ").strip()


def _format_value(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_perf_datum(datum: PerfDatum) -> str:
    """Render ``label=value[unit][;warn][;crit]``, quoting labels with spaces."""
    label = _strip_pipes(datum.label).replace("'", "")
    if " " in label or "=" in label:
        label = f"'{label}'"
    token = f"{label}={_format_value(datum.value)}{datum.unit}"
    thresholds = [datum.warn or "", datum.crit or ""]
    while thresholds and not thresholds[-1]:
        thresholds.pop()
    if thresholds:
        token += ";" + ";".join(thresholds)
    return token


def render(verdict: Verdict) -> str:
    """Render a verdict as one Nagios plugin output line."""
    line = f"{verdict.severity.name} - {_strip_pipes(verdict.message)}"
    if verdict.perf_data:
        line += " | " + " ".join(render_perf_datum(p) for p in verdict.perf_data)
    return line


def exit_code(verdict: Verdict) -> int:
    """Process exit code for a verdict (OK=0, WARNING=1, CRITICAL=2, UNKNOWN=3)."""
    return verdict.exit_code
