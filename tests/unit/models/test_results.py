"""
Unit tests for models.facts and models.verdict modules.

Tests:
- CertificateFacts construction and validation
- PerfDatum validation
- Verdict validation and exit code
- Severity ordering
"""

from __future__ import annotations

import datetime

import pytest

from certprobe.models import CertificateFacts, PerfDatum, Severity, Verdict


def _facts(**overrides: object) -> CertificateFacts:
    values: dict[str, object] = {
        "not_after": datetime.datetime(2027, 1, 1, tzinfo=datetime.UTC),
        "subject_alt_names": ("example.com",),
        "key_algorithm": "ECDSA",
        "peer_address": "192.0.2.1/443",
        "tls_version": "1.3",
    }
    values.update(overrides)
    return CertificateFacts(**values)  # type: ignore[arg-type]


class TestSeverity:
    def test_escalation_order(self) -> None:
        assert Severity.OK < Severity.WARNING < Severity.CRITICAL < Severity.UNKNOWN

    def test_max_merges(self) -> None:
        assert max(Severity.WARNING, Severity.OK, Severity.CRITICAL) is Severity.CRITICAL


class TestCertificateFacts:
    def test_valid(self) -> None:
        facts = _facts()
        assert facts.key_algorithm == "ECDSA"
        assert facts.subject_alt_names == ("example.com",)

    def test_duplicates_preserved(self) -> None:
        facts = _facts(subject_alt_names=("a", "b", "a"))
        assert facts.subject_alt_names == ("a", "b", "a")

    def test_naive_not_after_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            _facts(not_after=datetime.datetime(2027, 1, 1))

    def test_list_sans_rejected(self) -> None:
        with pytest.raises(TypeError, match="subject_alt_names"):
            _facts(subject_alt_names=["a"])

    def test_empty_key_algorithm_rejected(self) -> None:
        with pytest.raises(ValueError, match="key_algorithm"):
            _facts(key_algorithm="")

    def test_frozen(self) -> None:
        facts = _facts()
        with pytest.raises(AttributeError):
            facts.tls_version = "1.2"  # type: ignore[misc]


class TestPerfDatum:
    def test_defaults(self) -> None:
        datum = PerfDatum("days_left", 12)
        assert datum.unit == ""
        assert datum.warn is None
        assert datum.crit is None

    def test_empty_label_rejected(self) -> None:
        with pytest.raises(ValueError, match="label"):
            PerfDatum("", 1)

    def test_bool_value_rejected(self) -> None:
        with pytest.raises(TypeError, match="number"):
            PerfDatum("flag", True)


class TestVerdict:
    @pytest.mark.parametrize(
        ("severity", "code"),
        [(Severity.OK, 0), (Severity.WARNING, 1), (Severity.CRITICAL, 2), (Severity.UNKNOWN, 3)],
    )
    def test_exit_code(self, severity: Severity, code: int) -> None:
        assert Verdict(severity, "msg").exit_code == code

    def test_perf_data_must_be_tuple(self) -> None:
        with pytest.raises(TypeError, match="perf_data"):
            Verdict(Severity.OK, "msg", [PerfDatum("x", 1)])  # type: ignore[arg-type]

    def test_severity_must_be_enum(self) -> None:
        with pytest.raises(TypeError, match="severity"):
            Verdict(0, "msg")  # type: ignore[arg-type]
