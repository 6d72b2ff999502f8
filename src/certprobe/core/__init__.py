"""Core infrastructure: exceptions, logging, configuration, thresholds, output.

Depends only on [certprobe.models][] and third-party libraries; everything
that performs network I/O lives in [certprobe.protocols][] and
[certprobe.tls][].
"""

from .config import load_request
from .exceptions import (
    CertProbeError,
    ConfigurationError,
    ConnectError,
    ExtractionError,
    OcspError,
    ProbeError,
    ProbeTimeoutError,
    TlsError,
    UpgradeError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .output import exit_code, render
from .thresholds import ThresholdRange, evaluate, worst
from .yaml import load_yaml


__all__ = [
    "CertProbeError",
    "ConfigurationError",
    "ConnectError",
    "ExtractionError",
    "Logger",
    "OcspError",
    "ProbeError",
    "ProbeTimeoutError",
    "StructuredFormatter",
    "ThresholdRange",
    "TlsError",
    "UpgradeError",
    "evaluate",
    "exit_code",
    "format_kv_pairs",
    "load_request",
    "load_yaml",
    "render",
    "setup_logging",
    "worst",
]
