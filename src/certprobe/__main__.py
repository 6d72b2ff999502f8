"""CLI entry point for the certificate probe.

Prints exactly one Nagios plugin line on stdout and exits with the
severity's code (0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN). Logs go to stderr.

Examples:
    ```bash
    certprobe example.com -w 30 -c 14
    certprobe mail.example.com --starttls smtp --key ecdsa --names
    python -m certprobe ldap.example.com --starttls ldap --ca-file ca.pem -vv
    certprobe example.com --config probe.yaml --ocsp --tls-version 1.2+
    ```
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, NoReturn

from certprobe import __version__
from certprobe.core.config import load_request
from certprobe.core.exceptions import ConfigurationError
from certprobe.core.logger import LOG_LEVELS, Logger, setup_logging, verbosity_to_level
from certprobe.core.output import exit_code, render
from certprobe.models.constants import ProtocolUpgrade, Severity
from certprobe.models.verdict import Verdict
from certprobe.tls.composer import compose_configuration_error
from certprobe.tls.probe import CertificateProbe
from certprobe.utils.text import printable


# Maps argparse destinations onto ProbeRequest fields.
OPTION_FIELDS: dict[str, str] = {
    "host": "host",
    "port": "port",
    "ipv4": "ipv4_only",
    "ipv6": "ipv6_only",
    "sni": "sni",
    "verify_name": "verify_name",
    "starttls": "protocol_upgrade",
    "key": "key_algorithm",
    "tls_version": "tls_version",
    "ca_file": "ca_file",
    "ca_path": "ca_path",
    "ocsp": "ocsp",
    "scheme": "scheme",
    "timeout": "timeout",
    "warning": "warn_days",
    "critical": "crit_days",
    "names": "show_names",
}


class PluginArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors follow the plugin contract (UNKNOWN, exit 3)."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        print(f"{Severity.UNKNOWN.name} - usage error: {message}")
        sys.exit(int(Severity.UNKNOWN))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Boolean flags default to None rather than False so that values from a
    ``--config`` file are only overridden by flags actually given.
    """
    parser = PluginArgumentParser(
        prog="certprobe",
        description="Check the TLS certificate of a service (direct TLS or STARTTLS)",
    )
    parser.add_argument("host", nargs="?", help="Target host name or IP address")
    parser.add_argument("-p", "--port", type=int, help="Port (default: depends on --starttls)")

    family = parser.add_mutually_exclusive_group()
    family.add_argument("-4", dest="ipv4", action="store_true", default=None, help="Use IPv4 only")
    family.add_argument("-6", dest="ipv6", action="store_true", default=None, help="Use IPv6 only")

    parser.add_argument("--sni", help="Server name sent via SNI (default: host)")
    parser.add_argument(
        "--verify-name", help="Name the certificate must match (default: SNI name)"
    )
    parser.add_argument(
        "--starttls",
        metavar="PROTO",
        help="Upgrade via STARTTLS: "
        + ", ".join(p.value for p in ProtocolUpgrade if p is not ProtocolUpgrade.NONE),
    )
    parser.add_argument(
        "--key",
        metavar="ALG",
        help="Request a certificate of this key type: rsa, ecdsa or an OpenSSL cipher string",
    )
    parser.add_argument(
        "--tls-version", metavar="VER", help="TLS version, e.g. 1.2 (pinned) or 1.2+ (minimum)"
    )
    parser.add_argument("--ca-file", help="PEM bundle replacing the system trust store")
    parser.add_argument("--ca-path", help="Hashed CA directory replacing the system trust store")
    parser.add_argument(
        "--ocsp", action="store_true", default=None, help="Require OCSP validation of the chain"
    )
    parser.add_argument("--scheme", help="Verification scheme (default: depends on --starttls)")
    parser.add_argument(
        "-t", "--timeout", type=int, help="Deadline for the whole probe in seconds (default: 10)"
    )
    parser.add_argument("-w", "--warning", type=int, metavar="DAYS", help="Warn below DAYS left")
    parser.add_argument(
        "-c", "--critical", type=int, metavar="DAYS", help="Critical below DAYS left"
    )
    parser.add_argument(
        "--names", action="store_true", default=None, help="List Subject Alternative Names"
    )
    parser.add_argument("--config", type=Path, help="YAML file with default option values")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)"
    )
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, help="Log level (overrides -v)"
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON objects")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def request_options(args: argparse.Namespace) -> dict[str, Any]:
    """ProbeRequest field values given on the command line (None means not given)."""
    return {field: getattr(args, dest) for dest, field in OPTION_FIELDS.items()}


async def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run one probe, print the verdict line and return the exit code."""
    args = parse_args(argv)
    setup_logging(verbosity_to_level(args.verbose, args.log_level))
    logger = Logger("certprobe", json_output=args.log_json)

    verdict: Verdict
    try:
        request = load_request(request_options(args), args.config)
    except ConfigurationError as e:
        logger.error("configuration_rejected", error=str(e))
        verdict = compose_configuration_error(e)
    else:
        try:
            verdict = await CertificateProbe(request, logger=logger).run()
        except Exception as e:  # noqa: BLE001  # CLI error boundary: report UNKNOWN
            logger.exception("probe_crashed", error=str(e))
            verdict = Verdict(
                severity=Severity.UNKNOWN, message=f"internal error: {printable(str(e))}"
            )

    print(render(verdict))
    return exit_code(verdict)


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
