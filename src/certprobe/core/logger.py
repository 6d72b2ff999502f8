"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module. Keyword arguments passed to a
[Logger][certprobe.core.logger.Logger] call are rendered either as
``key=value`` pairs (default) or folded into a JSON object. Values containing
spaces, equals signs, or quotes are escaped and wrapped in double quotes, and
long values are truncated.

All output goes to stderr: the probe's stdout is reserved for the single
Nagios verdict line.

Examples:
    ```python
    from certprobe.core.logger import Logger

    logger = Logger("certprobe.establisher")
    logger.debug("state_changed", state="handshaking", remaining_s=8.9)
    # Output: debug certprobe.establisher state_changed state=handshaking remaining_s=8.9
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
import sys
from typing import Any, ClassVar


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Render ``kwargs`` as `` key=value key2="quoted value"``.

    Values longer than ``max_value_length`` are cut (``None`` keeps them
    whole). An empty mapping renders as an empty string, without ``prefix``.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


def _truncate(value: str, max_length: int | None) -> str:
    if max_length and len(value) > max_length:
        return value[:max_length] + f"...<truncated {len(value) - max_length} chars>"
    return value


class StructuredFormatter(logging.Formatter):
    """Formats log records as ``level name message key=value ...``.

    Reads structured data from the ``structured_kv`` extra field attached by
    [Logger][certprobe.core.logger.Logger]. Records from plain
    ``logging.getLogger()`` callers (e.g. aiohttp) get the same prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Named logger whose keyword arguments become structured fields.

    ``json_output`` switches from key=value rendering to one JSON object per
    record; ``max_value_length`` (default 1000) caps individual string values.

    Instances are passed explicitly into the components that log (the
    establisher, the protocol clients, the revocation checker) instead of
    being looked up through module globals, so a caller controls naming and
    verbosity per probe.

    Examples:
        ```python
        logger = Logger("certprobe")
        logger.info("probe_started", host="mail.example.com", port=25)
        # Output: info certprobe probe_started host=mail.example.com port=25
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def child(self, suffix: str) -> Logger:
        """Return a logger named ``<name>.<suffix>`` with the same output settings."""
        return Logger(
            f"{self._logger.name}.{suffix}",
            json_output=self._json_output,
            max_value_length=self._max_value_length,
        )

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "logger": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        truncated = {
            k: _truncate(v, self._max_value_length) if isinstance(v, str) else v
            for k, v in kwargs.items()
        }
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """ERROR record carrying the traceback of the exception being handled."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)


def verbosity_to_level(verbose: int, log_level: str | None = None) -> str:
    """Map ``-v`` counts to a level name; an explicit ``log_level`` wins."""
    if log_level is not None:
        return log_level.upper()
    if verbose >= 2:  # noqa: PLR2004
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return "WARNING"


def setup_logging(level: str) -> None:
    """Install a stderr handler with ``StructuredFormatter`` on the root logger.

    Replaces handlers installed by an earlier call so repeated invocations
    (tests, embedding) do not duplicate output.
    """
    if level.upper() not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {level}")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    for existing in list(logging.root.handlers):
        if isinstance(existing.formatter, StructuredFormatter):
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper()))
