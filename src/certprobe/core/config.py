"""Probe configuration assembly.

Merges defaults from an optional YAML file with explicit options (usually
from the command line) into a validated
[ProbeRequest][certprobe.models.request.ProbeRequest]. Pydantic validation
failures surface as
[ConfigurationError][certprobe.core.exceptions.ConfigurationError] so the
caller reports UNKNOWN without touching the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from certprobe.models.request import ProbeRequest

from .exceptions import ConfigurationError
from .yaml import load_yaml


if TYPE_CHECKING:
    from pathlib import Path


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def load_request(
    options: dict[str, Any],
    config_path: str | Path | None = None,
) -> ProbeRequest:
    """Build a probe request from options layered over an optional YAML file.

    Options whose value is ``None`` are treated as "not given" and do not
    override the file.

    Args:
        options: ProbeRequest field values.
        config_path: Optional YAML file supplying defaults.

    Returns:
        The validated request.

    Raises:
        ConfigurationError: If the file cannot be loaded or the merged values
            do not form a valid request.
    """
    merged: dict[str, Any] = load_yaml(config_path) if config_path is not None else {}
    merged.update({k: v for k, v in options.items() if v is not None})
    try:
        return ProbeRequest.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e
