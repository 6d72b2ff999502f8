"""YAML configuration loading.

Uses ``yaml.safe_load`` so a configuration file can only produce plain data
(strings, numbers, lists, dicts), never Python objects.

Examples:
    ```python
    from certprobe.core.yaml import load_yaml

    defaults = load_yaml("/etc/certprobe/mail.yaml")
    ```

See Also:
    [load_request()][certprobe.core.config.load_request]: Merges the returned
        mapping with command-line options and validates it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file into a mapping.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        Parsed configuration. Returns an empty dict if the file exists but
        contains no data.

    Raises:
        ConfigurationError: If the file does not exist, is not valid YAML, or
            its top level is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"config file not found: {config_path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"config file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
