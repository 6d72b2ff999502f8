"""Rendering of untrusted text.

Server replies and certificate fields end up in the single plugin output
line and in log records. [printable()][certprobe.utils.text.printable]
escapes the control characters that would split that line or be rejected
by the [Verdict][certprobe.models.verdict.Verdict] model.
"""

from __future__ import annotations

import re
from typing import Final


# C0 controls, DEL and C1 controls.
CONTROL_CHARACTERS: Final[re.Pattern[str]] = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def _escape(match: re.Match[str]) -> str:
    return f"\\x{ord(match.group()):02x}"


def printable(text: str) -> str:
    """Return ``text`` with every control character written as ``\\xNN``."""
    return CONTROL_CHARACTERS.sub(_escape, text)
