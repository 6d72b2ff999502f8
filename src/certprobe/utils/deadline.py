"""Single end-to-end deadline for a probe.

A [Deadline][certprobe.utils.deadline.Deadline] is created once when the probe
starts and handed to every stage. The pipeline as a whole runs under
``asyncio.timeout_at(deadline.when)``; stages also bound individual library
calls with [remaining()][certprobe.utils.deadline.Deadline.remaining] so no
library falls back to its own, longer default.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Self


@dataclass(frozen=True, slots=True)
class Deadline:
    """Absolute expiry on the running event loop's monotonic clock.

    Attributes:
        when: Expiry in ``loop.time()`` units.
        budget: The total budget in seconds the deadline was created with.
    """

    when: float
    budget: float

    @classmethod
    def after(cls, seconds: float) -> Self:
        """Create a deadline ``seconds`` from now. Must be called inside a running loop."""
        if seconds <= 0:
            raise ValueError("deadline budget must be positive")
        loop = asyncio.get_running_loop()
        return cls(when=loop.time() + seconds, budget=seconds)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.when - asyncio.get_running_loop().time())

    def timeout(self) -> asyncio.Timeout:
        """Async context manager cancelling the enclosed block at expiry."""
        return asyncio.timeout_at(self.when)
