from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Clock abstraction.

    Session logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return seconds."""


class WallClock:
    """Epoch seconds, for timestamps that end up in profile history."""

    def now(self) -> float:
        return time.time()
