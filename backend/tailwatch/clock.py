"""clock.py
~~~~~~~~~~
Injectable time source.

Every component that reasons about elapsed time takes a ``clock`` argument
instead of calling :func:`time.time` directly, so tests can move time
forward deterministically.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything with a ``now()`` returning epoch seconds."""

    def now(self) -> float:
        ...


class SystemClock:
    """Wall-clock time in epoch seconds."""

    def now(self) -> float:
        return time.time()


SYSTEM_CLOCK = SystemClock()

__all__ = ["Clock", "SystemClock", "SYSTEM_CLOCK"]
