"""errors.py
~~~~~~~~~~~
Tagged failures surfaced to the HTTP layer.

Each error carries a ``kind`` (stable, machine-readable) and a human-readable
message. The FastAPI app maps kinds to status codes; nothing below the app
swallows them.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

__all__ = [
    "TrackerError",
    "RateLimited",
    "QuotaExceeded",
    "NotFound",
    "UpstreamError",
    "UpstreamCooldown",
]


class TrackerError(Exception):
    """Base exception for every caller-visible tracker failure."""

    kind: ClassVar[str] = "TrackerError"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.message}


class RateLimited(TrackerError):
    """Calling now would break the upstream access policy; wait and retry."""

    kind = "RateLimited"

    def __init__(self, message: str, retry_after: float) -> None:
        self.retry_after = max(0.0, float(retry_after))
        super().__init__(message)

    @property
    def retry_after_seconds(self) -> int:
        """Wait rounded up to whole seconds (for the ``Retry-After`` header)."""
        return int(math.ceil(self.retry_after))

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "retry_after": self.retry_after_seconds}


class QuotaExceeded(TrackerError):
    """Daily request budget is spent; do not retry before the window resets."""

    kind = "QuotaExceeded"


class NotFound(TrackerError):
    """The key has no data right now. Terminal for this call, not alarming."""

    kind = "NotFound"


class UpstreamError(TrackerError):
    """Transport or parse failure talking to an external API."""

    kind = "UpstreamError"


class UpstreamCooldown(Exception):
    """
    Raised by a transport when the provider answers HTTP 429.

    Internal signal only: :class:`~tailwatch.flight_tracker.FlightTracker`
    converts it into :class:`RateLimited` after recording the cooldown.
    """

    def __init__(self, retry_after: float) -> None:
        self.retry_after = float(retry_after)
        super().__init__(f"upstream asked us to wait {self.retry_after:.0f}s")
