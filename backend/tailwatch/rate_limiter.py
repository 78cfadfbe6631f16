"""rate_limiter.py
~~~~~~~~~~~~~~~~~~
Client-side gate that keeps us inside OpenSky's anonymous access policy.

Rules enforced by :meth:`RateLimiter.admit`
------------------------------------------
1. A provider-issued cooldown (HTTP 429 + retry-after) blocks every call
   until it has elapsed.
2. At most ``max_requests_per_day`` requests per 24 h window.
3. Requests are spaced by at least ``min_request_interval`` seconds *and*
   by the even share of the daily budget (``86400 / max_requests_per_day``),
   whichever is longer.

``admit()`` only inspects state. :meth:`acquire` is ``admit()`` plus a
reservation: the slot counts as the latest request until the caller settles
it with :meth:`record_success`, :meth:`record_cooldown` or :meth:`release`.
While a reservation is held no other request is admitted, whatever its key.

The 24 h window is a plain periodic reset measured from construction, not
aligned to calendar days.
"""

from __future__ import annotations

import logging
from typing import Any

from .clock import SYSTEM_CLOCK, Clock
from .constants import DAY_SECONDS
from .errors import QuotaExceeded, RateLimited

LOG = logging.getLogger("rate_limiter")


def _fmt_wait(seconds: float) -> str:
    """Render a wait like ``"45s"`` or ``"3m 20s"``."""
    total = max(0, int(round(seconds)))
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class RateLimiter:
    """Quota, spacing and cooldown bookkeeping for one upstream provider."""

    def __init__(
        self,
        max_requests_per_day: int = 400,
        min_request_interval: float = 10,
        clock: Clock | None = None,
    ) -> None:
        if max_requests_per_day <= 0:
            raise ValueError("max_requests_per_day must be positive")
        self.max_requests_per_day = max_requests_per_day
        self.min_request_interval = float(min_request_interval)
        self._clock = clock or SYSTEM_CLOCK

        self.last_request_time: float | None = None
        self.request_count = 0
        self.retry_after_seconds = 0
        self.window_started = self._clock.now()
        self._pending = False
        self._pending_previous: float | None = None

    # ── derived values ───────────────────────────────────────────────────
    @property
    def budget_spacing(self) -> float:
        """Even share of the daily budget, in seconds."""
        return DAY_SECONDS / self.max_requests_per_day

    def _window_expired(self, now: float) -> bool:
        return now - self.window_started >= DAY_SECONDS

    def _effective(self, now: float) -> tuple[int, int]:
        """(request_count, retry_after_seconds) as they stand at *now*."""
        if self._window_expired(now):
            return 0, 0
        return self.request_count, self.retry_after_seconds

    def _roll_window(self, now: float) -> None:
        if not self._window_expired(now):
            return
        elapsed = now - self.window_started
        self.window_started += (elapsed // DAY_SECONDS) * DAY_SECONDS
        LOG.info(
            "[limiter] daily window reset (%d requests used)", self.request_count
        )
        self.request_count = 0
        self.retry_after_seconds = 0

    # ── public API ───────────────────────────────────────────────────────
    def admit(self) -> None:
        """
        Raise if a request issued *now* would break the access policy.

        Raises:
            RateLimited:   cooldown active, or spacing rules not yet met.
            QuotaExceeded: daily budget is spent.
        """
        now = self._clock.now()
        count, retry_after = self._effective(now)
        elapsed = None if self.last_request_time is None else now - self.last_request_time

        if retry_after and elapsed is not None and elapsed < retry_after:
            wait = retry_after - elapsed
            raise RateLimited(
                f"OpenSky asked us to back off; try again in {_fmt_wait(wait)}",
                retry_after=wait,
            )

        if count >= self.max_requests_per_day:
            resets_in = DAY_SECONDS - (now - self.window_started)
            raise QuotaExceeded(
                f"Daily limit of {self.max_requests_per_day} requests reached; "
                f"resets in {_fmt_wait(resets_in)}"
            )

        if self._pending:
            raise RateLimited(
                "Another OpenSky request is still in flight; "
                f"try again in {_fmt_wait(self.min_request_interval)}",
                retry_after=self.min_request_interval,
            )

        if elapsed is None:
            return

        wait = max(
            self.min_request_interval - elapsed,
            self.last_request_time + self.budget_spacing - now,
        )
        if wait > 0:
            raise RateLimited(
                f"Too many requests; try again in {_fmt_wait(wait)}",
                retry_after=wait,
            )

    def acquire(self) -> None:
        """
        Admit a request and hold its slot until it is settled.

        Raises the same errors as :meth:`admit`.
        """
        self.admit()
        self._pending_previous = self.last_request_time
        self._pending = True
        self.last_request_time = self._clock.now()

    def release(self) -> None:
        """Give back a held slot whose request never reached the provider."""
        if not self._pending:
            return
        self._pending = False
        self.last_request_time = self._pending_previous

    def record_success(self) -> None:
        """Count one completed upstream request."""
        now = self._clock.now()
        self._roll_window(now)
        self._pending = False
        self.request_count += 1
        self.last_request_time = now
        # a request went through, so any earlier cooldown is over
        self.retry_after_seconds = 0
        LOG.debug(
            "[limiter] request %d/%d", self.request_count, self.max_requests_per_day
        )

    def record_cooldown(self, seconds: float) -> None:
        """Remember a provider-issued cooldown starting now."""
        now = self._clock.now()
        self._roll_window(now)
        self._pending = False
        self.retry_after_seconds = max(0, int(round(seconds)))
        self.last_request_time = now
        LOG.warning("[limiter] upstream cooldown %ss", self.retry_after_seconds)

    def reset(self) -> None:
        """Start a fresh 24 h window right now."""
        self.window_started = self._clock.now()
        self.request_count = 0
        self.retry_after_seconds = 0

    def stats(self) -> dict[str, Any]:
        now = self._clock.now()
        count, retry_after = self._effective(now)
        return {
            "request_count": count,
            "max_requests_per_day": self.max_requests_per_day,
            "remaining": max(0, self.max_requests_per_day - count),
            "min_request_interval": self.min_request_interval,
            "retry_after_seconds": retry_after,
            "last_request_time": self.last_request_time,
            "in_flight": self._pending,
            "window_resets_in": max(0.0, DAY_SECONDS - (now - self.window_started)),
        }


__all__ = ["RateLimiter"]
