"""flight_tracker.py
~~~~~~~~~~~~~~~~~~~~
Single entry point for "where is aircraft X right now?".

:meth:`FlightTracker.get_current_state` composes the
:class:`~tailwatch.snapshot_cache.SnapshotCache`, the
:class:`~tailwatch.rate_limiter.RateLimiter` and a flight-state transport:

1. Poll not due and a fresh cached snapshot exists → return it
   (``cached=True``), no network and no limiter involvement.
2. Otherwise acquire a limiter slot; its errors propagate as-is. The slot
   is held until the request settles, so polls for different aircraft are
   spaced too.
3. Call the transport:

   * 429 → record the cooldown, raise :class:`RateLimited`;
   * no states, or only other aircraft → ``None`` (not broadcasting; not
     an error);
   * states → count the request, normalise, cache, return the snapshot.

4. Anything else the transport raises becomes :class:`UpstreamError` and
   gives the limiter slot back.
   Nothing is retried here; the caller's refresh timer owns retries.

Concurrent callers asking for the same ICAO24 while a request is in flight
share that request. A caller that gives up (is cancelled) does not cancel
the upstream call: it still completes and still updates limiter and cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from .clock import SYSTEM_CLOCK, Clock
from .errors import RateLimited, TrackerError, UpstreamCooldown, UpstreamError
from .opensky_service import RawStateBatch
from .rate_limiter import RateLimiter
from .snapshot_cache import SnapshotCache
from .state_normalizer import StateSnapshot, normalize_state

LOG = logging.getLogger("flight_tracker")


class StateTransport(Protocol):
    """Anything that can fetch raw state vectors for one ICAO24."""

    async def fetch_states(self, icao24: str) -> RawStateBatch:
        ...


class FlightTracker:
    """Cache-first, quota-aware access to live aircraft state."""

    def __init__(
        self,
        transport: StateTransport,
        limiter: RateLimiter,
        cache: SnapshotCache,
        clock: Clock | None = None,
    ) -> None:
        self.transport = transport
        self.limiter = limiter
        self.cache = cache
        self._clock = clock or SYSTEM_CLOCK
        self._inflight: dict[str, asyncio.Task[StateSnapshot | None]] = {}

    # ── public API ───────────────────────────────────────────────────────
    async def get_current_state(self, icao24: str) -> StateSnapshot | None:
        """
        Return the current snapshot for *icao24*, or ``None`` when the
        aircraft is not broadcasting.

        Raises:
            RateLimited, QuotaExceeded: admission refused or upstream cooldown.
            UpstreamError:              transport or parse failure.
        """
        key = icao24.strip().lower()

        if not self.cache.should_poll(key):
            cached = self.cache.get_latest_state(key)
            if cached is not None:
                LOG.debug("[tracker] %s served from cache", key)
                return cached

        task = self._inflight.get(key)
        if task is None:
            self.limiter.acquire()
            task = asyncio.create_task(self._poll(key), name=f"poll-{key}")
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            LOG.debug("[tracker] %s joined in-flight request", key)

        return await asyncio.shield(task)

    def get_trail(self, icao24: str) -> list[StateSnapshot]:
        """Recent cached snapshots for the map trail, oldest first."""
        return self.cache.get_history(icao24.strip().lower())

    def cleanup(self) -> int:
        return self.cache.cleanup()

    @property
    def inflight(self) -> int:
        """Number of upstream requests currently running."""
        return len(self._inflight)

    def stats(self) -> dict[str, Any]:
        return {
            "limiter": self.limiter.stats(),
            "cache": self.cache.stats(),
            "inflight": self.inflight,
        }

    # ── internals ────────────────────────────────────────────────────────
    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            # cancelled before it settled, so the slot is still ours
            self.limiter.release()
        else:
            # Mark the outcome as retrieved; every waiter may have gone away.
            task.exception()

    async def _poll(self, key: str) -> StateSnapshot | None:
        try:
            batch = await self.transport.fetch_states(key)
        except UpstreamCooldown as exc:
            self.limiter.record_cooldown(exc.retry_after)
            raise RateLimited(
                f"OpenSky rate limit hit; retry in {exc.retry_after:.0f}s",
                retry_after=exc.retry_after,
            ) from exc
        except TrackerError:
            self.limiter.release()
            raise
        except Exception as exc:  # noqa: BLE001 – network/HTTP/JSON errors
            self.limiter.release()
            LOG.warning("[tracker] %s upstream failure: %s", key, exc)
            raise UpstreamError(f"OpenSky request failed: {exc}") from exc

        # Counted even when nothing comes back: the request spent quota.
        self.limiter.record_success()

        if not batch.states:
            LOG.info("[tracker] %s not broadcasting", key)
            return None

        snapshot = normalize_state(batch.states[0], clock=self._clock)
        if snapshot.icao24 != key:
            LOG.warning("[tracker] %s answered with %s; ignored", key, snapshot.icao24)
            return None
        self.cache.add_state(key, snapshot)
        self.cache.update_last_polled(key)
        LOG.info(
            "[tracker] %s lat=%s lon=%s alt=%s",
            key,
            snapshot.latitude,
            snapshot.longitude,
            snapshot.baro_altitude,
        )
        return snapshot


__all__ = ["FlightTracker", "StateTransport"]
