"""snapshot_cache.py
~~~~~~~~~~~~~~~~~~~~
In-memory, per-aircraft history of normalized snapshots.

The cache answers two questions without touching the network:

* "Is a fresh upstream call due for this aircraft?" (:meth:`should_poll`)
* "What is the best data we already have?" (:meth:`get_latest_state`)

Each aircraft keeps a bounded deque (oldest evicted first), which doubles as
the short trailing path drawn on the map. :meth:`cleanup` is meant to run on
a timer, independently of request traffic, so aircraft nobody asks about any
more do not linger in memory.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .clock import SYSTEM_CLOCK, Clock
from .state_normalizer import StateSnapshot

LOG = logging.getLogger("snapshot_cache")


@dataclass
class AircraftCacheEntry:
    """Snapshots for one ICAO24, in arrival order."""

    states: deque[StateSnapshot]
    last_polled: float = 0.0

    @property
    def newest(self) -> StateSnapshot | None:
        return self.states[-1] if self.states else None


@dataclass
class SnapshotCache:
    """Bounded snapshot history keyed by ICAO24."""

    poll_interval: float = 60
    cache_duration: float = 300
    max_states_per_aircraft: int = 30
    clock: Clock = field(default=SYSTEM_CLOCK, repr=False)
    _entries: dict[str, AircraftCacheEntry] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.max_states_per_aircraft <= 0:
            raise ValueError("max_states_per_aircraft must be positive")

    # ── container protocol ───────────────────────────────────────────────
    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, icao24: object) -> bool:
        return isinstance(icao24, str) and icao24.lower() in self._entries

    def entry(self, icao24: str) -> AircraftCacheEntry | None:
        return self._entries.get(icao24.lower())

    # ── freshness queries ────────────────────────────────────────────────
    def _is_fresh(self, snapshot: StateSnapshot, now: float) -> bool:
        return now - snapshot.timestamp <= self.cache_duration

    def should_poll(self, icao24: str) -> bool:
        """True when there is no entry or the poll interval has elapsed."""
        entry = self._entries.get(icao24.lower())
        if entry is None:
            return True
        return self.clock.now() - entry.last_polled >= self.poll_interval

    def get_latest_state(self, icao24: str) -> StateSnapshot | None:
        """
        Newest snapshot flagged ``cached=True``, or ``None`` if it is stale.

        Staleness is judged from the clock, so an expired snapshot is never
        served even if :meth:`cleanup` has not run yet.
        """
        entry = self._entries.get(icao24.lower())
        if entry is None or entry.newest is None:
            return None
        latest = entry.newest
        if not self._is_fresh(latest, self.clock.now()):
            return None
        return latest.with_cached(True)

    def get_history(self, icao24: str) -> list[StateSnapshot]:
        """Fresh snapshots for *icao24*, oldest first."""
        entry = self._entries.get(icao24.lower())
        if entry is None:
            return []
        now = self.clock.now()
        return [s.with_cached(True) for s in entry.states if self._is_fresh(s, now)]

    # ── mutation ─────────────────────────────────────────────────────────
    def add_state(self, icao24: str, snapshot: StateSnapshot) -> None:
        """Append *snapshot*, creating the entry on first sight."""
        key = icao24.lower()
        entry = self._entries.get(key)
        if entry is None:
            entry = AircraftCacheEntry(
                states=deque(maxlen=self.max_states_per_aircraft),
                last_polled=self.clock.now(),
            )
            self._entries[key] = entry
            LOG.debug("[cache] new entry %s", key)
        entry.states.append(snapshot.with_cached(False))

    def update_last_polled(self, icao24: str) -> None:
        """Stamp the entry as just polled. Unknown keys are ignored."""
        entry = self._entries.get(icao24.lower())
        if entry is not None:
            entry.last_polled = self.clock.now()

    def cleanup(self) -> int:
        """
        Drop snapshots older than ``cache_duration`` and empty entries.

        Returns:
            Number of aircraft entries removed.
        """
        now = self.clock.now()
        removed = 0
        for key in list(self._entries):
            entry = self._entries[key]
            kept = [s for s in entry.states if self._is_fresh(s, now)]
            if not kept:
                del self._entries[key]
                removed += 1
                continue
            if len(kept) != len(entry.states):
                entry.states = deque(kept, maxlen=self.max_states_per_aircraft)

        if removed:
            LOG.info("[cache] cleanup removed %d aircraft, %d left", removed, len(self))
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "aircraft": len(self._entries),
            "snapshots": sum(len(e.states) for e in self._entries.values()),
            "poll_interval": self.poll_interval,
            "cache_duration": self.cache_duration,
            "max_states_per_aircraft": self.max_states_per_aircraft,
        }


__all__ = ["AircraftCacheEntry", "SnapshotCache"]
