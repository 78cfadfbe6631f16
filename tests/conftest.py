"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

`clock` is a controllable time source: components under test read it
instead of the wall clock, and tests move it forward with ``advance()``
instead of sleeping.
"""

from __future__ import annotations

from typing import Any

import pytest

from tailwatch.rate_limiter import RateLimiter
from tailwatch.state_normalizer import FIELD_INDEX
from tailwatch.snapshot_cache import SnapshotCache

pytest_plugins = ["pytest_asyncio"]

#: 2025-06-01T12:00:00Z – any fixed epoch works
START_EPOCH = 1_748_779_200.0


class FakeClock:
    """Clock whose time only changes when a test says so."""

    def __init__(self, start: float = START_EPOCH) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


def make_raw_state(icao24: str = "abc123", **overrides: Any) -> list[Any]:
    """Build an 18-field OpenSky state vector with sensible airborne values."""
    raw: list[Any] = [
        icao24,           # 0 icao24
        "DAL123  ",       # 1 callsign (OpenSky pads to 8 chars)
        "United States",  # 2 origin_country
        1748779190,       # 3 time_position
        1748779195,       # 4 last_contact
        -73.7781,         # 5 longitude
        40.6413,          # 6 latitude
        10668.0,          # 7 baro_altitude
        False,            # 8 on_ground
        231.5,            # 9 velocity
        87.3,             # 10 true_track
        -2.6,             # 11 vertical_rate
        None,             # 12 sensors
        10850.0,          # 13 geo_altitude
        "3421",           # 14 squawk
        False,            # 15 spi
        0,                # 16 position_source
        3,                # 17 category
    ]
    for name, value in overrides.items():
        raw[FIELD_INDEX[name]] = value
    return raw


@pytest.fixture
def raw_state():
    """Factory for raw OpenSky state vectors, see :func:`make_raw_state`."""
    return make_raw_state


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests_per_day=400, min_request_interval=10, clock=clock)


@pytest.fixture
def cache(clock: FakeClock) -> SnapshotCache:
    return SnapshotCache(
        poll_interval=60, cache_duration=300, max_states_per_aircraft=30, clock=clock
    )
