"""
tests/integration/test_opensky_api.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Integration tests for the OpenSky Network API through OpenSkyTransport.

Note: OpenSky allows 400 req/day for anonymous access.
These tests should be run sparingly.

Run with:
    INTEGRATION_TESTS=1 pytest tests/integration/test_opensky_api.py -v
"""

from __future__ import annotations

import pytest

from tailwatch.errors import UpstreamCooldown
from tailwatch.opensky_service import OpenSkyTransport
from tailwatch.state_normalizer import STATE_VECTOR_LENGTH, normalize_state

#: Boeing 747-8 freighter, usually somewhere in the air
ICAO24 = "4b1817"


async def test_fetch_states_shape(live_client, polite_delay) -> None:
    """Either no states, or vectors that normalise cleanly."""
    transport = OpenSkyTransport(live_client)
    try:
        batch = await transport.fetch_states(ICAO24)
    except UpstreamCooldown as exc:
        pytest.skip(f"OpenSky is throttling us ({exc.retry_after:.0f}s)")

    for raw in batch.states:
        assert len(raw) <= STATE_VECTOR_LENGTH
        snap = normalize_state(raw)
        assert snap.icao24 == ICAO24


async def test_unknown_icao_returns_no_states(live_client, polite_delay) -> None:
    transport = OpenSkyTransport(live_client)
    try:
        batch = await transport.fetch_states("000000")
    except UpstreamCooldown as exc:
        pytest.skip(f"OpenSky is throttling us ({exc.retry_after:.0f}s)")
    assert batch.states == []
