"""
tests/integration/test_adsbdb_api.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Integration tests for the ADSBDB registry lookup.

Run with:
    INTEGRATION_TESTS=1 pytest tests/integration/test_adsbdb_api.py -v
"""

from __future__ import annotations

import pytest

from tailwatch.errors import NotFound
from tailwatch.registry_service import is_icao24, lookup_icao24


async def test_known_registration(live_client, polite_delay) -> None:
    code = await lookup_icao24(live_client, "N757AF")
    assert is_icao24(code)
    assert code == "aa3410"


async def test_unknown_registration(live_client, polite_delay) -> None:
    with pytest.raises(NotFound):
        await lookup_icao24(live_client, "N0NEXIST0")
