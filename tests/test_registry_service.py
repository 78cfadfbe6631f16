"""
tests/test_registry_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Tail number → ICAO24 via ADSBDB, with canned HTTP responses.
"""

from __future__ import annotations

import httpx
import pytest

from tailwatch.errors import NotFound, UpstreamError
from tailwatch.registry_service import extract_icao24, is_icao24, lookup_icao24

BASE = "https://adsbdb.test/v0"


@pytest.fixture
async def client():
    async with httpx.AsyncClient() as cli:
        yield cli


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"icao24": "A835AF"}, "a835af"),
        ({"icao": "a835af"}, "a835af"),
        ({"mode_s": "A835AF"}, "a835af"),
        ({"response": {"aircraft": {"mode_s": "A835AF"}}}, "a835af"),
        ({"response": {"aircraft": [{"icao": "a835af"}, {"icao": "000000"}]}}, "a835af"),
        ({"response": {"aircraft": []}}, None),
        ({"response": "unknown aircraft"}, None),
        ([], None),
    ],
)
def test_extract_icao24(payload, expected):
    assert extract_icao24(payload) == expected


@pytest.mark.parametrize(
    "value, ok",
    [("abc123", True), ("ABC123", True), (" a835af ", True), ("abc12", False), ("xyz123", False)],
)
def test_is_icao24(value, ok):
    assert is_icao24(value) is ok


async def test_lookup_success(httpx_mock, client):
    httpx_mock.add_response(
        json={"response": {"aircraft": {"mode_s": "A835AF", "registration": "N628TS"}}}
    )

    assert await lookup_icao24(client, " n628ts ", BASE) == "a835af"
    assert httpx_mock.get_request().url.path == "/v0/aircraft/N628TS"


async def test_lookup_404(httpx_mock, client):
    httpx_mock.add_response(status_code=404, json={"response": "unknown aircraft"})
    with pytest.raises(NotFound):
        await lookup_icao24(client, "N0000", BASE)


async def test_lookup_string_response_is_not_found(httpx_mock, client):
    httpx_mock.add_response(json={"response": "unknown aircraft"})
    with pytest.raises(NotFound):
        await lookup_icao24(client, "N0000", BASE)


async def test_lookup_payload_without_code(httpx_mock, client):
    httpx_mock.add_response(json={"response": {"aircraft": {"registration": "N1"}}})
    with pytest.raises(NotFound) as info:
        await lookup_icao24(client, "N1", BASE)
    assert info.value.kind == "NotFound"


async def test_lookup_malformed_code(httpx_mock, client):
    httpx_mock.add_response(json={"icao24": "not-hex"})
    with pytest.raises(UpstreamError):
        await lookup_icao24(client, "N1", BASE)


async def test_lookup_server_error(httpx_mock, client):
    httpx_mock.add_response(status_code=502)
    with pytest.raises(UpstreamError):
        await lookup_icao24(client, "N1", BASE)


async def test_lookup_network_error(httpx_mock, client):
    httpx_mock.add_exception(httpx.ConnectError("dns failure"))
    with pytest.raises(UpstreamError):
        await lookup_icao24(client, "N1", BASE)


async def test_lookup_invalid_json(httpx_mock, client):
    httpx_mock.add_response(content=b"<html>oops</html>")
    with pytest.raises(UpstreamError):
        await lookup_icao24(client, "N1", BASE)


async def test_blank_tail_number(client):
    with pytest.raises(NotFound):
        await lookup_icao24(client, "   ", BASE)
