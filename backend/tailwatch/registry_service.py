"""registry_service.py
~~~~~~~~~~~~~~~~~~~~~~
Resolve a tail number (registration, e.g. ``N757AF``) to the aircraft's
ICAO24 Mode-S address using the **ADSBDB** registry.

ADSBDB has answered in a few shapes over time, so the code is looked up in
``icao24`` / ``icao`` / ``mode_s`` at the top level first and then under
``response.aircraft`` (a single object or a list).

A 404 or a payload without a code is :class:`NotFound`; any other failure
is :class:`UpstreamError`.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Final

import httpx

from .api_logging import logged_request
from .errors import NotFound, UpstreamError

LOG = logging.getLogger("registry")

ICAO24_RE: Final = re.compile(r"^[0-9a-f]{6}$")
_CODE_KEYS: Final[tuple[str, ...]] = ("icao24", "icao", "mode_s")


def is_icao24(value: str) -> bool:
    """True for a six-digit hex address (any case)."""
    return bool(ICAO24_RE.match(value.strip().lower()))


def _code_from(obj: Any) -> str | None:
    if not isinstance(obj, dict):
        return None
    for key in _CODE_KEYS:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return None


def extract_icao24(data: Any) -> str | None:
    """Pull the ICAO24 code out of an ADSBDB payload, or ``None``."""
    code = _code_from(data)
    if code:
        return code

    response = data.get("response") if isinstance(data, dict) else None
    aircraft = response.get("aircraft") if isinstance(response, dict) else None
    if isinstance(aircraft, list):
        return _code_from(aircraft[0]) if aircraft else None
    return _code_from(aircraft)


async def lookup_icao24(
    client: httpx.AsyncClient,
    tail_number: str,
    base_url: str = "https://api.adsbdb.com/v0",
) -> str:
    """
    Return the lowercase ICAO24 for *tail_number*.

    Raises:
        NotFound:      unknown registration or no code in the answer.
        UpstreamError: network failure, non-JSON or unexpected status.
    """
    tail = tail_number.strip().upper()
    if not tail:
        raise NotFound("Empty tail number")

    url = f"{base_url.rstrip('/')}/aircraft/{tail}"
    try:
        resp = await logged_request(client, "get", url, raise_for_status=False)
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Registry lookup failed: {exc}") from exc

    if resp.status_code == 404:
        raise NotFound(f"No aircraft found with registration {tail}")
    if resp.status_code != 200:
        raise UpstreamError(
            f"Registry lookup failed: HTTP {resp.status_code} for {tail}"
        )

    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamError(f"Registry returned invalid JSON: {exc}") from exc

    # ADSBDB answers 200 with a string body for unknown registrations
    if isinstance(data, dict) and isinstance(data.get("response"), str):
        raise NotFound(f"No aircraft found with registration {tail}")

    code = extract_icao24(data)
    if not code:
        LOG.warning("[registry] %s: no ICAO24 in payload", tail)
        raise NotFound(f"Registry has no ICAO24 code for {tail}")
    if not is_icao24(code):
        raise UpstreamError(f"Registry returned malformed ICAO24 {code!r} for {tail}")

    LOG.info("[registry] %s → %s", tail, code)
    return code


__all__ = ["extract_icao24", "is_icao24", "lookup_icao24"]
