"""opensky_service.py
~~~~~~~~~~~~~~~~~~~~~
Flight-state transport: ask **OpenSky** for the live state vector of one
aircraft.

This module only talks HTTP. It does not cache, count requests or
normalise anything; :mod:`tailwatch.flight_tracker` does all of that.

Outcomes of :meth:`OpenSkyTransport.fetch_states`
-------------------------------------------------
* 200 with states   → :class:`RawStateBatch` with the raw vectors of the
  requested aircraft only; other ICAO24s in the payload are dropped.
* 200 with ``null`` → :class:`RawStateBatch` with an empty list (the
  aircraft is not broadcasting, a normal result).
* 404               → empty batch as well (OpenSky's answer for unknown
  filters on some deployments).
* 429               → :class:`~tailwatch.errors.UpstreamCooldown` carrying
  the retry-after hint.
* anything else     → :class:`httpx.HTTPStatusError` / network errors
  propagate to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Final, NamedTuple

import httpx

from .api_logging import logged_request
from .errors import UpstreamCooldown

LOG = logging.getLogger("opensky")

#: Headers OpenSky uses (first match wins) to say how long to back off
RETRY_AFTER_HEADERS: Final[tuple[str, ...]] = (
    "X-Rate-Limit-Retry-After-Seconds",
    "Retry-After",
)


class RawStateBatch(NamedTuple):
    """Raw ``/states/all`` payload trimmed to what the tracker needs."""

    states: list[list[Any]]
    time: int | None = None


def parse_retry_after(headers: httpx.Headers, default: float) -> float:
    """Read the back-off hint in seconds, or *default* if absent/garbled."""
    for name in RETRY_AFTER_HEADERS:
        raw = headers.get(name)
        if raw is None:
            continue
        try:
            value = float(raw)
        except ValueError:
            LOG.debug("[opensky] unparseable %s header: %r", name, raw)
            continue
        if value >= 0:
            return value
    return default


class OpenSkyTransport:
    """Thin async client for ``GET /states/all?icao24=…``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://opensky-network.org/api",
        *,
        auth: tuple[str, str] | None = None,
        default_retry_after: float = 10,
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")
        self._auth = auth
        self.default_retry_after = default_retry_after

    async def fetch_states(self, icao24: str) -> RawStateBatch:
        """Return the raw state vectors OpenSky has for *icao24*."""
        icao24 = icao24.lower()
        url = f"{self.base_url}/states/all"
        kwargs: dict[str, Any] = {"params": {"icao24": icao24}}
        if self._auth:
            kwargs["auth"] = self._auth

        resp = await logged_request(
            self._client, "get", url, raise_for_status=False, **kwargs
        )

        if resp.status_code == 429:
            raise UpstreamCooldown(
                parse_retry_after(resp.headers, self.default_retry_after)
            )
        if resp.status_code == 404:
            LOG.debug("[opensky] %s → 404 (not tracked now)", icao24)
            return RawStateBatch(states=[])
        resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected OpenSky payload type {type(data).__name__}")

        states = [
            s
            for s in (data.get("states") or [])
            if isinstance(s, list) and s and str(s[0]).strip().lower() == icao24
        ]

        batch_time = data.get("time")
        return RawStateBatch(
            states=states,
            time=int(batch_time) if isinstance(batch_time, (int, float)) else None,
        )


__all__ = ["OpenSkyTransport", "RawStateBatch", "parse_retry_after"]
